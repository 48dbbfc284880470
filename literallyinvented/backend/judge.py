"""Remote judge interfaces and implementations.

The judge owns answer checking, scoring and progress storage. The session
engine only ever mirrors what it reports.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Protocol, TypeVar

from literallyinvented.backend.content import build_pool
from literallyinvented.backend.errors import RemoteUnavailable
from literallyinvented.backend.models import (
    AnswerRecord,
    BatchResult,
    CheckResult,
    FinalizeResult,
    LeaderboardEntry,
    PartialProgress,
)
from literallyinvented.backend.variants import VARIANTS, GameVariant, get_variant

logger = logging.getLogger(__name__)

R = TypeVar("R")


class RemoteJudge(Protocol):
    async def check_item(self, player_id: str, game: str, item_id: str, value: Any) -> CheckResult:
        """Judge one answer and return the authoritative running totals."""

    async def submit_batch(self, player_id: str, game: str, answers: Mapping[str, Any]) -> BatchResult:
        """Judge a full answer set in one round trip."""

    async def finalize(self, player_id: str, game: str) -> FinalizeResult:
        """Convert per-item progress into the terminal score; idempotent."""

    async def get_finalized_score(self, player_id: str, game: str) -> FinalizeResult | None:
        """Return the terminal score if the game was finalized."""

    async def get_partial_progress(self, player_id: str, game: str) -> PartialProgress:
        """Return resolved items, attempt counts and the partial score."""

    async def save_progress(self, player_id: str, game: str, answers: Mapping[str, Any]) -> None:
        """Store unvalidated in-progress answers."""

    async def get_saved_progress(self, player_id: str, game: str) -> dict[str, Any]:
        """Return the last stored unvalidated answers."""

    async def leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        """Return players ordered by total score."""


async def await_judge(call: Awaitable[R], timeout_s: float | None, operation: str) -> R:
    """Await a judge call, turning a timeout into ``RemoteUnavailable``."""
    try:
        return await asyncio.wait_for(call, timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        logger.warning("judge call %s timed out after %ss", operation, timeout_s)
        raise RemoteUnavailable(f"{operation} timed out after {timeout_s}s") from exc


def answers_match(expected: Any, value: Any) -> bool:
    if isinstance(expected, bool) or isinstance(value, bool):
        return isinstance(expected, bool) and isinstance(value, bool) and expected is value
    if isinstance(expected, str) and isinstance(value, str):
        return expected.strip().casefold() == value.strip().casefold()
    if isinstance(expected, (list, tuple)) and isinstance(value, (list, tuple)):
        return [str(part) for part in expected] == [str(part) for part in value]
    return expected == value


def _final_result(variant: GameVariant, correct_count: int, total_count: int) -> FinalizeResult:
    return FinalizeResult(
        score=correct_count * variant.points_per_correct,
        correct_count=correct_count,
        total_count=total_count,
        is_perfect=total_count > 0 and correct_count == total_count,
    )


@dataclass
class _PlayerGame:
    records: dict[str, AnswerRecord] = field(default_factory=dict)
    attempts: dict[str, int] = field(default_factory=dict)
    drafts: dict[str, Any] = field(default_factory=dict)
    final: FinalizeResult | None = None

    def correct_count(self) -> int:
        return sum(1 for record in self.records.values() if record.is_correct)


@dataclass
class InMemoryRemoteJudge:
    answer_keys: dict[str, dict[str, Any]]

    def __post_init__(self) -> None:
        self._progress: dict[tuple[str, str], _PlayerGame] = {}
        self._players: dict[str, str] = {}
        self._totals = {key: len(build_pool(variant)) for key, variant in VARIANTS.items()}

    def register_player(self, player_id: str, display_name: str) -> None:
        self._players[player_id] = display_name

    def _entry(self, player_id: str, game: str) -> _PlayerGame:
        get_variant(game)
        self._players.setdefault(player_id, player_id)
        return self._progress.setdefault((player_id, game), _PlayerGame())

    def _is_correct(self, game: str, item_id: str, value: Any) -> bool:
        key = self.answer_keys.get(game, {})
        if item_id not in key:
            return False
        return answers_match(key[item_id], value)

    async def check_item(self, player_id: str, game: str, item_id: str, value: Any) -> CheckResult:
        variant = get_variant(game)
        entry = self._entry(player_id, game)
        existing = entry.records.get(item_id)
        if existing is None and entry.final is None:
            is_correct = self._is_correct(game, item_id, value)
            attempts = entry.attempts.get(item_id, 0) + 1
            entry.attempts[item_id] = attempts
            if variant.should_lock(is_correct, attempts):
                entry.records[item_id] = AnswerRecord(item_id=item_id, submitted_value=value, is_correct=is_correct)
        else:
            is_correct = existing.is_correct if existing is not None else False
        correct = entry.correct_count()
        return CheckResult(
            is_correct=is_correct,
            score=correct * variant.points_per_correct,
            correct_count=correct,
            attempts=entry.attempts.get(item_id, 0),
        )

    async def submit_batch(self, player_id: str, game: str, answers: Mapping[str, Any]) -> BatchResult:
        variant = get_variant(game)
        entry = self._entry(player_id, game)
        per_item: dict[str, bool] = {}
        for item_id, value in answers.items():
            existing = entry.records.get(item_id)
            if existing is not None or entry.final is not None:
                per_item[item_id] = existing.is_correct if existing is not None else False
                continue
            is_correct = self._is_correct(game, item_id, value)
            entry.attempts[item_id] = entry.attempts.get(item_id, 0) + 1
            entry.records[item_id] = AnswerRecord(item_id=item_id, submitted_value=value, is_correct=is_correct)
            per_item[item_id] = is_correct
        correct = entry.correct_count()
        return BatchResult(
            per_item=per_item,
            score=correct * variant.points_per_correct,
            correct_count=correct,
            total_count=self._totals[game],
        )

    async def finalize(self, player_id: str, game: str) -> FinalizeResult:
        variant = get_variant(game)
        entry = self._entry(player_id, game)
        if entry.final is None:
            entry.final = _final_result(variant, entry.correct_count(), self._totals[game])
        return entry.final

    async def get_finalized_score(self, player_id: str, game: str) -> FinalizeResult | None:
        return self._entry(player_id, game).final

    async def get_partial_progress(self, player_id: str, game: str) -> PartialProgress:
        variant = get_variant(game)
        entry = self._entry(player_id, game)
        return PartialProgress(
            records=tuple(entry.records.values()),
            score=entry.correct_count() * variant.points_per_correct,
            attempts=dict(entry.attempts),
        )

    async def save_progress(self, player_id: str, game: str, answers: Mapping[str, Any]) -> None:
        self._entry(player_id, game).drafts = dict(answers)

    async def get_saved_progress(self, player_id: str, game: str) -> dict[str, Any]:
        return dict(self._entry(player_id, game).drafts)

    async def leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        totals: dict[str, int] = {}
        completed: dict[str, int] = {}
        for (player_id, game), entry in self._progress.items():
            if entry.final is None and not entry.records:
                continue
            variant = get_variant(game)
            if entry.final is not None:
                totals[player_id] = totals.get(player_id, 0) + entry.final.score
                completed[player_id] = completed.get(player_id, 0) + 1
            else:
                totals[player_id] = totals.get(player_id, 0) + entry.correct_count() * variant.points_per_correct
        entries = [
            LeaderboardEntry(
                player_id=player_id,
                display_name=self._players.get(player_id, player_id),
                total_score=total,
                completed_levels=completed.get(player_id, 0),
            )
            for player_id, total in totals.items()
        ]
        entries.sort(key=lambda entry: (-entry.total_score, entry.display_name))
        return entries[:limit]


def _remote_call(method: Callable[..., Awaitable[R]]) -> Callable[..., Awaitable[R]]:
    @functools.wraps(method)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> R:
        import psycopg

        try:
            return await method(self, *args, **kwargs)
        except psycopg.Error as exc:
            logger.warning("judge call %s failed: %s", method.__name__, exc)
            raise RemoteUnavailable(f"{method.__name__} failed: {exc}") from exc

    return wrapper


def _load_json(value: Any) -> Any:
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


@dataclass
class PostgresRemoteJudge:
    database_url: str

    async def _connect(self) -> Any:
        import psycopg

        return await psycopg.AsyncConnection.connect(self.database_url)

    async def _expected(self, cur: Any, game: str, item_id: str) -> tuple[bool, Any]:
        await cur.execute(
            "SELECT expected FROM answer_keys WHERE game = %s AND item_id = %s",
            (game, item_id),
        )
        row = await cur.fetchone()
        if row is None:
            return False, None
        return True, _load_json(row[0])

    async def _totals(self, cur: Any, player_id: str, game: str) -> tuple[int, int]:
        await cur.execute(
            """
            SELECT count(*) FILTER (WHERE is_correct), count(*)
            FROM item_results
            WHERE player_id = %s AND game = %s AND resolved
            """,
            (player_id, game),
        )
        row = await cur.fetchone()
        if row is None:
            return 0, 0
        return int(row[0] or 0), int(row[1] or 0)

    async def _is_finalized(self, cur: Any, player_id: str, game: str) -> bool:
        await cur.execute(
            "SELECT 1 FROM final_scores WHERE player_id = %s AND game = %s",
            (player_id, game),
        )
        return await cur.fetchone() is not None

    async def _stored_result(self, cur: Any, player_id: str, game: str, item_id: str) -> bool:
        await cur.execute(
            """
            SELECT is_correct, resolved
            FROM item_results
            WHERE player_id = %s AND game = %s AND item_id = %s
            """,
            (player_id, game, item_id),
        )
        row = await cur.fetchone()
        return row is not None and bool(row[1]) and bool(row[0])

    @_remote_call
    async def check_item(self, player_id: str, game: str, item_id: str, value: Any) -> CheckResult:
        variant = get_variant(game)
        now = datetime.now(timezone.utc)
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                finalized = await self._is_finalized(cur, player_id, game)
                await cur.execute(
                    """
                    SELECT is_correct, attempts, resolved
                    FROM item_results
                    WHERE player_id = %s AND game = %s AND item_id = %s
                    FOR UPDATE
                    """,
                    (player_id, game, item_id),
                )
                row = await cur.fetchone()
                if row is not None and row[2]:
                    is_correct, attempts = bool(row[0]), int(row[1])
                elif finalized:
                    # A finalized game takes no new results.
                    is_correct, attempts = False, int(row[1]) if row is not None else 0
                else:
                    known, expected = await self._expected(cur, game, item_id)
                    is_correct = known and answers_match(expected, value)
                    attempts = (int(row[1]) if row is not None else 0) + 1
                    resolved = variant.should_lock(is_correct, attempts)
                    await cur.execute(
                        """
                        INSERT INTO item_results
                            (player_id, game, item_id, submitted, is_correct, attempts, resolved, updated_at)
                        VALUES (%s, %s, %s, %s::jsonb, %s, %s, %s, %s)
                        ON CONFLICT (player_id, game, item_id) DO UPDATE
                        SET submitted = EXCLUDED.submitted,
                            is_correct = EXCLUDED.is_correct,
                            attempts = EXCLUDED.attempts,
                            resolved = EXCLUDED.resolved,
                            updated_at = EXCLUDED.updated_at
                        """,
                        (player_id, game, item_id, json.dumps(value), is_correct, attempts, resolved, now),
                    )
                correct, _ = await self._totals(cur, player_id, game)
            await conn.commit()
        return CheckResult(
            is_correct=is_correct,
            score=correct * variant.points_per_correct,
            correct_count=correct,
            attempts=attempts,
        )

    @_remote_call
    async def submit_batch(self, player_id: str, game: str, answers: Mapping[str, Any]) -> BatchResult:
        variant = get_variant(game)
        now = datetime.now(timezone.utc)
        per_item: dict[str, bool] = {}
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                finalized = await self._is_finalized(cur, player_id, game)
                for item_id, value in answers.items():
                    if not finalized:
                        known, expected = await self._expected(cur, game, item_id)
                        is_correct = known and answers_match(expected, value)
                        await cur.execute(
                            """
                            INSERT INTO item_results
                                (player_id, game, item_id, submitted, is_correct, attempts, resolved, updated_at)
                            VALUES (%s, %s, %s, %s::jsonb, %s, 1, TRUE, %s)
                            ON CONFLICT (player_id, game, item_id) DO UPDATE
                            SET submitted = EXCLUDED.submitted,
                                is_correct = EXCLUDED.is_correct,
                                attempts = item_results.attempts + 1,
                                resolved = TRUE,
                                updated_at = EXCLUDED.updated_at
                            WHERE NOT item_results.resolved
                            RETURNING is_correct
                            """,
                            (player_id, game, item_id, json.dumps(value), is_correct, now),
                        )
                        written = await cur.fetchone()
                        if written is not None:
                            per_item[item_id] = bool(written[0])
                            continue
                    # Resolved rows keep their first result.
                    per_item[item_id] = await self._stored_result(cur, player_id, game, item_id)
                correct, _ = await self._totals(cur, player_id, game)
            await conn.commit()
        return BatchResult(
            per_item=per_item,
            score=correct * variant.points_per_correct,
            correct_count=correct,
            total_count=len(build_pool(variant)),
        )

    @_remote_call
    async def finalize(self, player_id: str, game: str) -> FinalizeResult:
        variant = get_variant(game)
        total = len(build_pool(variant))
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                correct, _ = await self._totals(cur, player_id, game)
                result = _final_result(variant, correct, total)
                await cur.execute(
                    """
                    INSERT INTO final_scores
                        (player_id, game, score, correct_count, total_count, is_perfect, completed_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (player_id, game) DO NOTHING
                    """,
                    (
                        player_id,
                        game,
                        result.score,
                        result.correct_count,
                        result.total_count,
                        result.is_perfect,
                        result.completed_at,
                    ),
                )
            await conn.commit()
        stored = await self.get_finalized_score(player_id, game)
        return stored if stored is not None else result

    @_remote_call
    async def get_finalized_score(self, player_id: str, game: str) -> FinalizeResult | None:
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT score, correct_count, total_count, is_perfect, completed_at
                    FROM final_scores
                    WHERE player_id = %s AND game = %s
                    """,
                    (player_id, game),
                )
                row = await cur.fetchone()
        if row is None:
            return None
        score, correct_count, total_count, is_perfect, completed_at = row
        return FinalizeResult(
            score=int(score),
            correct_count=int(correct_count),
            total_count=int(total_count),
            is_perfect=bool(is_perfect),
            completed_at=completed_at,
        )

    @_remote_call
    async def get_partial_progress(self, player_id: str, game: str) -> PartialProgress:
        variant = get_variant(game)
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT item_id, submitted, is_correct, attempts, resolved, updated_at
                    FROM item_results
                    WHERE player_id = %s AND game = %s
                    ORDER BY updated_at
                    """,
                    (player_id, game),
                )
                rows = await cur.fetchall()
        records: list[AnswerRecord] = []
        attempts: dict[str, int] = {}
        for item_id, submitted, is_correct, item_attempts, resolved, updated_at in rows:
            attempts[item_id] = int(item_attempts)
            if resolved:
                records.append(
                    AnswerRecord(
                        item_id=item_id,
                        submitted_value=_load_json(submitted),
                        is_correct=bool(is_correct),
                        timestamp=updated_at,
                    )
                )
        correct = sum(1 for record in records if record.is_correct)
        return PartialProgress(
            records=tuple(records),
            score=correct * variant.points_per_correct,
            attempts=attempts,
        )

    @_remote_call
    async def save_progress(self, player_id: str, game: str, answers: Mapping[str, Any]) -> None:
        now = datetime.now(timezone.utc)
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO draft_progress (player_id, game, answers, updated_at)
                    VALUES (%s, %s, %s::jsonb, %s)
                    ON CONFLICT (player_id, game) DO UPDATE
                    SET answers = EXCLUDED.answers, updated_at = EXCLUDED.updated_at
                    """,
                    (player_id, game, json.dumps(dict(answers)), now),
                )
            await conn.commit()

    @_remote_call
    async def get_saved_progress(self, player_id: str, game: str) -> dict[str, Any]:
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "SELECT answers FROM draft_progress WHERE player_id = %s AND game = %s",
                    (player_id, game),
                )
                row = await cur.fetchone()
        if row is None:
            return {}
        return dict(_load_json(row[0]))

    @_remote_call
    async def leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        points = " ".join(
            f"WHEN '{variant.key}' THEN {variant.points_per_correct}" for variant in VARIANTS.values()
        )
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    WITH partial AS (
                        SELECT r.player_id,
                               sum(CASE r.game {points} ELSE 0 END) AS score
                        FROM item_results r
                        LEFT JOIN final_scores f
                          ON f.player_id = r.player_id AND f.game = r.game
                        WHERE r.resolved AND r.is_correct AND f.player_id IS NULL
                        GROUP BY r.player_id
                    ),
                    finished AS (
                        SELECT player_id, sum(score) AS score, count(*) AS levels
                        FROM final_scores
                        GROUP BY player_id
                    ),
                    totals AS (
                        SELECT coalesce(fin.player_id, part.player_id) AS player_id,
                               coalesce(fin.score, 0) + coalesce(part.score, 0) AS total,
                               coalesce(fin.levels, 0) AS levels
                        FROM finished fin
                        FULL OUTER JOIN partial part ON part.player_id = fin.player_id
                    )
                    SELECT t.player_id,
                           coalesce(p.display_name, t.player_id) AS display_name,
                           t.total,
                           t.levels
                    FROM totals t
                    LEFT JOIN players p ON p.id = t.player_id
                    ORDER BY t.total DESC, display_name
                    LIMIT %s
                    """,
                    (limit,),
                )
                rows = await cur.fetchall()
        return [
            LeaderboardEntry(
                player_id=str(player_id),
                display_name=str(display_name),
                total_score=int(total),
                completed_levels=int(levels),
            )
            for player_id, display_name, total, levels in rows
        ]


def create_judge(database_url: str | None, answer_keys: dict[str, dict[str, Any]] | None = None) -> RemoteJudge:
    if database_url:
        return PostgresRemoteJudge(database_url=database_url)
    return InMemoryRemoteJudge(answer_keys=answer_keys or {})
