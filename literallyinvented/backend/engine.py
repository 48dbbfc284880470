"""Session engine: answer submission and completion detection for one game."""

from __future__ import annotations

import inspect
import logging
import random
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence

from literallyinvented.backend.content import build_pool
from literallyinvented.backend.errors import AuthMissing, InvalidTransition, PartialFinalizeFailure, RemoteUnavailable
from literallyinvented.backend.judge import RemoteJudge, await_judge
from literallyinvented.backend.models import (
    AnswerRecord,
    BatchOutcome,
    FinalizeResult,
    Item,
    SubmitOutcome,
)
from literallyinvented.backend.reconcile import reconcile
from literallyinvented.backend.state import Phase, SessionState, build_initial_state
from literallyinvented.backend.variants import GameVariant

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0

Listener = Callable[[SessionState], "Awaitable[None] | None"]


class SessionEngine:
    """Drive one player's session of one mini-game against the judge.

    All mutation happens on the event loop thread. Every read-modify-check
    sequence runs without an intervening ``await``, which is what keeps the
    completion check atomic with respect to other submissions.
    """

    def __init__(
        self,
        judge: RemoteJudge,
        player_id: str | None,
        variant: GameVariant,
        pool: Sequence[Item] | None = None,
        rng: random.Random | None = None,
        timeout_s: float | None = DEFAULT_TIMEOUT_S,
    ) -> None:
        if not player_id:
            raise AuthMissing()
        self.judge = judge
        self.player_id = player_id
        self.variant = variant
        self.pool: tuple[Item, ...] = tuple(pool) if pool is not None else build_pool(variant)
        self.rng = rng
        self.timeout_s = timeout_s
        self.state = build_initial_state(game=variant.key, player_id=player_id)
        self._items = {item.id: item for item in self.pool}
        self._in_flight: set[str] = set()
        self._finalize_in_flight = False
        self._closed = False
        self._listeners: list[Listener] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def current_item(self) -> Item | None:
        return self.state.pending[0] if self.state.pending else None

    def item(self, item_id: str) -> Item | None:
        return self._items.get(item_id)

    def is_in_flight(self, item_id: str) -> bool:
        return item_id in self._in_flight

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def close(self) -> None:
        """Detach from the session; responses still in flight are dropped."""
        self._closed = True
        self._listeners.clear()

    async def start(self) -> SessionState:
        self.state = await reconcile(
            self.judge,
            self.player_id,
            self.variant,
            self.pool,
            rng=self.rng,
            timeout_s=self.timeout_s,
        )
        if self.state.phase is Phase.FINALIZING:
            await self._finalize(raise_on_failure=False)
        await self._notify()
        return self.state

    def _rejection(self, item_ids: Iterable[str]) -> str | None:
        if self._closed:
            return "session is closed"
        if self.state.phase is not Phase.IN_PROGRESS:
            return f"session is {self.state.phase.value}"
        for item_id in item_ids:
            if item_id not in self._items:
                return f"unknown item {item_id}"
            if item_id in self.state.locked:
                return f"item {item_id} is locked"
            if item_id in self._in_flight:
                return f"item {item_id} is already being judged"
        return None

    def _ignore(self, reason: str) -> None:
        logger.debug(
            "ignored submission for %s/%s: %s",
            self.player_id,
            self.variant.key,
            InvalidTransition(reason),
        )

    async def submit(self, item_id: str, value: Any) -> SubmitOutcome | None:
        """Judge one answer. Returns ``None`` when the submission is not allowed."""
        if self.variant.batch:
            self._ignore(f"{self.variant.key} only accepts batch submissions")
            return None
        reason = self._rejection([item_id])
        if reason is not None:
            self._ignore(reason)
            return None

        self._in_flight.add(item_id)
        try:
            result = await await_judge(
                self.judge.check_item(self.player_id, self.variant.key, item_id, value),
                self.timeout_s,
                "check_item",
            )
        finally:
            self._in_flight.discard(item_id)

        if self._closed:
            logger.warning("dropping check_item response for closed session %s/%s", self.player_id, self.variant.key)
            return None

        state = self.state
        state.running_score = result.score
        state.correct_count = result.correct_count
        state.attempts[item_id] = result.attempts
        locked = self.variant.should_lock(result.is_correct, result.attempts)
        if locked and item_id not in state.locked:
            state.lock(AnswerRecord(item_id=item_id, submitted_value=value, is_correct=result.is_correct))
        outcome = SubmitOutcome(
            item_id=item_id,
            is_correct=result.is_correct,
            score=result.score,
            progress_count=len(state.locked),
            locked=item_id in state.locked,
            attempts_left=self.variant.attempts_left(result.attempts),
        )
        logger.info(
            "%s/%s answered %s: correct=%s score=%d",
            self.player_id,
            self.variant.key,
            item_id,
            result.is_correct,
            result.score,
        )
        await self._notify()
        await self.check_completion()
        return outcome

    async def submit_batch(self, answers: Mapping[str, Any]) -> BatchOutcome | None:
        """Judge every pending item at once; the whole map locks together."""
        if not self.variant.batch:
            self._ignore(f"{self.variant.key} does not accept batch submissions")
            return None
        reason = self._rejection(answers.keys())
        if reason is None and set(answers) != set(self.state.pending_ids()):
            reason = "batch must answer every pending item"
        if reason is not None:
            self._ignore(reason)
            return None

        item_ids = list(answers)
        self._in_flight.update(item_ids)
        try:
            result = await await_judge(
                self.judge.submit_batch(self.player_id, self.variant.key, dict(answers)),
                self.timeout_s,
                "submit_batch",
            )
        finally:
            self._in_flight.difference_update(item_ids)

        if self._closed:
            logger.warning("dropping submit_batch response for closed session %s/%s", self.player_id, self.variant.key)
            return None

        state = self.state
        per_item = {item_id: bool(result.per_item.get(item_id, False)) for item_id in item_ids}
        for item_id in item_ids:
            state.attempts[item_id] = state.attempts.get(item_id, 0) + 1
            if item_id not in state.locked:
                state.lock(AnswerRecord(item_id=item_id, submitted_value=answers[item_id], is_correct=per_item[item_id]))
        state.running_score = result.score
        state.correct_count = result.correct_count
        logger.info(
            "%s/%s submitted batch of %d: %d correct, score=%d",
            self.player_id,
            self.variant.key,
            len(item_ids),
            result.correct_count,
            result.score,
        )
        await self._notify()
        await self.check_completion()
        return BatchOutcome(
            per_item=per_item,
            score=result.score,
            correct_count=result.correct_count,
            total_count=result.total_count,
        )

    async def save_draft(self, answers: Mapping[str, Any]) -> bool:
        """Persist unvalidated answers; locked items are left out."""
        if self._closed or self.state.phase is not Phase.IN_PROGRESS:
            self._ignore(f"cannot save draft while {self.state.phase.value}")
            return False
        draft = {item_id: value for item_id, value in answers.items() if item_id in self._items and item_id not in self.state.locked}
        await await_judge(
            self.judge.save_progress(self.player_id, self.variant.key, draft),
            self.timeout_s,
            "save_progress",
        )
        return True

    async def load_draft(self) -> dict[str, Any]:
        saved = await await_judge(
            self.judge.get_saved_progress(self.player_id, self.variant.key),
            self.timeout_s,
            "get_saved_progress",
        )
        return {item_id: value for item_id, value in saved.items() if item_id in self._items and item_id not in self.state.locked}

    async def check_completion(self) -> bool:
        """Start finalization when the last pending item resolves.

        Only the transition out of ``IN_PROGRESS`` fires, so redundant calls
        never finalize twice.
        """
        if self._closed or self.state.phase is not Phase.IN_PROGRESS or self.state.pending:
            return False
        self.state.advance(Phase.FINALIZING)
        await self._notify()
        await self._finalize(raise_on_failure=False)
        return True

    async def retry_finalize(self) -> FinalizeResult | None:
        """Retry a finalize that failed earlier or never started."""
        if self.state.phase is Phase.COMPLETED:
            return self.state.final
        if self.state.phase is Phase.IN_PROGRESS and not self.state.pending and not self._closed:
            self.state.advance(Phase.FINALIZING)
        if self.state.phase is not Phase.FINALIZING:
            self._ignore(f"nothing to finalize while {self.state.phase.value}")
            return None
        await self._finalize(raise_on_failure=True)
        return self.state.final

    async def _finalize(self, raise_on_failure: bool) -> None:
        if self._finalize_in_flight or self._closed:
            return
        self._finalize_in_flight = True
        try:
            final = await await_judge(
                self.judge.finalize(self.player_id, self.variant.key),
                self.timeout_s,
                "finalize",
            )
        except RemoteUnavailable as exc:
            self.state.last_error = str(exc)
            logger.error("finalize failed for %s/%s: %s", self.player_id, self.variant.key, exc)
            if raise_on_failure:
                raise PartialFinalizeFailure(str(exc)) from exc
            return
        finally:
            self._finalize_in_flight = False

        if self._closed:
            logger.warning("dropping finalize response for closed session %s/%s", self.player_id, self.variant.key)
            return
        state = self.state
        state.final = final
        state.running_score = final.score
        state.correct_count = final.correct_count
        state.last_error = None
        state.advance(Phase.COMPLETED)
        logger.info("%s/%s completed with score %d", self.player_id, self.variant.key, final.score)
        await self._notify()

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(self.state)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("session listener failed for %s/%s", self.player_id, self.variant.key)
