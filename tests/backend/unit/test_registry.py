import asyncio
import random

import pytest

from literallyinvented.backend.content import load_answer_keys
from literallyinvented.backend.crossword import CrosswordSession
from literallyinvented.backend.judge import InMemoryRemoteJudge
from literallyinvented.backend.matching import MatchingSession
from literallyinvented.backend.registry import SessionRegistry
from literallyinvented.backend.sessions import BluffSession
from literallyinvented.backend.timeline import TimelineSession
from literallyinvented.backend.variants import BLUFF, CROSSWORD, MATCHING, TIMELINE


class _BrokenJudge(InMemoryRemoteJudge):
    broken = True

    async def get_finalized_score(self, player_id, game):
        if self.broken:
            raise RuntimeError("bad row")
        return await super().get_finalized_score(player_id, game)


def _registry() -> SessionRegistry:
    return SessionRegistry(judge=InMemoryRemoteJudge(answer_keys=load_answer_keys(None)), rng=random.Random(1))


def test_open_builds_session_type_per_game() -> None:
    registry = _registry()

    async def scenario():
        return [await registry.open("p1", variant) for variant in (MATCHING, TIMELINE, CROSSWORD, BLUFF)]

    sessions = asyncio.run(scenario())

    assert [type(session) for session in sessions] == [MatchingSession, TimelineSession, CrosswordSession, BluffSession]
    assert registry.get("p1", "bluff") is sessions[3]
    assert registry.get("p2", "bluff") is None


def test_reopening_closes_previous_session() -> None:
    registry = _registry()

    first = asyncio.run(registry.open("p1", BLUFF))
    second = asyncio.run(registry.open("p1", BLUFF))

    assert first.engine.closed is True
    assert second.engine.closed is False
    assert registry.get("p1", "bluff") is second


def test_on_change_receives_session_updates() -> None:
    registry = _registry()
    seen: list[str] = []

    async def on_change(session) -> None:
        seen.append(session.snapshot()["phase"])

    async def scenario() -> None:
        session = await registry.open("p1", BLUFF, on_change=on_change)
        await session.answer(session.engine.current_item.id, True)

    asyncio.run(scenario())

    assert seen == ["in_progress", "in_progress"]


def test_close_all_tears_down_every_session() -> None:
    registry = _registry()
    session = asyncio.run(registry.open("p1", BLUFF))

    registry.close_all()

    assert session.engine.closed is True
    assert registry.get("p1", "bluff") is None


def test_failed_start_leaves_no_session_registered() -> None:
    registry = SessionRegistry(judge=_BrokenJudge(answer_keys=load_answer_keys(None)), rng=random.Random(1))

    with pytest.raises(RuntimeError):
        asyncio.run(registry.open("p1", BLUFF))

    assert registry.get("p1", "bluff") is None


def test_failed_reopen_drops_previous_session() -> None:
    judge = _BrokenJudge(answer_keys=load_answer_keys(None))
    judge.broken = False
    registry = SessionRegistry(judge=judge, rng=random.Random(1))
    first = asyncio.run(registry.open("p1", BLUFF))
    judge.broken = True

    with pytest.raises(RuntimeError):
        asyncio.run(registry.open("p1", BLUFF))

    assert first.engine.closed is True
    assert registry.get("p1", "bluff") is None
