import asyncio
import random

from literallyinvented.backend.content import MATCHING_OPTIONS, load_answer_keys
from literallyinvented.backend.engine import SessionEngine
from literallyinvented.backend.judge import InMemoryRemoteJudge
from literallyinvented.backend.matching import MatchingSession
from literallyinvented.backend.state import Phase
from literallyinvented.backend.variants import MATCHING

ANSWERS = load_answer_keys(None)["matching"]


def _session(judge: InMemoryRemoteJudge) -> MatchingSession:
    engine = SessionEngine(judge=judge, player_id="p1", variant=MATCHING, rng=random.Random(4))
    return MatchingSession(engine)


def test_options_are_shuffled_copies_of_every_invention() -> None:
    session = _session(InMemoryRemoteJudge(answer_keys=load_answer_keys(None)))

    assert sorted(option["id"] for option in session.options) == sorted(option["id"] for option in MATCHING_OPTIONS)


def test_assign_refuses_option_paired_elsewhere() -> None:
    session = _session(InMemoryRemoteJudge(answer_keys=load_answer_keys(None)))
    asyncio.run(session.start())

    assert session.assign("1", "dancing") is True
    assert session.assign("2", "dancing") is False
    assert session.assign("1", "football") is True
    assert session.is_used("dancing") is False
    assert session.assign("1", "not-an-option") is False
    assert session.assign("42", "dancing") is False

    session.remove("1")
    assert session.pairings == {}


def test_draft_pairings_are_restored_on_start() -> None:
    judge = InMemoryRemoteJudge(answer_keys=load_answer_keys(None))
    first = _session(judge)

    async def play() -> bool:
        await first.start()
        return await first.save_draft({"1": "board-games", "2": "retro-games"})

    assert asyncio.run(play()) is True

    resumed = _session(judge)
    asyncio.run(resumed.start())

    assert resumed.pairings == {"1": "board-games", "2": "retro-games"}
    assert resumed.snapshot()["pairings"] == {"1": "board-games", "2": "retro-games"}


def test_incomplete_pairings_are_not_submitted() -> None:
    session = _session(InMemoryRemoteJudge(answer_keys=load_answer_keys(None)))

    async def scenario():
        await session.start()
        session.assign("1", "board-games")
        return await session.answer_batch({})

    assert asyncio.run(scenario()) == {"accepted": False}
    assert session.engine.state.phase is Phase.IN_PROGRESS


def test_full_pairing_submits_and_completes() -> None:
    session = _session(InMemoryRemoteJudge(answer_keys=load_answer_keys(None)))

    async def scenario():
        await session.start()
        return await session.answer_batch(dict(ANSWERS))

    result = asyncio.run(scenario())

    assert result["accepted"] is True
    assert result["correctCount"] == 10
    assert result["score"] == 100
    assert session.engine.state.phase is Phase.COMPLETED
    assert session.assign("1", "dancing") is False
