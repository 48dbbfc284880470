import asyncio
import random

import pytest

from literallyinvented.backend.errors import AuthMissing, RemoteUnavailable
from literallyinvented.backend.judge import InMemoryRemoteJudge
from literallyinvented.backend.models import AnswerRecord, AnswerShape, FinalizeResult, Item, PartialProgress
from literallyinvented.backend.reconcile import reconcile
from literallyinvented.backend.state import Phase
from literallyinvented.backend.variants import BLUFF

POOL = [Item(id=str(index), prompt=f"statement {index}", answer_shape=AnswerShape.BOOLEAN) for index in range(1, 6)]


class _StubJudge(InMemoryRemoteJudge):
    def __init__(self, progress=None, final=None, error=None) -> None:
        super().__init__(answer_keys={})
        self.progress = progress if progress is not None else PartialProgress()
        self.final = final
        self.error = error

    async def get_finalized_score(self, player_id, game):
        return self.final

    async def get_partial_progress(self, player_id, game):
        if self.error is not None:
            raise self.error
        return self.progress


def test_reconcile_requires_player() -> None:
    with pytest.raises(AuthMissing):
        asyncio.run(reconcile(_StubJudge(), None, BLUFF, POOL))


def test_reconcile_returns_completed_for_finalized_game() -> None:
    final = FinalizeResult(score=40, correct_count=4, total_count=5, is_perfect=False)

    state = asyncio.run(reconcile(_StubJudge(final=final), "p1", BLUFF, POOL))

    assert state.phase is Phase.COMPLETED
    assert state.final is final
    assert state.running_score == 40
    assert state.pending == []


def test_reconcile_locks_stored_answers_and_keeps_remainder_pending() -> None:
    progress = PartialProgress(
        records=(
            AnswerRecord(item_id="1", submitted_value=True, is_correct=True),
            AnswerRecord(item_id="3", submitted_value=False, is_correct=False),
            AnswerRecord(item_id="1", submitted_value=False, is_correct=False),
            AnswerRecord(item_id="99", submitted_value=True, is_correct=True),
        ),
        score=10,
        attempts={"1": 1, "3": 1, "99": 1},
    )

    state = asyncio.run(reconcile(_StubJudge(progress=progress), "p1", BLUFF, POOL, rng=random.Random(2)))

    assert state.phase is Phase.IN_PROGRESS
    assert state.locked == {"1", "3"}
    assert state.answered["1"].is_correct is True
    assert sorted(state.pending_ids()) == ["2", "4", "5"]
    assert state.correct_count == 1
    assert state.running_score == 10
    assert state.attempts == {"1": 1, "3": 1}


def test_reconcile_returns_finalizing_when_every_item_is_resolved() -> None:
    progress = PartialProgress(
        records=tuple(AnswerRecord(item_id=item.id, submitted_value=True, is_correct=True) for item in POOL),
        score=50,
    )

    state = asyncio.run(reconcile(_StubJudge(progress=progress), "p1", BLUFF, POOL))

    assert state.phase is Phase.FINALIZING
    assert state.pending == []
    assert state.final is None


def test_reconcile_fails_open_when_judge_is_unavailable() -> None:
    judge = _StubJudge(error=RemoteUnavailable("down"))

    state = asyncio.run(reconcile(judge, "p1", BLUFF, POOL, rng=random.Random(2)))

    assert state.phase is Phase.IN_PROGRESS
    assert sorted(state.pending_ids()) == ["1", "2", "3", "4", "5"]
    assert state.locked == set()
    assert state.last_error == "down"
