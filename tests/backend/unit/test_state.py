import pytest

from literallyinvented.backend.errors import InvalidTransition
from literallyinvented.backend.models import AnswerRecord, AnswerShape, FinalizeResult, Item
from literallyinvented.backend.state import Phase, build_initial_state


def _items(*ids: str) -> list[Item]:
    return [Item(id=item_id, prompt=f"prompt {item_id}", answer_shape=AnswerShape.BOOLEAN) for item_id in ids]


def test_build_initial_state_starts_loading_and_empty() -> None:
    state = build_initial_state(game="bluff", player_id="p1")

    assert state.phase is Phase.LOADING
    assert state.answered == {}
    assert state.locked == set()
    assert state.pending == []
    assert state.running_score == 0
    assert state.final is None


def test_advance_moves_forward_and_rejects_regression() -> None:
    state = build_initial_state(game="bluff", player_id="p1")

    state.advance(Phase.IN_PROGRESS)
    state.advance(Phase.IN_PROGRESS)
    state.advance(Phase.COMPLETED)

    assert state.phase is Phase.COMPLETED
    with pytest.raises(InvalidTransition):
        state.advance(Phase.IN_PROGRESS)


def test_lock_moves_item_from_pending_to_answered() -> None:
    state = build_initial_state(game="bluff", player_id="p1")
    state.pending = _items("a", "b")

    state.lock(AnswerRecord(item_id="a", submitted_value=True, is_correct=True))

    assert state.pending_ids() == ["b"]
    assert state.locked == {"a"}
    assert set(state.answered) == state.locked


def test_lock_rejects_item_that_is_already_locked() -> None:
    state = build_initial_state(game="bluff", player_id="p1")
    state.pending = _items("a")
    state.lock(AnswerRecord(item_id="a", submitted_value=True, is_correct=True))

    with pytest.raises(InvalidTransition):
        state.lock(AnswerRecord(item_id="a", submitted_value=False, is_correct=False))

    assert state.answered["a"].submitted_value is True


def test_snapshot_uses_camel_case_keys() -> None:
    state = build_initial_state(game="bluff", player_id="p1")
    state.pending = _items("a", "b")
    state.lock(AnswerRecord(item_id="b", submitted_value=False, is_correct=True))
    state.running_score = 10
    state.correct_count = 1
    state.final = FinalizeResult(score=10, correct_count=1, total_count=2, is_perfect=False)

    snapshot = state.snapshot()

    assert snapshot["playerId"] == "p1"
    assert snapshot["phase"] == "loading"
    assert snapshot["runningScore"] == 10
    assert snapshot["locked"] == ["b"]
    assert snapshot["pending"] == [
        {"id": "a", "prompt": "prompt a", "answerShape": "boolean", "payload": {}},
    ]
    assert snapshot["answered"][0]["itemId"] == "b"
    assert snapshot["answered"][0]["isCorrect"] is True
    assert snapshot["final"]["totalCount"] == 2
    assert snapshot["final"]["isPerfect"] is False
    assert snapshot["lastError"] is None
