"""Game-specific session adapters over the shared engine."""

from __future__ import annotations

from typing import Any, Mapping

from literallyinvented.backend.engine import SessionEngine
from literallyinvented.backend.models import BatchOutcome, SubmitOutcome
from literallyinvented.backend.state import SessionState


def outcome_payload(outcome: SubmitOutcome | BatchOutcome | None) -> dict[str, Any]:
    if outcome is None:
        return {"accepted": False}
    if isinstance(outcome, BatchOutcome):
        return {
            "accepted": True,
            "perItem": dict(outcome.per_item),
            "score": outcome.score,
            "correctCount": outcome.correct_count,
            "totalCount": outcome.total_count,
        }
    return {
        "accepted": True,
        "itemId": outcome.item_id,
        "isCorrect": outcome.is_correct,
        "score": outcome.score,
        "progressCount": outcome.progress_count,
        "locked": outcome.locked,
        "attemptsLeft": outcome.attempts_left,
    }


class GameSession:
    """Per-item play with no board state of its own."""

    def __init__(self, engine: SessionEngine) -> None:
        self.engine = engine

    @property
    def state(self) -> SessionState:
        return self.engine.state

    async def start(self) -> None:
        await self.engine.start()

    def close(self) -> None:
        self.engine.close()

    async def answer(self, item_id: str, value: Any) -> dict[str, Any]:
        return outcome_payload(await self.engine.submit(item_id, value))

    async def answer_batch(self, answers: Mapping[str, Any]) -> dict[str, Any]:
        return outcome_payload(await self.engine.submit_batch(answers))

    async def save_draft(self, answers: Mapping[str, Any]) -> bool:
        if not self.engine.variant.autosave:
            return False
        return await self.engine.save_draft(answers)

    def snapshot(self) -> dict[str, Any]:
        snapshot = self.engine.state.snapshot()
        current = self.engine.current_item
        snapshot["current"] = current.id if current is not None else None
        return snapshot


class BluffSession(GameSession):
    async def answer(self, item_id: str, value: Any) -> dict[str, Any]:
        if not isinstance(value, bool):
            raise ValueError("bluff answers must be true or false")
        return await super().answer(item_id, value)
