"""Timeline game: order colleagues by hire date in at most three tries."""

from __future__ import annotations

from typing import Any

from literallyinvented.backend.content import TIMELINE_ITEM_ID
from literallyinvented.backend.engine import SessionEngine
from literallyinvented.backend.sessions import GameSession
from literallyinvented.backend.shuffle import shuffle


class TimelineSession(GameSession):
    """The whole ordering is a single engine item; attempts are capped per item."""

    def __init__(self, engine: SessionEngine) -> None:
        super().__init__(engine)
        item = engine.item(TIMELINE_ITEM_ID)
        if item is None:
            raise ValueError("timeline pool must contain the timeline item")
        self.entries: list[dict[str, Any]] = [dict(entry) for entry in item.payload.get("entries", [])]
        self.order: list[str] = [entry["id"] for entry in shuffle(self.entries, engine.rng)]

    @property
    def attempts(self) -> int:
        return self.engine.state.attempts.get(TIMELINE_ITEM_ID, 0)

    @property
    def attempts_left(self) -> int | None:
        return self.engine.variant.attempts_left(self.attempts)

    def move(self, from_index: int, to_index: int) -> None:
        if from_index == to_index:
            return
        if not (0 <= from_index < len(self.order)) or not (0 <= to_index < len(self.order)):
            raise IndexError("timeline position out of range")
        entry_id = self.order.pop(from_index)
        self.order.insert(to_index, entry_id)

    async def answer(self, item_id: str, value: Any) -> dict[str, Any]:
        if value is not None:
            if not isinstance(value, (list, tuple)):
                raise ValueError("ordering must be a list of timeline entry ids")
            proposed = [str(entry_id) for entry_id in value]
            if sorted(proposed) != sorted(self.order):
                raise ValueError("ordering must contain every timeline entry exactly once")
            self.order = proposed
        return await super().answer(item_id, list(self.order))

    async def submit_order(self) -> dict[str, Any]:
        return await self.answer(TIMELINE_ITEM_ID, None)

    def snapshot(self) -> dict[str, Any]:
        snapshot = super().snapshot()
        snapshot["order"] = list(self.order)
        snapshot["attemptsLeft"] = self.attempts_left
        return snapshot
