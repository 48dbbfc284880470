"""Matching game: pair every colleague with an invention, then submit once."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from literallyinvented.backend.content import MATCHING_OPTIONS
from literallyinvented.backend.engine import SessionEngine
from literallyinvented.backend.errors import RemoteUnavailable
from literallyinvented.backend.sessions import GameSession
from literallyinvented.backend.shuffle import shuffle
from literallyinvented.backend.state import Phase

logger = logging.getLogger(__name__)


class MatchingSession(GameSession):
    def __init__(self, engine: SessionEngine) -> None:
        super().__init__(engine)
        self.options = shuffle(MATCHING_OPTIONS, engine.rng)
        self._option_ids = {option["id"] for option in MATCHING_OPTIONS}
        self.pairings: dict[str, str] = {}

    async def start(self) -> None:
        await super().start()
        if self.engine.state.phase is not Phase.IN_PROGRESS:
            return
        try:
            draft = await self.engine.load_draft()
        except RemoteUnavailable as exc:
            logger.warning("could not restore matching draft: %s", exc)
            return
        for colleague_id, option_id in draft.items():
            self.assign(colleague_id, str(option_id))

    def assign(self, colleague_id: str, option_id: str) -> bool:
        """Pair a colleague with an option that is not paired elsewhere."""
        if self.engine.state.phase is not Phase.IN_PROGRESS:
            return False
        if self.engine.item(colleague_id) is None or colleague_id in self.engine.state.locked:
            return False
        if option_id not in self._option_ids:
            return False
        holder = next((cid for cid, oid in self.pairings.items() if oid == option_id), None)
        if holder is not None and holder != colleague_id:
            return False
        self.pairings[colleague_id] = option_id
        return True

    def remove(self, colleague_id: str) -> None:
        if self.engine.state.phase is Phase.IN_PROGRESS:
            self.pairings.pop(colleague_id, None)

    def is_used(self, option_id: str) -> bool:
        return option_id in self.pairings.values()

    def _replace(self, answers: Mapping[str, Any]) -> None:
        self.pairings = {}
        for colleague_id, option_id in answers.items():
            self.assign(colleague_id, str(option_id))

    async def answer_batch(self, answers: Mapping[str, Any]) -> dict[str, Any]:
        if answers:
            self._replace(answers)
        return await super().answer_batch(dict(self.pairings))

    async def save_draft(self, answers: Mapping[str, Any]) -> bool:
        self._replace(answers)
        return await self.engine.save_draft(dict(self.pairings))

    def snapshot(self) -> dict[str, Any]:
        snapshot = super().snapshot()
        snapshot["options"] = [dict(option) for option in self.options]
        snapshot["pairings"] = dict(self.pairings)
        return snapshot
