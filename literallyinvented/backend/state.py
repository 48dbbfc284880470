"""Session state and snapshot builders."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from literallyinvented.backend.errors import InvalidTransition
from literallyinvented.backend.models import AnswerRecord, FinalizeResult, Item


class Phase(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    FINALIZING = "finalizing"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _PHASE_ORDER.index(self)


_PHASE_ORDER = [Phase.LOADING, Phase.IN_PROGRESS, Phase.FINALIZING, Phase.COMPLETED]


@dataclass
class SessionState:
    """One player's progress through one mini-game.

    ``answered`` is keyed by item id so every item appears at most once.
    ``running_score`` mirrors the judge; it is never summed locally.
    """

    game: str
    player_id: str
    phase: Phase = Phase.LOADING
    answered: dict[str, AnswerRecord] = field(default_factory=dict)
    locked: set[str] = field(default_factory=set)
    pending: list[Item] = field(default_factory=list)
    running_score: int = 0
    correct_count: int = 0
    attempts: dict[str, int] = field(default_factory=dict)
    final: FinalizeResult | None = None
    last_error: str | None = None

    def advance(self, phase: Phase) -> None:
        """Move to ``phase``; phases never move backwards."""
        if phase.rank < self.phase.rank:
            raise InvalidTransition(f"cannot move from {self.phase.value} to {phase.value}")
        self.phase = phase

    def lock(self, record: AnswerRecord) -> None:
        if record.item_id in self.locked:
            raise InvalidTransition(f"item {record.item_id} is already locked")
        self.answered[record.item_id] = record
        self.locked.add(record.item_id)
        self.pending = [item for item in self.pending if item.id != record.item_id]

    def pending_ids(self) -> list[str]:
        return [item.id for item in self.pending]

    def snapshot(self) -> dict[str, Any]:
        return {
            "game": self.game,
            "playerId": self.player_id,
            "phase": self.phase.value,
            "runningScore": self.running_score,
            "correctCount": self.correct_count,
            "answered": [
                {
                    "itemId": record.item_id,
                    "submittedValue": record.submitted_value,
                    "isCorrect": record.is_correct,
                    "timestamp": record.timestamp.isoformat(),
                }
                for record in self.answered.values()
            ],
            "locked": sorted(self.locked),
            "pending": [
                {
                    "id": item.id,
                    "prompt": item.prompt,
                    "answerShape": item.answer_shape.value,
                    "payload": dict(item.payload),
                }
                for item in self.pending
            ],
            "attempts": dict(self.attempts),
            "final": _final_snapshot(self.final),
            "lastError": self.last_error,
        }


def _final_snapshot(final: FinalizeResult | None) -> dict[str, Any] | None:
    if final is None:
        return None
    return {
        "score": final.score,
        "correctCount": final.correct_count,
        "totalCount": final.total_count,
        "isPerfect": final.is_perfect,
        "completedAt": final.completed_at.isoformat(),
    }


def build_initial_state(game: str, player_id: str) -> SessionState:
    """Return an empty ``LOADING`` state awaiting reconciliation."""
    return SessionState(game=game, player_id=player_id)
