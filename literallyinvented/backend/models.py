"""Domain models for session play and judge responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class AnswerShape(str, Enum):
    PAIRED_ID = "paired-id"
    ORDINAL_POSITION = "ordinal-position"
    SINGLE_LETTER = "single-letter"
    BOOLEAN = "boolean"


class PlayPermission(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    UNKNOWN = "unknown"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Item:
    id: str
    prompt: str
    answer_shape: AnswerShape
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AnswerRecord:
    item_id: str
    submitted_value: Any
    is_correct: bool
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class CheckResult:
    is_correct: bool
    score: int
    correct_count: int
    attempts: int = 1


@dataclass(frozen=True)
class BatchResult:
    per_item: dict[str, bool]
    score: int
    correct_count: int
    total_count: int


@dataclass(frozen=True)
class FinalizeResult:
    score: int
    correct_count: int
    total_count: int
    is_perfect: bool
    completed_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class PartialProgress:
    records: tuple[AnswerRecord, ...] = ()
    score: int = 0
    attempts: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class LeaderboardEntry:
    player_id: str
    display_name: str
    total_score: int
    completed_levels: int


@dataclass(frozen=True)
class SubmitOutcome:
    item_id: str
    is_correct: bool
    score: int
    progress_count: int
    locked: bool
    attempts_left: int | None


@dataclass(frozen=True)
class BatchOutcome:
    per_item: dict[str, bool]
    score: int
    correct_count: int
    total_count: int


@dataclass(frozen=True)
class PermissionResult:
    permission: PlayPermission
    reason: str | None = None
    existing_score: FinalizeResult | None = None

    @property
    def can_play(self) -> bool:
        return self.permission is not PlayPermission.DENIED
