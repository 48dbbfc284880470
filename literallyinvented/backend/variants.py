"""Per-game policies that parameterize the session engine."""

from __future__ import annotations

from dataclasses import dataclass

from literallyinvented.backend.models import AnswerShape


@dataclass(frozen=True)
class GameVariant:
    key: str
    level: int
    title: str
    answer_shape: AnswerShape
    points_per_correct: int
    batch: bool = False
    lock_on_incorrect: bool = True
    max_attempts: int | None = None
    autosave: bool = False

    def should_lock(self, is_correct: bool, attempts: int) -> bool:
        """Decide whether a judged answer resolves its item for good."""
        if is_correct or self.lock_on_incorrect:
            return True
        return self.max_attempts is not None and attempts >= self.max_attempts

    def attempts_left(self, attempts: int) -> int | None:
        if self.max_attempts is None:
            return None
        return max(0, self.max_attempts - attempts)


MATCHING = GameVariant(
    key="matching",
    level=1,
    title="The Invention Station",
    answer_shape=AnswerShape.PAIRED_ID,
    points_per_correct=10,
    batch=True,
    autosave=True,
)

TIMELINE = GameVariant(
    key="timeline",
    level=2,
    title="Timeline Takedown",
    answer_shape=AnswerShape.ORDINAL_POSITION,
    points_per_correct=50,
    lock_on_incorrect=False,
    max_attempts=3,
)

CROSSWORD = GameVariant(
    key="crossword",
    level=3,
    title="Crossword Caper",
    answer_shape=AnswerShape.SINGLE_LETTER,
    points_per_correct=10,
    lock_on_incorrect=False,
    autosave=True,
)

BLUFF = GameVariant(
    key="bluff",
    level=4,
    title="Bluff Buster",
    answer_shape=AnswerShape.BOOLEAN,
    points_per_correct=10,
)

VARIANTS: dict[str, GameVariant] = {variant.key: variant for variant in (MATCHING, TIMELINE, CROSSWORD, BLUFF)}


def get_variant(key: str) -> GameVariant:
    try:
        return VARIANTS[key]
    except KeyError:
        raise KeyError(f"unknown game: {key}") from None
