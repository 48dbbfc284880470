import pytest

from literallyinvented.backend.variants import BLUFF, CROSSWORD, MATCHING, TIMELINE, VARIANTS, get_variant


def test_variants_are_keyed_and_ordered_by_level() -> None:
    assert [variant.key for variant in sorted(VARIANTS.values(), key=lambda v: v.level)] == [
        "matching",
        "timeline",
        "crossword",
        "bluff",
    ]


def test_get_variant_rejects_unknown_game() -> None:
    assert get_variant("bluff") is BLUFF
    with pytest.raises(KeyError):
        get_variant("chess")


def test_bluff_locks_every_answer() -> None:
    assert BLUFF.should_lock(is_correct=False, attempts=1) is True
    assert BLUFF.attempts_left(1) is None


def test_timeline_locks_on_success_or_after_third_failure() -> None:
    assert TIMELINE.should_lock(is_correct=False, attempts=1) is False
    assert TIMELINE.should_lock(is_correct=False, attempts=2) is False
    assert TIMELINE.should_lock(is_correct=False, attempts=3) is True
    assert TIMELINE.should_lock(is_correct=True, attempts=2) is True
    assert TIMELINE.attempts_left(1) == 2
    assert TIMELINE.attempts_left(5) == 0


def test_crossword_never_locks_incorrect_words() -> None:
    assert CROSSWORD.should_lock(is_correct=False, attempts=50) is False
    assert CROSSWORD.should_lock(is_correct=True, attempts=1) is True


def test_matching_is_batch_with_autosave() -> None:
    assert MATCHING.batch is True
    assert MATCHING.autosave is True
    assert MATCHING.points_per_correct == 10
