"""Static question pools for the four mini-games."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from literallyinvented.backend.models import AnswerShape, Item
from literallyinvented.backend.variants import BLUFF, CROSSWORD, MATCHING, TIMELINE, GameVariant

TIMELINE_ITEM_ID = "timeline"
CROSSWORD_ROWS = 14
CROSSWORD_COLS = 19

MATCHING_COLLEAGUES: tuple[tuple[str, str], ...] = (
    ("1", "Aparna"),
    ("2", "Raiid"),
    ("3", "Ana"),
    ("4", "Harshad"),
    ("5", "Kara"),
    ("6", "Christian"),
    ("7", "Leigh"),
    ("8", "Emery"),
    ("9", "Ted"),
    ("10", "Miriam"),
)

MATCHING_OPTIONS: tuple[dict[str, str], ...] = (
    {"id": "board-games", "name": "Board Games"},
    {"id": "retro-games", "name": "Retro Games"},
    {"id": "dancing", "name": "Dancing"},
    {"id": "randr", "name": "R&R"},
    {"id": "christmas", "name": "Christmas"},
    {"id": "weekly-bytes", "name": "Weekly Bytes"},
    {"id": "lunch-learn", "name": "Lunch & Learn"},
    {"id": "whiteboarding", "name": "White Boarding"},
    {"id": "football", "name": "Football"},
    {"id": "servicing-innovation", "name": "Servicing Innovation"},
)

# Newest hire first.
TIMELINE_ENTRIES: tuple[dict[str, str], ...] = (
    {"id": "1", "name": "Aparna", "role": "Tech Lead", "funFact": "Board game strategist extraordinaire"},
    {"id": "2", "name": "Raiid", "role": "Senior Developer", "funFact": "Retro gaming console collector"},
    {"id": "3", "name": "Ana", "role": "UX Designer", "funFact": "Salsa dancing champion"},
    {"id": "4", "name": "Harshad", "role": "Product Manager", "funFact": "R&R event planning mastermind"},
    {"id": "5", "name": "Christian", "role": "DevOps Engineer", "funFact": "Weekly Bytes newsletter curator"},
)

# (number, direction, clue, start row, start col, length)
CROSSWORD_CLUES: tuple[tuple[int, str, str, int, int, int], ...] = (
    (1, "across", "Went on vacation to Mauritius this year", 0, 3, 4),
    (2, "down", "Mr. Event Coordinator", 0, 6, 5),
    (3, "across", "Into Music Production", 4, 4, 5),
    (3, "down", "Bollywood Music Lover", 4, 4, 5),
    (4, "across", "Innovation Award Winner", 7, 4, 7),
    (5, "down", "a Delhite who Plays Guitar", 7, 9, 5),
    (9, "across", "Got married in February", 9, 5, 7),
    (9, "down", "Son graduated HS this year", 9, 5, 4),
    (8, "down", "Can't disclose due to privacy issues :P", 8, 0, 6),
    (10, "across", "Selfie Queen!", 10, 0, 6),
    (6, "across", "Grew up on a farm", 7, 14, 5),
    (7, "down", "The Leader. The Fighter. The Inspiration", 7, 15, 6),
    (11, "across", "Getting married in December", 11, 9, 7),
    (12, "across", "Table Tennis Wizard", 12, 0, 6),
)

# (person id, description id, person, statement)
BLUFF_STATEMENTS: tuple[tuple[str, str, str, str], ...] = (
    ("1", "22", "Jidnesh (JD)", "football fan and is writing an autobiography"),
    ("2", "26", "Mohammed (Mo)", "loves baking and watching F1"),
    ("3", "29", "Mark", "Has been a part of Hollywood movie crew"),
    ("4", "54", "Daniella (Dani)", "Has met the Queen of England and Rishi Sunak in a span of one week"),
    ("5", "48", "Leigh", "If not travelling, love to practise ballet and ceramic crafts"),
    ("6", "74", "Charles", "Can speak 5 sentences in Hindi"),
    ("7", "21", "Nishtha", "loves to play cricket and chess"),
    ("8", "19", "Suraj", "Always watches FRIENDS when eating"),
    ("9", "39", "Ted", "Plays golf as well as soccer"),
    ("10", "47", "Jaymin", "Has a graduate degree in Political Science"),
    ("11", "35", "Aparna", "Has read one Harry Potter Book in espanol"),
    ("12", "32", "Laissa", "Can fluently converse in 5 languages"),
    ("13", "41", "Prerna", "Can binge watch Naruto on repeat"),
)

# Keys the client already knew; crossword and bluff keys only live with the judge.
DEV_ANSWER_KEYS: dict[str, dict[str, Any]] = {
    MATCHING.key: {
        "1": "board-games",
        "2": "retro-games",
        "3": "dancing",
        "4": "randr",
        "5": "christmas",
        "6": "weekly-bytes",
        "7": "lunch-learn",
        "8": "whiteboarding",
        "9": "football",
        "10": "servicing-innovation",
    },
    TIMELINE.key: {TIMELINE_ITEM_ID: [entry["id"] for entry in TIMELINE_ENTRIES]},
}


def clue_key(number: int, direction: str) -> str:
    return f"{number}-{direction}"


def _matching_pool() -> tuple[Item, ...]:
    return tuple(
        Item(id=colleague_id, prompt=name, answer_shape=AnswerShape.PAIRED_ID)
        for colleague_id, name in MATCHING_COLLEAGUES
    )


def _timeline_pool() -> tuple[Item, ...]:
    return (
        Item(
            id=TIMELINE_ITEM_ID,
            prompt="Order colleagues from newest hire to longest tenured",
            answer_shape=AnswerShape.ORDINAL_POSITION,
            payload={"entries": [dict(entry) for entry in TIMELINE_ENTRIES]},
        ),
    )


def _crossword_pool() -> tuple[Item, ...]:
    return tuple(
        Item(
            id=clue_key(number, direction),
            prompt=clue,
            answer_shape=AnswerShape.SINGLE_LETTER,
            payload={"number": number, "direction": direction, "row": row, "col": col, "length": length},
        )
        for number, direction, clue, row, col, length in CROSSWORD_CLUES
    )


def _bluff_pool() -> tuple[Item, ...]:
    return tuple(
        Item(
            id=f"{person_id}-{description_id}",
            prompt=f"{person} {statement}",
            answer_shape=AnswerShape.BOOLEAN,
            payload={"person": person, "statement": statement},
        )
        for person_id, description_id, person, statement in BLUFF_STATEMENTS
    )


_POOL_BUILDERS = {
    MATCHING.key: _matching_pool,
    TIMELINE.key: _timeline_pool,
    CROSSWORD.key: _crossword_pool,
    BLUFF.key: _bluff_pool,
}


def build_pool(variant: GameVariant) -> tuple[Item, ...]:
    return _POOL_BUILDERS[variant.key]()


def load_answer_keys(path: str | Path | None) -> dict[str, dict[str, Any]]:
    """Merge answer keys from a JSON file over the built-in ones.

    The file maps game key to ``{item_id: expected}``.
    """
    keys = {game: dict(answers) for game, answers in DEV_ANSWER_KEYS.items()}
    if path is None:
        return keys
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("answer key file must contain a JSON object")
    for game, answers in raw.items():
        if not isinstance(answers, dict):
            raise ValueError(f"answer key for {game} must be a JSON object")
        keys.setdefault(game, {}).update(answers)
    return keys


def games_missing_keys(keys: dict[str, dict[str, Any]]) -> list[str]:
    """Return the games with pool items that have no answer key."""
    missing = []
    for variant in (MATCHING, TIMELINE, CROSSWORD, BLUFF):
        answers = keys.get(variant.key, {})
        if any(item.id not in answers for item in build_pool(variant)):
            missing.append(variant.key)
    return missing
