import json

import pytest

from literallyinvented.backend.content import (
    DEV_ANSWER_KEYS,
    TIMELINE_ITEM_ID,
    build_pool,
    clue_key,
    games_missing_keys,
    load_answer_keys,
)
from literallyinvented.backend.models import AnswerShape
from literallyinvented.backend.variants import BLUFF, CROSSWORD, MATCHING, TIMELINE


def test_pools_have_expected_sizes_and_unique_ids() -> None:
    sizes = {variant.key: build_pool(variant) for variant in (MATCHING, TIMELINE, CROSSWORD, BLUFF)}

    assert {key: len(pool) for key, pool in sizes.items()} == {
        "matching": 10,
        "timeline": 1,
        "crossword": 14,
        "bluff": 13,
    }
    for pool in sizes.values():
        assert len({item.id for item in pool}) == len(pool)


def test_timeline_pool_carries_entries_in_payload() -> None:
    (item,) = build_pool(TIMELINE)

    assert item.id == TIMELINE_ITEM_ID
    assert item.answer_shape is AnswerShape.ORDINAL_POSITION
    assert [entry["id"] for entry in item.payload["entries"]] == ["1", "2", "3", "4", "5"]


def test_crossword_pool_ids_are_clue_keys() -> None:
    pool = build_pool(CROSSWORD)

    assert clue_key(3, "down") in {item.id for item in pool}
    first = next(item for item in pool if item.id == "1-across")
    assert first.payload == {"number": 1, "direction": "across", "row": 0, "col": 3, "length": 4}


def test_load_answer_keys_without_path_returns_dev_keys() -> None:
    keys = load_answer_keys(None)

    assert keys == DEV_ANSWER_KEYS
    keys["matching"]["1"] = "changed"
    assert DEV_ANSWER_KEYS["matching"]["1"] == "board-games"


def test_load_answer_keys_merges_file_over_dev_keys(tmp_path) -> None:
    path = tmp_path / "keys.json"
    path.write_text(json.dumps({"bluff": {"1-22": True}, "matching": {"1": "dancing"}}), encoding="utf-8")

    keys = load_answer_keys(path)

    assert keys["bluff"] == {"1-22": True}
    assert keys["matching"]["1"] == "dancing"
    assert keys["matching"]["2"] == "retro-games"


def test_load_answer_keys_rejects_non_object(tmp_path) -> None:
    path = tmp_path / "keys.json"
    path.write_text(json.dumps({"bluff": [True, False]}), encoding="utf-8")

    with pytest.raises(ValueError):
        load_answer_keys(path)


def test_games_missing_keys_lists_games_with_unkeyed_items() -> None:
    keys = load_answer_keys(None)

    assert games_missing_keys(keys) == ["crossword", "bluff"]

    keys["bluff"] = {item.id: True for item in build_pool(BLUFF)}
    keys["crossword"] = {item.id: "X" for item in build_pool(CROSSWORD)[:-1]}

    assert games_missing_keys(keys) == ["crossword"]
