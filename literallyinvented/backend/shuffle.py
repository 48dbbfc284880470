"""Uniform random presentation order."""

from __future__ import annotations

import random
from typing import Sequence, TypeVar

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a Fisher-Yates permutation of ``items``; the input is not mutated."""
    generator = rng if rng is not None else random.Random()
    order = list(items)
    for index in range(len(order) - 1, 0, -1):
        swap = generator.randint(0, index)
        order[index], order[swap] = order[swap], order[index]
    return order


def make_rng(seed: int | None) -> random.Random:
    return random.Random(seed)
