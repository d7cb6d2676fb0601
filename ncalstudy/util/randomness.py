from __future__ import annotations

"""Randomness helpers for ordering a session's working set."""

import random
from typing import MutableSequence, Optional, TypeVar

T = TypeVar("T")


def shuffle_in_place(items: MutableSequence[T], rng: Optional[random.Random] = None) -> MutableSequence[T]:
    """Fisher-Yates: walk from the last index down to 1, swap with a uniform j in [0, i]."""
    r = rng if rng is not None else random
    for i in range(len(items) - 1, 0, -1):
        j = r.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items
