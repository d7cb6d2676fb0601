from __future__ import annotations

"""Subject/level filtering with automatic fallback when nothing matches."""

import random
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from ..bank.models import QuestionRecord
from ..errors import FilterExhaustionError
from ..util.randomness import shuffle_in_place

ALL_SUBJECTS = "select_all_subjects"
CLEAR_LEVEL = "clear_level"
AVAILABLE_SUBJECTS = "select_available_subjects"


@dataclass(frozen=True)
class FilterResolution:
    questions: Tuple[QuestionRecord, ...]
    subjects: FrozenSet[str]
    level: str
    fallbacks: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def expanded(self) -> bool:
        return bool(self.fallbacks)


def filter_pool(pool: Iterable[QuestionRecord], subjects: Iterable[str], level: str) -> List[QuestionRecord]:
    """Empty ``subjects`` means all subjects; empty ``level`` means any level."""
    wanted = frozenset(subjects)
    return [
        q
        for q in pool
        if (not wanted or q.category in wanted) and (not level or q.level == level)
    ]


def resolve_filters(
    pool: Sequence[QuestionRecord],
    subjects: Iterable[str] = (),
    level: Optional[str] = "",
    rng: Optional[random.Random] = None,
) -> FilterResolution:
    """Filter and shuffle the pool for a new session.

    Relaxation order when the selection is empty: select every subject (only
    if none were chosen), then drop the level, then select every subject
    that still has a matching question. Raises FilterExhaustionError when
    even that leaves nothing.
    """
    chosen = frozenset(subjects)
    lvl = level or ""
    applied: List[str] = []

    found = filter_pool(pool, chosen, lvl)
    if not found:
        if not chosen:
            chosen = frozenset(q.category for q in pool)
            applied.append(ALL_SUBJECTS)
            found = filter_pool(pool, chosen, lvl)
        if not found:
            lvl = ""
            applied.append(CLEAR_LEVEL)
            found = filter_pool(pool, chosen, lvl)
        if not found:
            chosen = frozenset(q.category for q in filter_pool(pool, (), lvl))
            applied.append(AVAILABLE_SUBJECTS)
            found = filter_pool(pool, chosen, lvl)
        if not found:
            raise FilterExhaustionError("Unable to find any questions. Please check your question bank.")

    shuffle_in_place(found, rng)
    return FilterResolution(questions=tuple(found), subjects=chosen, level=lvl, fallbacks=tuple(applied))
