from __future__ import annotations

"""Answer normalization and matching.

Answers are compared after a fixed clean-up pipeline; the order of the
steps matters for edge cases (hyphens become spaces before whitespace is
collapsed, the article is stripped last).
"""

import re
from typing import Iterable

_PUNCTUATION = re.compile(r"[.,!?:\"'()\[\]{}]")
_WHITESPACE = re.compile(r"\s+")
_LEADING_ARTICLE = re.compile(r"^(THE |A |AN )")


def normalize(text: str) -> str:
    """Return the comparison form of ``text``.

    trim -> upper -> '-' to ' ' -> drop punctuation -> collapse whitespace
    -> trim -> strip one leading THE/A/AN -> trim.
    """
    s = text.strip().upper()
    s = s.replace("-", " ")
    s = _PUNCTUATION.sub("", s)
    s = _WHITESPACE.sub(" ", s).strip()
    s = _LEADING_ARTICLE.sub("", s, count=1)
    return s.strip()


def matches(user_input: str, answers: Iterable[str]) -> bool:
    """True if ``user_input`` equals any acceptable answer after normalization."""
    u = normalize(user_input)
    return any(normalize(a) == u for a in answers)
