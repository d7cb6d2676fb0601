from __future__ import annotations

"""Question bank records and parse results."""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple


LEVELS: Tuple[str, ...] = ("Freshman", "Junior Varsity", "Varsity")


@dataclass(frozen=True)
class QuestionRecord:
    """One validated line of the bank. Never mutated after parsing."""

    id: str
    category: str
    subject_broad: str
    subject_specific: str
    question: str
    answers: Tuple[str, ...]
    level: str
    author: str

    @property
    def canonical_answer(self) -> str:
        return self.answers[0]


@dataclass(frozen=True)
class ParseError:
    filename: str
    line: int
    reason: str
    raw_line: str

    def describe(self) -> str:
        return f"{self.filename}:{self.line} — {self.reason}\n  Raw line: {self.raw_line}"


@dataclass
class BankParseResult:
    """Outcome of parsing a whole bank: good records plus per-line errors."""

    questions: List[QuestionRecord] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    total_lines: int = 0

    @property
    def valid_count(self) -> int:
        return len(self.questions)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def categories(self) -> List[str]:
        return sorted({q.category for q in self.questions})

    def level_counts(self) -> Dict[str, Dict[str, int]]:
        """Category -> level -> number of questions."""
        out: Dict[str, Dict[str, int]] = {}
        for q in self.questions:
            per = out.setdefault(q.category, {lvl: 0 for lvl in LEVELS})
            per[q.level] += 1
        return out

    def format_errors(self) -> str:
        if not self.errors:
            return ""
        lines = [f"Found {self.error_count} parsing errors:"]
        lines.extend(e.describe() for e in self.errors)
        return "\n".join(lines)
