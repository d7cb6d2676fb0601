from __future__ import annotations

"""Answer, stats and summary records produced by a practice session."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..bank.models import QuestionRecord

MISSING_ANSWER = "—"


class Outcome(str, Enum):
    CORRECT = "Correct"
    INCORRECT = "Incorrect"
    TIMEOUT = "Timeout"


@dataclass(frozen=True)
class AnswerRecord:
    answer_text: str
    outcome: Outcome
    elapsed_seconds: int
    recorded_at_ms: int


@dataclass(frozen=True)
class QuestionResult:
    """What the front end shows after a question is finalized."""

    index: int
    outcome: Outcome
    canonical_answer: str
    user_answer: str = ""


@dataclass(frozen=True)
class RunningStats:
    correct: int
    incorrect: int
    current: int
    total: int
    accuracy: float


@dataclass
class SubjectAccuracy:
    correct: int = 0
    total: int = 0

    @property
    def percent(self) -> float:
        return (self.correct / self.total) * 100 if self.total else 0.0


@dataclass(frozen=True)
class MissedQuestion:
    question: QuestionRecord
    canonical_answer: str
    user_answer: str
    outcome: Outcome


@dataclass
class SessionSummary:
    total: int
    correct: int
    incorrect: int
    accuracy: float
    time_allocated: int
    per_subject: Dict[str, SubjectAccuracy] = field(default_factory=dict)
    missed: List[MissedQuestion] = field(default_factory=list)
    completed: bool = True
    ended_at_ms: Optional[int] = None

    @property
    def overall_percent(self) -> float:
        """Share of the whole working set answered correctly."""
        return (self.correct / self.total) * 100 if self.total else 0.0
