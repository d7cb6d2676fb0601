from __future__ import annotations

"""Session scoring: running counts, accuracy and the end-of-session summary."""

from typing import Dict, Mapping, Sequence, Tuple

from ..bank.models import QuestionRecord
from ..results.schema import (
    MISSING_ANSWER,
    AnswerRecord,
    MissedQuestion,
    Outcome,
    SessionSummary,
    SubjectAccuracy,
)


def calculate_stats(answer_log: Mapping[int, AnswerRecord]) -> Tuple[int, int]:
    """Single pass over the log -> (correct, incorrect).

    Timeouts count as incorrect here; the summary keeps them apart.
    """
    correct = 0
    incorrect = 0
    for rec in answer_log.values():
        if rec.outcome is Outcome.CORRECT:
            correct += 1
        else:
            incorrect += 1
    return correct, incorrect


def accuracy(correct: int, incorrect: int) -> float:
    total = correct + incorrect
    return (correct / total) * 100 if total > 0 else 0.0


def subject_breakdown(
    questions: Sequence[QuestionRecord], answer_log: Mapping[int, AnswerRecord]
) -> Dict[str, SubjectAccuracy]:
    per: Dict[str, SubjectAccuracy] = {}
    for index, q in enumerate(questions):
        bucket = per.setdefault(q.subject_specific, SubjectAccuracy())
        bucket.total += 1
        rec = answer_log.get(index)
        if rec is not None and rec.outcome is Outcome.CORRECT:
            bucket.correct += 1
    return per


def missed_questions(questions: Sequence[QuestionRecord], answer_log: Mapping[int, AnswerRecord]):
    missed = []
    for index, q in enumerate(questions):
        rec = answer_log.get(index)
        if rec is not None and rec.outcome is Outcome.CORRECT:
            continue
        # Skipped questions have no record and are shown like a timeout
        outcome = rec.outcome if rec is not None else Outcome.TIMEOUT
        text = rec.answer_text if rec is not None and rec.answer_text else MISSING_ANSWER
        missed.append(MissedQuestion(question=q, canonical_answer=q.canonical_answer, user_answer=text, outcome=outcome))
    return missed


def build_summary(
    questions: Sequence[QuestionRecord],
    answer_log: Mapping[int, AnswerRecord],
    time_allocated: int,
    *,
    completed: bool = True,
    ended_at_ms: int | None = None,
) -> SessionSummary:
    correct, incorrect = calculate_stats(answer_log)
    return SessionSummary(
        total=len(questions),
        correct=correct,
        incorrect=incorrect,
        accuracy=accuracy(correct, incorrect),
        time_allocated=time_allocated,
        per_subject=subject_breakdown(questions, answer_log),
        missed=missed_questions(questions, answer_log),
        completed=completed,
        ended_at_ms=ended_at_ms,
    )


def format_summary(summary: SessionSummary) -> str:
    """Return a human-readable summary."""
    lines = [f"Total: {summary.correct}/{summary.total} correct ({summary.overall_percent:.0f}%)"]
    lines.append(f"Accuracy (answered): {summary.accuracy:.0f}%")
    for subject, st in summary.per_subject.items():
        lines.append(f"{subject}: {st.correct}/{st.total} ({st.percent:.0f}%)")
    if summary.missed:
        lines.append("")
        lines.append("Missed:")
        for m in summary.missed:
            lines.append(
                f"  [{m.outcome.value}] {m.question.subject_specific} | {m.question.question}"
                f" | answer: {m.canonical_answer} | yours: {m.user_answer}"
            )
    else:
        lines.append("No questions were missed!")
    return "\n".join(lines)
