import unittest

from ncalstudy.bank.parser import parse_line
from ncalstudy.results.schema import MISSING_ANSWER, AnswerRecord, Outcome
from ncalstudy.stats.stats import (
    accuracy,
    build_summary,
    calculate_stats,
    format_summary,
    missed_questions,
    subject_breakdown,
)


def _q(category: str, question: str, answer: str):
    return parse_line(f'{category};{question};["{answer}"];Varsity;NCAL', "b", 1)


def _rec(outcome: Outcome, text: str = "x", elapsed: int = 3) -> AnswerRecord:
    return AnswerRecord(answer_text=text, outcome=outcome, elapsed_seconds=elapsed, recorded_at_ms=0)


QUESTIONS = [
    _q("Science>Physics", "Unit of force?", "Newton"),
    _q("Science>Physics", "Unit of energy?", "Joule"),
    _q("Math>Algebra", "Solve 2x = 4", "2"),
    _q("Math>Algebra", "Solve x + 1 = 3", "2"),
]


class CalculateStatsTests(unittest.TestCase):
    def test_empty_log(self) -> None:
        self.assertEqual(calculate_stats({}), (0, 0))
        self.assertEqual(accuracy(0, 0), 0.0)

    def test_timeouts_count_as_incorrect(self) -> None:
        log = {0: _rec(Outcome.CORRECT), 1: _rec(Outcome.INCORRECT), 3: _rec(Outcome.TIMEOUT, "")}
        self.assertEqual(calculate_stats(log), (1, 2))

    def test_accuracy(self) -> None:
        self.assertEqual(accuracy(3, 1), 75.0)
        self.assertEqual(accuracy(5, 0), 100.0)


class SubjectBreakdownTests(unittest.TestCase):
    def test_groups_by_specific_subject(self) -> None:
        log = {0: _rec(Outcome.CORRECT), 2: _rec(Outcome.CORRECT), 3: _rec(Outcome.INCORRECT)}
        per = subject_breakdown(QUESTIONS, log)
        self.assertEqual(set(per), {"Physics", "Algebra"})
        self.assertEqual((per["Physics"].correct, per["Physics"].total), (1, 2))
        self.assertEqual((per["Algebra"].correct, per["Algebra"].total), (1, 2))
        self.assertEqual(per["Physics"].percent, 50.0)
        self.assertEqual(sum(s.total for s in per.values()), len(QUESTIONS))


class MissedQuestionsTests(unittest.TestCase):
    def test_missed_in_session_order(self) -> None:
        log = {0: _rec(Outcome.CORRECT), 1: _rec(Outcome.INCORRECT, "Watt"), 3: _rec(Outcome.TIMEOUT, "")}
        missed = missed_questions(QUESTIONS, log)
        self.assertEqual([m.question for m in missed], QUESTIONS[1:])
        self.assertEqual(missed[0].user_answer, "Watt")
        self.assertEqual(missed[0].canonical_answer, "Joule")
        self.assertIs(missed[1].outcome, Outcome.TIMEOUT)
        self.assertEqual(missed[1].user_answer, MISSING_ANSWER)
        self.assertEqual(missed[2].user_answer, MISSING_ANSWER)


class SummaryTests(unittest.TestCase):
    def test_build_summary(self) -> None:
        log = {0: _rec(Outcome.CORRECT), 1: _rec(Outcome.INCORRECT)}
        summary = build_summary(QUESTIONS, log, 10, completed=False, ended_at_ms=42)
        self.assertEqual(summary.total, 4)
        self.assertEqual((summary.correct, summary.incorrect), (1, 1))
        self.assertEqual(summary.accuracy, 50.0)
        self.assertEqual(summary.overall_percent, 25.0)
        self.assertEqual(len(summary.missed), 3)
        self.assertFalse(summary.completed)
        self.assertEqual(summary.ended_at_ms, 42)

    def test_format_perfect_session(self) -> None:
        log = {i: _rec(Outcome.CORRECT) for i in range(len(QUESTIONS))}
        text = format_summary(build_summary(QUESTIONS, log, 10))
        self.assertTrue(text.startswith("Total: 4/4 correct (100%)"))
        self.assertIn("Physics: 2/2 (100%)", text)
        self.assertTrue(text.endswith("No questions were missed!"))

    def test_format_lists_missed(self) -> None:
        log = {0: _rec(Outcome.INCORRECT, "Dyne")}
        text = format_summary(build_summary(QUESTIONS[:1], log, 10))
        self.assertIn("Missed:", text)
        self.assertIn("answer: Newton | yours: Dyne", text)
        self.assertNotIn("No questions were missed!", text)


if __name__ == "__main__":
    unittest.main()
