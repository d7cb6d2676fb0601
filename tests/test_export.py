import json
import os
import tempfile
import unittest

from pydantic import ValidationError

from ncalstudy.bank.parser import parse_line
from ncalstudy.results.schema import AnswerRecord, Outcome
from ncalstudy.storage.export import build_export_rows, export_csv, export_ndjson, rows_to_frame, to_csv_text
from ncalstudy.storage.schema import EXPORT_COLUMNS, ExportRow

EPOCH_MS = 1_700_000_000_000


def _questions():
    return [
        parse_line('Science>Physics;Name the unit of force, in SI;["Newton"];Varsity;NCAL', "b", 1),
        parse_line('Math>Algebra;Solve 2x = 4;["2"];Freshman;Coach "K"', "b", 2),
        parse_line('Geography;Capital of France?;["Paris"];Junior Varsity;NCAL', "b", 3),
    ]


def _log():
    return {
        0: AnswerRecord("newton", Outcome.CORRECT, 4, EPOCH_MS),
        2: AnswerRecord("", Outcome.TIMEOUT, 10, EPOCH_MS + 1500),
    }


def _row(**overrides) -> dict:
    row = dict(
        questionId="abc",
        category="Cat",
        subjectSpecific="Cat",
        level="Freshman",
        question="Q",
        userAnswer="A",
        correctness="Correct",
        timeAllocatedSec=10,
        timeElapsedSec=3,
        author="Me",
        timestamp="2023-11-14T22:13:20.000Z",
    )
    row.update(overrides)
    return row


class BuildRowsTests(unittest.TestCase):
    def test_only_answered_questions_in_order(self) -> None:
        qs = _questions()
        rows = build_export_rows(qs, _log(), 10)
        self.assertEqual([r.questionId for r in rows], [qs[0].id, qs[2].id])
        self.assertEqual(rows[0].correctness, "Correct")
        self.assertEqual(rows[0].userAnswer, "newton")
        self.assertEqual(rows[1].correctness, "Timeout")
        self.assertEqual(rows[1].userAnswer, "")
        self.assertEqual(rows[1].subjectSpecific, "Geography")

    def test_timestamp_is_utc_iso(self) -> None:
        rows = build_export_rows(_questions(), _log(), 10)
        self.assertEqual(rows[0].timestamp, "2023-11-14T22:13:20.000Z")
        self.assertEqual(rows[1].timestamp, "2023-11-14T22:13:21.500Z")


class ExportRowTests(unittest.TestCase):
    def test_elapsed_cannot_exceed_allocated(self) -> None:
        with self.assertRaises(ValidationError):
            ExportRow(**_row(timeAllocatedSec=5, timeElapsedSec=6))

    def test_rejects_unknown_values(self) -> None:
        for bad in (dict(correctness="Skipped"), dict(level="Sophomore"), dict(timeAllocatedSec=2)):
            with self.subTest(bad=bad):
                with self.assertRaises(ValidationError):
                    ExportRow(**_row(**bad))


class CsvTests(unittest.TestCase):
    def test_header_row(self) -> None:
        text = to_csv_text([])
        self.assertEqual(text, ",".join(EXPORT_COLUMNS) + "\n")

    def test_quoting_and_values(self) -> None:
        text = to_csv_text(build_export_rows(_questions(), {1: AnswerRecord("2", Outcome.CORRECT, 1, EPOCH_MS)}, 10))
        lines = text.splitlines()
        self.assertEqual(lines[0], ",".join(EXPORT_COLUMNS))
        self.assertEqual(len(lines), 2)
        self.assertIn('"Coach ""K"""', lines[1])
        self.assertIn(",Correct,10,1,", lines[1])

    def test_comma_in_field_is_quoted(self) -> None:
        text = to_csv_text(build_export_rows(_questions(), _log(), 10))
        self.assertIn('"Name the unit of force, in SI"', text)

    def test_frame_columns_and_dtypes(self) -> None:
        df = rows_to_frame(build_export_rows(_questions(), _log(), 10))
        self.assertEqual(list(df.columns), EXPORT_COLUMNS)
        self.assertEqual(str(df["timeElapsedSec"].dtype), "UInt8")
        self.assertEqual(df["timeElapsedSec"].tolist(), [4, 10])

    def test_export_files(self) -> None:
        rows = build_export_rows(_questions(), _log(), 10)
        with tempfile.TemporaryDirectory() as d:
            csv_path = export_csv(rows, os.path.join(d, "out", "results.csv"))
            with open(csv_path, encoding="utf-8") as f:
                self.assertEqual(f.readline().strip(), ",".join(EXPORT_COLUMNS))
                self.assertEqual(len(f.readlines()), 2)

            nd_path = export_ndjson(rows, os.path.join(d, "results.ndjson"))
            with open(nd_path, encoding="utf-8") as f:
                records = [json.loads(line) for line in f if line.strip()]
        self.assertEqual(len(records), 2)
        self.assertEqual(records[1]["correctness"], "Timeout")
        self.assertEqual(records[0]["timeElapsedSec"], 4)


if __name__ == "__main__":
    unittest.main()
