import csv
import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

from ncalstudy.app.cli import main
from ncalstudy.storage.schema import EXPORT_COLUMNS

GOOD = [
    'Geography>Europe;Capital of France?;["Paris"];Freshman;NCAL',
    'Geography>Europe;City of the Louvre?;["Paris"];Freshman;NCAL',
]


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.dir = self._tmp.name

    def _bank(self, lines) -> str:
        path = os.path.join(self.dir, "bank.txt")
        with open(path, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        return path

    def _main(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_check_clean_bank(self) -> None:
        code, out, _ = self._main(["check", self._bank(GOOD)])
        self.assertEqual(code, 0)
        self.assertIn("2 valid questions, 0 errors", out)

    def test_check_reports_errors(self) -> None:
        code, out, _ = self._main(["check", self._bank(GOOD + ["not a question"])])
        self.assertEqual(code, 1)
        self.assertIn("Found 1 parsing errors:", out)
        self.assertIn("Expected 5 fields, got 1", out)

    def test_check_missing_bank(self) -> None:
        code, _, err = self._main(["check", os.path.join(self.dir, "nope.txt")])
        self.assertEqual(code, 1)
        self.assertIn("ERROR", err)

    def test_subjects(self) -> None:
        code, out, _ = self._main(["subjects", self._bank(GOOD)])
        self.assertEqual(code, 0)
        self.assertIn("Geography>Europe (2) - Freshman: 2, Junior Varsity: 0, Varsity: 0", out)

    def test_run_session_and_export(self) -> None:
        bank = self._bank(GOOD)
        out_csv = os.path.join(self.dir, "results.csv")
        answers = ["paris", "", "london", ""]
        with mock.patch("builtins.input", side_effect=answers):
            code, out, _ = self._main(["run", "--bank", bank, "--time", "60", "--export", out_csv])
        self.assertEqual(code, 0)
        self.assertIn("Session Summary:", out)
        self.assertIn("Total: 1/2 correct (50%)", out)
        with open(out_csv, encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        self.assertEqual(len(rows), 2)
        self.assertEqual(list(rows[0].keys()), EXPORT_COLUMNS)
        self.assertEqual([r["correctness"] for r in rows], ["Correct", "Incorrect"])
        self.assertEqual(rows[1]["userAnswer"], "london")
        self.assertTrue(all(r["timeAllocatedSec"] == "60" for r in rows))

    def test_run_quit_on_eof(self) -> None:
        with mock.patch("builtins.input", side_effect=EOFError):
            code, out, _ = self._main(["run", "--bank", self._bank(GOOD)])
        self.assertEqual(code, 0)
        self.assertNotIn("Session Summary:", out)

    def test_run_rejects_bad_time(self) -> None:
        code, _, err = self._main(["run", "--bank", self._bank(GOOD), "--time", "90"])
        self.assertEqual(code, 2)
        self.assertIn("between 3 and 60", err)

    def test_run_empty_bank(self) -> None:
        code, _, err = self._main(["run", "--bank", self._bank(["broken"])])
        self.assertEqual(code, 1)
        self.assertIn("Unable to find any questions", err)

    def test_version(self) -> None:
        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as cm:
                main(["--version"])
        self.assertEqual(cm.exception.code, 0)


if __name__ == "__main__":
    unittest.main()
