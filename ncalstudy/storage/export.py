from __future__ import annotations

"""Export answered questions as CSV (or NDJSON) using pandas.

Columns are fixed by ``EXPORT_COLUMNS``; rows are validated through the
``ExportRow`` pydantic model before they reach the DataFrame.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Mapping, Sequence, Union

import pandas as pd

from ..bank.models import QuestionRecord
from ..results.schema import AnswerRecord
from .schema import DTYPES, EXPORT_COLUMNS, ExportRow


def _iso_utc(epoch_ms: int) -> str:
    dt = datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_export_rows(
    questions: Sequence[QuestionRecord],
    answer_log: Mapping[int, AnswerRecord],
    time_allocated: int,
) -> List[ExportRow]:
    """Pair every answered question with its AnswerRecord, in session order."""
    rows: List[ExportRow] = []
    for index, q in enumerate(questions):
        rec = answer_log.get(index)
        if rec is None:
            continue
        rows.append(
            ExportRow(
                questionId=q.id,
                category=q.category,
                subjectSpecific=q.subject_specific,
                level=q.level,
                question=q.question,
                userAnswer=rec.answer_text,
                correctness=rec.outcome.value,
                timeAllocatedSec=time_allocated,
                timeElapsedSec=rec.elapsed_seconds,
                author=q.author,
                timestamp=_iso_utc(rec.recorded_at_ms),
            )
        )
    return rows


def rows_to_frame(rows: Sequence[ExportRow]) -> pd.DataFrame:
    """DataFrame with the export columns in order and fixed dtypes."""
    if rows:
        df = pd.DataFrame([r.model_dump() for r in rows])
    else:
        df = pd.DataFrame({c: pd.Series(dtype=DTYPES[c]) for c in EXPORT_COLUMNS})
    df = df[EXPORT_COLUMNS]
    return df.astype(DTYPES)


def export_csv(rows: Sequence[ExportRow], out_path: Union[str, Path]) -> Path:
    """Write rows as CSV (header row, minimal quoting, '\\n' line ends)."""
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    rows_to_frame(rows).to_csv(p, index=False, lineterminator="\n", encoding="utf-8")
    return p


def to_csv_text(rows: Sequence[ExportRow]) -> str:
    return rows_to_frame(rows).to_csv(index=False, lineterminator="\n")


def export_ndjson(rows: Sequence[ExportRow], out_path: Union[str, Path]) -> Path:
    """Export rows as line-delimited JSON (NDJSON) for quick inspection."""
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    rows_to_frame(rows).to_json(p, orient="records", lines=True, force_ascii=False)
    return p
