from .schema import DTYPES, EXPORT_COLUMNS, ExportRow
from .export import build_export_rows, rows_to_frame, export_csv, to_csv_text, export_ndjson

__all__ = [
    "DTYPES",
    "EXPORT_COLUMNS",
    "ExportRow",
    "build_export_rows",
    "rows_to_frame",
    "export_csv",
    "to_csv_text",
    "export_ndjson",
]
