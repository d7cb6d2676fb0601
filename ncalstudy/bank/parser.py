from __future__ import annotations

"""Flat-file question bank parser.

Format: one record per line, five fields separated by unescaped ``;``::

    Category;Question;["Answer","Alt"];Level;Author

``\\;`` is a literal semicolon and ``\\\\`` a literal backslash. A bad line
becomes a ParseError; it never stops the rest of the file from loading.
"""

import json
from pathlib import Path
from typing import List, Optional, Union

from ..errors import BankLoadError
from ..app.explain import trace as xtrace
from .models import LEVELS, BankParseResult, ParseError, QuestionRecord

_FIELD_COUNT = 5
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class _LineError(ValueError):
    pass


def split_fields(line: str) -> List[str]:
    """Split ``line`` on unescaped semicolons.

    The last field is always emitted, so ``"a;"`` gives ``["a", ""]``.
    """
    fields: List[str] = []
    current: List[str] = []
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        nxt = line[i + 1] if i + 1 < n else ""
        if ch == "\\" and nxt == ";":
            current.append(";")
            i += 2
        elif ch == "\\" and nxt == "\\":
            current.append("\\")
            i += 2
        elif ch == ";":
            fields.append("".join(current))
            current = []
            i += 1
        else:
            current.append(ch)
            i += 1
    fields.append("".join(current))
    return fields


def question_id(content: str) -> str:
    """32-bit rolling hash (h*31 + c over UTF-16 code units) in base 36.

    Stable across runs; collisions are possible and tolerated.
    """
    h = 0
    data = content.encode("utf-16-le", errors="surrogatepass")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    h = abs(h)
    if h == 0:
        return "0"
    digits = []
    while h:
        h, rem = divmod(h, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _parse_answers(literal: str) -> List[str]:
    try:
        answers = json.loads(literal)
    except ValueError as exc:
        raise _LineError(f"Invalid JSON in answers field: {exc}") from exc
    if not isinstance(answers, list) or len(answers) == 0:
        raise _LineError("Answers must be a non-empty array")
    if not all(isinstance(a, str) and a.strip() for a in answers):
        raise _LineError("All answers must be non-empty strings")
    return [a.strip() for a in answers]


def _build_record(fields: List[str]) -> QuestionRecord:
    if len(fields) != _FIELD_COUNT:
        raise _LineError(f"Expected {_FIELD_COUNT} fields, got {len(fields)}")
    category, question, answers_literal, level, author = fields

    if not category.strip():
        raise _LineError("Category cannot be empty")
    if not question.strip():
        raise _LineError("Question cannot be empty")
    answers = _parse_answers(answers_literal)
    if level.strip() not in LEVELS:
        raise _LineError(f"Unknown level: {level.strip()}")
    if not author.strip():
        raise _LineError("Author cannot be empty")

    cat = category.strip()
    broad, sep, specific = cat.partition(">")
    return QuestionRecord(
        id=question_id(category + question + level + author),
        category=cat,
        subject_broad=broad.strip(),
        subject_specific=specific.strip() if sep else cat,
        question=question.strip(),
        answers=tuple(answers),
        level=level.strip(),
        author=author.strip(),
    )


def parse_line(raw_line: str, filename: str, line_number: int) -> Union[QuestionRecord, ParseError, None]:
    """Parse one bank line.

    Returns None for blank lines, a QuestionRecord on success and a
    ParseError (carrying the untouched raw line) otherwise.
    """
    if not raw_line.strip():
        return None
    try:
        return _build_record(split_fields(raw_line))
    except Exception as exc:
        return ParseError(filename=filename, line=line_number, reason=str(exc), raw_line=raw_line)


def parse_bank(content: str, filename: str) -> BankParseResult:
    """Parse a whole bank; always completes."""
    lines = content.split("\n")
    result = BankParseResult(total_lines=len(lines))
    for index, line in enumerate(lines):
        parsed = parse_line(line, filename, index + 1)
        if parsed is None:
            continue
        if isinstance(parsed, ParseError):
            result.errors.append(parsed)
        else:
            result.questions.append(parsed)
    xtrace(
        "bank_parsed",
        {"file": filename, "lines": result.total_lines, "valid": result.valid_count, "errors": result.error_count},
    )
    return result


def load_bank(path: Union[str, Path], filename: Optional[str] = None) -> BankParseResult:
    """Read a UTF-8 bank file from disk and parse it."""
    p = Path(path)
    try:
        content = p.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise BankLoadError(f"Failed to load question bank {p}: {exc}") from exc
    return parse_bank(content, filename or p.name)
