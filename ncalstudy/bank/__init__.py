from .models import LEVELS, BankParseResult, ParseError, QuestionRecord
from .normalize import matches, normalize
from .parser import load_bank, parse_bank, parse_line, split_fields

__all__ = [
    "LEVELS",
    "BankParseResult",
    "ParseError",
    "QuestionRecord",
    "matches",
    "normalize",
    "load_bank",
    "parse_bank",
    "parse_line",
    "split_fields",
]
