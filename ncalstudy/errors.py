from __future__ import annotations

"""Exception types raised by the bank loader and the session engine.

Per-line parse problems are not exceptions; they are collected as
``ParseError`` records (see ``ncalstudy.bank.models``).
"""


class BankLoadError(Exception):
    """The bank file itself could not be read."""


class SessionError(Exception):
    """Base class for session engine errors. None of them are fatal."""


class FilterExhaustionError(SessionError):
    """No questions matched, even after relaxing the filters."""


class InputValidationError(SessionError):
    """Input rejected without touching session state; ask the user again."""


class SessionPhaseError(SessionError):
    """Operation not allowed in the engine's current phase."""

    def __init__(self, operation: str, phase: str) -> None:
        super().__init__(f"Cannot {operation} while {phase}")
        self.operation = operation
        self.phase = phase
