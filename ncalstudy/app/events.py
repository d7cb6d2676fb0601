from __future__ import annotations

"""Tiny pub/sub event bus between the session engine and its front end."""

from typing import Any, Callable, Dict, List

from .explain import trace as xtrace, warn

BANK_LOADED = "bank_loaded"
PARSE_ERRORS = "parse_errors"
SESSION_STARTED = "session_started"
FILTERS_EXPANDED = "filters_expanded"
QUESTION_SHOWN = "question_shown"
REVEAL_PROGRESS = "reveal_progress"
TIMER_TICK = "timer_tick"
TIMER_PAUSED = "timer_paused"
QUESTION_RESULT = "question_result"
STATS_UPDATED = "stats_updated"
SESSION_COMPLETE = "session_complete"
SESSION_ENDED = "session_ended"


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        self._subs.setdefault(event, []).append(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception as exc:
                # report and keep delivering to the remaining handlers
                warn(f"handler for '{event}' failed: {exc!r}")
                xtrace("handler_failed", {"event": event, "error": repr(exc)})
