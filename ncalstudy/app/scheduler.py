from __future__ import annotations

"""Cooperative interval scheduler on a virtual millisecond clock.

Nothing here runs on its own: the host calls ``advance_by`` (the CLI with
wall-clock elapsed time, tests with exact virtual amounts) and due callbacks
fire one after another on the caller's thread. This keeps the question timer
and the reveal ticker as discrete events the engine can reason about.
"""

from dataclasses import dataclass, field
from itertools import count
from typing import Callable, Dict, List, Optional


@dataclass
class TimerHandle:
    id: int
    interval_ms: int
    due_ms: int
    callback: Callable[["TimerHandle"], None] = field(repr=False)
    label: str = ""
    cancelled: bool = False


class Scheduler:
    def __init__(self, now_ms: int = 0) -> None:
        self._now = int(now_ms)
        self._ids = count(1)
        self._live: Dict[int, TimerHandle] = {}

    @property
    def now_ms(self) -> int:
        return self._now

    def call_every(self, interval_ms: int, callback: Callable[[TimerHandle], None], label: str = "") -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        h = TimerHandle(
            id=next(self._ids),
            interval_ms=int(interval_ms),
            due_ms=self._now + int(interval_ms),
            callback=callback,
            label=label,
        )
        self._live[h.id] = h
        return h

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        """Stop ``handle``. Cancelling twice, or cancelling None, is a no-op."""
        if handle is None:
            return
        handle.cancelled = True
        self._live.pop(handle.id, None)

    def live_handles(self) -> List[TimerHandle]:
        return sorted(self._live.values(), key=lambda h: h.id)

    def _next_due(self, until_ms: int) -> Optional[TimerHandle]:
        due = [h for h in self._live.values() if h.due_ms <= until_ms]
        if not due:
            return None
        return min(due, key=lambda h: (h.due_ms, h.id))

    def advance_by(self, ms: int) -> int:
        """Move the clock forward ``ms`` and fire everything due; returns fire count."""
        if ms < 0:
            raise ValueError("cannot move the clock backwards")
        target = self._now + int(ms)
        fired = 0
        while True:
            h = self._next_due(target)
            if h is None:
                break
            self._now = h.due_ms
            h.due_ms += h.interval_ms
            h.callback(h)
            fired += 1
        self._now = target
        return fired
