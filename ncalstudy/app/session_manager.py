from __future__ import annotations

"""Session Manager: owns the practice session state machine.

Phases run Idle -> Configuring (bank loaded) -> Active (session started)
-> Complete (advanced past the last question) -> Configuring (new session
or reset). The live SessionState is an explicit object; every timer
callback is bound to the state instance it was started for, so a tick
that arrives after the session was ended or replaced changes nothing.

Time only moves when the host advances the Scheduler, which makes the
submit-versus-timeout race and timer cancellation testable on a virtual
clock.
"""

import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from ..bank.models import BankParseResult, QuestionRecord
from ..bank.normalize import matches
from ..config.config import (
    MAX_READING_SPEED,
    MAX_TIME_ALLOCATED,
    MIN_READING_SPEED,
    MIN_TIME_ALLOCATED,
    validate_config,
)
from ..errors import InputValidationError, SessionPhaseError
from ..results.schema import AnswerRecord, Outcome, QuestionResult, RunningStats, SessionSummary
from ..stats.stats import accuracy, build_summary, calculate_stats
from ..storage.export import build_export_rows
from ..storage.schema import ExportRow
from . import events as ev
from .explain import trace as xtrace
from .filters import filter_pool, resolve_filters
from .input_protocol import ADVANCE, DoubleConfirm
from .scheduler import Scheduler, TimerHandle

TICK_MS = 1000


class Phase(str, Enum):
    IDLE = "Idle"
    CONFIGURING = "Configuring"
    ACTIVE = "Active"
    COMPLETE = "Complete"


@dataclass
class SessionState:
    working_set: Tuple[QuestionRecord, ...]
    time_allocated: int
    subjects: FrozenSet[str] = frozenset()
    level: str = ""
    fallbacks: Tuple[str, ...] = ()
    started_at_ms: int = 0
    current_index: int = 0
    answer_log: Dict[int, AnswerRecord] = field(default_factory=dict)
    remaining: int = 0
    paused: bool = False
    active: bool = True
    revealed_words: int = 0

    @property
    def total(self) -> int:
        return len(self.working_set)

    @property
    def current_question(self) -> QuestionRecord:
        return self.working_set[self.current_index]

    @property
    def finalized(self) -> bool:
        """Current question already answered or timed out."""
        return self.current_index in self.answer_log

    @property
    def question_words(self) -> List[str]:
        return self.current_question.question.split(" ")

    @property
    def revealed_text(self) -> str:
        return " ".join(self.question_words[: self.revealed_words])


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class SessionManager:
    def __init__(
        self,
        cfg: Optional[Dict[str, Any]] = None,
        *,
        bus: Optional[ev.EventBus] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = _epoch_ms,
    ) -> None:
        self.cfg = validate_config(cfg if cfg is not None else {})
        self.bus = bus or ev.EventBus()
        self.scheduler = scheduler or Scheduler()
        self.rng = rng
        self.clock = clock

        self.phase = Phase.IDLE
        self.pool: List[QuestionRecord] = []
        self.state: Optional[SessionState] = None
        self.last_summary: Optional[SessionSummary] = None

        self.time_allocated: int = self.cfg["session"]["time_allocated"]
        self.reading_speed: int = self.cfg["reveal"]["reading_speed"]
        self.allow_skip: bool = self.cfg["session"]["allow_skip"]
        self.selected_subjects: FrozenSet[str] = frozenset()
        self.selected_level: str = ""

        self._timer: Optional[TimerHandle] = None
        self._reveal: Optional[TimerHandle] = None
        self._confirm = DoubleConfirm(window_ms=self.cfg["input"]["double_confirm_window_ms"])

    # ----- guards -------------------------------------------------------

    def _require(self, operation: str, *phases: Phase) -> None:
        if self.phase not in phases:
            raise SessionPhaseError(operation, self.phase.value)

    def _live_state(self, operation: str) -> SessionState:
        self._require(operation, Phase.ACTIVE)
        assert self.state is not None
        return self.state

    # ----- configuring --------------------------------------------------

    def load_bank(self, source: Union[BankParseResult, Iterable[QuestionRecord]]) -> int:
        """Install a new question pool. Ends any active session first."""
        if self.phase is Phase.ACTIVE:
            self._deactivate("bank_reloaded")
        # a previous session's state refers to the old pool
        self.state = None
        self.last_summary = None
        if isinstance(source, BankParseResult):
            self.pool = list(source.questions)
            if source.errors:
                self.bus.emit(ev.PARSE_ERRORS, list(source.errors))
        else:
            self.pool = list(source)
        self.phase = Phase.CONFIGURING
        self.bus.emit(ev.BANK_LOADED, {"questions": len(self.pool)})
        xtrace("bank_loaded", {"questions": len(self.pool)})
        return len(self.pool)

    def set_time_allocated(self, seconds: int) -> None:
        if self.phase is Phase.ACTIVE:
            raise SessionPhaseError("change the time per question", self.phase.value)
        if isinstance(seconds, bool) or not isinstance(seconds, int):
            raise InputValidationError(f"Time per question must be a whole number of seconds, got {seconds!r}")
        if not MIN_TIME_ALLOCATED <= seconds <= MAX_TIME_ALLOCATED:
            raise InputValidationError(
                f"Time per question must be between {MIN_TIME_ALLOCATED} and {MAX_TIME_ALLOCATED} seconds"
            )
        self.time_allocated = seconds

    def set_reading_speed(self, wpm: int) -> None:
        """Words per minute for the reveal; takes effect on the next question."""
        if isinstance(wpm, bool) or not isinstance(wpm, int):
            raise InputValidationError(f"Reading speed must be a whole number, got {wpm!r}")
        if not MIN_READING_SPEED <= wpm <= MAX_READING_SPEED:
            raise InputValidationError(f"Reading speed must be between {MIN_READING_SPEED} and {MAX_READING_SPEED} WPM")
        self.reading_speed = wpm

    def available_subjects(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for q in self.pool:
            counts[q.category] = counts.get(q.category, 0) + 1
        return dict(sorted(counts.items()))

    def preview_pool(self, subjects: Iterable[str] = (), level: str = "") -> int:
        return len(filter_pool(self.pool, subjects, level))

    # ----- session lifecycle --------------------------------------------

    def start_session(self, subjects: Iterable[str] = (), level: Optional[str] = "") -> SessionState:
        """Resolve filters, shuffle and show the first question.

        Raises FilterExhaustionError (phase unchanged) when nothing matches.
        """
        self._require("start a session", Phase.CONFIGURING)
        res = resolve_filters(self.pool, subjects, level, self.rng)
        self.selected_subjects = res.subjects
        self.selected_level = res.level

        state = SessionState(
            working_set=res.questions,
            time_allocated=self.time_allocated,
            subjects=res.subjects,
            level=res.level,
            fallbacks=res.fallbacks,
            started_at_ms=self.clock(),
        )
        self.state = state
        self.last_summary = None
        self.phase = Phase.ACTIVE
        xtrace(
            "session_started",
            {"questions": state.total, "time": state.time_allocated, "level": state.level, "fallbacks": list(res.fallbacks)},
        )
        if res.expanded:
            self.bus.emit(ev.FILTERS_EXPANDED, {"fallbacks": list(res.fallbacks), "questions": state.total})
        self.bus.emit(ev.SESSION_STARTED, {"total": state.total, "time_allocated": state.time_allocated})
        self._show_question(state)
        return state

    def _show_question(self, state: SessionState) -> None:
        self._confirm.reset()
        self.bus.emit(
            ev.QUESTION_SHOWN,
            {"index": state.current_index, "total": state.total, "question": state.current_question},
        )
        self._start_reveal(state)
        self._start_question_timer(state)

    def _cancel_question_timer(self) -> None:
        self.scheduler.cancel(self._timer)
        self._timer = None

    def _cancel_reveal(self) -> None:
        self.scheduler.cancel(self._reveal)
        self._reveal = None

    def _stop_timers(self) -> None:
        self._cancel_question_timer()
        self._cancel_reveal()
        xtrace("timers_cancelled", {"live": len(self.scheduler.live_handles())})

    def _deactivate(self, reason: str) -> Optional[SessionSummary]:
        """Leave Active without completing. Returns the partial summary."""
        state = self.state
        self._stop_timers()
        if state is None or not state.active:
            return None
        state.active = False
        summary = self._summarize(state, completed=False)
        self.last_summary = summary
        self.bus.emit(ev.SESSION_ENDED, {"reason": reason, "summary": summary})
        xtrace("session_ended", {"reason": reason, "answered": len(state.answer_log)})
        return summary

    def end_session(self, confirmed: bool = True) -> bool:
        """Manual end. Does nothing unless the front end confirmed it."""
        self._require("end the session", Phase.ACTIVE)
        if not confirmed:
            return False
        self._deactivate("ended")
        self.phase = Phase.CONFIGURING
        return True

    def new_session(self) -> None:
        """Back to Configuring with the current filter selection kept."""
        self._require("start over", Phase.ACTIVE, Phase.COMPLETE, Phase.CONFIGURING)
        if self.phase is Phase.ACTIVE:
            self._deactivate("new_session")
        self._stop_timers()
        self.phase = Phase.CONFIGURING

    def reset(self) -> None:
        """Like new_session, but also forgets the subject and level selection."""
        self.new_session()
        self.selected_subjects = frozenset()
        self.selected_level = ""

    # ----- per-question timer -------------------------------------------

    def _start_question_timer(self, state: SessionState) -> None:
        self._cancel_question_timer()
        state.remaining = state.time_allocated
        index = state.current_index
        self._timer = self.scheduler.call_every(
            TICK_MS, lambda h: self._on_tick(state, index, h), label=f"question-{index}"
        )
        self.bus.emit(ev.TIMER_TICK, {"remaining": state.remaining, "total": state.time_allocated})

    def _on_tick(self, state: SessionState, index: int, handle: TimerHandle) -> None:
        if state is not self.state or not state.active or state.current_index != index or index in state.answer_log:
            self.scheduler.cancel(handle)
            return
        if state.paused:
            return
        state.remaining -= 1
        self.bus.emit(ev.TIMER_TICK, {"remaining": max(state.remaining, 0), "total": state.time_allocated})
        if state.remaining <= 0:
            state.remaining = 0
            self.scheduler.cancel(handle)
            if self._timer is handle:
                self._timer = None
            self._finalize(state, "", Outcome.TIMEOUT, state.time_allocated)

    def toggle_pause(self) -> bool:
        state = self._live_state("pause the timer")
        state.paused = not state.paused
        self.bus.emit(ev.TIMER_PAUSED, {"paused": state.paused})
        xtrace("timer_paused" if state.paused else "timer_resumed", {"remaining": state.remaining})
        return state.paused

    # ----- progressive reveal -------------------------------------------

    def _start_reveal(self, state: SessionState) -> None:
        self._cancel_reveal()
        words = state.question_words
        state.revealed_words = 1
        done = len(words) <= 1
        self.bus.emit(ev.REVEAL_PROGRESS, {"index": state.current_index, "text": state.revealed_text, "done": done})
        if done:
            return
        interval = max(1, round(60000 / self.reading_speed))
        index = state.current_index
        self._reveal = self.scheduler.call_every(
            interval, lambda h: self._on_reveal(state, index, h), label=f"reveal-{index}"
        )

    def _on_reveal(self, state: SessionState, index: int, handle: TimerHandle) -> None:
        if state is not self.state or not state.active or state.current_index != index:
            self.scheduler.cancel(handle)
            return
        words = len(state.question_words)
        state.revealed_words = min(state.revealed_words + 1, words)
        done = state.revealed_words >= words
        if done:
            self.scheduler.cancel(handle)
            if self._reveal is handle:
                self._reveal = None
        self.bus.emit(ev.REVEAL_PROGRESS, {"index": index, "text": state.revealed_text, "done": done})

    def skip_reveal(self) -> str:
        """Show the whole question text now."""
        state = self._live_state("skip the reveal")
        if self._reveal is not None:
            self._cancel_reveal()
            state.revealed_words = len(state.question_words)
            self.bus.emit(ev.REVEAL_PROGRESS, {"index": state.current_index, "text": state.revealed_text, "done": True})
        return state.revealed_text

    # ----- answering ----------------------------------------------------

    def _finalize(self, state: SessionState, text: str, outcome: Outcome, elapsed: int) -> QuestionResult:
        index = state.current_index
        state.answer_log[index] = AnswerRecord(
            answer_text=text,
            outcome=outcome,
            elapsed_seconds=elapsed,
            recorded_at_ms=self.clock(),
        )
        q = state.current_question
        result = QuestionResult(index=index, outcome=outcome, canonical_answer=q.canonical_answer, user_answer=text)
        xtrace("graded", {"index": index, "answer": text, "outcome": outcome.value, "elapsed": elapsed})
        self.bus.emit(ev.QUESTION_RESULT, result)
        self.bus.emit(ev.STATS_UPDATED, self.running_stats())
        return result

    def submit_answer(self, text: str) -> QuestionResult:
        state = self._live_state("submit an answer")
        answer = (text or "").strip()
        if not answer:
            raise InputValidationError("Please enter an answer")
        if state.finalized:
            raise InputValidationError("This question has already been answered")
        self._cancel_question_timer()
        q = state.current_question
        outcome = Outcome.CORRECT if matches(answer, q.answers) else Outcome.INCORRECT
        return self._finalize(state, answer, outcome, state.time_allocated - state.remaining)

    @property
    def advance_enabled(self) -> bool:
        if self.phase is not Phase.ACTIVE or self.state is None:
            return False
        return self.allow_skip or self.state.finalized

    def advance(self) -> Union[QuestionRecord, SessionSummary]:
        """Next question, or the summary once the last one is passed."""
        state = self._live_state("advance")
        if not self.advance_enabled:
            raise InputValidationError("Answer the question before moving on")
        self._cancel_question_timer()
        self._cancel_reveal()
        if state.current_index + 1 >= state.total:
            return self._complete(state)
        state.current_index += 1
        xtrace("advanced", {"index": state.current_index, "total": state.total})
        self._show_question(state)
        return state.current_question

    def commit(self, text: str, now_ms: Optional[int] = None) -> Union[QuestionResult, QuestionRecord, SessionSummary, None]:
        """Commit key: submit on first press, advance on a quick second press."""
        self._live_state("commit")
        now = self.clock() if now_ms is None else now_ms
        if self._confirm.press(now) == ADVANCE:
            return self.advance() if self.advance_enabled else None
        return self.submit_answer(text)

    def _complete(self, state: SessionState) -> SessionSummary:
        self._stop_timers()
        state.active = False
        self.phase = Phase.COMPLETE
        summary = self._summarize(state, completed=True)
        self.last_summary = summary
        xtrace("session_complete", {"correct": summary.correct, "total": summary.total})
        self.bus.emit(ev.SESSION_COMPLETE, summary)
        return summary

    # ----- reporting ----------------------------------------------------

    def _summarize(self, state: SessionState, completed: bool) -> SessionSummary:
        return build_summary(
            state.working_set,
            state.answer_log,
            state.time_allocated,
            completed=completed,
            ended_at_ms=self.clock(),
        )

    def running_stats(self) -> RunningStats:
        state = self.state
        if state is None:
            return RunningStats(correct=0, incorrect=0, current=0, total=0, accuracy=0.0)
        correct, incorrect = calculate_stats(state.answer_log)
        return RunningStats(
            correct=correct,
            incorrect=incorrect,
            current=min(state.current_index + 1, state.total),
            total=state.total,
            accuracy=accuracy(correct, incorrect),
        )

    def summary(self) -> SessionSummary:
        if self.last_summary is not None:
            return self.last_summary
        if self.state is None:
            raise SessionPhaseError("summarize", self.phase.value)
        return self._summarize(self.state, completed=False)

    def export_rows(self) -> List[ExportRow]:
        if self.state is None:
            return []
        return build_export_rows(self.state.working_set, self.state.answer_log, self.state.time_allocated)
