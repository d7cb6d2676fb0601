from __future__ import annotations

"""CLI for ncalstudy: bank checks and interactive practice sessions."""

import argparse
import sys
import time
from typing import Any, Dict, Optional

from .. import __version__
from ..bank.models import LEVELS, ParseError
from ..bank.parser import load_bank
from ..config.config import load_config, validate_config
from ..errors import BankLoadError, FilterExhaustionError, InputValidationError
from ..results.schema import Outcome, QuestionResult, RunningStats, SessionSummary
from ..stats.stats import format_summary
from ..storage.export import export_csv
from . import events as ev
from .explain import enable as explain_enable
from .scheduler import Scheduler
from .session_manager import Phase, SessionManager

HELP_TEXT = "Commands: ':p' pause/resume, ':n' next/skip, ':q' end session, ':h' help. Enter twice quickly to submit and move on."


class _WallClock:
    """Feeds real elapsed time into the virtual scheduler between inputs."""

    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler
        self._last = time.monotonic()

    def catch_up(self) -> None:
        now = time.monotonic()
        ms = int((now - self._last) * 1000)
        if ms > 0:
            self._last += ms / 1000.0
            self.scheduler.advance_by(ms)


def _build_views(bus: ev.EventBus) -> None:
    def on_parse_errors(errors: list[ParseError]) -> None:
        print(f"Found {len(errors)} parsing errors (use 'ncalstudy check' for details).")

    def on_expanded(payload: Dict[str, Any]) -> None:
        print(f"Expanded filters to include {payload['questions']} randomized questions.")

    def on_started(payload: Dict[str, Any]) -> None:
        print(f"Practice session started with {payload['total']} randomized questions, {payload['time_allocated']}s each.")
        print(HELP_TEXT)

    def on_question(payload: Dict[str, Any]) -> None:
        q = payload["question"]
        print(f"\nQ {payload['index'] + 1} / {payload['total']}  [{q.subject_specific} | {q.level}]  Author: {q.author}")

    def on_reveal(payload: Dict[str, Any]) -> None:
        if payload["done"]:
            print(payload["text"])

    def on_paused(payload: Dict[str, Any]) -> None:
        print("Timer paused" if payload["paused"] else "Timer resumed")

    def on_result(result: QuestionResult) -> None:
        if result.outcome is Outcome.CORRECT:
            print(f"Correct! ({result.canonical_answer})")
        elif result.outcome is Outcome.TIMEOUT:
            print(f"Time is up. Answer: {result.canonical_answer}")
        else:
            print(f"Incorrect. Answer: {result.canonical_answer}")

    def on_stats(stats: RunningStats) -> None:
        print(f"Correct {stats.correct} | Incorrect {stats.incorrect} | {stats.current}/{stats.total} | Accuracy (so far): {stats.accuracy:.0f}%")

    def on_complete(summary: SessionSummary) -> None:
        print("\nSession Summary:")
        print(format_summary(summary))

    bus.subscribe(ev.PARSE_ERRORS, on_parse_errors)
    bus.subscribe(ev.FILTERS_EXPANDED, on_expanded)
    bus.subscribe(ev.SESSION_STARTED, on_started)
    bus.subscribe(ev.QUESTION_SHOWN, on_question)
    bus.subscribe(ev.REVEAL_PROGRESS, on_reveal)
    bus.subscribe(ev.TIMER_PAUSED, on_paused)
    bus.subscribe(ev.QUESTION_RESULT, on_result)
    bus.subscribe(ev.STATS_UPDATED, on_stats)
    bus.subscribe(ev.SESSION_COMPLETE, on_complete)


def _prompt(engine: SessionManager) -> str:
    state = engine.state
    assert state is not None
    if state.finalized:
        return "[Enter] next > "
    if state.paused:
        return f"(paused, {state.remaining}s) > "
    return f"({state.remaining}s) answer > "


def _play(engine: SessionManager, clock: _WallClock) -> None:
    while engine.phase is Phase.ACTIVE:
        try:
            raw = input(_prompt(engine))
        except EOFError:
            engine.end_session(confirmed=True)
            break
        clock.catch_up()
        if engine.phase is not Phase.ACTIVE:
            break
        state = engine.state
        assert state is not None
        cmd = raw.strip().lower()
        try:
            if cmd == ":h":
                print(HELP_TEXT)
            elif cmd == ":p":
                engine.toggle_pause()
            elif cmd == ":n":
                engine.advance()
            elif cmd == ":q":
                answer = input("Are you sure you want to end this session? [y/N] ")
                if engine.end_session(confirmed=answer.strip().lower() in ("y", "yes")):
                    print("Session ended.")
            elif state.finalized and not cmd:
                engine.advance()
            elif state.finalized:
                print("Already recorded; press Enter for the next question.")
            else:
                engine.commit(raw)
        except InputValidationError as e:
            print(e)
        if engine.phase is Phase.ACTIVE and engine.state is state and state.revealed_words < len(state.question_words):
            engine.skip_reveal()


def _run(args: argparse.Namespace) -> int:
    if args.explain:
        explain_enable(True)
    cfg = validate_config(load_config(args.config))
    bank_path = args.bank or cfg["bank"]["path"]
    try:
        result = load_bank(bank_path)
    except BankLoadError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    bus = ev.EventBus()
    _build_views(bus)
    engine = SessionManager(cfg, bus=bus)
    try:
        if args.time is not None:
            engine.set_time_allocated(args.time)
        if args.reading_speed is not None:
            engine.set_reading_speed(args.reading_speed)
    except InputValidationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    engine.load_bank(result)
    clock = _WallClock(engine.scheduler)
    try:
        engine.start_session(args.subject or (), args.level or "")
    except FilterExhaustionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    engine.skip_reveal()
    _play(engine, clock)

    if args.export is not None:
        out = args.export or cfg["export"]["path"]
        rows = engine.export_rows()
        path = export_csv(rows, out)
        print(f"Exported {len(rows)} answered questions to {path}")
    return 0


def _check(args: argparse.Namespace) -> int:
    try:
        result = load_bank(args.bank)
    except BankLoadError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    print(f"{result.total_lines} lines, {result.valid_count} valid questions, {result.error_count} errors")
    if result.errors:
        print(result.format_errors())
        return 1
    return 0


def _subjects(args: argparse.Namespace) -> int:
    try:
        result = load_bank(args.bank)
    except BankLoadError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    for category, per_level in result.level_counts().items():
        counts = ", ".join(f"{lvl}: {per_level[lvl]}" for lvl in LEVELS)
        print(f"{category} ({sum(per_level.values())}) - {counts}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="ncalstudy")
    p.add_argument("--version", action="version", version=f"ncalstudy {__version__}")
    sub = p.add_subparsers(dest="cmd", required=True)

    cp = sub.add_parser("check", help="Parse a bank and report errors")
    cp.add_argument("bank")

    sp = sub.add_parser("subjects", help="List categories and per-level counts")
    sp.add_argument("bank")

    rp = sub.add_parser("run", help="Run an interactive practice session")
    rp.add_argument("--bank", default=None, help="Question bank file (default from config)")
    rp.add_argument("--config", default=None, help="Path to YAML config")
    rp.add_argument("--time", type=int, default=None, help="Seconds per question (3-60)")
    rp.add_argument("--reading-speed", dest="reading_speed", type=int, default=None, help="Reveal speed in WPM (50-500)")
    rp.add_argument("--subject", action="append", default=None, help="Category to include; repeatable")
    rp.add_argument("--level", choices=list(LEVELS), default=None)
    rp.add_argument("--export", nargs="?", const="", default=None, help="Write answered questions to CSV")
    rp.add_argument("--explain", action="store_true")

    args = p.parse_args(argv)

    if args.cmd == "check":
        return _check(args)
    if args.cmd == "subjects":
        return _subjects(args)
    if args.cmd == "run":
        return _run(args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
