from __future__ import annotations

"""Configuration loading and validation for ncalstudy.

This module loads YAML configuration, applies defaults, and clamps
numeric settings to the ranges the session engine accepts.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import sys

import yaml


MIN_TIME_ALLOCATED = 3
MAX_TIME_ALLOCATED = 60
DEFAULT_TIME_ALLOCATED = 10
MIN_READING_SPEED = 50
MAX_READING_SPEED = 500
READING_SPEED_STEP = 25
DEFAULT_READING_SPEED = 300
DEFAULT_DOUBLE_CONFIRM_MS = 1000


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        cfg = _load_yaml(Path(path))
    else:
        default_path = Path(__file__).with_name("defaults.yml")
        cfg = _load_yaml(default_path)
    return cfg


def _as_int(section: Dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        print(f"WARNING: '{key}' must be an integer, got {value!r}; using {default}.")
        return default


def _clamp(name: str, value: int, lo: int, hi: int) -> int:
    if value < lo or value > hi:
        clamped = min(max(value, lo), hi)
        print(f"WARNING: {name} {value} outside {lo}..{hi}, using {clamped}.")
        return clamped
    return value


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    # Missing or empty (None) sections become empty dicts
    for section in ("bank", "session", "reveal", "input", "export"):
        cfg[section] = cfg.get(section) or {}

    bank = cfg["bank"]
    session = cfg["session"]
    reveal = cfg["reveal"]
    inp = cfg["input"]
    export = cfg["export"]

    bank.setdefault("path", "data/bank_sample.txt")
    session.setdefault("allow_skip", True)
    export.setdefault("path", "./ncal-session-results.csv")

    session["time_allocated"] = _clamp(
        "time_allocated",
        _as_int(session, "time_allocated", DEFAULT_TIME_ALLOCATED),
        MIN_TIME_ALLOCATED,
        MAX_TIME_ALLOCATED,
    )

    speed = _clamp(
        "reading_speed",
        _as_int(reveal, "reading_speed", DEFAULT_READING_SPEED),
        MIN_READING_SPEED,
        MAX_READING_SPEED,
    )
    if (speed - MIN_READING_SPEED) % READING_SPEED_STEP:
        snapped = MIN_READING_SPEED + round((speed - MIN_READING_SPEED) / READING_SPEED_STEP) * READING_SPEED_STEP
        print(f"WARNING: reading_speed {speed} is not a multiple of {READING_SPEED_STEP} steps, using {snapped}.")
        speed = snapped
    reveal["reading_speed"] = speed

    window = _as_int(inp, "double_confirm_window_ms", DEFAULT_DOUBLE_CONFIRM_MS)
    if window <= 0:
        print(f"WARNING: double_confirm_window_ms must be positive, using {DEFAULT_DOUBLE_CONFIRM_MS}.")
        window = DEFAULT_DOUBLE_CONFIRM_MS
    inp["double_confirm_window_ms"] = window

    session["allow_skip"] = bool(session.get("allow_skip", True))
    return cfg
