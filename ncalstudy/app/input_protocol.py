from __future__ import annotations

"""Double-confirm commit protocol.

Pressing the commit key once submits the answer; pressing it again within
the window also moves on to the next question.
"""

from dataclasses import dataclass

SUBMIT = "submit"
ADVANCE = "advance"


@dataclass
class DoubleConfirm:
    window_ms: int = 1000
    press_count: int = 0
    last_press_ms: int = 0

    def press(self, now_ms: int) -> str:
        if now_ms - self.last_press_ms > self.window_ms:
            self.press_count = 0
        self.press_count += 1
        self.last_press_ms = now_ms
        if self.press_count >= 2:
            self.reset()
            return ADVANCE
        return SUBMIT

    def reset(self) -> None:
        self.press_count = 0
        self.last_press_ms = 0
