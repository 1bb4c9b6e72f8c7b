from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol


class Clock(Protocol):
    def now_millis(self) -> int:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall clock in epoch milliseconds."""

    def now_millis(self) -> int:
        return time.time_ns() // 1_000_000


@dataclass
class FixedClock(Clock):
    """Clock pinned to a value; move it with ``advance``."""

    millis: int = 0

    def now_millis(self) -> int:
        return self.millis

    def advance(self, millis: int) -> None:
        self.millis += int(millis)
