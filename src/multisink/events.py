from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from .levels import Level

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class LogEvent:
    """A single log call, as seen by every target it reaches."""

    level: Level
    timestamp: int  # epoch milliseconds, captured once per call
    component: str
    source: Optional[str]
    messages: Tuple[Any, ...]

    @property
    def display_name(self) -> str:
        return f"{self.component}/{self.source}" if self.source else self.component


def display_name_length(component: str, source: Optional[str] = None) -> int:
    return len(component) + (1 + len(source) if source else 0)
