"""Timers tracking single action executions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional


@dataclass(frozen=True)
class ExecutionInfo:
    """Outcome of a completed action execution."""

    elapsed: timedelta
    outcome: int


@dataclass
class Timer:
    """A pending timer, complete once its execution is set."""

    id: int
    execution: Optional[ExecutionInfo] = None

    def set_execution(self, elapsed: timedelta, outcome: int) -> None:
        self.execution = ExecutionInfo(elapsed, outcome)