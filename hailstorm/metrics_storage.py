"""Histogram storage of action timings."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from hailstorm.timer import ExecutionInfo, Timer

log = logging.getLogger(__name__)

BUCKETS = 20
SNAPSHOT_CAPACITY = 60
HIST_MAX_RES = timedelta(seconds=5)
PENDING_MAX_AGE = timedelta(hours=1)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def compute_bucket_idx(value: int) -> int:
    """Logarithmic bucket of a value in centiseconds."""
    if value <= 0:
        return 0
    return min((value - 1).bit_length(), BUCKETS - 1)


@dataclass
class Metrics:
    """Histogram of response times (centiseconds) for one outcome."""

    histogram: list[int] = field(default_factory=lambda: [0] * BUCKETS)
    sum: int = 0

    def copy(self) -> "Metrics":
        return Metrics(list(self.histogram), self.sum)


MetricsFamily = dict[int, Metrics]


@dataclass
class MetricsFamilySnapshot:
    """Metrics family captured at a given instant."""

    timestamp: datetime
    metrics: MetricsFamily


@dataclass(frozen=True)
class StartedTimer:
    """Identifies a started timer by id and start time."""

    id: int
    timestamp: datetime


class SnapshotBuffer:
    """Bounded buffer of metrics snapshots."""

    def __init__(self, capacity: int = SNAPSHOT_CAPACITY) -> None:
        self.capacity = capacity
        self.last_snapshot: Optional[datetime] = None
        self._items: deque[MetricsFamilySnapshot] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def add_snapshot(self, timestamp: datetime, metrics: MetricsFamily) -> None:
        if len(self._items) >= self.capacity:
            log.error("Error saving metrics snapshot %s", timestamp)
            return
        self._items.append(MetricsFamilySnapshot(timestamp, metrics))
        self.last_snapshot = timestamp

    def is_elapsed(self, delta: timedelta, query_ts: datetime) -> bool:
        if self.last_snapshot is None:
            return True
        return self.last_snapshot + delta < query_ts

    def drain(self) -> list[MetricsFamilySnapshot]:
        items = list(self._items)
        self._items.clear()
        return items


class MetricsStorage:
    """Collects timers of one action and folds them into histograms."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock
        self.ts_last_received_metric = clock()
        self.snapshots = SnapshotBuffer()
        self.histogram: MetricsFamily = {}
        self._pending: dict[datetime, list[Timer]] = {}

    def start_timer(self) -> StartedTimer:
        now = self._clock()
        self.ts_last_received_metric = now
        timers = self._pending.setdefault(now, [])
        timer_id = len(timers)
        timers.append(Timer(timer_id))
        return StartedTimer(timer_id, now)

    def stop_timer(self, timer: StartedTimer, execution: ExecutionInfo) -> None:
        self.ts_last_received_metric = self._clock()
        found = next(
            (t for t in self._pending.get(timer.timestamp, ()) if t.id == timer.id),
            None,
        )
        if found is None:
            log.error("No timer found with ts %s and id %s", timer.timestamp, timer.id)
            return
        found.set_execution(execution.elapsed, execution.outcome)
        self._process_pending()

    def fetch_metrics(self) -> list[MetricsFamilySnapshot]:
        return self.snapshots.drain()

    def _process_pending(self) -> None:
        now = self._clock()
        for ts in sorted(self._pending):
            timers = self._pending[ts]
            if ts + PENDING_MAX_AGE > now and any(t.execution is None for t in timers):
                break
            for timer in timers:
                if timer.execution is None:
                    log.warning("dropping pending timer '%s'", ts.isoformat())
                    continue
                status = self.histogram.setdefault(timer.execution.outcome, Metrics())
                cs = timer.execution.elapsed // timedelta(milliseconds=10)
                status.histogram[compute_bucket_idx(cs)] += 1
                status.sum += cs
            if self.snapshots.is_elapsed(HIST_MAX_RES, ts):
                self.snapshots.add_snapshot(
                    ts, {k: m.copy() for k, m in self.histogram.items()}
                )
            del self._pending[ts]