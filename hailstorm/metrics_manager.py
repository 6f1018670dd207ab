"""Per-action metrics storages keyed by bot model and action."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from hailstorm.messages import PerformanceHistogram, PerformanceSnapshot
from hailstorm.metrics_storage import MetricsFamilySnapshot, MetricsStorage, StartedTimer
from hailstorm.timer import ExecutionInfo


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ActionTimerError(Exception):
    """Raised when an action timer cannot be handled."""


@dataclass(frozen=True)
class StorageKey:
    """Bot model and action a storage belongs to."""

    model: str
    action: str


@dataclass(frozen=True)
class StartedActionTimer:
    """A timer started for an action."""

    id: int
    key: StorageKey
    timestamp: datetime


@dataclass
class ActionMetricsFamilySnapshot:
    """Snapshots of one (model, action) pair."""

    key: StorageKey
    metrics: list[MetricsFamilySnapshot] = field(default_factory=list)

    def to_protobuf(self) -> list[PerformanceSnapshot]:
        return [
            PerformanceSnapshot(
                action=self.key.action,
                timestamp=snapshot.timestamp,
                histograms=[
                    PerformanceHistogram(
                        status=outcome, buckets=list(hist.histogram), sum=hist.sum
                    )
                    for outcome, hist in snapshot.metrics.items()
                ],
            )
            for snapshot in self.metrics
        ]


class MetricsManager:
    """Routes timers to the storage of their (model, action) pair."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock
        self.storages: dict[StorageKey, MetricsStorage] = {}

    def start_timer(self, model: str, action: str) -> StartedActionTimer:
        key = StorageKey(model, action)
        storage = self.storages.get(key)
        if storage is None:
            storage = self.storages[key] = MetricsStorage(self._clock)
        started = storage.start_timer()
        return StartedActionTimer(started.id, key, started.timestamp)

    def stop_timer(self, timer: StartedActionTimer, execution: ExecutionInfo) -> None:
        storage = self.storages.get(timer.key)
        if storage is None:
            raise ActionTimerError("Metrics storage not found")
        storage.stop_timer(StartedTimer(timer.id, timer.timestamp), execution)

    def fetch_metrics(self) -> list[ActionMetricsFamilySnapshot]:
        return [
            ActionMetricsFamilySnapshot(key, storage.fetch_metrics())
            for key, storage in self.storages.items()
        ]