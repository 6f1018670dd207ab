from datetime import datetime, timedelta, timezone

import pytest

from hailstorm.metrics_storage import (
    Metrics,
    MetricsStorage,
    SnapshotBuffer,
    StartedTimer,
    compute_bucket_idx,
)
from hailstorm.timer import ExecutionInfo

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.parametrize("v", range(100))
def test_compute_bucket_idx(v):
    idx = compute_bucket_idx(v)
    assert v <= 2**idx
    assert idx == 0 or v > 2 ** (idx - 1)


def test_compute_bucket_idx_is_capped():
    assert compute_bucket_idx(10**9) == 19


def test_single_timer_snapshot():
    clock = Clock(T0)
    storage = MetricsStorage(clock)
    started = storage.start_timer()
    assert started == StartedTimer(0, T0)
    storage.stop_timer(started, ExecutionInfo(timedelta(milliseconds=250), 200))
    snapshots = storage.fetch_metrics()
    assert len(snapshots) == 1
    assert snapshots[0].timestamp == T0
    metrics = snapshots[0].metrics[200]
    assert metrics.sum == 25
    assert metrics.histogram[compute_bucket_idx(25)] == 1
    assert sum(metrics.histogram) == 1
    assert storage.fetch_metrics() == []


def test_timers_at_same_instant_get_distinct_ids():
    storage = MetricsStorage(Clock(T0))
    first = storage.start_timer()
    second = storage.start_timer()
    assert (first.id, second.id) == (0, 1)


def test_incomplete_earlier_timer_blocks_processing():
    clock = Clock(T0)
    storage = MetricsStorage(clock)
    first = storage.start_timer()
    clock.now = T0 + timedelta(seconds=10)
    second = storage.start_timer()
    storage.stop_timer(second, ExecutionInfo(timedelta(milliseconds=100), 200))
    assert storage.fetch_metrics() == []

    storage.stop_timer(first, ExecutionInfo(timedelta(milliseconds=100), 200))
    snapshots = storage.fetch_metrics()
    assert [s.timestamp for s in snapshots] == [T0, T0 + timedelta(seconds=10)]
    assert sum(snapshots[0].metrics[200].histogram) == 1
    assert sum(snapshots[1].metrics[200].histogram) == 2


def test_snapshots_limited_by_resolution():
    clock = Clock(T0)
    storage = MetricsStorage(clock)
    first = storage.start_timer()
    clock.now = T0 + timedelta(seconds=1)
    second = storage.start_timer()
    storage.stop_timer(second, ExecutionInfo(timedelta(milliseconds=10), 500))
    storage.stop_timer(first, ExecutionInfo(timedelta(milliseconds=10), 500))
    snapshots = storage.fetch_metrics()
    assert len(snapshots) == 1
    assert snapshots[0].timestamp == T0
    assert storage.histogram[500].sum == 2


def test_old_incomplete_timer_is_dropped():
    clock = Clock(T0)
    storage = MetricsStorage(clock)
    storage.start_timer()
    clock.now = T0 + timedelta(hours=2)
    late = storage.start_timer()
    storage.stop_timer(late, ExecutionInfo(timedelta(milliseconds=30), 200))
    snapshots = storage.fetch_metrics()
    assert [s.timestamp for s in snapshots] == [T0, clock.now]
    assert snapshots[0].metrics == {}
    assert snapshots[1].metrics[200].sum == 3


def test_stop_unknown_timer_changes_nothing():
    storage = MetricsStorage(Clock(T0))
    storage.stop_timer(StartedTimer(9, T0), ExecutionInfo(timedelta(seconds=1), 200))
    assert storage.fetch_metrics() == []
    assert storage.histogram == {}


def test_snapshot_is_independent_copy():
    clock = Clock(T0)
    storage = MetricsStorage(clock)
    t = storage.start_timer()
    storage.stop_timer(t, ExecutionInfo(timedelta(milliseconds=10), 200))
    clock.now = T0 + timedelta(seconds=1)
    t = storage.start_timer()
    storage.stop_timer(t, ExecutionInfo(timedelta(milliseconds=10), 200))
    snapshot = storage.fetch_metrics()[0]
    assert snapshot.metrics[200].sum == 1
    assert storage.histogram[200].sum == 2


def test_buffer_capacity_and_last_snapshot():
    buffer = SnapshotBuffer(capacity=60)
    for i in range(61):
        buffer.add_snapshot(T0 + timedelta(seconds=i), {})
    assert buffer.last_snapshot == T0 + timedelta(seconds=59)
    drained = buffer.drain()
    assert len(drained) == 60
    assert len(buffer) == 0


def test_buffer_is_elapsed():
    buffer = SnapshotBuffer()
    assert buffer.is_elapsed(timedelta(seconds=5), T0)
    buffer.add_snapshot(T0, {200: Metrics()})
    assert not buffer.is_elapsed(timedelta(seconds=5), T0 + timedelta(seconds=5))
    assert buffer.is_elapsed(timedelta(seconds=5), T0 + timedelta(seconds=6))