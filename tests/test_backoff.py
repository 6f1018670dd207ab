from datetime import timedelta

import pytest

from hailstorm.backoff import MAX_BACKOFF, truncated_exponential_backoff

LARGE = timedelta(days=365 * 100)


@pytest.mark.parametrize("attempt", [0, 1, 3, 6])
def test_delay_within_exponential_window(attempt):
    base = timedelta(seconds=2**attempt)
    for _ in range(50):
        delay = truncated_exponential_backoff(attempt, LARGE)
        assert base <= delay < base + timedelta(seconds=1)


@pytest.mark.parametrize("attempt", [9, 10, 30, 1000])
def test_delay_capped(attempt):
    assert truncated_exponential_backoff(attempt, MAX_BACKOFF) == MAX_BACKOFF


def test_default_cap_is_five_minutes():
    assert truncated_exponential_backoff(20, MAX_BACKOFF) == timedelta(seconds=300)


def test_exponent_truncated_at_thirty():
    delay = truncated_exponential_backoff(1000, LARGE)
    base = timedelta(seconds=2**30)
    assert base <= delay < base + timedelta(seconds=1)


def test_delay_never_exceeds_cap():
    cap = timedelta(milliseconds=1500)
    for attempt in range(5):
        assert truncated_exponential_backoff(attempt, cap) <= cap