"""Retry delays for upstream reconnection."""

from __future__ import annotations

import random
from datetime import timedelta

MAX_BACKOFF = timedelta(seconds=300)
_MAX_EXPONENT = 30


def truncated_exponential_backoff(attempt: int, max_backoff: timedelta) -> timedelta:
    """Delay of 2**attempt seconds plus up to a second of jitter, capped."""
    base = timedelta(seconds=2 ** min(attempt, _MAX_EXPONENT))
    jitter = timedelta(milliseconds=random.randrange(1000))
    return min(base + jitter, max_backoff)