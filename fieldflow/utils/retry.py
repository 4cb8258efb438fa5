from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone


def compute_backoff(
    attempt: int, base: float = 1.5, jitter: float = 0.5, cap: float = 300.0
) -> float:
    """Compute exponential backoff with jitter, in seconds."""
    delay = min(base ** attempt, cap)
    return delay + random.uniform(0, jitter)


def retry_at(attempt: int, base: float = 1.5) -> datetime:
    """Moment at which redelivery attempt ``attempt + 1`` becomes due."""
    return datetime.now(timezone.utc) + timedelta(seconds=compute_backoff(attempt, base))
