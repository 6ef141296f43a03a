# gscrape/fetch/backoff.py
from __future__ import annotations

import random

from ..exceptions import RateLimitCeilingExceeded

# Defaults used when a 429 comes back from the search API
BACKOFF_FLOOR_S = 5.0
BACKOFF_CEILING_S = 80.0
BACKOFF_MAX_JITTER_S = 1.0


class BackoffPolicy:
    """
    Exponential backoff for rate-limit (429) responses.

    Policy:
      first wait  = floor + jitter
      next delay  = previous * 2, raising RateLimitCeilingExceeded once it
                    would exceed the ceiling
      actual wait = min(ceiling, delay + uniform(0, max_jitter))

    With the defaults the waits run 5, 10, 20, 40, 80 seconds (plus jitter) and
    the following doubling aborts.
    """

    def __init__(
        self,
        floor_s: float = BACKOFF_FLOOR_S,
        ceiling_s: float = BACKOFF_CEILING_S,
        max_jitter_s: float = BACKOFF_MAX_JITTER_S,
    ) -> None:
        if floor_s <= 0:
            raise ValueError(f"floor_s must be positive; got {floor_s!r}")
        if ceiling_s < floor_s:
            raise ValueError(f"ceiling_s ({ceiling_s}) must be >= floor_s ({floor_s})")
        if max_jitter_s < 0:
            raise ValueError(f"max_jitter_s must be >= 0; got {max_jitter_s!r}")
        self.floor_s = float(floor_s)
        self.ceiling_s = float(ceiling_s)
        self.max_jitter_s = float(max_jitter_s)

    def reset(self) -> float:
        return self.floor_s

    def next_delay(self, previous: float) -> float:
        nxt = max(float(previous), self.floor_s) * 2
        if nxt > self.ceiling_s:
            raise RateLimitCeilingExceeded(nxt, self.ceiling_s)
        return nxt

    def jitter(self) -> float:
        if self.max_jitter_s <= 0:
            return 0.0
        return random.uniform(0.0, self.max_jitter_s)

    def jittered(self, delay: float) -> float:
        """The amount to actually sleep for `delay`; never above the ceiling."""
        return min(self.ceiling_s, float(delay) + self.jitter())


__all__ = [
    "BackoffPolicy",
    "BACKOFF_FLOOR_S",
    "BACKOFF_CEILING_S",
    "BACKOFF_MAX_JITTER_S",
]
