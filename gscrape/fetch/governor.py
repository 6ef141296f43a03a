# gscrape/fetch/governor.py
from __future__ import annotations

import logging
import math
import threading
import time

from redis import Redis

log = logging.getLogger(__name__)

# Redis key for one fixed window: gscrape:rate:<key>:<window index>
RATE_KEY = "gscrape:rate:{key}:{window}"


def _now() -> float:
    # Use monotonic so tests can monkeypatch the clock
    return time.monotonic()


def _wall() -> float:
    # Wall clock for windows shared across processes
    return time.time()


def _sleep(dt: float) -> None:
    # Calls real time.sleep, but tests can monkeypatch it.
    time.sleep(dt)


class RateGovernor:
    """
    Fixed-window request gate: at most `limit` admissions per `window_s` seconds.

    admit() blocks until one more request fits. When the counter reaches the
    limit before the window has elapsed, it sleeps out the rest of the window and
    then starts a new one. The lock is held while sleeping, so every thread that
    shares this instance queues behind the same window.

    limit <= 0 disables governing.
    """

    def __init__(self, limit: int, window_s: float = 60.0) -> None:
        if window_s <= 0:
            raise ValueError(f"window_s must be positive; got {window_s!r}")
        self.limit = int(limit)
        self.window_s = float(window_s)
        self._window_start: float | None = None
        self._count = 0
        self._lock = threading.Lock()

    def admit(self) -> float:
        """Return the number of seconds slept (0 if no wait)."""
        if self.limit <= 0:
            return 0.0
        with self._lock:
            now = _now()
            if self._window_start is None or now - self._window_start >= self.window_s:
                self._window_start = now
                self._count = 0

            slept = 0.0
            if self._count >= self.limit:
                dt = self._window_start + self.window_s - now
                if dt > 0:
                    log.info(
                        "Rate limit of %d requests per %.0fs reached; waiting %.1fs",
                        self.limit,
                        self.window_s,
                        dt,
                    )
                    _sleep(dt)
                    slept = dt
                self._window_start = _now()
                self._count = 0

            self._count += 1
            return slept

    # ---- introspection / test helpers ----------------------------------------

    @property
    def requests_in_window(self) -> int:
        with self._lock:
            return self._count

    def reset(self) -> None:
        with self._lock:
            self._window_start = None
            self._count = 0


class RedisRateGovernor:
    """
    The same fixed-window contract, with the counter kept in Redis.

    Use this when several processes share one API key. Windows are aligned to
    wall-clock multiples of `window_s`; each window gets its own INCR counter
    that expires shortly after the window closes.
    """

    def __init__(self, redis: Redis, key: str, limit: int, window_s: float = 60.0) -> None:
        if window_s <= 0:
            raise ValueError(f"window_s must be positive; got {window_s!r}")
        self.redis = redis
        self.key = key
        self.limit = int(limit)
        self.window_s = float(window_s)
        # window + slack
        self._ttl_s = max(1, math.ceil(self.window_s) + 1)

    def _window_key(self, window: int) -> str:
        return RATE_KEY.format(key=self.key, window=window)

    def admit(self) -> float:
        if self.limit <= 0:
            return 0.0
        slept = 0.0
        while True:
            now = _wall()
            window = int(now // self.window_s)
            wkey = self._window_key(window)
            cnt = self.redis.incr(wkey, 1)
            if cnt == 1:
                self.redis.expire(wkey, self._ttl_s)
            if cnt <= self.limit:
                return slept
            dt = (window + 1) * self.window_s - now
            if dt > 0:
                log.info("Shared rate window %s full; waiting %.1fs", wkey, dt)
                _sleep(dt)
                slept += dt

    def requests_in_window(self) -> int:
        window = int(_wall() // self.window_s)
        raw = self.redis.get(self._window_key(window))
        return int(raw or 0)


__all__ = ["RateGovernor", "RedisRateGovernor", "RATE_KEY"]
