from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional


class TokenBucketRateLimiter:
    """
    Reservoir-style token bucket with a single in-flight call.

    - `capacity` calls are allowed per `refill_interval_s`; the bucket is refilled to
      capacity at every interval boundary.
    - Consecutive calls are spaced by at least `min_interval_s`.
    - Callers queue on a lock, so at most one guarded call runs at a time.
    """

    def __init__(
        self,
        *,
        capacity: int,
        refill_interval_s: float,
        min_interval_s: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = int(capacity)
        self._refill_interval_s = float(refill_interval_s)
        self._min_interval_s = float(min_interval_s)
        self._clock = clock
        self._sleep = sleep

        self._tokens = self._capacity
        self._last_refill = clock()
        self._last_call: Optional[float] = None
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed >= self._refill_interval_s:
            periods = int(elapsed // self._refill_interval_s)
            self._last_refill += periods * self._refill_interval_s
            self._tokens = self._capacity

    async def _wait_for_token(self) -> None:
        while True:
            self._refill()
            wait_s = 0.0
            if self._last_call is not None and self._min_interval_s > 0:
                wait_s = max(wait_s, self._last_call + self._min_interval_s - self._clock())
            if self._tokens <= 0:
                wait_s = max(wait_s, self._last_refill + self._refill_interval_s - self._clock())
            if wait_s <= 0 and self._tokens > 0:
                self._tokens -= 1
                return
            await self._sleep(max(wait_s, 0.001))

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """
        Hold the single call slot for the duration of the guarded call.
        """
        async with self._lock:
            await self._wait_for_token()
            try:
                yield
            finally:
                self._last_call = self._clock()
