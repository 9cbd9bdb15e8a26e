"""
Retry and Rate-Limit Policies
=============================

One implementation of each, shared by the stream reconnector, the swap
executor and the risk provider clients.

Usage:
    retry = RetryPolicy(max_attempts=3, base_delay=1.0)
    result = await retry.run(executor.execute_swap, mint_in, mint_out, amount)

    limiter = RateLimiter(max_requests=10, window_seconds=60.0)
    await limiter.acquire()   # blocks until a slot frees
"""
import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff: delay before attempt ``n + 1`` is
    ``base_delay * 2 ** (n - 1)``. The last failure is re-raised.
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    def delay_for(self, attempt: int) -> float:
        """Delay after the ``attempt``-th failure (1-based)."""
        return self.base_delay * (2 ** (max(1, attempt) - 1))

    async def run(
        self,
        fn: Callable[..., Awaitable[T]],
        *args,
        label: str = '',
        log: Optional[logging.Logger] = None,
        **kwargs,
    ) -> T:
        log = log or logger
        attempts = max(1, self.max_attempts)

        for attempt in range(1, attempts + 1):
            try:
                return await fn(*args, **kwargs)
            except self.retry_on as e:
                if attempt >= attempts:
                    raise
                delay = self.delay_for(attempt)
                log.warning(
                    f"{label or getattr(fn, '__name__', 'call')} failed "
                    f"(attempt {attempt}/{attempts}): {e} - retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

        raise RuntimeError("unreachable")


class RateLimiter:
    """
    Rolling-window limiter: at most ``max_requests`` acquisitions per
    ``window_seconds``. Callers wait for a free slot instead of failing.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max(1, int(max_requests))
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._requests: Deque[float] = deque()
        self._lock = asyncio.Lock()
        self.waits = 0

    def _prune(self, now: float):
        while self._requests and now - self._requests[0] >= self.window_seconds:
            self._requests.popleft()

    @property
    def in_window(self) -> int:
        self._prune(self._clock())
        return len(self._requests)

    async def acquire(self):
        # lock keeps waiters in FIFO order
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)
                if len(self._requests) < self.max_requests:
                    self._requests.append(now)
                    return
                wait = self.window_seconds - (now - self._requests[0])
                self.waits += 1
                await asyncio.sleep(max(wait, 0.0))
