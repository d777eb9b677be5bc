from __future__ import annotations

import asyncio
import math
import threading
import time
from collections import deque
from datetime import timedelta
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

_MIN_WAIT_S = 0.001


class InvalidConfiguration(ValueError):
    pass


class Cancelled(Exception):
    """
    Raised when a caller stops waiting for admission before a slot frees.

    No reservation is left behind, so the caller may simply retry.
    """


class AdmissionTimeout(Cancelled):
    pass


def _period_seconds(period: float | timedelta) -> float:
    if isinstance(period, timedelta):
        seconds = period.total_seconds()
    elif isinstance(period, (int, float)) and not isinstance(period, bool):
        seconds = float(period)
    else:
        raise InvalidConfiguration(f"Unsupported period: {period!r}")

    if not math.isfinite(seconds) or seconds <= 0:
        raise InvalidConfiguration("period must be a positive duration")
    return seconds


def _check_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidConfiguration(f"Invalid limit: {limit!r}")
    if limit <= 0:
        raise InvalidConfiguration("Invalid limit, must be a positive number")
    return limit


class _SlidingWindow:
    """
    Bookkeeping behind SlidingWindowRateLimiter. Not synchronised: the
    limiter holds its lock around every method.

    A slot is occupied either by a recorded timestamp or by a reservation
    handed out by try_reserve() and not yet turned into a record.
    """

    def __init__(self, period_s: float, limit: int, poll_interval_s: float) -> None:
        self.period_s = period_s
        self.limit = limit
        self.poll_interval_s = poll_interval_s
        self.records: deque[float] = deque()
        self.reserved = 0

    def prune(self, now: float) -> None:
        cutoff = now - self.period_s
        while self.records and self.records[0] < cutoff:
            self.records.popleft()

    def occupied(self) -> int:
        return len(self.records) + self.reserved

    def try_reserve(self, now: float) -> bool:
        self.prune(now)
        if self.occupied() < self.limit:
            self.reserved += 1
            return True
        return False

    def record(self, now: float) -> None:
        # Mirrors BoundedSemaphore.release: a record needs a reservation.
        if self.reserved == 0:
            raise RuntimeError("record_usage() without a matching acquire()")
        self.reserved -= 1
        self.records.append(now)

    def wait_hint(self, now: float) -> float:
        # Only expiry of the oldest record frees a slot; reservations turn
        # into records without changing occupancy.
        if not self.records:
            return self.poll_interval_s
        expires_in = self.records[0] + self.period_s - now
        return min(self.poll_interval_s, max(expires_in, _MIN_WAIT_S))


class SlidingWindowRateLimiter:
    """
    Per-process blocking sliding-window limiter.

    At most `limit` calls are admitted in any trailing window of `period`.
    Callers over the limit are delayed, never rejected:

        limiter = SlidingWindowRateLimiter(timedelta(seconds=1), 10)
        result = limiter.run_guarded(lambda: client.create_document(payload))

    Threads wait through acquire()/run_guarded(); asyncio tasks through
    acquire_async()/run_guarded_async(). Both share one window, so a single
    instance can guard an endpoint reached from either side.

    A slot is reserved atomically on acquire and counted against the window
    from the moment usage is recorded. `clock` only timestamps usage;
    `timeout` deadlines always run on time.monotonic().
    """

    def __init__(
            self,
            period: float | timedelta,
            limit: int,
            *,
            poll_interval_s: float = 0.1,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if poll_interval_s <= 0:
            raise InvalidConfiguration("poll_interval_s must be positive")

        self._window = _SlidingWindow(_period_seconds(period), _check_limit(limit), poll_interval_s)
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._window.limit

    @property
    def period_s(self) -> float:
        return self._window.period_s

    @property
    def available(self) -> int:
        with self._lock:
            self._window.prune(self._clock())
            return self._window.limit - self._window.occupied()

    def _try_reserve(self, deadline: float | None, timeout: float | None) -> float | None:
        """
        Reserve a slot, or return how long to wait before trying again.

        The lock is held only for prune+check+reserve, never while waiting.
        """
        with self._lock:
            now = self._clock()
            if self._window.try_reserve(now):
                return None
            wait_s = self._window.wait_hint(now)

        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise AdmissionTimeout(f"No rate limit slot within {timeout}s")
            wait_s = min(wait_s, remaining)
        return wait_s

    def acquire(
            self,
            *,
            cancel: threading.Event | None = None,
            timeout: float | None = None,
    ) -> None:
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            if cancel is not None and cancel.is_set():
                raise Cancelled("Wait for rate limit slot was cancelled")

            wait_s = self._try_reserve(deadline, timeout)
            if wait_s is None:
                return

            if cancel is not None:
                cancel.wait(wait_s)
            else:
                time.sleep(wait_s)

    async def acquire_async(self, *, timeout: float | None = None) -> None:
        """
        Wait for a slot without blocking the event loop.

        Task cancellation surfaces as asyncio.CancelledError.
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            wait_s = self._try_reserve(deadline, timeout)
            if wait_s is None:
                return
            await asyncio.sleep(wait_s)

    def record_usage(self) -> None:
        with self._lock:
            self._window.record(self._clock())

    def run_guarded(
            self,
            operation: Callable[[], T],
            *,
            cancel: threading.Event | None = None,
            timeout: float | None = None,
    ) -> T:
        self.acquire(cancel=cancel, timeout=timeout)
        try:
            return operation()
        finally:
            # The slot is spent whether or not the operation succeeded.
            self.record_usage()

    async def run_guarded_async(
            self,
            operation: Callable[[], Awaitable[T]],
            *,
            timeout: float | None = None,
    ) -> T:
        await self.acquire_async(timeout=timeout)
        try:
            return await operation()
        finally:
            self.record_usage()
