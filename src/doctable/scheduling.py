"""Timers for upload progress ticks and notification expiry.

Controllers never sleep. They ask a ``Scheduler`` to run a callback after a
delay and keep the returned handle so the call can be cancelled. Tests drive a
``VirtualScheduler`` by advancing its clock; live sessions use the asyncio
event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, Optional, Protocol


class ScheduledCall(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall: ...


class _VirtualCall:
    __slots__ = ("due_ms", "callback", "cancelled")

    def __init__(self, due_ms: int, callback: Callable[[], None]) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """Deterministic scheduler driven by an explicit millisecond clock."""

    def __init__(self) -> None:
        self._now_ms = 0
        self._sequence = itertools.count()
        self._queue: list[tuple[int, int, _VirtualCall]] = []

    @property
    def now_ms(self) -> int:
        return self._now_ms

    @property
    def pending(self) -> int:
        """Return the number of scheduled calls that have not been cancelled."""
        return sum(1 for _, _, call in self._queue if not call.cancelled)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> _VirtualCall:
        call = _VirtualCall(self._now_ms + max(0, delay_ms), callback)
        heapq.heappush(self._queue, (call.due_ms, next(self._sequence), call))
        return call

    def advance(self, delay_ms: int) -> int:
        """Move the clock forward, running every call that falls due.

        Calls scheduled by callbacks run in the same pass when they fall due
        before the new time. Ties run in scheduling order.

        Returns:
            int: Number of callbacks executed.
        """
        target = self._now_ms + max(0, delay_ms)
        executed = 0
        while self._queue and self._queue[0][0] <= target:
            due_ms, _, call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            self._now_ms = due_ms
            call.callback()
            executed += 1
        self._now_ms = target
        return executed

    def run_until_idle(self, max_calls: int = 10_000) -> int:
        """Run scheduled calls until none remain.

        Raises:
            RuntimeError: If more than ``max_calls`` callbacks run, which means
                something keeps rescheduling itself.
        """
        executed = 0
        while True:
            call = self._pop_live()
            if call is None:
                return executed
            if executed >= max_calls:
                raise RuntimeError(f"Scheduler still busy after {max_calls} calls.")
            self._now_ms = max(self._now_ms, call.due_ms)
            call.callback()
            executed += 1

    def _pop_live(self) -> Optional[_VirtualCall]:
        while self._queue:
            _, _, call = heapq.heappop(self._queue)
            if not call.cancelled:
                return call
        return None


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    The loop is bound at construction, so timers armed later from plain
    synchronous code still land on it.

    Raises:
        RuntimeError: If no loop is given and none is running.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise RuntimeError(
                    "AsyncioScheduler needs a running event loop; "
                    "pass loop= or use VirtualScheduler."
                ) from exc
        self._loop = loop

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._loop.call_later(max(0, delay_ms) / 1000, callback)


__all__ = ["ScheduledCall", "Scheduler", "VirtualScheduler", "AsyncioScheduler"]
