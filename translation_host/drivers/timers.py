"""One-shot timers on the asyncio event loop."""

from __future__ import annotations

import asyncio
from typing import Callable

from translation_host.drivers.base import TimerHandle, TimerHost
from translation_host.errors import TimerAllocationFailed


class AsyncioTimer(TimerHandle):
    """One-shot timer backed by ``loop.call_later``."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        callback: Callable[[], None],
        delay_ms: int,
    ) -> None:
        self._loop = loop
        self._callback = callback
        self.delay_ms = delay_ms
        self._handle: asyncio.TimerHandle | None = None
        self._fired = False

    @property
    def armed(self) -> bool:
        return self._handle is not None and not self._handle.cancelled() and not self._fired

    @property
    def fired(self) -> bool:
        return self._fired

    def arm(self) -> None:
        if self._handle is not None:
            raise RuntimeError("Timer already armed")
        if self._loop.is_closed():
            raise TimerAllocationFailed("Event loop is closed")
        self._handle = self._loop.call_later(self.delay_ms / 1000, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()

    def _fire(self) -> None:
        self._fired = True
        self._callback()


class AsyncioTimerHost(TimerHost):
    """Timer host for the event loop the service runs on.

    When no loop is given, the loop running at timer creation time is used.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def create_one_shot_timer(
        self,
        callback: Callable[[], None],
        delay_ms: int,
    ) -> AsyncioTimer:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise TimerAllocationFailed("No running event loop") from exc
        if loop.is_closed():
            raise TimerAllocationFailed("Event loop is closed")
        return AsyncioTimer(loop, callback, delay_ms)
