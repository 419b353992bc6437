"""KeepAliveRegistry - strong references for pending one-shot callbacks.

A scheduled callback with no other live reference must still fire. The
registry owns each pending entry from registration until its callback has
returned, then lets it go.

Ordering:
- The entry is inserted before the timer is armed
- The entry is removed by its own completion shim, after the callback
  returns (or raises), so each entry is removed exactly once
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from translation_host.diagnostics import Diagnostics, get_diagnostics
from translation_host.drivers.base import TimerHandle, TimerHost
from translation_host.errors import TimerAllocationFailed


class CallbackState(str, Enum):
    PENDING = "pending"
    FIRING = "firing"
    FIRED = "fired"
    CANCELLED = "cancelled"


@dataclass
class KeepAliveStats:
    """Observable statistics for the keep-alive registry."""

    scheduled_total: int = 0
    fired_total: int = 0
    cancelled_total: int = 0
    failed_total: int = 0


@dataclass(eq=False)
class ScheduledCallback:
    """A pending callback and the timer that will fire it."""

    timer: TimerHandle
    callback: Callable[[], Any]
    delay_ms: int
    state: CallbackState = CallbackState.PENDING
    _registry: "KeepAliveRegistry | None" = field(default=None, repr=False)

    @property
    def pending(self) -> bool:
        return self.state is CallbackState.PENDING

    def cancel(self) -> bool:
        """Stop the callback from firing.

        Returns False if it already fired, is firing, or was cancelled.
        """
        if self._registry is None:
            return False
        return self._registry._cancel(self)


class KeepAliveRegistry:
    """Keeps scheduled callbacks reachable until they fire.

    Usage:
        registry = KeepAliveRegistry(AsyncioTimerHost())
        registry.schedule(lambda: print("tick"), 500)
    """

    def __init__(
        self,
        host: TimerHost,
        *,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        self._host = host
        self._diag = (diagnostics or get_diagnostics()).bind(service="keepalive")

        # Keyed by timer handle identity
        self._entries: dict[TimerHandle, ScheduledCallback] = {}
        self._lock = threading.Lock()
        self._stats = KeepAliveStats()

    @property
    def stats(self) -> KeepAliveStats:
        return self._stats

    @property
    def pending(self) -> tuple[ScheduledCallback, ...]:
        """Snapshot of entries that have not completed yet."""
        with self._lock:
            return tuple(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, entry: object) -> bool:
        if not isinstance(entry, ScheduledCallback):
            return False
        with self._lock:
            return self._entries.get(entry.timer) is entry

    def schedule(self, callback: Callable[[], Any], delay_ms: int) -> ScheduledCallback:
        """Call ``callback`` once, ``delay_ms`` milliseconds from now.

        Raises:
            ValueError: If delay_ms is negative
            TimerAllocationFailed: If the host cannot provide a timer; the
                registry is left unmodified
        """
        if delay_ms < 0:
            raise ValueError("delay_ms must be non-negative")

        def _on_timer() -> None:
            self._complete(timer)

        try:
            timer = self._host.create_one_shot_timer(_on_timer, delay_ms)
        except TimerAllocationFailed:
            raise
        except Exception as exc:
            raise TimerAllocationFailed(f"Host failed to create timer: {exc}") from exc

        entry = ScheduledCallback(
            timer=timer,
            callback=callback,
            delay_ms=delay_ms,
            _registry=self,
        )

        with self._lock:
            self._entries[timer] = entry

        try:
            timer.arm()
        except Exception as exc:
            with self._lock:
                self._entries.pop(timer, None)
            if isinstance(exc, TimerAllocationFailed):
                raise
            raise TimerAllocationFailed(f"Host failed to arm timer: {exc}") from exc

        with self._lock:
            self._stats.scheduled_total += 1
            pending = len(self._entries)

        self._diag.debug(
            f"Scheduled callback in {delay_ms} ms",
            level=5,
            delay_ms=delay_ms,
            pending=pending,
        )
        return entry

    def cancel_all(self) -> int:
        """Cancel every pending callback.

        Returns:
            Number of callbacks cancelled
        """
        cancelled = 0
        for entry in self.pending:
            if entry.cancel():
                cancelled += 1
        return cancelled

    def _complete(self, timer: TimerHandle) -> None:
        """Completion shim: run the callback, then drop the entry."""
        with self._lock:
            entry = self._entries.get(timer)
            if entry is None or entry.state is not CallbackState.PENDING:
                return
            entry.state = CallbackState.FIRING

        try:
            entry.callback()
        except Exception as exc:
            with self._lock:
                self._stats.failed_total += 1
            self._diag.log_error(exc)
        finally:
            with self._lock:
                self._entries.pop(timer, None)
                entry.state = CallbackState.FIRED
                self._stats.fired_total += 1

    def _cancel(self, entry: ScheduledCallback) -> bool:
        with self._lock:
            if entry.state is not CallbackState.PENDING:
                return False
            if self._entries.get(entry.timer) is not entry:
                return False
            del self._entries[entry.timer]
            entry.state = CallbackState.CANCELLED
            self._stats.cancelled_total += 1

        entry.timer.cancel()
        return True
