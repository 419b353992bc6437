"""SurfacePool - bounded pool of reusable hidden surfaces.

Leases hidden surfaces to callers and, on return, either parks them for
reuse or retires them.

Key design decisions:
- Reuse is LIFO: the most recently parked surface is handed out first
- Capacity gates only the destroy-vs-park decision on return, and compares
  the outstanding count (leased + parked), not the parked count
- Outstanding may exceed capacity while leases are active; each return in
  that state retires one surface
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

from translation_host.diagnostics import Diagnostics, get_diagnostics
from translation_host.drivers.base import Surface, SurfaceHost, SurfaceState, Window
from translation_host.errors import HostError, NoHostContextAvailable, SurfaceCreationFailed

if TYPE_CHECKING:
    from translation_host.config import SurfacePoolConfig

DEFAULT_CAPACITY = 16
DEFAULT_WINDOW_KIND = "navigator:browser"
BLANK_URI = "about:blank"


@dataclass
class SurfacePoolStats:
    """Observable statistics for the surface pool."""

    created_total: int = 0
    reused_total: int = 0
    parked_total: int = 0
    retired_total: int = 0
    leased: int = 0


class SurfacePool:
    """Bounded pool of hidden rendering surfaces.

    Usage:
        pool = SurfacePool(host, capacity=16)

        surface = pool.acquire()
        try:
            host.navigate(surface, url)
        finally:
            pool.release(surface)

        # or
        with pool.leased() as surface:
            ...
    """

    def __init__(
        self,
        host: SurfaceHost,
        *,
        capacity: int = DEFAULT_CAPACITY,
        window_kind: str = DEFAULT_WINDOW_KIND,
        blank_uri: str = BLANK_URI,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")

        self._host = host
        self._capacity = capacity
        self._window_kind = window_kind
        self._blank_uri = blank_uri
        self._diag = (diagnostics or get_diagnostics()).bind(service="surface_pool")

        # Free list; the end of the list is the most recently parked surface
        self._parked: list[Surface] = []
        # Leased + parked
        self._outstanding = 0
        self._lock = threading.Lock()
        self._stats = SurfacePoolStats()

    @classmethod
    def from_config(
        cls,
        host: SurfaceHost,
        config: "SurfacePoolConfig",
        diagnostics: Diagnostics | None = None,
    ) -> "SurfacePool":
        return cls(
            host,
            capacity=config.capacity,
            window_kind=config.window_kind,
            blank_uri=config.blank_uri,
            diagnostics=diagnostics,
        )

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def outstanding(self) -> int:
        """Surfaces currently leased or parked."""
        return self._outstanding

    @property
    def parked(self) -> tuple[Surface, ...]:
        """Snapshot of the free list, oldest first."""
        with self._lock:
            return tuple(self._parked)

    @property
    def stats(self) -> SurfacePoolStats:
        return self._stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._parked)

    def acquire(self, window: Window | None = None) -> Surface:
        """Lease a surface, reusing a parked one when available.

        Args:
            window: Window to attach a newly created surface to. Resolved
                from the host when omitted.

        Raises:
            NoHostContextAvailable: No window given and none could be resolved
            SurfaceCreationFailed: The host refused to create a surface
        """
        if window is None:
            window = self._resolve_window()

        with self._lock:
            if self._parked:
                surface = self._parked.pop()
                surface.state = SurfaceState.LEASED
                self._stats.reused_total += 1
                self._stats.leased += 1
                return surface

        surface = self._create_surface(window)

        with self._lock:
            self._outstanding += 1
            outstanding = self._outstanding
            surface.state = SurfaceState.LEASED
            self._stats.created_total += 1
            self._stats.leased += 1

        self._diag.debug(
            f"Created hidden surface ({outstanding})",
            surface_id=surface.surface_id,
            outstanding=outstanding,
        )
        return surface

    def release(self, surface: Surface) -> None:
        """Return a leased surface to the pool.

        Must be called exactly once per lease. Retires the surface when more
        than ``capacity`` surfaces are outstanding, parks it otherwise. A
        surface that cannot be reset to the blank target is retired.

        Counters change only after the host call succeeds: if the host fails
        to destroy the surface, it stays leased and counted.
        """
        self._host.stop_load(surface)

        with self._lock:
            retire = self._outstanding > self._capacity

        if not retire:
            try:
                self._host.navigate(surface, self._blank_uri)
            except Exception as exc:
                self._diag.log_error(exc)
                retire = True

        if retire:
            self._retire(surface)
            return

        with self._lock:
            surface.state = SurfaceState.PARKED
            self._parked.append(surface)
            self._stats.parked_total += 1
            self._stats.leased -= 1
            parked = len(self._parked)
            outstanding = self._outstanding

        self._diag.debug(
            f"Parked hidden surface ({parked} parked)",
            level=4,
            surface_id=surface.surface_id,
            outstanding=outstanding,
        )

    @contextmanager
    def leased(self, window: Window | None = None) -> Iterator[Surface]:
        """Acquire a surface for the duration of a ``with`` block."""
        surface = self.acquire(window)
        try:
            yield surface
        finally:
            self.release(surface)

    def drain(self) -> int:
        """Retire every parked surface.

        Leased surfaces are untouched; they are retired or parked when their
        callers release them. If the host fails to destroy a surface, it and
        the surfaces not yet visited go back on the free list.

        Returns:
            Number of surfaces retired
        """
        with self._lock:
            parked = self._parked
            self._parked = []

        for index, surface in enumerate(parked):
            try:
                self._host.destroy_surface(surface)
            except Exception:
                with self._lock:
                    self._parked[:0] = parked[index:]
                raise
            with self._lock:
                self._outstanding -= 1
                self._stats.retired_total += 1
                surface.state = SurfaceState.RETIRED

        if parked:
            self._diag.debug(
                f"Drained {len(parked)} hidden surfaces",
                retired=len(parked),
                outstanding=self._outstanding,
            )
        return len(parked)

    def _retire(self, surface: Surface) -> None:
        self._host.destroy_surface(surface)

        with self._lock:
            self._outstanding -= 1
            self._stats.leased -= 1
            self._stats.retired_total += 1
            surface.state = SurfaceState.RETIRED
            outstanding = self._outstanding

        self._diag.debug(
            f"Retired hidden surface ({outstanding})",
            surface_id=surface.surface_id,
            outstanding=outstanding,
        )

    def _resolve_window(self) -> Window:
        window = self._host.most_recent_window(self._window_kind)
        if window is None:
            window = self._host.active_window()
        if window is None:
            raise NoHostContextAvailable(
                f"No '{self._window_kind}' window and no active window to host a surface"
            )
        return window

    def _create_surface(self, window: Window) -> Surface:
        try:
            surface = self._host.create_surface(window)
        except HostError:
            raise
        except Exception as exc:
            raise SurfaceCreationFailed(f"Host failed to create surface: {exc}") from exc

        try:
            self._host.disable_unsafe_features(surface)
        except Exception as exc:
            # Never lease a surface with unsafe features left on
            self._host.destroy_surface(surface)
            surface.state = SurfaceState.RETIRED
            raise SurfaceCreationFailed(
                f"Host failed to disable unsafe features: {exc}"
            ) from exc

        return surface
