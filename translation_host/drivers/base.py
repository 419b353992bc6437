"""Host base classes - rendering surface and timer abstractions.

A host is responsible ONLY for creating and destroying host-owned handles.
It does NOT handle:
- Pooling or reuse
- Keeping pending timers reachable
- Retry
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable


class SurfaceState(str, Enum):
    """Surface lifecycle state from the pool's perspective."""

    FRESH = "fresh"
    LEASED = "leased"
    PARKED = "parked"
    RETIRED = "retired"


@dataclass(eq=False)
class Window:
    """A host window whose content area can hold hidden surfaces."""

    window_id: str
    kind: str
    content: list["Surface"] = field(default_factory=list)
    closed: bool = False


@dataclass(eq=False)
class Surface:
    """Handle to a hidden rendering context.

    Compared and hashed by identity: two surfaces are never interchangeable.
    """

    surface_id: str
    window: Window | None
    state: SurfaceState = SurfaceState.FRESH
    current_uri: str | None = None
    allow_images: bool = True
    allow_javascript: bool = True
    allow_meta_redirects: bool = True
    allow_plugins: bool = True

    @property
    def unsafe_features_disabled(self) -> bool:
        return not (
            self.allow_images
            or self.allow_javascript
            or self.allow_meta_redirects
            or self.allow_plugins
        )


class SurfaceHost(ABC):
    """Abstract host interface for hidden surface lifecycle management.

    All methods are synchronous and must not block the caller.
    """

    @abstractmethod
    def create_surface(self, window: Window) -> Surface:
        """Create a surface attached to ``window``'s content area.

        Raises:
            SurfaceCreationFailed: If the host refuses to create a surface
        """
        ...

    @abstractmethod
    def destroy_surface(self, surface: Surface) -> None:
        """Detach ``surface`` from its window and release the host handle."""
        ...

    @abstractmethod
    def disable_unsafe_features(self, surface: Surface) -> None:
        """Turn off image loading, scripts, meta redirects and plugins."""
        ...

    @abstractmethod
    def stop_load(self, surface: Surface) -> None:
        """Cancel any in-flight load (best effort)."""
        ...

    @abstractmethod
    def navigate(self, surface: Surface, target: str) -> None:
        """Point ``surface`` at ``target``."""
        ...

    @abstractmethod
    def most_recent_window(self, kind: str) -> Window | None:
        """Most recently active application window of ``kind``."""
        ...

    @abstractmethod
    def active_window(self) -> Window | None:
        """Active top-level window, from the window watcher."""
        ...


class TimerHandle(ABC):
    """A one-shot timer created unarmed by a ``TimerHost``."""

    delay_ms: int

    @abstractmethod
    def arm(self) -> None:
        """Start counting down; the callback fires once after ``delay_ms``."""
        ...

    @abstractmethod
    def cancel(self) -> None:
        """Stop the timer if it has not fired yet."""
        ...


class TimerHost(ABC):
    """Abstract host interface for one-shot timers."""

    @abstractmethod
    def create_one_shot_timer(
        self,
        callback: Callable[[], None],
        delay_ms: int,
    ) -> TimerHandle:
        """Create an unarmed one-shot timer.

        Raises:
            TimerAllocationFailed: If the host cannot allocate a timer
        """
        ...
