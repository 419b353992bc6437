"""Host layer - surface and timer abstractions."""

from translation_host.drivers.base import (
    Surface,
    SurfaceHost,
    SurfaceState,
    TimerHandle,
    TimerHost,
    Window,
)
from translation_host.drivers.headless import HeadlessSurface, HeadlessSurfaceHost
from translation_host.drivers.timers import AsyncioTimer, AsyncioTimerHost

__all__ = [
    "AsyncioTimer",
    "AsyncioTimerHost",
    "HeadlessSurface",
    "HeadlessSurfaceHost",
    "Surface",
    "SurfaceHost",
    "SurfaceState",
    "TimerHandle",
    "TimerHost",
    "Window",
]
