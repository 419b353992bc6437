"""Host lifecycle management for FastAPI lifespan integration.

Manages the startup and shutdown of:
- Diagnostics and the console observer
- Preference store
- Headless surface host and SurfacePool
- Timer host and KeepAliveRegistry
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog

from translation_host.config import Settings, get_settings
from translation_host.console import ConsoleObserver, ConsoleService
from translation_host.diagnostics import Diagnostics, configure_logging, set_diagnostics
from translation_host.drivers.headless import HeadlessSurfaceHost
from translation_host.drivers.timers import AsyncioTimerHost
from translation_host.prefs import Prefs
from translation_host.services.keepalive import KeepAliveRegistry
from translation_host.services.surface_pool import SurfacePool

logger = structlog.get_logger()


@dataclass
class HostServices:
    """Process-wide service instances."""

    settings: Settings
    diagnostics: Diagnostics
    prefs: Prefs
    console: ConsoleService
    console_observer: ConsoleObserver
    surface_host: HeadlessSurfaceHost
    surface_pool: SurfacePool
    keepalive: KeepAliveRegistry


# Global instance
_services: HostServices | None = None


async def init_host(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> HostServices:
    """Initialize host services.

    Called during FastAPI lifespan startup. Idempotent: a second call returns
    the running services.
    """
    global _services

    if _services is not None:
        logger.warning("host.already_initialized")
        return _services

    settings = settings or get_settings()

    configure_logging(settings.logging)
    diagnostics = Diagnostics.from_config(settings.logging)
    set_diagnostics(diagnostics)

    console = ConsoleService()
    console_observer = ConsoleObserver.from_config(settings.console, diagnostics)
    console.register_listener(console_observer)

    prefs = Prefs.from_config(settings.prefs, diagnostics)

    surface_host = HeadlessSurfaceHost.from_config(
        settings.headless,
        console=console,
        transport=transport,
    )
    # Hidden window that hosts every pooled surface
    surface_host.open_window(settings.surface_pool.window_kind)

    surface_pool = SurfacePool.from_config(surface_host, settings.surface_pool, diagnostics)
    keepalive = KeepAliveRegistry(AsyncioTimerHost(), diagnostics=diagnostics)

    _services = HostServices(
        settings=settings,
        diagnostics=diagnostics,
        prefs=prefs,
        console=console,
        console_observer=console_observer,
        surface_host=surface_host,
        surface_pool=surface_pool,
        keepalive=keepalive,
    )

    logger.info(
        "host.init",
        pool_capacity=surface_pool.capacity,
        window_kind=settings.surface_pool.window_kind,
        port=settings.server.port,
    )
    return _services


async def shutdown_host() -> None:
    """Stop host services gracefully.

    Called during FastAPI lifespan shutdown. Pending callbacks are cancelled
    before parked surfaces are retired.
    """
    global _services

    if _services is None:
        return

    services = _services
    _services = None

    cancelled = services.keepalive.cancel_all()
    drained = services.surface_pool.drain()
    services.console.unregister_listener(services.console_observer)

    try:
        await services.surface_host.close()
    except Exception as exc:
        logger.warning("host.shutdown.close_failed", error=str(exc))

    set_diagnostics(None)
    logger.info(
        "host.shutdown.complete",
        cancelled_callbacks=cancelled,
        retired_surfaces=drained,
        leased_surfaces=services.surface_pool.stats.leased,
    )


def get_services() -> HostServices | None:
    """Get the global host services, if initialized."""
    return _services


def get_surface_pool() -> SurfacePool | None:
    return _services.surface_pool if _services is not None else None


def get_keepalive_registry() -> KeepAliveRegistry | None:
    return _services.keepalive if _services is not None else None
