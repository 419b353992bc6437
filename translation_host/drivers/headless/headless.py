"""Headless surface host implementation using httpx.

Windows and surfaces live in-process. Navigating a surface to a remote URL
starts a fetch task on the running event loop; ``stop_load`` cancels it.
Nothing is ever painted.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx
import structlog

from translation_host.console import ConsoleMessage
from translation_host.drivers.base import Surface, SurfaceHost, Window
from translation_host.errors import SurfaceCreationFailed

if TYPE_CHECKING:
    from translation_host.config import HeadlessConfig
    from translation_host.console import ConsoleService

logger = structlog.get_logger()

DEFAULT_WINDOW_KIND = "navigator:browser"

# Targets that resolve without touching the network
_LOCAL_SCHEMES = ("about:", "data:")


@dataclass(eq=False)
class HeadlessSurface(Surface):
    """Surface whose document is the body of the last completed load."""

    document: str | None = None
    status_code: int | None = None
    load_error: str | None = None
    _load_task: asyncio.Task | None = field(default=None, repr=False)

    @property
    def is_loading(self) -> bool:
        return self._load_task is not None and not self._load_task.done()


class HeadlessSurfaceHost(SurfaceHost):
    """In-process surface host.

    Window resolution mirrors a desktop shell: a mediator tracks windows by
    kind in focus order, and a separate watcher tracks the single active
    window (which may be of any kind).
    """

    def __init__(
        self,
        *,
        user_agent: str = "translation-host/0.1",
        fetch_timeout: float = 30.0,
        follow_redirects: bool = False,
        max_surfaces: int | None = None,
        console: "ConsoleService | None" = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._user_agent = user_agent
        self._fetch_timeout = fetch_timeout
        self._follow_redirects = follow_redirects
        self._max_surfaces = max_surfaces
        self._console = console
        self._transport = transport

        # Focus order, most recent last
        self._windows: list[Window] = []
        self._active: Window | None = None
        self._live_surfaces = 0

        self._client: httpx.AsyncClient | None = None
        self._log = logger.bind(driver="headless")

    @classmethod
    def from_config(
        cls,
        config: "HeadlessConfig",
        *,
        console: "ConsoleService | None" = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "HeadlessSurfaceHost":
        return cls(
            user_agent=config.user_agent,
            fetch_timeout=config.fetch_timeout_seconds,
            follow_redirects=config.follow_redirects,
            max_surfaces=config.max_surfaces,
            console=console,
            transport=transport,
        )

    @property
    def live_surfaces(self) -> int:
        return self._live_surfaces

    @property
    def windows(self) -> tuple[Window, ...]:
        return tuple(self._windows)

    # Window management

    def open_window(self, kind: str = DEFAULT_WINDOW_KIND, *, activate: bool = True) -> Window:
        """Open a window and give it focus."""
        window = Window(window_id=f"win-{uuid.uuid4().hex[:12]}", kind=kind)
        self._windows.append(window)
        if activate:
            self._active = window
        self._log.debug("headless.window_opened", window_id=window.window_id, kind=kind)
        return window

    def focus_window(self, window: Window) -> None:
        if window.closed:
            return
        if window in self._windows:
            self._windows.remove(window)
        self._windows.append(window)
        self._active = window

    def close_window(self, window: Window) -> None:
        """Close ``window``, destroying any surfaces still attached to it."""
        for surface in list(window.content):
            self.destroy_surface(surface)
        window.closed = True
        if window in self._windows:
            self._windows.remove(window)
        if self._active is window:
            self._active = None
        self._log.debug("headless.window_closed", window_id=window.window_id)

    def most_recent_window(self, kind: str) -> Window | None:
        for window in reversed(self._windows):
            if window.kind == kind:
                return window
        return None

    def active_window(self) -> Window | None:
        return self._active

    # Surface lifecycle

    def create_surface(self, window: Window) -> HeadlessSurface:
        if window.closed:
            raise SurfaceCreationFailed(f"Window {window.window_id} is closed")
        if self._max_surfaces is not None and self._live_surfaces >= self._max_surfaces:
            raise SurfaceCreationFailed(
                f"Host surface limit reached ({self._max_surfaces})"
            )

        surface = HeadlessSurface(
            surface_id=f"surface-{uuid.uuid4().hex[:12]}",
            window=window,
        )
        window.content.append(surface)
        self._live_surfaces += 1

        self._log.debug(
            "headless.surface_created",
            surface_id=surface.surface_id,
            window_id=window.window_id,
        )
        return surface

    def destroy_surface(self, surface: Surface) -> None:
        self.stop_load(surface)

        window = surface.window
        if window is not None and surface in window.content:
            window.content.remove(surface)
            self._live_surfaces -= 1
        surface.window = None

        if isinstance(surface, HeadlessSurface):
            surface.document = None
            surface.status_code = None

        self._log.debug("headless.surface_destroyed", surface_id=surface.surface_id)

    def disable_unsafe_features(self, surface: Surface) -> None:
        surface.allow_images = False
        surface.allow_javascript = False
        surface.allow_meta_redirects = False
        surface.allow_plugins = False

    def stop_load(self, surface: Surface) -> None:
        task = getattr(surface, "_load_task", None)
        if task is not None and not task.done():
            task.cancel()
            self._log.debug("headless.load_stopped", surface_id=surface.surface_id)
        if isinstance(surface, HeadlessSurface):
            surface._load_task = None

    def navigate(self, surface: Surface, target: str) -> None:
        self.stop_load(surface)
        surface.current_uri = target

        if not isinstance(surface, HeadlessSurface):
            return

        surface.load_error = None
        if target.startswith(_LOCAL_SCHEMES):
            surface.document = ""
            surface.status_code = None
            return

        loop = asyncio.get_running_loop()
        surface.document = None
        surface.status_code = None
        surface._load_task = loop.create_task(
            self._load(surface, target),
            name=f"load-{surface.surface_id}",
        )

    async def wait_for_load(self, surface: HeadlessSurface) -> str | None:
        """Wait for the current load to finish and return the document."""
        task = surface._load_task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        return surface.document

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self._user_agent},
                timeout=self._fetch_timeout,
                follow_redirects=self._follow_redirects,
                transport=self._transport,
            )
        return self._client

    async def _load(self, surface: HeadlessSurface, target: str) -> None:
        client = await self._get_client()
        try:
            response = await client.get(target)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            surface.load_error = str(exc)
            self._log.warning(
                "headless.load_failed",
                surface_id=surface.surface_id,
                target=target,
                error=str(exc),
            )
            if self._console is not None:
                self._console.log_message(
                    ConsoleMessage(
                        message=f"Load failed: {exc}",
                        category="network",
                        source_name=target,
                    )
                )
            return

        # Surface may have been navigated elsewhere or retired meanwhile
        if surface.current_uri != target or surface.window is None:
            return

        surface.status_code = response.status_code
        surface.document = response.text
        self._log.debug(
            "headless.load_complete",
            surface_id=surface.surface_id,
            status=response.status_code,
            size=len(response.content),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
