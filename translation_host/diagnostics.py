"""Diagnostics sink.

Leveled debug logging on top of structlog. Level 1 is the most important,
level 5 the most verbose; messages default to level 3.

Usage:
    from translation_host.diagnostics import get_diagnostics

    diag = get_diagnostics().bind(service="surface_pool")
    diag.debug("Created hidden surface (3)", outstanding=3)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from translation_host.config import LoggingConfig

logger = structlog.get_logger()

DEFAULT_LEVEL = 3

_LEVEL_METHODS = {
    1: "error",
    2: "warning",
    3: "info",
    4: "debug",
    5: "debug",
}


def configure_logging(config: "LoggingConfig") -> None:
    """Configure structlog processors and the renderer."""
    renderer: Any
    if config.json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        cache_logger_on_first_use=False,
    )


class Diagnostics:
    """Fire-and-forget diagnostics sink.

    Emitting never raises: a failure inside the logging pipeline is dropped
    so that lifecycle paths (pool growth, retirement, timer firing) are not
    interrupted by it.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        max_level: int = 5,
        log: Any = None,
    ) -> None:
        self._enabled = enabled
        self._max_level = max_level
        self._log = log if log is not None else logger.bind(service="diagnostics")

    @classmethod
    def from_config(cls, config: "LoggingConfig") -> "Diagnostics":
        return cls(enabled=config.enabled, max_level=config.level)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def max_level(self) -> int:
        return self._max_level

    def bind(self, **fields: Any) -> "Diagnostics":
        """Return a sink whose events carry ``fields``."""
        return Diagnostics(
            enabled=self._enabled,
            max_level=self._max_level,
            log=self._log.bind(**fields),
        )

    def debug(self, message: str, level: int = DEFAULT_LEVEL, **fields: Any) -> None:
        """Record ``message`` if ``level`` is within the configured verbosity."""
        if not self._enabled or level > self._max_level:
            return

        try:
            emit = getattr(self._log, _LEVEL_METHODS.get(level, "debug"))
            emit(message, debug_level=level, **fields)
        except Exception:
            return

    def log_error(self, err: BaseException) -> None:
        """Record an exception as ``<message> at <file>:<line>``."""
        filename, lineno = "<unknown>", 0
        tb = err.__traceback__
        if tb is not None:
            while tb.tb_next is not None:
                tb = tb.tb_next
            filename = tb.tb_frame.f_code.co_filename
            lineno = tb.tb_lineno

        self.debug(
            f"{err} at {filename}:{lineno}",
            level=1,
            error_type=type(err).__name__,
        )


_diagnostics: Diagnostics | None = None


def get_diagnostics() -> Diagnostics:
    """Get the process-wide diagnostics sink."""
    global _diagnostics
    if _diagnostics is None:
        _diagnostics = Diagnostics()
    return _diagnostics


def set_diagnostics(diagnostics: Diagnostics | None) -> None:
    """Replace the process-wide diagnostics sink (None restores the default)."""
    global _diagnostics
    _diagnostics = diagnostics


def debug(message: str, level: int = DEFAULT_LEVEL) -> None:
    """Log through the process-wide sink."""
    get_diagnostics().debug(message, level)
