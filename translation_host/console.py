"""Console message service and the diagnostics observer.

Hosts post console messages (load failures, script errors) to a
``ConsoleService``; the ``ConsoleObserver`` filters out noise and forwards
the rest to the diagnostics sink.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from translation_host.diagnostics import Diagnostics, get_diagnostics

if TYPE_CHECKING:
    from translation_host.config import ConsoleConfig

logger = structlog.get_logger()

DEFAULT_SKIP_CATEGORIES = ("CSS Parser", "content javascript")


@dataclass(frozen=True, slots=True)
class ConsoleMessage:
    """A script error or warning reported by a host."""

    message: str
    category: str
    source_name: str = ""
    line_number: int = 0
    is_warning: bool = False


class ConsoleListener(Protocol):
    def observe(self, message: Any) -> bool: ...


class ConsoleObserver:
    """Forwards console errors to diagnostics, skipping noisy categories and warnings."""

    def __init__(
        self,
        *,
        skip_categories: tuple[str, ...] | list[str] = DEFAULT_SKIP_CATEGORIES,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        self._skip = frozenset(skip_categories)
        self._diag = (diagnostics or get_diagnostics()).bind(service="console")

    @classmethod
    def from_config(
        cls,
        config: "ConsoleConfig",
        diagnostics: Diagnostics | None = None,
    ) -> "ConsoleObserver":
        return cls(skip_categories=config.skip_categories, diagnostics=diagnostics)

    def observe(self, message: Any) -> bool:
        """Handle one console message.

        Returns True if the message was forwarded.
        """
        try:
            category = message.category
            is_warning = message.is_warning
            text = f"{message.message} at {message.source_name}:{message.line_number}"
        except AttributeError:
            # Plain string or foreign object: log it as-is
            self._diag.debug(str(message))
            return False

        if category in self._skip or is_warning:
            return False

        self._diag.debug(text)
        return True


class ConsoleService:
    """Dispatches console messages to registered listeners."""

    def __init__(self) -> None:
        self._listeners: list[ConsoleListener] = []
        self._log = logger.bind(service="console_service")

    def register_listener(self, listener: ConsoleListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unregister_listener(self, listener: ConsoleListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listeners(self) -> tuple[ConsoleListener, ...]:
        return tuple(self._listeners)

    def log_message(self, message: ConsoleMessage) -> None:
        for listener in list(self._listeners):
            try:
                listener.observe(message)
            except Exception as exc:
                self._log.warning(
                    "console.listener_failed",
                    listener=type(listener).__name__,
                    error=str(exc),
                )
