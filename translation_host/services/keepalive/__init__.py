"""Keep-alive registry for deferred callbacks."""

from translation_host.services.keepalive.registry import (
    CallbackState,
    KeepAliveRegistry,
    KeepAliveStats,
    ScheduledCallback,
)

__all__ = [
    "CallbackState",
    "KeepAliveRegistry",
    "KeepAliveStats",
    "ScheduledCallback",
]
