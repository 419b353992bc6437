"""Error taxonomy for the translation host.

Every error is recoverable by the caller: nothing in the pool or the
keep-alive registry retries internally.
"""

from __future__ import annotations


class HostError(Exception):
    """Base class for translation host errors."""

    code: str = "host_error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class NoHostContextAvailable(HostError):
    """No window is available to host a hidden surface."""

    code = "no_host_context"


class SurfaceCreationFailed(HostError):
    """The host refused to create a hidden surface."""

    code = "surface_creation_failed"


class TimerAllocationFailed(HostError):
    """The host could not allocate a one-shot timer."""

    code = "timer_allocation_failed"


class InvalidPreferenceError(HostError):
    """Unknown preference or a value of the wrong type."""

    code = "invalid_preference"

    def __init__(self, pref: str, message: str | None = None) -> None:
        self.pref = pref
        super().__init__(message or f"Invalid preference '{pref}'")
