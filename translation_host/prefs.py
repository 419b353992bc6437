"""Typed preference store.

Preferences are bool, str or int. Writing an unknown preference creates it
with the type of the value written; writing an existing preference must keep
its type.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

from translation_host.diagnostics import Diagnostics, get_diagnostics
from translation_host.errors import InvalidPreferenceError

if TYPE_CHECKING:
    from translation_host.config import PrefsConfig

PrefValue = Union[bool, int, str]

DEFAULT_BRANCH = "translation-server."


def _pref_type(value: PrefValue) -> type:
    # bool is a subclass of int; check it first
    if isinstance(value, bool):
        return bool
    if isinstance(value, str):
        return str
    return int


def _coerce(value: object, pref_type: type) -> PrefValue | None:
    """Return ``value`` as ``pref_type``, or None if it does not fit."""
    if pref_type is bool:
        return value if isinstance(value, bool) else None
    if pref_type is str:
        return value if isinstance(value, str) else None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if int(value) != value:
        return None
    return int(value)


class Prefs:
    """In-memory preference branch.

    Names passed to ``get``/``set``/``clear`` are relative to ``branch``
    unless ``global_`` is set.
    """

    def __init__(
        self,
        *,
        branch: str = DEFAULT_BRANCH,
        defaults: dict[str, PrefValue] | None = None,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        self._branch = branch
        self._diag = (diagnostics or get_diagnostics()).bind(service="prefs")
        self._defaults: dict[str, PrefValue] = {}
        self._user: dict[str, PrefValue] = {}
        for name, value in (defaults or {}).items():
            self._defaults[self._full_name(name)] = value

    @classmethod
    def from_config(
        cls,
        config: "PrefsConfig",
        diagnostics: Diagnostics | None = None,
    ) -> "Prefs":
        return cls(branch=config.branch, defaults=config.defaults, diagnostics=diagnostics)

    @property
    def branch(self) -> str:
        return self._branch

    def _full_name(self, pref: str, global_: bool = False) -> str:
        return pref if global_ else f"{self._branch}{pref}"

    def _lookup(self, name: str) -> PrefValue | None:
        if name in self._user:
            return self._user[name]
        return self._defaults.get(name)

    def has(self, pref: str, global_: bool = False) -> bool:
        return self._lookup(self._full_name(pref, global_)) is not None

    def get(self, pref: str, global_: bool = False) -> PrefValue:
        """Retrieve a preference."""
        value = self._lookup(self._full_name(pref, global_))
        if value is None:
            raise InvalidPreferenceError(pref)
        return value

    def set(self, pref: str, value: PrefValue) -> None:
        """Set a preference, creating it if it does not exist."""
        name = self._full_name(pref)
        current = self._lookup(name)

        if current is not None:
            coerced = _coerce(value, _pref_type(current))
            if coerced is None:
                raise InvalidPreferenceError(
                    pref,
                    f"Invalid preference value '{value}' for pref '{pref}'",
                )
            self._user[name] = coerced
            return

        # Not an existing pref: create one of the matching type
        for pref_type, label in ((bool, "boolean"), (str, "string"), (int, "integer")):
            coerced = _coerce(value, pref_type)
            if coerced is not None:
                self._diag.debug(f"Creating {label} pref '{pref}'")
                self._user[name] = coerced
                return

        raise InvalidPreferenceError(
            pref,
            f"Invalid preference value '{value}' for pref '{pref}'",
        )

    def clear(self, pref: str) -> None:
        """Drop the user value, falling back to the default if there is one."""
        name = self._full_name(pref)
        if name in self._user:
            del self._user[name]
            return
        if name not in self._defaults:
            raise InvalidPreferenceError(pref)
