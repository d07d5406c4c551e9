"""
expecthttp - Settings.

Process-wide settings read when a pipeline constructs its request, loaded
from ``EXPECTHTTP_*`` environment variables on first use.

Usage::

    from expecthttp.config import override_settings

    with override_settings(timeout=1.0, message_prefix="api"):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import inspect
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional


ENV_PREFIX = "EXPECTHTTP_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(Exception):
    """Raised when a setting cannot be parsed."""
    pass


@dataclass(frozen=True)
class Settings:
    """
    Attributes:
        message_prefix: Subsystem label leading every reported failure.
        timeout: Default request deadline in seconds, ``None`` for no deadline.
        follow_redirects: Redirect policy of the short-lived live client.
    """
    message_prefix: str = "expecthttp"
    timeout: Optional[float] = 5.0
    follow_redirects: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``EXPECTHTTP_*`` variables, defaults elsewhere."""
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is not None:
                values[f.name] = _parse_value(f.name, raw)
        return cls(**values)

    def replace(self, **overrides: Any) -> "Settings":
        return dataclasses.replace(self, **overrides)


def _parse_value(name: str, raw: str) -> Any:
    value = raw.strip()
    if name == "timeout":
        if value.lower() in ("", "none"):
            return None
        try:
            return float(value)
        except ValueError:
            raise ConfigError(f"{ENV_PREFIX}TIMEOUT: expected seconds, got {raw!r}") from None
    if name == "follow_redirects":
        if value.lower() in _TRUE:
            return True
        if value.lower() in _FALSE:
            return False
        raise ConfigError(f"{ENV_PREFIX}FOLLOW_REDIRECTS: expected a boolean, got {raw!r}")
    return value


_active: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the active settings, loading them from the environment once."""
    global _active
    if _active is None:
        _active = Settings.from_env()
    return _active


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the active settings. ``None`` reloads from the environment on next use."""
    global _active
    _active = settings


class override_settings:
    """
    Temporarily override settings.

    Works as both a context manager and a decorator::

        with override_settings(timeout=None):
            ...

        @override_settings(message_prefix="users-api")
        def test_users():
            ...
    """

    def __init__(self, **overrides: Any):
        names = {f.name for f in dataclasses.fields(Settings)}
        unknown = sorted(set(overrides) - names)
        if unknown:
            raise TypeError(f"Unknown setting(s): {', '.join(unknown)}")
        self._overrides = overrides
        self._saved: list = []

    def _apply(self) -> Settings:
        current = get_settings()
        self._saved.append(current)
        updated = current.replace(**self._overrides)
        set_settings(updated)
        return updated

    def _restore(self) -> None:
        set_settings(self._saved.pop())

    # -- Context manager -------------------------------------------------

    def __enter__(self) -> Settings:
        return self._apply()

    def __exit__(self, *exc_info):
        self._restore()

    # -- Decorator -------------------------------------------------------

    def __call__(self, func: Callable):
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                self._apply()
                try:
                    return await func(*args, **kwargs)
                finally:
                    self._restore()

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            self._apply()
            try:
                return func(*args, **kwargs)
            finally:
                self._restore()

        return sync_wrapper
