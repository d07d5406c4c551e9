"""
expecthttp - Diagnostic names for builders and assertions.

Names are looked up reflectively, so inline lambdas and closures come out as
``module.<lambda>`` or ``module.outer.<locals>.inner``. Define builders and
assertions as module-level functions, or wrap them with :func:`named`, to
keep failure messages readable.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


class named(Generic[T]):
    """
    Callable wrapper carrying an explicit diagnostic label.

    Usage::

        ok = named("status is 200", lambda r: ...)
    """

    __slots__ = ("name", "fn")

    def __init__(self, name: str, fn: Callable[[T], Any]):
        self.name = name
        self.fn = fn

    def __call__(self, value: T) -> Any:
        return self.fn(value)

    def __repr__(self) -> str:
        return f"named({self.name!r})"


def func_name(fn: Any) -> str:
    """Return a best-effort human readable name for *fn*."""
    if isinstance(fn, named):
        return fn.name
    if isinstance(fn, functools.partial):
        return func_name(fn.func)

    qualname = getattr(fn, "__qualname__", None)
    if qualname is None:
        # callable instance
        qualname = type(fn).__qualname__
        module = type(fn).__module__
    else:
        module = getattr(fn, "__module__", None)

    if module and module != "builtins":
        return f"{module}.{qualname}"
    return qualname
