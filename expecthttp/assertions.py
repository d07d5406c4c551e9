"""
expecthttp - General purpose response assertions.

Each factory returns a named callable that raises :class:`AssertionError`
with a descriptive message when the response does not match.
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Union

import httpx

from .naming import named

_PREVIEW = 200


def _body_preview(response: httpx.Response) -> str:
    """Return a truncated body preview for error messages."""
    try:
        text = response.text
    except Exception:
        return "<binary>"
    return text[:_PREVIEW] + ("..." if len(text) > _PREVIEW else "")


def status_is(expected: int):
    def check(response: httpx.Response) -> None:
        actual = response.status_code
        assert actual == expected, (
            f"expected status {expected}, got {actual}. Body: {_body_preview(response)}"
        )

    return named(f"status_is({expected})", check)


def is_success():
    """2xx"""

    def check(response: httpx.Response) -> None:
        assert response.is_success, (
            f"expected 2xx, got {response.status_code}. Body: {_body_preview(response)}"
        )

    return named("is_success", check)


def has_header(name: str):
    def check(response: httpx.Response) -> None:
        assert name in response.headers, f"expected header {name!r} to be present"

    return named(f"has_header({name!r})", check)


def header_is(name: str, expected: str):
    def check(response: httpx.Response) -> None:
        actual = response.headers.get(name)
        assert actual == expected, f"expected header {name!r} = {expected!r}, got {actual!r}"

    return named(f"header_is({name!r}, {expected!r})", check)


def body_is(expected: Union[bytes, str]):
    """Exact body match. ``str`` compares against the decoded text."""

    def check(response: httpx.Response) -> None:
        actual = response.text if isinstance(expected, str) else response.content
        assert actual == expected, f"expected body {expected!r}, got {actual!r}"

    return named("body_is", check)


def body_contains(fragment: Union[bytes, str]):
    def check(response: httpx.Response) -> None:
        haystack = response.text if isinstance(fragment, str) else response.content
        assert fragment in haystack, (
            f"expected body to contain {fragment!r}. Body: {_body_preview(response)}"
        )

    return named(f"body_contains({fragment!r})", check)


def json_is(expected: Any):
    def check(response: httpx.Response) -> None:
        try:
            actual = response.json()
        except stdlib_json.JSONDecodeError as exc:
            raise AssertionError(f"response is not JSON ({exc}). Body: {_body_preview(response)}") from exc
        assert actual == expected, f"expected JSON {expected!r}, got {actual!r}"

    return named("json_is", check)
