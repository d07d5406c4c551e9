"""
expecthttp - General purpose request builders.

Every factory returns a :func:`~expecthttp.naming.named` builder so failure
messages read like ``with_header('X-Id', '1') failed: ...``.

Writing your own is a matter of defining a function that takes the
:class:`httpx.Request` and mutates it, raising on failure::

    def with_trace_id(request):
        request.headers["X-Trace-Id"] = new_trace_id()
"""

from __future__ import annotations

import base64
import json as stdlib_json
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlencode

import httpx

from .naming import named


def _replace_body(request: httpx.Request, content: bytes, content_type: Optional[str]) -> None:
    request.stream = httpx.ByteStream(content)
    # drop the cached body so read() picks up the new stream
    vars(request).pop("_content", None)
    request.read()
    request.headers.pop("Transfer-Encoding", None)
    request.headers["Content-Length"] = str(len(content))
    if content_type is not None:
        request.headers["Content-Type"] = content_type


def with_header(name: str, value: str):
    """Set (replace) a single header."""

    def apply(request: httpx.Request) -> None:
        request.headers[name] = value

    return named(f"with_header({name!r}, {value!r})", apply)


def with_headers(headers: Mapping[str, str]):
    """Set (replace) several headers."""

    def apply(request: httpx.Request) -> None:
        request.headers.update(headers)

    return named(f"with_headers({sorted(headers)!r})", apply)


def with_query(params: Union[Mapping[str, Any], str]):
    """Merge query parameters into the request URL."""

    def apply(request: httpx.Request) -> None:
        request.url = request.url.copy_merge_params(params)

    return named(f"with_query({params!r})", apply)


def with_body(content: Union[bytes, str], content_type: Optional[str] = None):
    """Replace the body with raw bytes (``str`` is UTF-8 encoded)."""

    def apply(request: httpx.Request) -> None:
        data = content.encode("utf-8") if isinstance(content, str) else content
        if not isinstance(data, bytes):
            raise TypeError(f"expected bytes or str body, got {type(content).__name__}")
        _replace_body(request, data, content_type)

    return named(f"with_body({len(content)} bytes)", apply)


def with_json(payload: Any):
    """Serialise *payload* as the JSON body."""

    def apply(request: httpx.Request) -> None:
        data = stdlib_json.dumps(payload).encode("utf-8")
        _replace_body(request, data, "application/json")

    return named("with_json", apply)


def with_form(fields: Mapping[str, Any]):
    """URL-encode *fields* as the body."""

    def apply(request: httpx.Request) -> None:
        data = urlencode(fields, doseq=True).encode("utf-8")
        _replace_body(request, data, "application/x-www-form-urlencoded")

    return named(f"with_form({sorted(fields)!r})", apply)


def with_bearer_token(token: str):
    def apply(request: httpx.Request) -> None:
        if not token:
            raise ValueError("empty bearer token")
        request.headers["Authorization"] = f"Bearer {token}"

    return named("with_bearer_token", apply)


def with_basic_auth(username: str, password: str):
    def apply(request: httpx.Request) -> None:
        if ":" in username:
            raise ValueError("username must not contain ':'")
        credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        request.headers["Authorization"] = f"Basic {credentials}"

    return named(f"with_basic_auth({username!r})", apply)


def with_timeout(seconds: Optional[float]):
    """Replace the request deadline. ``None`` removes it."""

    def apply(request: httpx.Request) -> None:
        if seconds is None:
            request.extensions.pop("timeout", None)
            return
        if seconds <= 0:
            raise ValueError(f"timeout must be positive, got {seconds!r}")
        request.extensions["timeout"] = httpx.Timeout(seconds).as_dict()

    return named(f"with_timeout({seconds!r})", apply)
