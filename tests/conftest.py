"""
Shared test fixtures and helpers for the expecthttp test suite.
"""

import json

import httpx
import pytest

from expecthttp.config import set_settings

# Import fixtures so pytest can discover them
from expecthttp.fixtures import (  # noqa: F401
    expect_t,
    recording_t,
    settings_override,
)


# ============================================================================
# Settings isolation
# ============================================================================


@pytest.fixture(autouse=True)
def _reset_settings(monkeypatch):
    """Every test starts from default settings, regardless of the environment."""
    for name in ("MESSAGE_PREFIX", "TIMEOUT", "FOLLOW_REDIRECTS"):
        monkeypatch.delenv(f"EXPECTHTTP_{name}", raising=False)
    set_settings(None)
    yield
    set_settings(None)


# ============================================================================
# Applications
# ============================================================================


async def echo_asgi_app(scope, receive, send):
    """ASGI app writing the request method back as the body."""
    await receive()
    body = scope["method"].encode("utf-8")
    await send({
        "type": "http.response.start",
        "status": 200,
        "headers": [
            (b"content-type", b"text/plain"),
            (b"content-length", str(len(body)).encode()),
        ],
    })
    await send({"type": "http.response.body", "body": body})


async def inspect_asgi_app(scope, receive, send):
    """ASGI app describing the request it received as JSON."""
    message = await receive()
    payload = {
        "method": scope["method"],
        "path": scope["path"],
        "query": scope["query_string"].decode(),
        "headers": {k.decode(): v.decode() for k, v in scope["headers"]},
        "body": message.get("body", b"").decode(),
        "server": list(scope["server"]),
    }
    body = json.dumps(payload).encode("utf-8")
    await send({
        "type": "http.response.start",
        "status": 200,
        "headers": [(b"content-type", b"application/json")],
    })
    await send({"type": "http.response.body", "body": body})


def echo_wsgi_app(environ, start_response):
    """WSGI app writing the request method back as the body."""
    body = environ["REQUEST_METHOD"].encode("utf-8")
    start_response("200 OK", [
        ("Content-Type", "text/plain"),
        ("Content-Length", str(len(body))),
    ])
    return [body]


@pytest.fixture
def mock_client():
    """An ``httpx.Client`` answering every request with the method name."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=request.method)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        yield client


# ============================================================================
# Spies
# ============================================================================


class SpyExecutor:
    """Executor recording the requests it receives."""

    def __init__(self, response=None, error=None):
        self.requests = []
        self._response = response
        self._error = error

    def __call__(self, request):
        self.requests.append(request)
        if self._error is not None:
            raise self._error
        return self._response or httpx.Response(200, request=request)

    @property
    def called(self):
        return bool(self.requests)


@pytest.fixture
def spy_executor():
    return SpyExecutor()
