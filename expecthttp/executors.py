"""
expecthttp - Bundled executors.

- ``live_executor``: real network round trip through :class:`httpx.Client`.
- ``asgi_executor``: invokes an ASGI application in-process, no socket.
- ``wsgi_executor``: invokes a WSGI application in-process, no socket.

All three satisfy the same ``(httpx.Request) -> httpx.Response`` contract,
so tests can switch between them freely.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote

import httpx

from .config import get_settings
from .pipeline import Executor

logger = logging.getLogger("expecthttp.executors")

ASGIApp = Callable[[dict, Callable[[], Awaitable[dict]], Callable[[dict], Awaitable[None]]], Awaitable[None]]

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}


# -----------------------------------------------------------------------
# Live
# -----------------------------------------------------------------------

def live_executor(client: Optional[httpx.Client] = None, **client_kwargs: Any) -> Executor:
    """
    Executor performing an actual HTTP round trip.

    Args:
        client: Client to send through. It is left open for the caller
            to close.
        **client_kwargs: Used to open a short-lived :class:`httpx.Client`
            per request when *client* is not given.
    """
    if client is not None and client_kwargs:
        raise TypeError("pass either client or client keyword arguments, not both")

    def execute(request: httpx.Request) -> httpx.Response:
        if client is not None:
            return client.send(request)
        kwargs = {"follow_redirects": get_settings().follow_redirects}
        kwargs.update(client_kwargs)
        with httpx.Client(**kwargs) as short_lived:
            return short_lived.send(request)

    return Executor(execute, name="live")


# -----------------------------------------------------------------------
# ASGI (in-process)
# -----------------------------------------------------------------------

def make_asgi_scope(
    request: httpx.Request,
    *,
    client: Tuple[str, int] = ("127.0.0.1", 12345),
    root_path: str = "",
) -> dict:
    """
    Build an ASGI HTTP scope describing *request*.

    Returns:
        ASGI scope dictionary.
    """
    url = request.url
    scheme = url.scheme or "http"
    port = url.port or _DEFAULT_PORTS.get(scheme, 80)
    raw_path = url.raw_path.split(b"?", 1)[0]

    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": request.method,
        "scheme": scheme,
        "path": unquote(raw_path.decode("ascii")),
        "raw_path": raw_path,
        "query_string": url.query,
        "root_path": root_path,
        "headers": [(name.lower(), value) for name, value in request.headers.raw],
        "server": (url.host or "testserver", port),
        "client": client,
    }


def _make_receive(body: bytes, response_complete: asyncio.Event):
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive() -> dict:
        if messages:
            return messages.pop(0)
        # disconnect only once the response has been fully sent
        await response_complete.wait()
        return {"type": "http.disconnect"}

    return receive


class _ResponseCollector:
    """Captures ``http.response.*`` events sent by the application."""

    def __init__(self, response_complete: asyncio.Event):
        self.started = False
        self.status_code = 200
        self.headers: List[Tuple[bytes, bytes]] = []
        self.body_parts: List[bytes] = []
        self.response_complete = response_complete

    async def send(self, event: dict) -> None:
        if event["type"] == "http.response.start":
            self.started = True
            self.status_code = event["status"]
            for name, value in event.get("headers", []):
                self.headers.append((
                    name.encode("latin-1") if isinstance(name, str) else name,
                    value.encode("latin-1") if isinstance(value, str) else value,
                ))
        elif event["type"] == "http.response.body":
            self.body_parts.append(event.get("body", b""))
            if not event.get("more_body", False):
                self.response_complete.set()


def _read_timeout(request: httpx.Request) -> Optional[float]:
    timeout: Dict[str, Optional[float]] = request.extensions.get("timeout", {})
    return timeout.get("read")


def _run(coro):
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    coro.close()
    raise RuntimeError(
        "asgi_executor cannot run inside a running event loop; "
        "call it from synchronous test code"
    )


def asgi_executor(
    app: ASGIApp,
    *,
    client: Tuple[str, int] = ("127.0.0.1", 12345),
    root_path: str = "",
    raise_app_exceptions: bool = True,
) -> Executor:
    """
    Executor invoking an ASGI application directly in memory.

    Args:
        app: ASGI application callable.
        client: ``(host, port)`` reported as the peer address.
        root_path: ASGI root path.
        raise_app_exceptions: Re-raise unhandled application errors. When
            ``False`` they turn into a 500 response. Deadline expiry always
            raises.
    """

    def execute(request: httpx.Request) -> httpx.Response:
        scope = make_asgi_scope(request, client=client, root_path=root_path)
        body = request.read()
        timeout = _read_timeout(request)

        async def invoke() -> Optional[_ResponseCollector]:
            complete = asyncio.Event()
            collector = _ResponseCollector(complete)
            call = app(scope, _make_receive(body, complete), collector.send)
            try:
                if timeout is None:
                    await call
                else:
                    await asyncio.wait_for(call, timeout)
            except asyncio.TimeoutError:
                raise
            except Exception:
                if raise_app_exceptions:
                    raise
                logger.exception("ASGI application raised for %s %s", request.method, request.url)
                return None
            return collector

        collector = _run(invoke())
        if collector is None:
            return httpx.Response(500, request=request)

        if not collector.started:
            logger.debug("ASGI application sent no response start, defaulting to 200")
        return httpx.Response(
            collector.status_code,
            headers=collector.headers,
            content=b"".join(collector.body_parts),
            request=request,
        )

    return Executor(execute, name="asgi")


# -----------------------------------------------------------------------
# WSGI (in-process)
# -----------------------------------------------------------------------

def wsgi_executor(
    app: Callable[..., Any],
    *,
    script_name: str = "",
    remote_addr: str = "127.0.0.1",
    raise_app_exceptions: bool = True,
) -> Executor:
    """Executor invoking a WSGI application directly in memory."""
    transport = httpx.WSGITransport(
        app=app,
        raise_app_exceptions=raise_app_exceptions,
        script_name=script_name,
        remote_addr=remote_addr,
    )

    def execute(request: httpx.Request) -> httpx.Response:
        response = transport.handle_request(request)
        response.request = request
        response.read()
        return response

    return Executor(execute, name="wsgi")
