"""
expecthttp - Request pipeline.

Builds a request, applies builders to it, hands it to an executor and
returns an :class:`Assertable` used to run assertions on the response::

    from expecthttp import Executor, asgi_executor
    from expecthttp.assertions import status_is

    asgi_executor(app).make_request(t, "GET", "http://testserver/health").expect_it(
        status_is(200),
    )

Construction, builder and executor failures are fatal: the returned
assertable reports the failure and aborts the test as soon as it is invoked.
Assertion failures are reported one by one and never abort.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Optional, Union

import httpx

from .config import get_settings
from .faults import (
    AssertionFault,
    BuilderFault,
    ExecutionFault,
    ExpectFault,
    InvalidMethodFault,
    RequestConstructionFault,
)
from .naming import func_name
from .reporting import TestingT, mark_helper

logger = logging.getLogger("expecthttp.pipeline")

ExecFn = Callable[[httpx.Request], httpx.Response]
RequestBuilder = Callable[[httpx.Request], Any]
Assertion = Callable[[httpx.Response], Any]

# RFC 7230 token
_METHOD_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


class Assertable:
    """
    Deferred assertion stage over a captured response.

    Calling the assertable (or :meth:`expect_it`) runs every assertion in
    order and reports each failure through the testing handle. Calling it
    again re-runs assertions against the same response.
    """

    __slots__ = ("_t", "_response")

    def __init__(self, t: TestingT, response: httpx.Response):
        self._t = t
        self._response = response

    @property
    def response(self) -> httpx.Response:
        return self._response

    def __call__(self, *assertions: Assertion) -> "Assertable":
        __tracebackhide__ = True
        mark_helper(self._t)
        prefix = get_settings().message_prefix
        for assertion in assertions:
            try:
                assertion(self._response)
            except Exception as exc:
                fault = AssertionFault(func_name(assertion), exc)
                logger.debug("%s", fault)
                self._t.errorf("%s: %s", prefix, fault)
        return self

    def expect_it(self, *assertions: Assertion) -> "Assertable":
        """Run *assertions* against the response. Reads better than a bare call."""
        __tracebackhide__ = True
        return self(*assertions)

    def __repr__(self) -> str:
        return f"<Assertable [{self._response.status_code}]>"


class FailedAssertable(Assertable):
    """
    Assertable returned when the pipeline could not produce a response.

    Invoking it reports the fatal fault and aborts the test, so chained
    assertions never pass silently.
    """

    __slots__ = ("_fault",)

    def __init__(self, t: TestingT, fault: ExpectFault):
        self._t = t
        self._fault = fault

    @property
    def fault(self) -> ExpectFault:
        return self._fault

    @property
    def response(self) -> httpx.Response:
        raise RuntimeError(f"no response available: {self._fault}")

    def __call__(self, *assertions: Assertion) -> "Assertable":
        __tracebackhide__ = True
        mark_helper(self._t)
        self._t.errorf("%s: %s", get_settings().message_prefix, self._fault)
        self._t.fail_now()
        raise AssertionError("fail_now() returned")  # pragma: no cover

    def __repr__(self) -> str:
        return f"<FailedAssertable {self._fault.code}>"


def _fail(t: TestingT, fault: ExpectFault) -> FailedAssertable:
    logger.info("request pipeline aborted at %s stage: %s", fault.stage.value, fault)
    return FailedAssertable(t, fault)


def new_request(method: str, url: Union[str, httpx.URL]) -> httpx.Request:
    """
    Create an empty-bodied request carrying the default deadline.

    Raises:
        RequestConstructionFault: the method or URL is malformed.
    """
    if not isinstance(method, str) or not _METHOD_RE.fullmatch(method):
        raise InvalidMethodFault(str(method))

    extensions = {}
    timeout = get_settings().timeout
    if timeout is not None:
        extensions["timeout"] = httpx.Timeout(timeout).as_dict()

    try:
        return httpx.Request(method, url, extensions=extensions)
    except (httpx.InvalidURL, ValueError, TypeError) as exc:
        raise RequestConstructionFault(exc) from exc


class Executor:
    """
    Turns an :class:`httpx.Request` into an :class:`httpx.Response`.

    How the request is carried out is up to the wrapped function: some make
    real network calls, others invoke an in-memory application. See
    :mod:`expecthttp.executors` for the bundled variants.
    """

    def __init__(self, fn: ExecFn, name: Optional[str] = None):
        self._fn = fn
        self.name = name or func_name(fn)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        return self._fn(request)

    def __repr__(self) -> str:
        return f"<Executor {self.name}>"

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def make_request(
        self,
        t: TestingT,
        method: str,
        url: Union[str, httpx.URL],
        *builders: RequestBuilder,
    ) -> Assertable:
        """
        Build, customise and execute a request.

        Builders run in order; the first one to raise stops the pipeline.
        Define builders as named functions (or wrap them with
        :func:`expecthttp.named`) so failures point at them clearly.
        """
        __tracebackhide__ = True
        mark_helper(t)

        try:
            request = new_request(method, url)
        except RequestConstructionFault as fault:
            return _fail(t, fault)

        for builder in builders:
            try:
                builder(request)
            except Exception as exc:
                return _fail(t, BuilderFault(func_name(builder), exc))

        logger.debug("executing %s %s via %s", request.method, request.url, self.name)
        try:
            response = self._fn(request)
        except Exception as exc:
            return _fail(t, ExecutionFault(exc))

        logger.debug("%s %s -> %s", request.method, request.url, response.status_code)
        return Assertable(t, response)

    # ------------------------------------------------------------------
    # HTTP verbs
    # ------------------------------------------------------------------

    def get(self, t: TestingT, url, *builders: RequestBuilder) -> Assertable:
        __tracebackhide__ = True
        return self.make_request(t, "GET", url, *builders)

    def head(self, t: TestingT, url, *builders: RequestBuilder) -> Assertable:
        __tracebackhide__ = True
        return self.make_request(t, "HEAD", url, *builders)

    def post(self, t: TestingT, url, *builders: RequestBuilder) -> Assertable:
        __tracebackhide__ = True
        return self.make_request(t, "POST", url, *builders)

    def put(self, t: TestingT, url, *builders: RequestBuilder) -> Assertable:
        __tracebackhide__ = True
        return self.make_request(t, "PUT", url, *builders)

    def patch(self, t: TestingT, url, *builders: RequestBuilder) -> Assertable:
        __tracebackhide__ = True
        return self.make_request(t, "PATCH", url, *builders)

    def delete(self, t: TestingT, url, *builders: RequestBuilder) -> Assertable:
        __tracebackhide__ = True
        return self.make_request(t, "DELETE", url, *builders)

    def options(self, t: TestingT, url, *builders: RequestBuilder) -> Assertable:
        __tracebackhide__ = True
        return self.make_request(t, "OPTIONS", url, *builders)


def as_executor(fn: Union[Executor, ExecFn]) -> Executor:
    """Wrap a bare callable as an :class:`Executor` (executors pass through)."""
    if isinstance(fn, Executor):
        return fn
    return Executor(fn)
