"""
expecthttp - Expressive testing of HTTP endpoints and handlers.

A request goes through three stages: builders customise it, an executor
turns it into a response, and assertions check the response.

Usage:
    from expecthttp import asgi_executor
    from expecthttp.builders import with_json
    from expecthttp.assertions import status_is, json_is

    def test_create_user(expect_t):
        asgi_executor(app).post(
            expect_t, "http://testserver/users", with_json({"name": "ada"}),
        ).expect_it(
            status_is(201),
            json_is({"id": 1, "name": "ada"}),
        )

Components:
    - Executor:        Request -> Response strategy; owns the pipeline
    - live_executor:   Real network round trip through httpx
    - asgi_executor:   In-process ASGI application invocation
    - wsgi_executor:   In-process WSGI application invocation
    - Assertable:      Deferred assertion stage over the captured response
    - TestingT:        Reporting handle protocol (errorf / fail_now)
    - named:           Explicit labels for builders and assertions
"""

__version__ = "1.0.0"

from .pipeline import (
    Executor,
    Assertable,
    FailedAssertable,
    ExecFn,
    RequestBuilder,
    Assertion,
    as_executor,
    new_request,
)
from .executors import live_executor, asgi_executor, wsgi_executor, make_asgi_scope
from .naming import named, func_name
from .reporting import TestingT, RecordingT, PytestT, UnitTestT, TestAborted, mark_helper
from .faults import (
    Stage,
    ExpectFault,
    RequestConstructionFault,
    InvalidMethodFault,
    BuilderFault,
    ExecutionFault,
    AssertionFault,
)
from .config import Settings, ConfigError, get_settings, set_settings, override_settings

__all__ = [
    # Pipeline
    "Executor",
    "Assertable",
    "FailedAssertable",
    "ExecFn",
    "RequestBuilder",
    "Assertion",
    "as_executor",
    "new_request",
    # Executors
    "live_executor",
    "asgi_executor",
    "wsgi_executor",
    "make_asgi_scope",
    # Naming
    "named",
    "func_name",
    # Reporting
    "TestingT",
    "RecordingT",
    "PytestT",
    "UnitTestT",
    "TestAborted",
    "mark_helper",
    # Faults
    "Stage",
    "ExpectFault",
    "RequestConstructionFault",
    "InvalidMethodFault",
    "BuilderFault",
    "ExecutionFault",
    "AssertionFault",
    # Config
    "Settings",
    "ConfigError",
    "get_settings",
    "set_settings",
    "override_settings",
]
