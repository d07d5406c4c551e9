"""
Tests for the request pipeline.

Covers:
- Request construction (method / URL validation, default deadline)
- Builder application (ordering, short-circuit)
- Executor invocation and failure
- Assertion application (ordering, non-short-circuit, repeat invocation)
- Poisoned assertables
"""

from __future__ import annotations

import httpx
import pytest

from expecthttp import (
    Assertable,
    Executor,
    FailedAssertable,
    RecordingT,
    TestAborted,
    as_executor,
    named,
    new_request,
)
from expecthttp.faults import (
    BuilderFault,
    ExecutionFault,
    InvalidMethodFault,
    RequestConstructionFault,
    Stage,
)

from tests.conftest import SpyExecutor


URL = "http://testserver/resource"


def set_marker(request):
    request.headers["X-Marker"] = "1"


def broken_builder(request):
    raise ValueError("boom")


def ok_assertion(response):
    pass


def failing_assertion(response):
    raise AssertionError("nope")


# ============================================================================
# 1. Request construction
# ============================================================================


class TestNewRequest:

    def test_empty_body(self):
        request = new_request("GET", URL)
        assert request.method == "GET"
        assert str(request.url) == URL
        assert request.read() == b""

    def test_default_deadline(self):
        request = new_request("GET", URL)
        assert request.extensions["timeout"]["read"] == 5.0

    def test_no_deadline_when_disabled(self, settings_override):
        with settings_override(timeout=None):
            request = new_request("GET", URL)
        assert "timeout" not in request.extensions

    def test_custom_method_token(self):
        request = new_request("PURGE", URL)
        assert request.method == "PURGE"

    @pytest.mark.parametrize("method", ["", "GE T", "GET\n", "G(ET)"])
    def test_invalid_method(self, method):
        with pytest.raises(InvalidMethodFault) as info:
            new_request(method, URL)
        assert info.value.code == "INVALID_METHOD"
        assert info.value.stage is Stage.CONSTRUCT

    def test_control_character_in_url(self):
        with pytest.raises(RequestConstructionFault) as info:
            new_request("GET", "http://testserver/\x7fpath")
        assert isinstance(info.value.cause, httpx.InvalidURL)
        assert str(info.value).startswith("failed to create request:")


# ============================================================================
# 2. Successful pipeline
# ============================================================================


class TestMakeRequest:

    def test_returns_assertable_with_response(self, recording_t, spy_executor):
        assertable = Executor(spy_executor).make_request(recording_t, "GET", URL)
        assert isinstance(assertable, Assertable)
        assert not isinstance(assertable, FailedAssertable)
        assert assertable.response.status_code == 200
        assert len(spy_executor.requests) == 1

    def test_builders_mutate_request(self, recording_t, spy_executor):
        Executor(spy_executor).make_request(recording_t, "POST", URL, set_marker)
        sent = spy_executor.requests[0]
        assert sent.method == "POST"
        assert sent.headers["X-Marker"] == "1"

    def test_builders_and_assertions_run_in_order(self, recording_t, spy_executor):
        calls = []

        def step(label):
            return named(label, lambda _: calls.append(label))

        assertable = Executor(spy_executor).make_request(
            recording_t, "GET", URL, step("b1"), step("b2"), step("b3"),
        )
        assertable.expect_it(step("a1"), step("a2"), step("a3"))
        assert calls == ["b1", "b2", "b3", "a1", "a2", "a3"]

    def test_marks_helper(self, recording_t, spy_executor):
        Executor(spy_executor).make_request(recording_t, "GET", URL).expect_it()
        assert recording_t.helper_calls >= 2

    def test_handle_without_helper(self, spy_executor):
        class MinimalT:
            def __init__(self):
                self.errors = []

            def errorf(self, format, *args):
                self.errors.append(format % args)

            def fail_now(self):
                raise TestAborted()

        t = MinimalT()
        Executor(spy_executor).make_request(t, "GET", URL).expect_it(failing_assertion)
        assert len(t.errors) == 1

    @pytest.mark.parametrize("verb", ["get", "head", "post", "put", "patch", "delete", "options"])
    def test_verb_shortcuts(self, recording_t, spy_executor, verb):
        getattr(Executor(spy_executor), verb)(recording_t, URL)
        assert spy_executor.requests[0].method == verb.upper()

    def test_as_executor(self, spy_executor):
        executor = as_executor(spy_executor)
        assert isinstance(executor, Executor)
        assert as_executor(executor) is executor


# ============================================================================
# 3. Assertion stage
# ============================================================================


class TestAssertionStage:

    def _assertable(self, t):
        return Executor(SpyExecutor()).make_request(t, "GET", URL)

    def test_first_fails_second_passes(self, recording_t):
        invoked = []

        def first(response):
            invoked.append("first")
            raise AssertionError("status mismatch")

        def second(response):
            invoked.append("second")

        self._assertable(recording_t).expect_it(first, second)

        assert invoked == ["first", "second"]
        assert len(recording_t.errors) == 1
        assert recording_t.fail_now_calls == 0

    def test_every_failure_reported(self, recording_t):
        self._assertable(recording_t).expect_it(
            failing_assertion, ok_assertion, failing_assertion, failing_assertion,
        )
        assert len(recording_t.errors) == 3
        assert not recording_t.failed_now

    def test_failure_message_template(self, recording_t):
        self._assertable(recording_t).expect_it(failing_assertion)
        assert recording_t.errors == [
            "expecthttp: assertion tests.test_pipeline.failing_assertion failed: nope",
        ]

    def test_message_prefix_setting(self, recording_t, settings_override):
        with settings_override(message_prefix="users-api"):
            self._assertable(recording_t).expect_it(failing_assertion)
        assert recording_t.errors[0].startswith("users-api: assertion ")

    def test_non_assertion_errors_reported(self, recording_t):
        def explodes(response):
            raise KeyError("missing")

        self._assertable(recording_t).expect_it(explodes, ok_assertion)
        assert len(recording_t.errors) == 1
        assert "explodes failed" in recording_t.errors[0]

    def test_empty_assertion_list(self, recording_t):
        self._assertable(recording_t).expect_it()
        self._assertable(recording_t)()
        assert recording_t.errors == []
        assert recording_t.fail_now_calls == 0

    def test_repeat_invocation(self, recording_t):
        counter = []
        assertable = self._assertable(recording_t)
        assertable.expect_it(lambda r: counter.append(r))
        assertable.expect_it(lambda r: counter.append(r))
        assert len(counter) == 2
        assert counter[0] is counter[1]

    def test_chained_expect_it(self, recording_t):
        assertable = self._assertable(recording_t)
        assert assertable.expect_it(ok_assertion) is assertable


# ============================================================================
# 4. Fatal failures
# ============================================================================


class TestFatalFailures:

    def test_builder_failure_short_circuits(self, recording_t, spy_executor):
        later = []

        def later_builder(request):
            later.append(request)

        assertable = Executor(spy_executor).make_request(
            recording_t, "GET", URL, broken_builder, later_builder,
        )

        assert isinstance(assertable, FailedAssertable)
        assert isinstance(assertable.fault, BuilderFault)
        assert assertable.fault.step == "tests.test_pipeline.broken_builder"
        assert later == []
        assert not spy_executor.called
        assert recording_t.errors == []

        with pytest.raises(TestAborted):
            assertable.expect_it(ok_assertion)

        assert recording_t.errors == [
            "expecthttp: tests.test_pipeline.broken_builder failed: boom",
        ]
        assert recording_t.fail_now_calls == 1

    def test_builder_failure_skips_assertions(self, recording_t, spy_executor):
        invoked = []
        assertable = Executor(spy_executor).make_request(recording_t, "GET", URL, broken_builder)
        with pytest.raises(TestAborted):
            assertable.expect_it(lambda r: invoked.append(r))
        assert invoked == []

    def test_malformed_url(self, recording_t, spy_executor):
        assertable = Executor(spy_executor).make_request(recording_t, "GET", "http://testserver/\x00")
        assert isinstance(assertable.fault, RequestConstructionFault)
        assert not spy_executor.called

        with pytest.raises(TestAborted):
            assertable.expect_it()

        assert len(recording_t.errors) == 1
        assert recording_t.errors[0].startswith("expecthttp: failed to create request:")
        assert recording_t.failed_now

    def test_malformed_method(self, recording_t, spy_executor):
        assertable = Executor(spy_executor).make_request(recording_t, "BAD METHOD", URL)
        assert isinstance(assertable.fault, InvalidMethodFault)
        with pytest.raises(TestAborted):
            assertable()
        assert "invalid method 'BAD METHOD'" in recording_t.errors[0]

    def test_executor_failure(self, recording_t):
        spy = SpyExecutor(error=httpx.ConnectError("connection refused"))
        assertable = Executor(spy).make_request(recording_t, "GET", URL)

        assert isinstance(assertable.fault, ExecutionFault)
        assert isinstance(assertable.fault.__cause__, httpx.ConnectError)

        with pytest.raises(TestAborted):
            assertable.expect_it(ok_assertion)
        assert recording_t.errors == [
            "expecthttp: failed to execute request: connection refused",
        ]

    def test_failed_assertable_has_no_response(self, recording_t):
        assertable = Executor(SpyExecutor()).make_request(recording_t, "GET", URL, broken_builder)
        with pytest.raises(RuntimeError):
            assertable.response

    def test_base_exceptions_propagate(self, recording_t, spy_executor):
        def interrupt(request):
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            Executor(spy_executor).make_request(recording_t, "GET", URL, interrupt)
