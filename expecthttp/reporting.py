"""
expecthttp - Test reporting adapters.

The pipeline only needs two operations from its host test framework:
report a failure message and abort the current test. :class:`TestingT`
describes that capability; the adapters below plug pytest and unittest
into it.
"""

from __future__ import annotations

import unittest
from typing import Any, List, NoReturn, Protocol, runtime_checkable

import pytest


@runtime_checkable
class TestingT(Protocol):
    """
    Minimal reporting handle.

    ``errorf`` formats its arguments with ``%`` like :mod:`logging` does.
    ``fail_now`` must not return.
    """

    def errorf(self, format: str, *args: Any) -> None: ...

    def fail_now(self) -> NoReturn: ...


def mark_helper(t: Any) -> None:
    """Call ``t.helper()`` when the handle offers it."""
    helper = getattr(t, "helper", None)
    if callable(helper):
        helper()


def _format(format: str, args: tuple) -> str:
    return format % args if args else format


class TestAborted(Exception):
    """Raised by :meth:`RecordingT.fail_now`."""
    __test__ = False


class RecordingT:
    """
    Reporting handle that records everything it is told.

    Useful for testing pipelines and custom builders themselves::

        t = RecordingT()
        with pytest.raises(TestAborted):
            executor.make_request(t, "GET", "/").expect_it()
        assert t.failed_now
    """

    def __init__(self):
        self.errors: List[str] = []
        self.fail_now_calls = 0
        self.helper_calls = 0

    def errorf(self, format: str, *args: Any) -> None:
        self.errors.append(_format(format, args))

    def fail_now(self) -> NoReturn:
        self.fail_now_calls += 1
        raise TestAborted("\n".join(self.errors) or "test aborted")

    def helper(self) -> None:
        self.helper_calls += 1

    @property
    def failed(self) -> bool:
        return bool(self.errors) or self.fail_now_calls > 0

    @property
    def failed_now(self) -> bool:
        return self.fail_now_calls > 0

    def reset(self) -> None:
        self.errors.clear()
        self.fail_now_calls = 0
        self.helper_calls = 0

    def __repr__(self) -> str:
        return f"<RecordingT errors={len(self.errors)} fail_now={self.fail_now_calls}>"


class PytestT:
    """
    pytest-backed handle.

    Errors accumulate until :meth:`fail_now` or :meth:`verify`, which fail
    the running test with every collected message. The ``expect_t`` fixture
    calls :meth:`verify` at teardown.
    """

    def __init__(self):
        self.errors: List[str] = []
        self.aborted = False

    def errorf(self, format: str, *args: Any) -> None:
        self.errors.append(_format(format, args))

    def fail_now(self) -> NoReturn:
        __tracebackhide__ = True
        self.aborted = True
        pytest.fail(self._summary(), pytrace=False)

    def verify(self) -> None:
        """Fail the test if errors were reported and not already raised by :meth:`fail_now`."""
        __tracebackhide__ = True
        if self.errors and not self.aborted:
            pytest.fail(self._summary(), pytrace=False)

    def _summary(self) -> str:
        if not self.errors:
            return "test aborted"
        return "\n".join(self.errors)


class UnitTestT:
    """
    ``unittest.TestCase`` handle.

    Each error is reported as a failing sub-test, so the test keeps running
    and every failure shows up in the result.
    """

    def __init__(self, case: unittest.TestCase):
        self.case = case
        self.errors: List[str] = []

    def errorf(self, format: str, *args: Any) -> None:
        message = _format(format, args)
        self.errors.append(message)
        with self.case.subTest(error=len(self.errors)):
            self.case.fail(message)

    def fail_now(self) -> NoReturn:
        self.case.fail(self.errors[-1] if self.errors else "test aborted")
        raise AssertionError("unreachable")  # pragma: no cover
