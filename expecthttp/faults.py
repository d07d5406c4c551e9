"""
expecthttp - Fault taxonomy.

Defines:
- Stage (pipeline stage a fault originated in)
- ExpectFault base class (structured failure objects)
- One fault type per failing stage

Faults are never raised out of the pipeline. They are captured, logged and
rendered into the message reported through the testing handle.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Stage(str, Enum):
    """Pipeline stage a fault originated in."""
    CONSTRUCT = "construct"
    BUILD = "build"
    EXECUTE = "execute"
    ASSERT = "assert"


class ExpectFault(Exception):
    """
    Base fault class.

    Attributes:
        code: Stable machine-readable identifier
        stage: Pipeline stage the fault belongs to
        fatal: Whether the fault aborts the pipeline
        step: Name of the builder / assertion that failed, if any
        cause: Underlying exception
    """

    code: str = "EXPECT_FAULT"
    stage: Stage = Stage.EXECUTE
    fatal: bool = True

    def __init__(
        self,
        message: str,
        *,
        step: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.step = step
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, stage={self.stage.value!r}, "
            f"step={self.step!r}, message={self.message!r})"
        )


class RequestConstructionFault(ExpectFault):
    """Request could not be created (malformed method or URL)."""
    code = "REQUEST_CONSTRUCTION_FAILED"
    stage = Stage.CONSTRUCT

    def __init__(self, cause: BaseException):
        super().__init__(f"failed to create request: {cause}", cause=cause)


class InvalidMethodFault(RequestConstructionFault):
    code = "INVALID_METHOD"

    def __init__(self, method: str):
        self.method = method
        super().__init__(ValueError(f"invalid method {method!r}"))


class BuilderFault(ExpectFault):
    """A request builder raised."""
    code = "BUILDER_FAILED"
    stage = Stage.BUILD

    def __init__(self, step: str, cause: BaseException):
        super().__init__(f"{step} failed: {cause}", step=step, cause=cause)


class ExecutionFault(ExpectFault):
    """The executor raised (transport error, handler crash, ...)."""
    code = "EXECUTION_FAILED"
    stage = Stage.EXECUTE

    def __init__(self, cause: BaseException):
        super().__init__(f"failed to execute request: {cause}", cause=cause)


class AssertionFault(ExpectFault):
    """An assertion raised. Reported, never fatal."""
    code = "ASSERTION_FAILED"
    stage = Stage.ASSERT
    fatal = False

    def __init__(self, step: str, cause: BaseException):
        super().__init__(f"assertion {step} failed: {cause}", step=step, cause=cause)
