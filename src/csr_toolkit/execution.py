"""
Execution contexts — separate WHAT (pure pipeline) from HOW (observability).

A pipeline such as `assembler.generate(descriptor)` describes what happens
and returns Result[T]. An ExecutionContext wraps the call to add behaviour
around it without touching the pipeline:

    ctx = LoggingExecutionContext(operation="GenerateCSR", error_code=ErrorCode.GENERATION_FAILED)
    result = ctx.execute(lambda: assembler.generate(descriptor))
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol, TypeVar, runtime_checkable

import structlog

from csr_toolkit.failure import ErrorCode, FailureDescription
from csr_toolkit.result import Failure, Result

T = TypeVar("T")
log = structlog.get_logger()


@runtime_checkable
class ExecutionContext(Protocol):
    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]: ...


class NoOpExecutionContext:
    """Passthrough context — runs the computation as is."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        return computation()


class LoggingExecutionContext:
    """
    Logs duration and final state (SUCCESS/FAILURE) of a computation.

    An exception escaping the computation is converted into a Failure with
    `error_code`, so callers always get a Result back.
    """

    def __init__(
        self,
        operation: str,
        error_code: ErrorCode,
        inner: ExecutionContext | None = None,
    ) -> None:
        self._operation = operation
        self._error_code = error_code
        self._inner = inner or NoOpExecutionContext()

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        start = time.monotonic()
        try:
            result = self._inner.execute(computation)
        except Exception as e:
            log.error(
                "execution.crashed",
                operation=self._operation,
                elapsed_ms=round((time.monotonic() - start) * 1000, 1),
                error=str(e),
            )
            return Failure(FailureDescription(self._error_code, f"{self._operation} crashed", e))

        log.info(
            "execution.completed",
            operation=self._operation,
            elapsed_ms=round((time.monotonic() - start) * 1000, 1),
            state="SUCCESS" if result.is_success() else "FAILURE",
        )
        return result
