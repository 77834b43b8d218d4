"""
Result monad — Railway-Oriented Programming for the CSR pipelines.

A Result[T] is either Success(value: T) or Failure(error: FailureDescription).
Validators, composers, the assembler and the analyzer all return Result, so
the generation pipeline reads as a straight chain of flat_map calls and the
first failure short-circuits everything after it:

    validate ──Success──▶ key pair ──Success──▶ compose ──Success──▶ sign ──▶ Result[T]
       │ Failure             │ Failure             │ Failure          │ Failure
       └─────────────────────┴─────────────────────┴──────────────────┴──▶ Result[T]
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from csr_toolkit.failure import ErrorCode, FailureDescription

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")


class Result(Generic[T]):
    """
    Two possible states:
      - Success(value: T)  — the happy path
      - Failure(error: FailureDescription) — the error track

        >>> Result.success(21).map(lambda x: x * 2).value()
        42
        >>> Result.failure(ErrorCode.REQUIRED, "missing").map(lambda x: x * 2).is_failure()
        True
    """

    # ──────────────────────── Introspection ────────────────────────

    def is_success(self) -> bool:
        return isinstance(self, Success)

    def is_failure(self) -> bool:
        return isinstance(self, Failure)

    def value(self) -> T:
        """Extract the success value. Raises ValueError if called on a Failure."""
        match self:
            case Success(v):
                return v
            case Failure(err):
                raise ValueError(f"Cannot get value from a Failure: {err.message}")
        raise TypeError("unreachable")  # pragma: no cover

    def error(self) -> FailureDescription:
        """Extract the failure description. Raises ValueError if called on a Success."""
        match self:
            case Failure(err):
                return err
            case Success(v):
                raise ValueError(f"Cannot get error from a Success: {v!r}")
        raise TypeError("unreachable")  # pragma: no cover

    # ──────────────────────── Core Transformations ────────────────────────

    def either(
        self,
        on_success: Callable[[T], R],
        on_failure: Callable[[FailureDescription], R],
    ) -> R:
        """Apply one of two functions depending on the state."""
        match self:
            case Success(v):
                return on_success(v)
            case Failure(err):
                return on_failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        """Transform the success value. Short-circuits on failure."""
        match self:
            case Success(v):
                return Success(mapper(v))
            case Failure(err):
                return Failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        """
        Chain a Result-returning function. Short-circuits on failure.

            validate_country("US").flat_map(lambda _: validate_password(pw))
        """
        match self:
            case Success(v):
                return mapper(v)
            case Failure(err):
                return Failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    # ──────────────────────── Side Effects ────────────────────────

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        """Run a side effect (typically logging) on the success value."""
        match self:
            case Success(v):
                action(v)
        return self

    def peek_failure(self, action: Callable[[FailureDescription], Any]) -> Result[T]:
        """Run a side effect on the failure description."""
        match self:
            case Failure(err):
                action(err)
        return self

    # ──────────────────────── Static Factories ────────────────────────

    @staticmethod
    def success(value: T) -> Result[T]:
        return Success(value)

    @staticmethod
    def failure(
        code: ErrorCode,
        message: str,
        exception: BaseException | None = None,
    ) -> Result[T]:
        """
        Create a failed Result.

            Result.failure(ErrorCode.INVALID_SAN, "Invalid DNS name in SAN: -bad-")
        """
        return Failure(FailureDescription(code=code, message=message, exception=exception))

    @staticmethod
    def from_computation(
        computation: Callable[[], T],
        error_code: ErrorCode,
        error_message: str,
    ) -> Result[T]:
        """
        Run a computation that may raise and capture any exception as a Failure.

        This is the boundary between collaborator code (which raises) and the
        railway (which never does).
        """
        try:
            return Result.success(computation())
        except Exception as e:
            return Result.failure(error_code, error_message, e)

    @staticmethod
    def all_of(results: Iterable[Result[T]]) -> Result[list[T]]:
        """
        Collect Results into a Result of list, stopping at the first failure.

        Accepts a lazy iterable, so later items are never evaluated once a
        failure has been seen.
        """
        values: list[T] = []
        for r in results:
            match r:
                case Success(v):
                    values.append(v)
                case Failure(err):
                    return Failure(err)
        return Success(values)

    # ──────────────────────── Dunder methods ────────────────────────

    def __bool__(self) -> bool:
        return self.is_success()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        match (self, other):
            case (Success(a), Success(b)):
                return a == b
            case (Failure(a), Failure(b)):
                return a.code == b.code and a.message == b.message
            case _:
                return False


@dataclass(frozen=True, slots=True, eq=False)
class Success(Result[T]):
    """The success track — wraps a value of type T."""

    _value: T

    def __init__(self, value: T) -> None:
        if value is None:
            raise TypeError("Success value must not be None")
        object.__setattr__(self, "_value", value)

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def __hash__(self) -> int:
        return hash(("Success", self._value))


# Enable structural pattern matching: case Success(value)
Success.__match_args__ = ("_value",)


@dataclass(frozen=True, slots=True, eq=False)
class Failure(Result[T]):
    """The failure track — wraps a FailureDescription."""

    _error: FailureDescription

    def __init__(self, error: FailureDescription) -> None:
        if error is None:
            raise TypeError("Failure error must not be None")
        object.__setattr__(self, "_error", error)

    def __repr__(self) -> str:
        return f"Failure({self._error.code.value}: {self._error.message!r})"

    def __hash__(self) -> int:
        return hash(("Failure", self._error.code, self._error.message))


# Enable structural pattern matching: case Failure(error)
Failure.__match_args__ = ("_error",)
