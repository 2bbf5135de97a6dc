"""
Result values returned by the authentication core.

Operations return either a value or a failure instead of raising, so the
HTTP layer can map each outcome to a status code in one place.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    """Failure taxonomy; the value is the HTTP status code."""
    VALIDATION = 400
    UNAUTHORIZED = 401
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL = 500

    @property
    def status_code(self) -> int:
        return self.value


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    errors: list = field(default_factory=list)

    @property
    def status_code(self) -> int:
        return self.kind.status_code


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: Any) -> "Result[T]":
        return cls(error=error)


def failure(kind: ErrorKind, message: str, errors: list | None = None) -> Result:
    """Shortcut for a failed Result carrying a Failure."""
    return Result.fail(Failure(kind, message, list(errors or [])))
