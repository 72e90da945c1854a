"""
Operation Outcomes

Every link operation returns an ActionResult instead of raising.
A result is either a success carrying data (possibly None, for deletes)
or a failure carrying exactly one ErrorKind and a user-facing message.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories surfaced by the link service and resolver."""
    UNAUTHENTICATED = "unauthenticated"
    RATE_LIMITED = "rate_limited"
    INVALID_INPUT = "invalid_input"
    UNSAFE_URL = "unsafe_url"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    SLUG_TAKEN = "slug_taken"
    PERSISTENCE_ERROR = "persistence_error"


@dataclass(frozen=True)
class ActionResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ActionResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "ActionResult[T]":
        return cls(success=False, error=message, kind=kind)
