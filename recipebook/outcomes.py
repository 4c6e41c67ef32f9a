"""Typed operation outcomes returned by the stores.

Every store operation returns either ``Ok`` carrying the result, or one of
the failure types below. Callers branch on the type (or on ``kind``) instead
of matching error strings:

    match store.get_by_id(owner, recipe_id):
        case Ok(value=recipe):
            ...
        case NotFound():
            ...
"""

import enum
from dataclasses import dataclass
from typing import ClassVar, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Kinds of failure a store operation can report."""

    NOT_FOUND = "not_found"
    DUPLICATE_TITLE = "duplicate_title"
    ALREADY_EXISTS = "already_exists"
    STORAGE_ERROR = "storage_error"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome."""

    value: T
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    """Base for failed outcomes. ``message`` is safe to show to callers."""

    message: str
    kind: ClassVar[ErrorKind]
    ok: ClassVar[bool] = False


@dataclass(frozen=True)
class NotFound(Failure):
    """Missing, owned by someone else, or soft-deleted. Never says which."""

    message: str = "Resource not found"
    kind: ClassVar[ErrorKind] = ErrorKind.NOT_FOUND


@dataclass(frozen=True)
class DuplicateTitle(Failure):
    message: str = "A recipe with this title already exists"
    kind: ClassVar[ErrorKind] = ErrorKind.DUPLICATE_TITLE


@dataclass(frozen=True)
class AlreadyExists(Failure):
    message: str = "Dietary preferences already exist for this user"
    kind: ClassVar[ErrorKind] = ErrorKind.ALREADY_EXISTS


@dataclass(frozen=True)
class StorageError(Failure):
    """Underlying store failure. Carries no driver error text."""

    message: str = "Storage operation failed"
    kind: ClassVar[ErrorKind] = ErrorKind.STORAGE_ERROR


Outcome = Ok[T] | Failure


HTTP_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_TITLE: 409,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.STORAGE_ERROR: 500,
}


def http_status_for(outcome: Ok | Failure) -> int:
    """Conventional HTTP status for an outcome, for use by transport layers."""
    if isinstance(outcome, Ok):
        return 200
    return HTTP_STATUS_BY_KIND[outcome.kind]
