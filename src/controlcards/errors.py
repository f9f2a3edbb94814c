"""Failure taxonomy surfaced to callers.

Every failure an operation can report is one of a closed set of kinds.
The shell only ever sees ``kind`` + ``message``; presentation is its job.
"""

import enum


class ErrorKind(str, enum.Enum):
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STORE_UNAVAILABLE = "store_unavailable"
    INTERNAL = "internal"


class ControlCardsError(Exception):
    """Base class for all reported failures."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(ControlCardsError):
    """Bad, expired or missing token; or invalid login credentials."""

    kind = ErrorKind.AUTHENTICATION


class AuthorizationError(ControlCardsError):
    """The caller's role is not permitted to perform the operation."""

    kind = ErrorKind.AUTHORIZATION


class ValidationError(ControlCardsError):
    """Malformed input: short password, unknown role, role mismatch."""

    kind = ErrorKind.VALIDATION


class NotFoundError(ControlCardsError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(ControlCardsError):
    kind = ErrorKind.CONFLICT


class StoreUnavailableError(ControlCardsError):
    kind = ErrorKind.STORE_UNAVAILABLE


class InternalError(ControlCardsError):
    kind = ErrorKind.INTERNAL
