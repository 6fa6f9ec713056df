"""Mini README: Typed errors raised by the tracker engine.

Structure:
    * TrackerError - base class carrying a stable ``code`` and ``category``.
    * ValidationError, AuthorizationError, ConflictError, NotFoundError,
      StateError - the five recoverable categories.
    * LinkageFailed - the single request-fatal condition: an approval whose
      linked transaction could not be created. The transition is rolled back
      before it is raised.

Every concrete error names the precondition that failed. Callers (the web
API, the CLI) surface ``code`` and the message verbatim; none of these are
swallowed inside the engine.
"""

from __future__ import annotations

from typing import Any, Dict


class TrackerError(Exception):
    """Base class for every error the engine raises on purpose."""

    category = "error"
    code = "TrackerError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def as_dict(self) -> Dict[str, Any]:
        """Export the error for JSON responses and audit fan-out."""

        return {"error": self.category, "code": self.code, "detail": self.message}


class ValidationError(TrackerError):
    category = "validation"
    code = "ValidationError"


class InvalidAmount(ValidationError):
    code = "InvalidAmount"


class InvalidField(ValidationError):
    code = "InvalidField"


class MissingSignature(ValidationError):
    code = "MissingSignature"


class AuthorizationError(TrackerError):
    category = "authorization"
    code = "AuthorizationError"


class Unauthenticated(AuthorizationError):
    code = "Unauthenticated"


class NotAdmin(AuthorizationError):
    code = "NotAdmin"


class NotOwner(AuthorizationError):
    code = "NotOwner"


class ImpersonationDenied(AuthorizationError):
    code = "ImpersonationDenied"


class Forbidden(AuthorizationError):
    code = "Forbidden"


class ConflictError(TrackerError):
    category = "conflict"
    code = "ConflictError"


class AlreadyProcessed(ConflictError):
    code = "AlreadyProcessed"


class DuplicatePeriod(ConflictError):
    code = "DuplicatePeriod"


class ActiveBookExists(ConflictError):
    code = "ActiveBookExists"


class DuplicateReceipt(ConflictError):
    code = "DuplicateReceipt"


class ReceiptExhausted(ConflictError):
    code = "ReceiptExhausted"


class NotFoundError(TrackerError):
    category = "not_found"
    code = "NotFoundError"


class NotFound(NotFoundError):
    code = "NotFound"


class UnknownBook(NotFoundError):
    code = "UnknownBook"


class StateError(TrackerError):
    category = "state"
    code = "StateError"


class NotRejected(StateError):
    code = "NotRejected"


class NotPending(StateError):
    code = "NotPending"


class BookInactive(StateError):
    code = "BookInactive"


class InactiveBook(BookInactive):
    code = "InactiveBook"


class ClosedBook(BookInactive):
    code = "ClosedBook"


class LinkageFailed(TrackerError):
    category = "fatal"
    code = "LinkageFailed"
