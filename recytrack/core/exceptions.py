"""
Lifecycle error taxonomy.

Every failure of a lifecycle operation is raised as one of these and turned
into a structured JSON response by the API layer:

    ValidationError   400  invalid_input
    NotFoundError     404  not_found
    ConflictError     409  conflict
    PermissionDenied  403  not_authorized
    IdGenerationError 502  system_error
    BackendError      500  system_error
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from recytrack.models.allocation import CONSERVATION_MESSAGE, DUPLICATE_ALLOCATION_CONSTRAINT

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes
PG_UNIQUE_VIOLATION = "23505"
PG_CHECK_VIOLATION = "23514"
PG_INSUFFICIENT_PRIVILEGE = "42501"


class LifecycleError(Exception):
    """Base class for lifecycle operation failures."""
    kind = "system_error"
    status_code = 500

    def __init__(self, message: str, details: Dict[str, Any] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(LifecycleError):
    """Malformed or out-of-range input, raised before any write."""
    kind = "invalid_input"
    status_code = 400

    def __init__(
        self,
        message: str,
        remaining: Optional[Decimal] = None,
        errors: Optional[List[str]] = None,
        details: Dict[str, Any] = None,
    ):
        details = dict(details or {})
        if remaining is not None:
            details["remaining_kg"] = str(remaining)
        if errors:
            details["errors"] = list(errors)
        super().__init__(message, details)
        self.remaining = remaining
        self.errors = list(errors or [])


class NotFoundError(LifecycleError):
    kind = "not_found"
    status_code = 404


class ConflictError(LifecycleError):
    """Uniqueness or single-active-chain violation."""
    kind = "conflict"
    status_code = 409


class PermissionDenied(LifecycleError):
    kind = "not_authorized"
    status_code = 403


class IdGenerationError(LifecycleError):
    """The identifier oracle failed to produce a code."""
    kind = "system_error"
    status_code = 502


class BackendError(LifecycleError):
    """Opaque store failure, wraps the underlying code and message."""
    kind = "system_error"
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None, details: Dict[str, Any] = None):
        details = dict(details or {})
        if code:
            details["code"] = code
        super().__init__(message, details)
        self.code = code


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_db_error(exc: SQLAlchemyError, conflict_message: str = "record already exists") -> LifecycleError:
    """
    Map a store error onto the lifecycle taxonomy.

    Unique violations become ConflictError, conservation-trigger violations
    become ValidationError, row-level-security denials become PermissionDenied.
    Everything else is a BackendError.
    """
    sqlstate = _sqlstate(exc)
    text = str(getattr(exc, "orig", exc))

    if CONSERVATION_MESSAGE in text or sqlstate == PG_CHECK_VIOLATION:
        return ValidationError("exceeds remaining weight")

    if isinstance(exc, IntegrityError):
        if sqlstate == PG_UNIQUE_VIOLATION or "UNIQUE constraint failed" in text:
            if DUPLICATE_ALLOCATION_CONSTRAINT in text or "batch_allocations" in text:
                return ConflictError("already allocated to this order")
            return ConflictError(conflict_message)

    if sqlstate == PG_INSUFFICIENT_PRIVILEGE or "row-level security" in text:
        return PermissionDenied("not authorized by row-level security")

    logger.error(f"Unhandled database error: {text}")
    return BackendError(text, code=sqlstate)
