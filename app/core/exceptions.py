"""
Base exception classes for application-wide error handling.

Every domain error raised by a service carries a machine-readable code,
optional details and the HTTP status it maps to. The DRF exception
handler in core.exception_handler renders them uniformly, so views never
build error responses by hand.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input or business rule violations (400)
    ├── InvalidStateError - Operation not valid for the current status (400)
    ├── AuthorizationError - Caller is not a party to the resource (403)
    ├── NotFoundError - Resource not found (404)
    └── ConflictError - Lost a race with a concurrent writer (409)

Usage:
    from core.exceptions import InvalidStateError, NotFoundError

    raise NotFoundError("Contract not found", details={"contract_id": str(pk)})

    raise InvalidStateError(
        "Escrow payment is not held",
        details={"current_status": escrow.status},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, current status, etc.)
        http_status: Status code used when rendered by the API layer
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Contract not found",
                "error_code": "NOT_FOUND",
                "details": {"contract_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when service-layer validation fails.

    Serializer-level validation stays in DRF; this covers rules that need
    the database, e.g. milestone amounts exceeding the contract total.
    """

    default_error_code: str = "VALIDATION_ERROR"


class InvalidStateError(BaseApplicationError):
    """
    Raised when an operation is not valid for a record's current status.

    Example:
        if escrow.status != EscrowStatus.HELD:
            raise InvalidStateError(
                "Escrow payment is not held",
                details={"current_status": escrow.status, "action": "release"},
            )
    """

    default_error_code: str = "INVALID_STATE"


class AuthorizationError(BaseApplicationError):
    """
    Raised when the caller is not allowed to act on a resource.

    For authentication failures (missing/invalid token) DRF's own
    NotAuthenticated/AuthenticationFailed apply.
    """

    default_error_code: str = "NOT_AUTHORIZED"
    http_status: int = 403


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource does not exist."""

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class ConflictError(BaseApplicationError):
    """Raised when another request changed the record first."""

    default_error_code: str = "CONFLICT"
    http_status: int = 409

