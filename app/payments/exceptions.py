"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain, 400)
    ├── PayeeNotConfiguredError - Creator has no usable payee account
    ├── SignatureError - Webhook signature verification failed
    └── GatewayError - Base for all payment processor failures
        ├── GatewayCardDeclinedError - Card declined (permanent)
        ├── GatewayDestinationNotPayableError - Payee cannot receive funds (permanent)
        ├── GatewayInvalidRequestError - Invalid request params (permanent)
        ├── GatewayRateLimitError - Rate limited (transient, retry)
        ├── GatewayUnavailableError - Processor unavailable (transient, retry)
        └── GatewayTimeoutError - No answer in time (transient, outcome unknown)

GatewayError carries two flags the escrow flow branches on:
    is_retryable: the same call may succeed if repeated
    is_ambiguous: the processor may have applied the operation even though
        we saw an error; local state must not assume either outcome

Usage:
    from payments.exceptions import GatewayError, PayeeNotConfiguredError

    try:
        gateway.transfer(...)
    except GatewayError as e:
        if e.is_ambiguous:
            ...  # leave the row pending for the reconciler
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from typing import Any


class PaymentError(BaseApplicationError):
    """Base exception for all payment operations."""

    default_error_code: str = "PAYMENT_ERROR"


class PayeeNotConfiguredError(PaymentError):
    """
    Raised when a creator cannot receive a transfer.

    Either no payee account was ever registered, or the processor has
    reported that payouts are not enabled on it yet.
    """

    default_error_code: str = "PAYEE_NOT_CONFIGURED"


class SignatureError(PaymentError):
    """Raised when an inbound webhook fails signature verification."""

    default_error_code: str = "INVALID_SIGNATURE"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class GatewayError(PaymentError):
    """
    Base exception for payment processor failures.

    Attributes:
        gateway_code: Processor's own error code, if any
        decline_code: Card decline code (if applicable)
        is_retryable: Whether repeating the call may succeed
        is_ambiguous: Whether the processor may have applied the operation
    """

    default_error_code: str = "GATEWAY_ERROR"
    is_retryable: bool = False
    is_ambiguous: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        gateway_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if gateway_code:
            details["gateway_code"] = gateway_code
        if decline_code:
            details["decline_code"] = decline_code
        details["retryable"] = self.is_retryable
        super().__init__(message, error_code=error_code, details=details)
        self.gateway_code = gateway_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class GatewayCardDeclinedError(GatewayError):
    """Card was declined by the issuing bank."""

    default_error_code: str = "CARD_DECLINED"


class GatewayDestinationNotPayableError(GatewayError):
    """
    The payee account cannot receive transfers.

    Raised for unknown, restricted or not fully onboarded accounts.
    Needs creator action before a retry can succeed.
    """

    default_error_code: str = "DESTINATION_NOT_PAYABLE"


class GatewayInvalidRequestError(GatewayError):
    """
    Invalid request parameters sent to the processor.

    This usually indicates a bug in our code, not a user error.
    """

    default_error_code: str = "INVALID_GATEWAY_REQUEST"


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class GatewayRateLimitError(GatewayError):
    """Rate limited by the processor; retry with backoff."""

    default_error_code: str = "GATEWAY_RATE_LIMITED"
    is_retryable: bool = True


class GatewayUnavailableError(GatewayError):
    """
    Processor returned a server error.

    The processor documents 5xx responses as "result unknown", so the
    operation may have been applied.
    """

    default_error_code: str = "GATEWAY_UNAVAILABLE"
    is_retryable: bool = True
    is_ambiguous: bool = True


class GatewayTimeoutError(GatewayError):
    """
    The call timed out or the connection dropped.

    The operation may have succeeded on the processor's side. Retries
    must reuse the same idempotency key.
    """

    default_error_code: str = "GATEWAY_TIMEOUT"
    is_retryable: bool = True
    is_ambiguous: bool = True
