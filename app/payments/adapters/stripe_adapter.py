"""
Stripe implementation of the payment gateway.

StripeAdapter encapsulates every Stripe API interaction the escrow and
payee services need. Calls carry an explicit API key, a bounded timeout
and an idempotency key, and Stripe SDK errors are translated into
payments.exceptions.GatewayError subclasses.

Mapping:
    hold            -> PaymentIntent with capture_method="manual"
    capture hold    -> capture the authorized PaymentIntent
    transfer        -> Transfer to a Connect account, sourced from the charge
    release hold    -> cancel the PaymentIntent, or refund it if captured
    payee account   -> Express Connect account with transfers capability

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)

Usage:
    from payments.adapters import StripeAdapter

    gateway = StripeAdapter()
    hold = gateway.create_hold(
        amount=Decimal("500.00"),
        currency="usd",
        metadata={"escrow_payment_id": str(escrow.id)},
        idempotency_key=IdempotencyKeyGenerator.generate("create_hold", escrow.id),
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

import stripe
from django.conf import settings

from payments.adapters.base import (
    AccountLinkResult,
    CaptureResult,
    GatewayEvent,
    HoldReleaseResult,
    HoldResult,
    PayeeAccountResult,
    PayeeAccountStatus,
    TransferResult,
    from_minor_units,
    to_minor_units,
)
from payments.exceptions import (
    GatewayCardDeclinedError,
    GatewayDestinationNotPayableError,
    GatewayInvalidRequestError,
    GatewayRateLimitError,
    GatewayTimeoutError,
    GatewayUnavailableError,
    SignatureError,
)

if TYPE_CHECKING:
    from typing import Any, Mapping

# Stripe error codes meaning the destination account cannot take the transfer
DESTINATION_ERROR_CODES = frozenset(
    {
        "account_invalid",
        "insufficient_capabilities_for_transfer",
        "transfers_not_allowed",
    }
)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The same (operation, entity, attempt) always yields the same key, so a
    retried request after a timeout cannot repeat the effect at Stripe.
    Bump the attempt to deliberately issue a new operation.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="transfer",
            entity_id=escrow.id,
            attempt=escrow.release_attempts,
        )
        # Result: "transfer:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


def account_status_from_payload(account: Mapping[str, Any]) -> PayeeAccountStatus:
    """Build a PayeeAccountStatus from a Stripe Account object or dict."""
    requirements = account.get("requirements") or {}
    currently_due = requirements.get("currently_due") or []
    past_due = requirements.get("past_due") or []
    return PayeeAccountStatus(
        account_id=account["id"],
        charges_enabled=bool(account.get("charges_enabled")),
        payouts_enabled=bool(account.get("payouts_enabled")),
        details_submitted=bool(account.get("details_submitted")),
        outstanding_requirements=sorted(set(currently_due) | set(past_due)),
    )


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    PaymentGateway backed by Stripe.

    Instances hold their own API key and webhook secret; nothing is
    written to stripe.api_key. The HTTP client timeout is applied to the
    SDK's default client when the adapter is constructed.

    Usage:
        gateway = StripeAdapter()
        result = gateway.transfer(Decimal("500.00"), "usd", "acct_123", {}, key)
    """

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        timeout: int | None = None,
    ):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self.timeout = timeout or getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Holds
    # =========================================================================

    def create_hold(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> HoldResult:
        """
        Create an uncaptured PaymentIntent for the escrow amount.

        Returns:
            HoldResult carrying the PaymentIntent id and its client_secret

        Raises:
            GatewayCardDeclinedError: Card was declined
            GatewayInvalidRequestError: Invalid parameters
            GatewayTimeoutError: No answer in time (outcome unknown)
        """
        logger = self.get_logger()
        log_context = {
            "operation": "create_hold",
            "amount": str(amount),
            "currency": currency,
            "idempotency_key": idempotency_key,
            "escrow_payment_id": metadata.get("escrow_payment_id"),
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                idempotency_key=idempotency_key,
                amount=to_minor_units(amount),
                currency=currency,
                capture_method="manual",
                metadata=metadata,
            )

            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "payment_intent_id": intent.id,
                    "status": intent.status,
                    "duration_ms": (time.time() - start_time) * 1000,
                },
            )
            return HoldResult(
                hold_id=intent.id,
                client_secret=intent.client_secret,
                status=intent.status,
            )

        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

    def capture_hold(self, hold_id: str, idempotency_key: str) -> CaptureResult:
        """
        Capture an authorized manual-capture PaymentIntent.

        A PaymentIntent that already succeeded is returned as captured, so
        repeating a capture after a lost response is harmless.

        Raises:
            GatewayInvalidRequestError: Intent is not capturable (e.g. the
                authorization expired or was canceled)
            GatewayTimeoutError: No answer in time (outcome unknown)
        """
        logger = self.get_logger()
        log_context = {
            "operation": "capture_hold",
            "payment_intent_id": hold_id,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(hold_id, api_key=self.api_key)

            if intent.status != "succeeded":
                intent = stripe.PaymentIntent.capture(
                    hold_id,
                    api_key=self.api_key,
                    idempotency_key=idempotency_key,
                )

            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "status": intent.status,
                    "charge_id": intent.latest_charge,
                    "duration_ms": (time.time() - start_time) * 1000,
                },
            )
            return CaptureResult(
                hold_id=intent.id,
                charge_id=intent.latest_charge,
                amount=from_minor_units(intent.amount_received),
                status=intent.status,
            )

        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

    def release_hold(self, hold_id: str, idempotency_key: str) -> HoldReleaseResult:
        """
        Give the held funds back to the payer.

        An uncaptured PaymentIntent is canceled; a captured one is
        refunded in full. A PaymentIntent that is already canceled counts
        as released.

        Raises:
            GatewayInvalidRequestError: Intent cannot be canceled in its state
            GatewayTimeoutError: No answer in time (outcome unknown)
        """
        logger = self.get_logger()
        log_context = {
            "operation": "release_hold",
            "payment_intent_id": hold_id,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(hold_id, api_key=self.api_key)

            if intent.status == "canceled":
                result = HoldReleaseResult(hold_id=hold_id, outcome="canceled")
            elif intent.status == "succeeded":
                refund = stripe.Refund.create(
                    api_key=self.api_key,
                    idempotency_key=idempotency_key,
                    payment_intent=hold_id,
                )
                result = HoldReleaseResult(
                    hold_id=hold_id,
                    outcome="refunded",
                    refund_id=refund.id,
                )
            else:
                stripe.PaymentIntent.cancel(
                    hold_id,
                    api_key=self.api_key,
                    idempotency_key=idempotency_key,
                )
                result = HoldReleaseResult(hold_id=hold_id, outcome="canceled")

            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "outcome": result.outcome,
                    "refund_id": result.refund_id,
                    "duration_ms": (time.time() - start_time) * 1000,
                },
            )
            return result

        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

    # =========================================================================
    # Transfers
    # =========================================================================

    def transfer(
        self,
        amount: Decimal,
        currency: str,
        payee_account_id: str,
        metadata: dict[str, str],
        idempotency_key: str,
        source_transaction: str | None = None,
    ) -> TransferResult:
        """
        Transfer funds from the platform balance to a Connect account.

        When source_transaction names a charge, the transfer is funded by
        that charge and waits for it to settle instead of drawing on the
        available platform balance.

        Raises:
            GatewayDestinationNotPayableError: Account cannot receive transfers
            GatewayInvalidRequestError: Invalid parameters
            GatewayTimeoutError: No answer in time (outcome unknown)
        """
        logger = self.get_logger()
        log_context = {
            "operation": "transfer",
            "amount": str(amount),
            "currency": currency,
            "destination_account": payee_account_id,
            "idempotency_key": idempotency_key,
            "escrow_payment_id": metadata.get("escrow_payment_id"),
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            params: dict[str, Any] = {
                "amount": to_minor_units(amount),
                "currency": currency,
                "destination": payee_account_id,
                "metadata": metadata,
            }
            if metadata.get("contract_id"):
                params["transfer_group"] = f"contract_{metadata['contract_id']}"
            if source_transaction:
                params["source_transaction"] = source_transaction

            transfer = stripe.Transfer.create(
                api_key=self.api_key,
                idempotency_key=idempotency_key,
                **params,
            )

            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "transfer_id": transfer.id,
                    "duration_ms": (time.time() - start_time) * 1000,
                },
            )
            return TransferResult(
                transfer_id=transfer.id,
                amount=from_minor_units(transfer.amount),
                currency=transfer.currency,
                destination=transfer.destination,
            )

        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

    # =========================================================================
    # Payee Accounts
    # =========================================================================

    def create_payee_account(
        self,
        owner_id: str,
        contact_email: str,
        idempotency_key: str,
    ) -> PayeeAccountResult:
        """Create an Express Connect account able to receive transfers."""
        logger = self.get_logger()
        log_context = {
            "operation": "create_payee_account",
            "owner_id": owner_id,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            account = stripe.Account.create(
                api_key=self.api_key,
                idempotency_key=idempotency_key,
                type="express",
                email=contact_email,
                capabilities={"transfers": {"requested": True}},
                metadata={"creator_id": owner_id},
            )

            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "account_id": account.id,
                    "duration_ms": (time.time() - start_time) * 1000,
                },
            )
            return PayeeAccountResult(account_id=account.id)

        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

    def create_account_link(
        self,
        account_id: str,
        refresh_url: str,
        return_url: str,
    ) -> AccountLinkResult:
        """Create a hosted onboarding link for a Connect account."""
        logger = self.get_logger()
        log_context = {"operation": "create_account_link", "account_id": account_id}

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            link = stripe.AccountLink.create(
                api_key=self.api_key,
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            )

            logger.info(
                "Stripe operation completed",
                extra={**log_context, "duration_ms": (time.time() - start_time) * 1000},
            )
            expires_at = None
            if getattr(link, "expires_at", None):
                expires_at = datetime.fromtimestamp(link.expires_at, tz=timezone.utc)
            return AccountLinkResult(url=link.url, expires_at=expires_at)

        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

    def get_payee_account_status(self, account_id: str) -> PayeeAccountStatus:
        logger = self.get_logger()
        log_context = {"operation": "get_payee_account_status", "account_id": account_id}

        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            account = stripe.Account.retrieve(account_id, api_key=self.api_key)

            logger.debug(
                "Stripe operation completed",
                extra={**log_context, "duration_ms": (time.time() - start_time) * 1000},
            )
            return account_status_from_payload(account)

        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature_header: str,
    ) -> GatewayEvent:
        """
        Verify and parse a Stripe webhook event.

        Raises:
            SignatureError: Missing header, bad signature or unparsable body
        """
        if not signature_header:
            raise SignatureError("Missing Stripe-Signature header")

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature_header,
                self.webhook_secret,
            )
        except stripe.SignatureVerificationError as e:
            raise SignatureError(
                "Invalid webhook signature",
                details={"error": str(e)},
            )
        except ValueError as e:
            raise SignatureError(
                "Invalid webhook payload",
                details={"error": str(e)},
            )

        data = event.to_dict()
        return GatewayEvent(id=data["id"], type=data["type"], payload=data)

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to gateway exceptions.

        Connection failures and 5xx responses are ambiguous: Stripe may
        have applied the request. Everything else is a definite failure.

        Raises:
            GatewayCardDeclinedError: Card was declined
            GatewayDestinationNotPayableError: Connect account cannot be paid
            GatewayInvalidRequestError: Invalid request or authentication
            GatewayRateLimitError: Rate limited
            GatewayTimeoutError: Connection error or timeout
            GatewayUnavailableError: Stripe server error or unknown failure
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise GatewayCardDeclinedError(
                str(error.user_message or error),
                gateway_code=error.code,
                decline_code=decline_code,
            )

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            if error.code in DESTINATION_ERROR_CODES or error.param == "destination":
                raise GatewayDestinationNotPayableError(
                    str(error.user_message or error),
                    gateway_code=error.code,
                )
            raise GatewayInvalidRequestError(str(error), gateway_code=error.code)

        elif isinstance(error, stripe.IdempotencyError):
            logger.error(
                "Idempotency key reused with different parameters",
                extra=log_context,
            )
            raise GatewayInvalidRequestError(
                "Idempotency key conflict",
                gateway_code="idempotency_error",
            )

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise GatewayRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                gateway_code="rate_limit",
            )

        elif isinstance(error, stripe.APIConnectionError):
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise GatewayTimeoutError(
                "Could not reach Stripe; the outcome is unknown.",
                gateway_code="api_connection_error",
            )

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise GatewayInvalidRequestError(
                "Stripe authentication failed",
                gateway_code="authentication_error",
            )

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise GatewayUnavailableError(
                "Stripe service error. Please retry.",
                gateway_code="api_error",
            )

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise GatewayUnavailableError(
                f"Unexpected Stripe error: {error}",
                gateway_code="unknown_error",
            )
