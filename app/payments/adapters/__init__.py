"""
Payment gateway adapters.

All processor calls go through a PaymentGateway implementation. Services
receive one from get_payment_gateway() (or a test double) instead of
talking to an SDK directly.

Usage:
    from payments.adapters import get_payment_gateway

    gateway = get_payment_gateway()
    hold = gateway.create_hold(amount, "usd", metadata, idempotency_key)
"""

from django.conf import settings
from django.utils.module_loading import import_string

from payments.adapters.base import (
    AccountLinkResult,
    CaptureResult,
    GatewayEvent,
    HoldReleaseResult,
    HoldResult,
    PayeeAccountResult,
    PayeeAccountStatus,
    PaymentGateway,
    TransferResult,
    from_minor_units,
    to_minor_units,
)
from payments.adapters.stripe_adapter import IdempotencyKeyGenerator, StripeAdapter


def get_payment_gateway() -> PaymentGateway:
    """Construct the gateway named by settings.PAYMENT_GATEWAY_BACKEND."""
    backend = getattr(
        settings,
        "PAYMENT_GATEWAY_BACKEND",
        "payments.adapters.stripe_adapter.StripeAdapter",
    )
    return import_string(backend)()


__all__ = [
    "AccountLinkResult",
    "CaptureResult",
    "GatewayEvent",
    "HoldReleaseResult",
    "HoldResult",
    "IdempotencyKeyGenerator",
    "PayeeAccountResult",
    "PayeeAccountStatus",
    "PaymentGateway",
    "StripeAdapter",
    "TransferResult",
    "from_minor_units",
    "get_payment_gateway",
    "to_minor_units",
]
