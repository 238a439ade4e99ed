"""
Payment gateway interface.

Escrow and payee services depend on the PaymentGateway protocol, never on
a processor SDK. The concrete implementation is constructed by
get_payment_gateway() from settings.PAYMENT_GATEWAY_BACKEND and passed
into the services, so tests substitute a mock gateway without patching.

Amounts cross this boundary as Decimal in major currency units;
implementations convert to the processor's representation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any

CENT = Decimal("0.01")


def to_minor_units(amount: Decimal) -> int:
    """Decimal major units to integer minor units (dollars to cents)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / 100).quantize(CENT)


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class HoldResult:
    """
    Result of creating a hold.

    Attributes:
        hold_id: Processor hold reference
        client_secret: Token the payer's client needs to authorize the hold
        status: Processor status of the hold
    """

    hold_id: str
    client_secret: str | None = None
    status: str = ""


@dataclass
class CaptureResult:
    """
    Result of capturing an authorized hold.

    Attributes:
        hold_id: Processor hold reference
        charge_id: Charge the captured funds settle under; transfers funded
            by the hold reference it as their source
        amount: Captured amount
        status: Processor status of the hold after capture
    """

    hold_id: str
    charge_id: str | None
    amount: Decimal
    status: str = "succeeded"


@dataclass
class TransferResult:
    """Result of a transfer to a payee account."""

    transfer_id: str
    amount: Decimal
    currency: str
    destination: str


@dataclass
class HoldReleaseResult:
    """
    Result of giving a hold back to the payer.

    Attributes:
        hold_id: Processor hold reference
        outcome: "canceled" for an uncaptured hold, "refunded" for a
            captured one
        refund_id: Processor refund reference when outcome is "refunded"
    """

    hold_id: str
    outcome: str
    refund_id: str | None = None


@dataclass
class PayeeAccountResult:
    account_id: str


@dataclass
class AccountLinkResult:
    url: str
    expires_at: datetime | None = None


@dataclass
class PayeeAccountStatus:
    """Capability flags of a payee account as reported by the processor."""

    account_id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    outstanding_requirements: list[str] = field(default_factory=list)


@dataclass
class GatewayEvent:
    """
    Verified processor event.

    Attributes:
        id: Processor event id, unique per event
        type: Event type (e.g. "transfer.reversed")
        payload: Full event body as a dict
    """

    id: str
    type: str
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def data_object(self) -> dict[str, Any]:
        return self.payload.get("data", {}).get("object", {}) or {}


# =============================================================================
# Gateway Protocol
# =============================================================================


@runtime_checkable
class PaymentGateway(Protocol):
    """
    Capability set the escrow and payee services rely on.

    Every mutating call takes an idempotency key; repeating a call with the
    same key must not repeat its effect at the processor.

    All methods raise payments.exceptions.GatewayError subclasses on
    failure; verify_webhook_signature raises SignatureError.
    """

    def create_hold(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> HoldResult: ...

    def capture_hold(self, hold_id: str, idempotency_key: str) -> CaptureResult: ...

    def transfer(
        self,
        amount: Decimal,
        currency: str,
        payee_account_id: str,
        metadata: dict[str, str],
        idempotency_key: str,
        source_transaction: str | None = None,
    ) -> TransferResult: ...

    def release_hold(self, hold_id: str, idempotency_key: str) -> HoldReleaseResult: ...

    def create_payee_account(
        self,
        owner_id: str,
        contact_email: str,
        idempotency_key: str,
    ) -> PayeeAccountResult: ...

    def create_account_link(
        self,
        account_id: str,
        refresh_url: str,
        return_url: str,
    ) -> AccountLinkResult: ...

    def get_payee_account_status(self, account_id: str) -> PayeeAccountStatus: ...

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature_header: str,
    ) -> GatewayEvent: ...
