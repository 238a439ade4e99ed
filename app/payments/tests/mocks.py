"""
In-memory PaymentGateway double for service, view and webhook tests.

Each method records its call and returns a canned result. Set the
matching *_side_effect attribute to an exception instance to make the
call fail, or to a callable to run code (for example a re-entrant
service call) before the result is returned.

Usage:
    gateway = MockPaymentGateway()
    gateway.transfer_side_effect = GatewayTimeoutError("timed out")
    service = EscrowService(gateway=gateway)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from payments.adapters import (
    AccountLinkResult,
    CaptureResult,
    GatewayEvent,
    HoldReleaseResult,
    HoldResult,
    PayeeAccountResult,
    PayeeAccountStatus,
    TransferResult,
)
from payments.exceptions import SignatureError


def _ref(prefix: str) -> str:
    return f"{prefix}_test_{uuid.uuid4().hex[:16]}"


class MockPaymentGateway:
    """Records calls as (method, kwargs) tuples in self.calls."""

    def __init__(self):
        self.calls: list[tuple[str, dict]] = []
        self.create_hold_side_effect = None
        self.capture_hold_side_effect = None
        self.transfer_side_effect = None
        self.release_hold_side_effect = None
        self.create_payee_account_side_effect = None
        self.release_outcome = "canceled"
        self.captured_amount = Decimal("0")
        self.account_status: PayeeAccountStatus | None = None
        self.webhook_event: GatewayEvent | None = None

    def calls_to(self, method: str) -> list[dict]:
        return [kwargs for name, kwargs in self.calls if name == method]

    def _record(self, method: str, **kwargs) -> None:
        self.calls.append((method, kwargs))
        side_effect = getattr(self, f"{method}_side_effect", None)
        if isinstance(side_effect, Exception):
            raise side_effect
        if callable(side_effect):
            side_effect(**kwargs)

    def create_hold(self, amount, currency, metadata, idempotency_key) -> HoldResult:
        self._record(
            "create_hold",
            amount=amount,
            currency=currency,
            metadata=metadata,
            idempotency_key=idempotency_key,
        )
        hold_id = _ref("pi")
        return HoldResult(
            hold_id=hold_id,
            client_secret=f"{hold_id}_secret",
            status="requires_payment_method",
        )

    def capture_hold(self, hold_id, idempotency_key) -> CaptureResult:
        self._record("capture_hold", hold_id=hold_id, idempotency_key=idempotency_key)
        return CaptureResult(
            hold_id=hold_id, charge_id=_ref("ch"), amount=self.captured_amount
        )

    def transfer(
        self,
        amount,
        currency,
        payee_account_id,
        metadata,
        idempotency_key,
        source_transaction=None,
    ) -> TransferResult:
        self._record(
            "transfer",
            amount=amount,
            currency=currency,
            payee_account_id=payee_account_id,
            metadata=metadata,
            idempotency_key=idempotency_key,
            source_transaction=source_transaction,
        )
        return TransferResult(
            transfer_id=_ref("tr"),
            amount=Decimal(amount),
            currency=currency,
            destination=payee_account_id,
        )

    def release_hold(self, hold_id, idempotency_key) -> HoldReleaseResult:
        self._record("release_hold", hold_id=hold_id, idempotency_key=idempotency_key)
        refund_id = _ref("re") if self.release_outcome == "refunded" else None
        return HoldReleaseResult(
            hold_id=hold_id, outcome=self.release_outcome, refund_id=refund_id
        )

    def create_payee_account(self, owner_id, contact_email, idempotency_key) -> PayeeAccountResult:
        self._record(
            "create_payee_account",
            owner_id=owner_id,
            contact_email=contact_email,
            idempotency_key=idempotency_key,
        )
        return PayeeAccountResult(account_id=_ref("acct"))

    def create_account_link(self, account_id, refresh_url, return_url) -> AccountLinkResult:
        self._record(
            "create_account_link",
            account_id=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
        )
        return AccountLinkResult(url=f"https://connect.example.com/setup/{account_id}")

    def get_payee_account_status(self, account_id) -> PayeeAccountStatus:
        self._record("get_payee_account_status", account_id=account_id)
        return self.account_status or PayeeAccountStatus(account_id=account_id)

    def verify_webhook_signature(self, payload, signature_header) -> GatewayEvent:
        self._record("verify_webhook_signature", payload=payload, signature_header=signature_header)
        if not signature_header or self.webhook_event is None:
            raise SignatureError("Invalid webhook signature")
        return self.webhook_event
