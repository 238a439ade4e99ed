"""
Payment domain models.

- EscrowPayment: Funds held against a contract until release or refund
- CreatorEarning: Append-only ledger of creator credits
- PayeeAccount: Creator's destination account at the processor
- WebhookEvent: Processor webhook tracking for idempotent processing
- ReconciliationAlert: Discrepancies flagged for operator review
"""

from payments.models.creator_earning import CreatorEarning
from payments.models.escrow_payment import EscrowPayment
from payments.models.payee_account import PayeeAccount
from payments.models.reconciliation import ReconciliationAlert
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "CreatorEarning",
    "EscrowPayment",
    "PayeeAccount",
    "ReconciliationAlert",
    "WebhookEvent",
]
