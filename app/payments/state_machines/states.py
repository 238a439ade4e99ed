"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.
EscrowStatus and OnboardingStatus drive django-fsm fields.

State Machines Overview:

EscrowPayment:
    held -> release_pending -> released            (transfer confirmed)
    held -> release_pending -> held                (transfer definitely failed)
    held -> refund_pending -> refunded             (hold cancelled/refunded)
    held -> refund_pending -> held                 (cancel definitely failed)
    released -> release_failed                     (transfer reversed later)
    release_failed -> release_pending -> released  (operator retry)

    The *_pending states mark a row claimed by an in-flight gateway call.
    An ambiguous gateway answer leaves the row pending until the
    reconciler sees the processor's event.
"""

from django.db import models


class EscrowStatus(models.TextChoices):
    """
    States for the EscrowPayment lifecycle.

    Terminal states: RELEASED (unless later reversed), REFUNDED
    """

    HELD = "held", "Held"
    RELEASE_PENDING = "release_pending", "Release Pending"
    RELEASED = "released", "Released"
    RELEASE_FAILED = "release_failed", "Release Failed"
    REFUND_PENDING = "refund_pending", "Refund Pending"
    REFUNDED = "refunded", "Refunded"


# Money is still with the platform and not yet settled either way
OPEN_ESCROW_STATES = (
    EscrowStatus.HELD,
    EscrowStatus.RELEASE_PENDING,
    EscrowStatus.REFUND_PENDING,
    EscrowStatus.RELEASE_FAILED,
)


class EarningType(models.TextChoices):
    """
    Kinds of CreatorEarning ledger entries.

    CPM/CPC/CPV/REVENUE_SHARE come from content performance,
    COMMISSION from escrow releases. REVERSAL entries are negative and
    cancel a COMMISSION whose transfer was reversed by the processor.
    """

    CPM = "cpm", "CPM"
    CPC = "cpc", "CPC"
    CPV = "cpv", "CPV"
    REVENUE_SHARE = "revenue_share", "Revenue Share"
    COMMISSION = "commission", "Commission"
    PAYOUT = "payout", "Payout"
    REVERSAL = "reversal", "Reversal"


PERFORMANCE_EARNING_TYPES = (
    EarningType.CPM,
    EarningType.CPC,
    EarningType.CPV,
    EarningType.REVENUE_SHARE,
)


class OnboardingStatus(models.TextChoices):
    """
    Onboarding status for creator payee accounts.

    State Flow:
        NOT_STARTED -> IN_PROGRESS -> COMPLETE
        IN_PROGRESS/COMPLETE -> RESTRICTED (processor requires more info)
    """

    NOT_STARTED = "not_started", "Not Started"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETE = "complete", "Complete"
    RESTRICTED = "restricted", "Restricted"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for incoming gateway webhook events.

    State Flow:
        PENDING -> PROCESSING -> PROCESSED
        PENDING -> PROCESSING -> FAILED -> PROCESSING (retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class AlertType(models.TextChoices):
    """Discrepancies the reconciler raises for operator review."""

    TRANSFER_REVERSED = "transfer_reversed", "Transfer Reversed After Release"
    PENDING_TRANSFER_FAILED = "pending_transfer_failed", "Pending Transfer Failed"
    HOLD_CANCELED = "hold_canceled", "Hold Canceled While Held Locally"
    UNKNOWN_HOLD = "unknown_hold", "Hold Without Local Escrow Payment"
    UNKNOWN_TRANSFER = "unknown_transfer", "Transfer Without Local Escrow Payment"
