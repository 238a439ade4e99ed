"""
State machine enums for payment models.

Usage:
    from payments.state_machines import EscrowStatus, EarningType
"""

from payments.state_machines.states import (
    OPEN_ESCROW_STATES,
    PERFORMANCE_EARNING_TYPES,
    AlertType,
    EarningType,
    EscrowStatus,
    OnboardingStatus,
    WebhookEventStatus,
)

__all__ = [
    "OPEN_ESCROW_STATES",
    "PERFORMANCE_EARNING_TYPES",
    "AlertType",
    "EarningType",
    "EscrowStatus",
    "OnboardingStatus",
    "WebhookEventStatus",
]
