"""
Platform fee and performance earning arithmetic.

Pure functions over Decimal; no I/O. Every path that credits a creator
(escrow release, performance earnings) splits the gross amount here so
earnings stay consistent platform-wide.

Invariant: calculate_platform_fee(x) + calculate_creator_amount(x) == x
for every x >= 0.

Usage:
    from payments.services.fees import split_amount

    split = split_amount(Decimal("100.00"))
    split.platform_fee     # Decimal("10.00")
    split.creator_amount   # Decimal("90.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from django.conf import settings

from core.exceptions import ValidationError

from payments.state_machines import EarningType

if TYPE_CHECKING:
    from marketplace.services import PerformanceMetrics

CENT = Decimal("0.01")
DEFAULT_PLATFORM_FEE_PERCENT = Decimal("10")

# Per-unit rates for performance based earnings
EARNING_RATES: dict[str, Decimal] = {
    EarningType.CPM: Decimal("2.50"),  # per 1000 views
    EarningType.CPC: Decimal("0.15"),  # per click
    EarningType.CPV: Decimal("0.001"),  # per view
    EarningType.REVENUE_SHARE: Decimal("0.25"),  # per click
}


@dataclass(frozen=True)
class FeeSplit:
    gross: Decimal
    platform_fee: Decimal
    creator_amount: Decimal


def platform_fee_percent() -> Decimal:
    return Decimal(
        str(getattr(settings, "PLATFORM_FEE_PERCENT", DEFAULT_PLATFORM_FEE_PERCENT))
    )


def calculate_platform_fee(gross: Decimal, percent: Decimal | None = None) -> Decimal:
    """
    Platform fee for a gross amount, rounded half-up to the cent.

    Args:
        gross: Amount before fees, must not be negative
        percent: Fee rate in percent; defaults to settings.PLATFORM_FEE_PERCENT

    Raises:
        ValidationError: If gross is negative
    """
    gross = Decimal(gross)
    if gross < 0:
        raise ValidationError(
            "Amount must not be negative",
            details={"amount": str(gross)},
        )
    rate = platform_fee_percent() if percent is None else Decimal(str(percent))
    return (gross * rate / 100).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_creator_amount(gross: Decimal, percent: Decimal | None = None) -> Decimal:
    """What the creator keeps: gross minus the platform fee."""
    return Decimal(gross) - calculate_platform_fee(gross, percent)


def split_amount(gross: Decimal, percent: Decimal | None = None) -> FeeSplit:
    fee = calculate_platform_fee(gross, percent)
    return FeeSplit(
        gross=Decimal(gross),
        platform_fee=fee,
        creator_amount=Decimal(gross) - fee,
    )


def calculate_performance_amount(
    metrics: PerformanceMetrics,
    earning_type: str,
) -> Decimal:
    """
    Gross earning for a content's performance under one pricing model.

    Raises:
        ValidationError: If earning_type is not a performance type
    """
    rate = EARNING_RATES.get(earning_type)
    if rate is None:
        raise ValidationError(
            f"Earning type '{earning_type}' is not performance based",
            details={"earning_type": earning_type},
        )

    if earning_type == EarningType.CPM:
        total = Decimal(metrics.views) / 1000 * rate
    elif earning_type == EarningType.CPV:
        total = Decimal(metrics.views) * rate
    else:
        total = Decimal(metrics.clicks) * rate

    return total.quantize(CENT, rounding=ROUND_HALF_UP)
