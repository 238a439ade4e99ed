"""
Creator earnings from content performance, and earnings summaries.

Performance earnings are independent of escrow but share the fee
calculator and the CreatorEarning ledger with it.

Usage:
    from payments.services import EarningService

    result = EarningService.process_creator_earning(
        creator_id=creator.id,
        content_id=content.id,
        earning_type=EarningType.CPM,
        date_range=(date(2026, 9, 1), date(2026, 9, 30)),
    )
    result.creator_amount
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.db.models import Count, Sum

from core.exceptions import NotFoundError, ValidationError
from core.services import BaseService
from marketplace.models import Content
from marketplace.services import MarketplaceDirectory, PerformanceMetrics

from payments.models import CreatorEarning
from payments.services.fees import calculate_performance_amount, split_amount
from payments.state_machines import PERFORMANCE_EARNING_TYPES

if TYPE_CHECKING:
    from datetime import date

    from authentication.models import User


@dataclass
class EarningResult:
    """
    Outcome of crediting a performance earning.

    Attributes:
        earning: The appended ledger row (net of fee)
        total_amount: Gross amount from the rate table
        platform_fee: Fee withheld
        creator_amount: Amount credited
    """

    earning: CreatorEarning
    total_amount: Decimal
    platform_fee: Decimal
    creator_amount: Decimal


class EarningService(BaseService):
    """Performance earnings and ledger summaries."""

    @classmethod
    def process_creator_earning(
        cls,
        creator_id: uuid.UUID | str,
        content_id: uuid.UUID | str,
        earning_type: str,
        metrics: PerformanceMetrics | None = None,
        date_range: tuple[date, date] | None = None,
    ) -> EarningResult:
        """
        Price content performance and append the creator's net earning.

        Metrics are taken as given, or aggregated from recorded content
        metrics over date_range when not supplied.

        Raises:
            NotFoundError: Creator or content does not exist
            ValidationError: Content belongs to another creator, the type
                is not performance based, or nothing was earned
        """
        logger = cls.get_logger()

        if earning_type not in PERFORMANCE_EARNING_TYPES:
            raise ValidationError(
                f"Earning type '{earning_type}' is not performance based",
                details={"earning_type": earning_type},
            )

        creator = MarketplaceDirectory.get_creator(creator_id)
        if creator is None:
            raise NotFoundError("Creator not found", details={"creator_id": str(creator_id)})

        content = cls.get_or_not_found(Content.objects.all(), "Content", pk=content_id)
        if content.creator_id != creator.pk:
            raise ValidationError(
                "Content does not belong to this creator",
                details={"content_id": str(content_id), "creator_id": str(creator_id)},
            )

        if metrics is None:
            metrics = MarketplaceDirectory.performance_metrics(content.pk, date_range)

        total = calculate_performance_amount(metrics, earning_type)
        split = split_amount(total)
        if split.creator_amount <= 0:
            raise ValidationError(
                "No earnings for the given metrics",
                error_code="NOTHING_EARNED",
                details={"total_amount": str(total)},
            )

        earning = CreatorEarning.objects.create(
            creator=creator,
            content=content,
            amount=split.creator_amount,
            earning_type=earning_type,
            description=(
                f"{earning_type.upper()} earnings for {content.title}: "
                f"{metrics.views} views, {metrics.clicks} clicks"
            ),
        )

        logger.info(
            "Performance earning recorded",
            extra={
                "creator_id": str(creator.pk),
                "content_id": str(content.pk),
                "earning_type": earning_type,
                "total_amount": str(total),
                "platform_fee": str(split.platform_fee),
                "creator_amount": str(split.creator_amount),
            },
        )
        return EarningResult(
            earning=earning,
            total_amount=total,
            platform_fee=split.platform_fee,
            creator_amount=split.creator_amount,
        )

    @classmethod
    def get_earnings_summary(
        cls,
        creator_user: User,
        start: date | None = None,
        end: date | None = None,
    ) -> dict[str, Any]:
        """
        Sum the creator's ledger, optionally within a date window.

        Returns:
            {"total": Decimal, "by_type": {type: Decimal}, "count": int}

        Raises:
            NotFoundError: User has no creator profile
        """
        creator = MarketplaceDirectory.creator_for_user(creator_user)
        if creator is None:
            raise NotFoundError("Creator profile not found")

        queryset = CreatorEarning.objects.filter(creator=creator)
        if start:
            queryset = queryset.filter(created_at__date__gte=start)
        if end:
            queryset = queryset.filter(created_at__date__lte=end)

        totals = queryset.aggregate(
            total=Sum("amount", default=Decimal("0")),
            count=Count("id"),
        )
        by_type = {
            row["earning_type"]: row["amount"]
            for row in queryset.order_by()
            .values("earning_type")
            .annotate(amount=Sum("amount"))
        }
        return {
            "total": totals["total"],
            "by_type": by_type,
            "count": totals["count"],
        }
