"""
Lookups other apps use to reach marketplace records.

Contracts and payments never query marketplace tables directly; they go
through MarketplaceDirectory so the dependency stays a narrow interface.

Usage:
    from marketplace.services import MarketplaceDirectory

    brand = MarketplaceDirectory.brand_for_user(request.user)
    application = MarketplaceDirectory.find_accepted_application(brief_id, creator_id)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from django.db.models import Sum

from marketplace.models import (
    ApplicationStatus,
    Brand,
    Brief,
    BriefApplication,
    ContentMetric,
    Creator,
)

if TYPE_CHECKING:
    from authentication.models import User


@dataclass(frozen=True)
class PerformanceMetrics:
    """Aggregated performance counters for a piece of content."""

    views: int = 0
    clicks: int = 0
    shares: int = 0
    comments: int = 0
    likes: int = 0


class MarketplaceDirectory:
    """
    Read-only lookups over marketplace records.

    All methods are static and return None rather than raising when a
    record is absent; callers decide which error that means for them.
    """

    @staticmethod
    def brand_for_user(user: User) -> Brand | None:
        return Brand.objects.filter(user=user).first()

    @staticmethod
    def creator_for_user(user: User) -> Creator | None:
        return Creator.objects.filter(user=user).first()

    @staticmethod
    def get_creator(creator_id: uuid.UUID | str) -> Creator | None:
        return Creator.objects.select_related("user").filter(pk=creator_id).first()

    @staticmethod
    def find_brief_owned_by_brand(
        brief_id: uuid.UUID | str,
        brand_id: uuid.UUID | str,
    ) -> Brief | None:
        return Brief.objects.filter(pk=brief_id, brand_id=brand_id).first()

    @staticmethod
    def find_accepted_application(
        brief_id: uuid.UUID | str,
        creator_id: uuid.UUID | str,
    ) -> BriefApplication | None:
        return BriefApplication.objects.filter(
            brief_id=brief_id,
            creator_id=creator_id,
            status=ApplicationStatus.ACCEPTED,
        ).first()

    @staticmethod
    def performance_metrics(
        content_id: uuid.UUID | str,
        date_range: tuple[date, date] | None = None,
    ) -> PerformanceMetrics:
        """
        Sum daily metrics for a piece of content.

        Args:
            content_id: Content to aggregate
            date_range: Optional inclusive (start, end) dates

        Returns:
            PerformanceMetrics with zeros when nothing was recorded
        """
        queryset = ContentMetric.objects.filter(content_id=content_id)
        if date_range is not None:
            start, end = date_range
            queryset = queryset.filter(date__gte=start, date__lte=end)

        totals = queryset.aggregate(
            views=Sum("views", default=0),
            clicks=Sum("clicks", default=0),
            shares=Sum("shares", default=0),
            comments=Sum("comments", default=0),
            likes=Sum("likes", default=0),
        )
        return PerformanceMetrics(**totals)
