"""
Tests for MarketplaceDirectory lookups.
"""

import datetime

from marketplace.models import ApplicationStatus
from marketplace.services import MarketplaceDirectory, PerformanceMetrics
from marketplace.tests.factories import (
    BriefApplicationFactory,
    BriefFactory,
    BrandFactory,
    ContentFactory,
    ContentMetricFactory,
    CreatorFactory,
)


class TestProfileLookups:
    """Tests for brand_for_user / creator_for_user."""

    def test_resolves_profiles_for_users(self, db):
        brand = BrandFactory()
        creator = CreatorFactory()

        assert MarketplaceDirectory.brand_for_user(brand.user) == brand
        assert MarketplaceDirectory.creator_for_user(creator.user) == creator

    def test_returns_none_for_other_role(self, db):
        brand = BrandFactory()

        assert MarketplaceDirectory.creator_for_user(brand.user) is None


class TestBriefLookups:
    """Tests for brief ownership and accepted application lookups."""

    def test_brief_owned_by_brand(self, db):
        brief = BriefFactory()
        other_brand = BrandFactory()

        assert MarketplaceDirectory.find_brief_owned_by_brand(brief.id, brief.brand_id) == brief
        assert MarketplaceDirectory.find_brief_owned_by_brand(brief.id, other_brand.id) is None

    def test_only_accepted_applications_are_found(self, db):
        application = BriefApplicationFactory(status=ApplicationStatus.PENDING)

        assert (
            MarketplaceDirectory.find_accepted_application(
                application.brief_id, application.creator_id
            )
            is None
        )

        application.status = ApplicationStatus.ACCEPTED
        application.save()

        assert (
            MarketplaceDirectory.find_accepted_application(
                application.brief_id, application.creator_id
            )
            == application
        )


class TestPerformanceMetrics:
    """Tests for performance_metrics aggregation."""

    def test_sums_metrics_in_date_range(self, db):
        content = ContentFactory()
        ContentMetricFactory(content=content, date=datetime.date(2025, 3, 1), views=1000, clicks=5)
        ContentMetricFactory(content=content, date=datetime.date(2025, 3, 2), views=500, clicks=7, likes=3)
        ContentMetricFactory(content=content, date=datetime.date(2025, 4, 1), views=9999)

        metrics = MarketplaceDirectory.performance_metrics(
            content.id, (datetime.date(2025, 3, 1), datetime.date(2025, 3, 31))
        )

        assert metrics == PerformanceMetrics(views=1500, clicks=12, likes=3)

    def test_no_metrics_returns_zeros(self, db):
        content = ContentFactory()

        assert MarketplaceDirectory.performance_metrics(content.id) == PerformanceMetrics()
