"""
Marketplace models.

These are the records the contract and payment apps read but never own:

- Brand / Creator: marketplace profiles, one per User
- Brief: a campaign brief published by a Brand
- BriefApplication: a Creator's application to a Brief
- Content / ContentMetric: published content and its daily performance

Related files:
    - services.py: MarketplaceDirectory lookups used by other apps
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class ApplicationStatus(models.TextChoices):
    """Review status of a brief application."""

    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"


class Brand(UUIDPrimaryKeyMixin, BaseModel):
    """Brand profile owned by a brand-role user."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="brand_profile",
    )
    company_name = models.CharField(max_length=255)

    def __str__(self) -> str:
        return self.company_name


class Creator(UUIDPrimaryKeyMixin, BaseModel):
    """Creator profile owned by a creator-role user."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="creator_profile",
    )
    display_name = models.CharField(max_length=255)

    def __str__(self) -> str:
        return self.display_name


class Brief(UUIDPrimaryKeyMixin, BaseModel):
    """Campaign brief creators apply to."""

    brand = models.ForeignKey(
        Brand,
        on_delete=models.PROTECT,
        related_name="briefs",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    budget = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
    )

    def __str__(self) -> str:
        return self.title


class BriefApplication(UUIDPrimaryKeyMixin, BaseModel):
    """
    A creator's application to a brief.

    A contract can only be drafted from an application in ACCEPTED status.
    """

    brief = models.ForeignKey(
        Brief,
        on_delete=models.PROTECT,
        related_name="applications",
    )
    creator = models.ForeignKey(
        Creator,
        on_delete=models.PROTECT,
        related_name="applications",
    )
    status = models.CharField(
        max_length=20,
        choices=ApplicationStatus.choices,
        default=ApplicationStatus.PENDING,
        db_index=True,
    )
    message = models.TextField(blank=True, default="")

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["brief", "creator"],
                name="unique_application_per_brief_creator",
            ),
        ]

    def __str__(self) -> str:
        return f"Application {self.creator_id} -> {self.brief_id} ({self.status})"


class Content(UUIDPrimaryKeyMixin, BaseModel):
    """A piece of published creator content."""

    creator = models.ForeignKey(
        Creator,
        on_delete=models.PROTECT,
        related_name="contents",
    )
    title = models.CharField(max_length=255)
    platform = models.CharField(max_length=50, blank=True, default="")
    url = models.URLField(blank=True, default="")

    def __str__(self) -> str:
        return self.title


class ContentMetric(UUIDPrimaryKeyMixin, BaseModel):
    """Daily performance counters for one piece of content."""

    content = models.ForeignKey(
        Content,
        on_delete=models.CASCADE,
        related_name="metrics",
    )
    date = models.DateField()
    views = models.PositiveIntegerField(default=0)
    clicks = models.PositiveIntegerField(default=0)
    shares = models.PositiveIntegerField(default=0)
    comments = models.PositiveIntegerField(default=0)
    likes = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-date"]
        constraints = [
            models.UniqueConstraint(
                fields=["content", "date"],
                name="unique_metric_per_content_day",
            ),
        ]
