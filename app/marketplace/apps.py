"""
Marketplace app configuration.

Holds the participants and briefs that contracts are negotiated over:
brands, creators, briefs, brief applications and content performance.
"""

from django.apps import AppConfig


class MarketplaceConfig(AppConfig):
    """Configuration for the marketplace application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "marketplace"
    verbose_name = "Marketplace"
