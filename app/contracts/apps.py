"""
Contracts app configuration.

Contracts are drafted from accepted brief applications, signed by both
parties and broken into milestones that escrow payments are held against.
"""

from django.apps import AppConfig


class ContractsConfig(AppConfig):
    """Configuration for the contracts application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "contracts"
    verbose_name = "Contracts"
