"""
Payments app configuration.

This app holds escrow money for contracts:
- Escrow holds, releases and refunds through the payment gateway
- The append-only creator earnings ledger
- Creator payee onboarding
- Gateway webhook reconciliation
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
