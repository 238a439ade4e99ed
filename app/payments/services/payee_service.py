"""
Creator payee account onboarding.

Usage:
    from payments.services import PayeeService

    service = PayeeService(gateway)
    account = service.create_payee_account(creator_user)
    link = service.create_account_link(creator_user)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction

from core.exceptions import NotFoundError
from core.services import BaseService
from marketplace.services import MarketplaceDirectory

from payments.adapters import IdempotencyKeyGenerator, get_payment_gateway
from payments.models import PayeeAccount
from payments.state_machines import OnboardingStatus

if TYPE_CHECKING:
    from authentication.models import User
    from marketplace.models import Creator
    from payments.adapters import AccountLinkResult, PaymentGateway, PayeeAccountStatus


class PayeeService(BaseService):
    """Registers creators' payee accounts and keeps their flags current."""

    def __init__(self, gateway: PaymentGateway | None = None):
        self._gateway = gateway

    @property
    def gateway(self) -> PaymentGateway:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    @staticmethod
    def _creator_for(user: User) -> Creator:
        creator = MarketplaceDirectory.creator_for_user(user)
        if creator is None:
            raise NotFoundError("Creator profile not found")
        return creator

    @classmethod
    def _account_for(cls, user: User) -> PayeeAccount:
        creator = cls._creator_for(user)
        return cls.get_or_not_found(
            PayeeAccount.objects.all(), "Payee account", creator=creator
        )

    def create_payee_account(self, creator_user: User) -> PayeeAccount:
        """
        Register a processor account for the creator.

        Returns the existing account when one is already registered.
        """
        creator = self._creator_for(creator_user)
        existing = PayeeAccount.objects.filter(creator=creator).first()
        if existing is not None:
            return existing

        result = self.gateway.create_payee_account(
            owner_id=str(creator.pk),
            contact_email=creator_user.email,
            idempotency_key=IdempotencyKeyGenerator.generate("create_account", creator.pk),
        )

        with transaction.atomic():
            account, created = PayeeAccount.objects.get_or_create(
                creator=creator,
                defaults={
                    "gateway_account_id": result.account_id,
                    "onboarding_status": OnboardingStatus.NOT_STARTED,
                },
            )

        self.get_logger().info(
            "Payee account registered" if created else "Payee account already registered",
            extra={"creator_id": str(creator.pk), "account_id": account.gateway_account_id},
        )
        return account

    def create_account_link(self, creator_user: User) -> AccountLinkResult:
        """Onboarding URL for the creator's payee account."""
        account = self._account_for(creator_user)
        frontend_url = getattr(settings, "FRONTEND_URL", "http://localhost:3000")

        link = self.gateway.create_account_link(
            account_id=account.gateway_account_id,
            refresh_url=f"{frontend_url}/creator/stripe/reauth",
            return_url=f"{frontend_url}/creator/stripe/success",
        )

        if account.onboarding_status == OnboardingStatus.NOT_STARTED:
            account.onboarding_status = OnboardingStatus.IN_PROGRESS
            account.save(update_fields=["onboarding_status", "updated_at"])
        return link

    def refresh_payee_account_status(self, creator_user: User) -> PayeeAccount:
        """Fetch capability flags from the processor and cache them."""
        account = self._account_for(creator_user)
        status = self.gateway.get_payee_account_status(account.gateway_account_id)
        return self.apply_account_status(status) or account

    @classmethod
    def apply_account_status(cls, status: PayeeAccountStatus) -> PayeeAccount | None:
        """
        Cache processor flags on the matching account.

        Returns None when no local account uses this processor id.
        """
        with transaction.atomic():
            account = (
                PayeeAccount.objects.select_for_update()
                .filter(gateway_account_id=status.account_id)
                .first()
            )
            if account is None:
                return None
            account.apply_status(status)
            account.save()

        cls.get_logger().info(
            "Payee account status refreshed",
            extra={
                "account_id": status.account_id,
                "payouts_enabled": status.payouts_enabled,
                "onboarding_status": account.onboarding_status,
            },
        )
        return account
