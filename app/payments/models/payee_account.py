"""
PayeeAccount model: a creator's destination account at the processor.

Usage:
    from payments.models import PayeeAccount

    account = PayeeAccount.objects.create(
        creator=creator,
        gateway_account_id="acct_1234567890",
        onboarding_status=OnboardingStatus.IN_PROGRESS,
    )

    # After account.updated webhook or a status fetch
    account.apply_status(status)
    account.save()

    if account.is_ready_for_payouts:
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import OnboardingStatus

if TYPE_CHECKING:
    from payments.adapters.base import PayeeAccountStatus


class PayeeAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    Processor account a creator receives escrow transfers on.

    The capability flags are a cache of the processor's view; they are
    refreshed on account.updated webhooks and on explicit status fetches.

    Lifecycle:
        1. Account created when the creator starts onboarding (NOT_STARTED)
        2. Onboarding link opened by the creator (IN_PROGRESS)
        3. Processor verifies details and enables payouts (COMPLETE)
        4. Processor asks for more information later (RESTRICTED)
    """

    creator = models.OneToOneField(
        "marketplace.Creator",
        on_delete=models.PROTECT,
        related_name="payee_account",
        help_text="Creator this payee account belongs to",
    )
    gateway_account_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Processor account ID (acct_xxx)",
    )
    onboarding_status = models.CharField(
        max_length=20,
        choices=OnboardingStatus.choices,
        default=OnboardingStatus.NOT_STARTED,
        db_index=True,
    )
    charges_enabled = models.BooleanField(default=False)
    payouts_enabled = models.BooleanField(default=False)
    details_submitted = models.BooleanField(default=False)
    requirements = models.JSONField(
        default=list,
        blank=True,
        help_text="Outstanding requirement keys reported by the processor",
    )
    last_synced_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payee Account"
        verbose_name_plural = "Payee Accounts"

    def __str__(self) -> str:
        return f"PayeeAccount({self.gateway_account_id}, {self.onboarding_status})"

    @property
    def is_ready_for_payouts(self) -> bool:
        """Transfers can be sent once the processor enables payouts."""
        return self.payouts_enabled

    def apply_status(self, status: PayeeAccountStatus) -> None:
        """
        Copy processor capability flags onto the cached row.

        Note: Does not save - caller must save after calling.
        """
        self.charges_enabled = status.charges_enabled
        self.payouts_enabled = status.payouts_enabled
        self.details_submitted = status.details_submitted
        self.requirements = list(status.outstanding_requirements)
        self.last_synced_at = timezone.now()

        if status.payouts_enabled and status.details_submitted:
            self.onboarding_status = OnboardingStatus.COMPLETE
        elif status.details_submitted and status.outstanding_requirements:
            self.onboarding_status = OnboardingStatus.RESTRICTED
        elif status.details_submitted or status.outstanding_requirements:
            self.onboarding_status = OnboardingStatus.IN_PROGRESS
