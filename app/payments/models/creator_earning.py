"""
CreatorEarning: append-only ledger of amounts credited to a creator.

The sum over a creator's rows is their lifetime earnings. Rows are
never updated or deleted; a reversed transfer is recorded as a new
negative REVERSAL row.
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from core.model_mixins import AppendOnlyMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import EarningType


class CreatorEarning(UUIDPrimaryKeyMixin, AppendOnlyMixin, BaseModel):
    """
    One credit (or reversal) in a creator's earnings ledger.

    Fields:
        creator: Creator credited
        amount: Net amount; negative only for REVERSAL entries
        earning_type: Where the money came from
        contract: Originating contract for escrow commissions
        content: Originating content for performance earnings
        escrow_payment: Escrow release this entry records or reverses
    """

    creator = models.ForeignKey(
        "marketplace.Creator",
        on_delete=models.PROTECT,
        related_name="earnings",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    earning_type = models.CharField(
        max_length=20,
        choices=EarningType.choices,
        db_index=True,
    )
    description = models.TextField(blank=True, default="")
    contract = models.ForeignKey(
        "contracts.Contract",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="earnings",
    )
    content = models.ForeignKey(
        "marketplace.Content",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="earnings",
    )
    escrow_payment = models.ForeignKey(
        "payments.EscrowPayment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="earnings",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Creator Earning"
        verbose_name_plural = "Creator Earnings"
        indexes = [
            models.Index(fields=["creator", "created_at"], name="earning_creator_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    (Q(amount__gt=0) & ~Q(earning_type=EarningType.REVERSAL))
                    | Q(amount__lt=0, earning_type=EarningType.REVERSAL)
                ),
                name="earning_amount_sign_matches_type",
            ),
        ]

    def __str__(self) -> str:
        return f"CreatorEarning({self.earning_type}, {self.amount})"
