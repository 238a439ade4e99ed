"""
ReconciliationAlert: discrepancies between local state and the processor.

Alerts are written by the webhook reconciler whenever an event cannot be
applied automatically (a transfer reversed after release, a hold with no
local escrow payment). Operators review and resolve them from the admin.

Usage:
    from payments.models import ReconciliationAlert
    from payments.state_machines import AlertType

    ReconciliationAlert.objects.create(
        alert_type=AlertType.TRANSFER_REVERSED,
        escrow_payment=escrow,
        gateway_object_id="tr_123",
        message="Transfer reversed after release",
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import AlertType


class ReconciliationAlertQuerySet(models.QuerySet):
    def unresolved(self) -> ReconciliationAlertQuerySet:
        return self.filter(resolved_at__isnull=True)


class ReconciliationAlert(UUIDPrimaryKeyMixin, BaseModel):
    """
    A discrepancy flagged for manual review.

    Fields:
        alert_type: Kind of discrepancy
        escrow_payment: Affected escrow payment, if one could be matched
        gateway_object_id: Processor object the event referred to
        details: Event context (event id, local status, amounts)
        resolved_at/resolved_by: Set when an operator closes the alert
    """

    alert_type = models.CharField(
        max_length=40,
        choices=AlertType.choices,
        db_index=True,
    )
    escrow_payment = models.ForeignKey(
        "payments.EscrowPayment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="alerts",
    )
    gateway_object_id = models.CharField(max_length=255, blank=True, default="")
    message = models.TextField()
    details = models.JSONField(default=dict, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    resolution_notes = models.TextField(blank=True, default="")

    objects = ReconciliationAlertQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Reconciliation Alert"
        verbose_name_plural = "Reconciliation Alerts"

    def __str__(self) -> str:
        return f"ReconciliationAlert({self.alert_type}, {self.gateway_object_id})"

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    def resolve(self, user, notes: str = "") -> None:
        """
        Close the alert.

        Note: Does not save - caller must save after calling.
        """
        self.resolved_at = timezone.now()
        self.resolved_by = user
        self.resolution_notes = notes
