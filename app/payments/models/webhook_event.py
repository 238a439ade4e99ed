"""
WebhookEvent model for gateway webhook event tracking.

Stores every webhook event received from the processor for idempotent
processing and audit trails. The unique gateway_event_id constraint
makes redelivery of the same event a no-op.

Usage:
    from payments.models import WebhookEvent

    event, created = WebhookEvent.objects.get_or_create(
        gateway_event_id="evt_1234567890",
        defaults={
            "event_type": "transfer.reversed",
            "payload": payload,
        },
    )
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks gateway webhook events for idempotent processing.

    Processing Flow:
        1. Webhook arrives, signature verified
        2. Insert/get WebhookEvent by gateway_event_id
        3. If it already existed -> return 200 (duplicate)
        4. Task marks PROCESSING and routes to the registered handler
        5. Task marks PROCESSED or FAILED
        6. FAILED events are retried by the task's backoff

    Fields:
        gateway_event_id: Unique processor event ID (evt_xxx)
        event_type: Type of webhook event
        payload: Full JSON payload
        status: Processing status
        retry_count: Number of processing attempts
    """

    gateway_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Processor event ID (evt_xxx), unique for idempotency",
    )
    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Event type (e.g. 'transfer.reversed')",
    )
    payload = models.JSONField(help_text="Full webhook payload (JSON)")
    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    retry_count = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
            models.Index(fields=["event_type", "created_at"], name="webhook_type_created_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.gateway_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    def mark_processing(self) -> None:
        """
        Mark event as being processed.

        Note: Does not save - caller must save after calling.
        """
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        """
        Mark event as successfully processed.

        Note: Does not save - caller must save after calling.
        """
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        """
        Mark event as failed with error message.

        Note: Does not save - caller must save after calling.
        """
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_object(self) -> dict:
        """The event's data.object, or an empty dict for malformed payloads."""
        try:
            obj = self.payload.get("data", {}).get("object", {})
        except (AttributeError, TypeError):
            return {}
        return obj if isinstance(obj, dict) else {}

    def get_object_id(self) -> str | None:
        """Primary object ID of the event (payload.data.object.id)."""
        return self.get_object().get("id")
