"""
Webhook endpoint for the payment processor.

The view:
1. Verifies the webhook signature
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Queues the event for async processing
4. Returns immediately

Usage:
    # In urls.py
    from payments.webhooks.views import gateway_webhook

    urlpatterns = [
        path("webhooks/gateway/", gateway_webhook, name="gateway-webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import get_payment_gateway
from payments.exceptions import SignatureError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def gateway_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive and queue processor webhook events.

    Unverifiable requests are rejected here and never reach the
    reconciler's handlers.

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new or duplicate)
        - 400: Missing/invalid signature or payload
    """
    signature = request.headers.get("Stripe-Signature", "")

    try:
        event = get_payment_gateway().verify_webhook_signature(request.body, signature)
    except SignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": e.message},
        )
        return HttpResponse("Invalid signature", status=400)

    logger.info(
        f"Received gateway webhook: {event.type}",
        extra={"gateway_event_id": event.id, "event_type": event.type},
    )

    webhook_event, created = WebhookEvent.objects.get_or_create(
        gateway_event_id=event.id,
        defaults={
            "event_type": event.type,
            "payload": event.payload,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed, returning success",
            extra={"gateway_event_id": event.id},
        )
        return HttpResponse("Already processed", status=200)

    from payments.tasks import process_webhook_event

    try:
        process_webhook_event.delay(str(webhook_event.id))
    except Exception:
        # The stored event is picked up by retry_pending_webhooks
        logger.error(
            "Failed to queue webhook",
            extra={"gateway_event_id": event.id},
            exc_info=True,
        )

    return HttpResponse("Accepted", status=200)
