"""
Webhook reconciler: applies processor events to local escrow state.

Each handler receives a stored WebhookEvent and returns a ServiceResult.
Handlers are idempotent: the same event applied twice leaves the same
state. Discrepancies that cannot be repaired automatically are written
as ReconciliationAlert rows, never silently dropped.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django.utils import timezone

from core.exceptions import InvalidStateError
from core.services import ServiceResult

from payments.adapters.stripe_adapter import account_status_from_payload
from payments.models import EscrowPayment, ReconciliationAlert, WebhookEvent
from payments.services import EscrowService, PayeeService
from payments.state_machines import AlertType, EscrowStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(*event_types: str) -> Callable:
    """
    Decorator to register a webhook event handler for one or more types.

    Usage:
        @register_handler("transfer.reversed", "transfer.failed")
        def handle_transfer_failure(webhook_event: WebhookEvent) -> ServiceResult:
            ...
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        for event_type in event_types:
            WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to its handler.

    Unregistered event types are acknowledged without action.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"gateway_event_id": webhook_event.gateway_event_id},
        )
        return ServiceResult.ok(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"gateway_event_id": webhook_event.gateway_event_id},
    )
    return handler(webhook_event)


# =============================================================================
# Lookups
# =============================================================================


def _escrow_from_metadata(obj: dict) -> EscrowPayment | None:
    escrow_id = (obj.get("metadata") or {}).get("escrow_payment_id")
    if not escrow_id:
        return None
    return EscrowPayment.objects.filter(pk=escrow_id).first()


def _find_escrow_for_hold(hold_id: str, obj: dict) -> EscrowPayment | None:
    escrow = EscrowPayment.objects.filter(gateway_hold_id=hold_id).first()
    return escrow or _escrow_from_metadata(obj)


def _find_escrow_for_transfer(transfer_id: str, obj: dict) -> EscrowPayment | None:
    escrow = EscrowPayment.objects.filter(gateway_transfer_id=transfer_id).first()
    return escrow or _escrow_from_metadata(obj)


def _release_attempt(obj: dict) -> int | None:
    """Release attempt a transfer was sent for, from its metadata."""
    value = (obj.get("metadata") or {}).get("release_attempt")
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _missing_object_id(webhook_event: WebhookEvent) -> ServiceResult:
    logger.error(
        f"{webhook_event.event_type}: could not extract object id",
        extra={"gateway_event_id": webhook_event.gateway_event_id},
    )
    return ServiceResult.failure(
        "Could not extract object id from webhook",
        error_code="INVALID_WEBHOOK_PAYLOAD",
    )


# =============================================================================
# Hold Handlers
# =============================================================================


@register_handler("payment_intent.succeeded", "payment_intent.amount_capturable_updated")
def handle_hold_confirmed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    The payer authorized the hold.

    A hold we already recorded is stamped confirmed once. A hold whose id
    never reached its escrow row (the write after the gateway call failed)
    is attached via its metadata. A hold with no local row at all is
    flagged for review. payment_intent.succeeded also means the hold was
    captured, which is recorded if the release did not get to record it.
    """
    hold_id = webhook_event.get_object_id()
    if not hold_id:
        return _missing_object_id(webhook_event)

    obj = webhook_event.get_object()
    escrow = _find_escrow_for_hold(hold_id, obj)

    if escrow is None:
        ReconciliationAlert.objects.create(
            alert_type=AlertType.UNKNOWN_HOLD,
            gateway_object_id=hold_id,
            message="Processor reports a hold with no local escrow payment",
            details={
                "event_id": webhook_event.gateway_event_id,
                "metadata": obj.get("metadata") or {},
            },
        )
        logger.error(
            "Hold confirmed for unknown escrow payment",
            extra={"hold_id": hold_id, "gateway_event_id": webhook_event.gateway_event_id},
        )
        return ServiceResult.ok(None)

    update_fields = []
    if escrow.gateway_hold_id is None:
        logger.warning(
            "Escrow payment was missing its hold reference, attaching from event",
            extra={"escrow_payment_id": str(escrow.pk), "hold_id": hold_id},
        )
        escrow.gateway_hold_id = hold_id
        update_fields.append("gateway_hold_id")
    elif escrow.gateway_hold_id != hold_id:
        logger.error(
            "Hold id in event does not match escrow payment",
            extra={
                "escrow_payment_id": str(escrow.pk),
                "hold_id": hold_id,
                "recorded_hold_id": escrow.gateway_hold_id,
            },
        )
        return ServiceResult.ok(escrow)

    if escrow.hold_confirmed_at is None:
        escrow.hold_confirmed_at = timezone.now()
        update_fields.append("hold_confirmed_at")

    if webhook_event.event_type == "payment_intent.succeeded" and escrow.hold_captured_at is None:
        escrow.gateway_charge_id = obj.get("latest_charge")
        escrow.hold_captured_at = timezone.now()
        update_fields += ["gateway_charge_id", "hold_captured_at"]

    if update_fields:
        escrow.save(update_fields=[*update_fields, "updated_at"])
    return ServiceResult.ok(escrow)


@register_handler("payment_intent.payment_failed")
def handle_hold_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """The payer's authorization failed; the brand may retry from the client."""
    hold_id = webhook_event.get_object_id()
    if not hold_id:
        return _missing_object_id(webhook_event)

    obj = webhook_event.get_object()
    error = obj.get("last_payment_error") or {}
    escrow = _find_escrow_for_hold(hold_id, obj)

    logger.warning(
        "Hold authorization failed",
        extra={
            "hold_id": hold_id,
            "escrow_payment_id": str(escrow.pk) if escrow else None,
            "failure_code": error.get("code"),
            "gateway_event_id": webhook_event.gateway_event_id,
        },
    )
    return ServiceResult.ok(escrow)


@register_handler("payment_intent.canceled")
def handle_hold_canceled(webhook_event: WebhookEvent) -> ServiceResult:
    """Finish a refund whose cancel call timed out; flag unexpected cancels."""
    hold_id = webhook_event.get_object_id()
    if not hold_id:
        return _missing_object_id(webhook_event)

    escrow = _find_escrow_for_hold(hold_id, webhook_event.get_object())
    if escrow is None:
        logger.info("Canceled hold has no escrow payment", extra={"hold_id": hold_id})
        return ServiceResult.ok(None)

    if escrow.status == EscrowStatus.REFUND_PENDING:
        return ServiceResult.ok(EscrowService.finalize_refund(escrow.pk))

    if escrow.status == EscrowStatus.HELD:
        ReconciliationAlert.objects.create(
            alert_type=AlertType.HOLD_CANCELED,
            escrow_payment=escrow,
            gateway_object_id=hold_id,
            message="Hold was canceled at the processor while still held locally",
            details={"event_id": webhook_event.gateway_event_id},
        )
        logger.error(
            "Hold canceled at processor while escrow payment is held",
            extra={"escrow_payment_id": str(escrow.pk), "hold_id": hold_id},
        )
    return ServiceResult.ok(escrow)


@register_handler("charge.refunded")
def handle_charge_refunded(webhook_event: WebhookEvent) -> ServiceResult:
    """Finish a refund of a captured hold whose refund call timed out."""
    obj = webhook_event.get_object()
    hold_id = obj.get("payment_intent")
    if not hold_id:
        return _missing_object_id(webhook_event)

    escrow = _find_escrow_for_hold(hold_id, obj)
    if escrow is None or escrow.status != EscrowStatus.REFUND_PENDING:
        return ServiceResult.ok(escrow)

    refunds = (obj.get("refunds") or {}).get("data") or []
    refund_id = refunds[0].get("id") if refunds else None
    return ServiceResult.ok(EscrowService.finalize_refund(escrow.pk, refund_id))


# =============================================================================
# Transfer Handlers
# =============================================================================


@register_handler("transfer.created")
def handle_transfer_created(webhook_event: WebhookEvent) -> ServiceResult:
    """Finish a release whose transfer call timed out but went through."""
    transfer_id = webhook_event.get_object_id()
    if not transfer_id:
        return _missing_object_id(webhook_event)

    obj = webhook_event.get_object()
    escrow = _find_escrow_for_transfer(transfer_id, obj)
    if escrow is None:
        logger.info(
            "Transfer has no escrow payment",
            extra={"transfer_id": transfer_id},
        )
        return ServiceResult.ok(None)

    if escrow.status != EscrowStatus.RELEASE_PENDING:
        return ServiceResult.ok(escrow)

    if _release_attempt(obj) != escrow.release_attempts:
        logger.warning(
            "Transfer created for an earlier release attempt, not finalizing",
            extra={"escrow_payment_id": str(escrow.pk), "transfer_id": transfer_id},
        )
        return ServiceResult.ok(escrow)

    try:
        escrow = EscrowService.finalize_release(escrow.pk, transfer_id)
    except InvalidStateError as e:
        return ServiceResult.failure(e.message, error_code=e.error_code)
    return ServiceResult.ok(escrow)


@register_handler("transfer.reversed", "transfer.failed")
def handle_transfer_failure(webhook_event: WebhookEvent) -> ServiceResult:
    """
    A transfer did not reach, or was taken back from, the creator.

    See EscrowService.record_transfer_failure for the state changes.
    """
    transfer_id = webhook_event.get_object_id()
    if not transfer_id:
        return _missing_object_id(webhook_event)

    obj = webhook_event.get_object()
    escrow = _find_escrow_for_transfer(transfer_id, obj)

    if escrow is None:
        ReconciliationAlert.objects.create(
            alert_type=AlertType.UNKNOWN_TRANSFER,
            gateway_object_id=transfer_id,
            message=f"{webhook_event.event_type} for a transfer with no escrow payment",
            details={
                "event_id": webhook_event.gateway_event_id,
                "metadata": obj.get("metadata") or {},
            },
        )
        logger.error(
            "Transfer failure for unknown escrow payment",
            extra={"transfer_id": transfer_id},
        )
        return ServiceResult.ok(None)

    escrow = EscrowService.record_transfer_failure(
        escrow.pk,
        transfer_id=transfer_id,
        event_id=webhook_event.gateway_event_id,
        event_type=webhook_event.event_type,
        release_attempt=_release_attempt(obj),
    )
    return ServiceResult.ok(escrow)


# =============================================================================
# Account Handler
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """Refresh cached payee account capability flags."""
    account_id = webhook_event.get_object_id()
    if not account_id:
        return _missing_object_id(webhook_event)

    account = PayeeService.apply_account_status(
        account_status_from_payload(webhook_event.get_object())
    )
    if account is None:
        logger.info(
            "account.updated for unknown payee account",
            extra={"account_id": account_id},
        )
    return ServiceResult.ok(account)
