"""
Escrow service: holding, releasing and refunding contract funds.

EscrowService is the only writer of EscrowPayment rows. Every operation
that depends on the processor follows the same three phases:

    1. Claim: inside a transaction, lock the row, check the caller and the
       HELD precondition, and move it to a *_PENDING status. The save is a
       conditional UPDATE on the observed status, so two concurrent callers
       cannot both claim the same row.
    2. Call the gateway outside any transaction, with an idempotency key
       derived from the row.
    3. Record: inside a transaction, move the row to its final status and
       append ledger entries.

A definite gateway failure returns the row to where it was. An ambiguous
one (timeout, 5xx) leaves it pending; the webhook reconciler finishes it
from the processor's event.

Hold creation is the one deliberate exception: the HELD row is written
first, and deleted again if the gateway refuses the hold.

Release only starts once the payer has authorized the hold. It captures
the hold, then sends a transfer funded by the captured charge.

Usage:
    from payments.services import EscrowService

    service = EscrowService(gateway=get_payment_gateway())
    result = service.create_escrow_payment(brand_user, contract.id, Decimal("500"))
    service.release_escrow_payment(brand_user, result.escrow_payment.id, "Delivered")
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django_fsm import ConcurrentTransition

from contracts.models import Contract, ContractStatus, MilestoneStatus
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    ValidationError,
)
from core.services import BaseService

from payments.adapters import IdempotencyKeyGenerator, get_payment_gateway
from payments.exceptions import GatewayError, PayeeNotConfiguredError
from payments.models import (
    CreatorEarning,
    EscrowPayment,
    PayeeAccount,
    ReconciliationAlert,
)
from payments.services.fees import split_amount
from payments.state_machines import AlertType, EarningType, EscrowStatus

if TYPE_CHECKING:
    from authentication.models import User
    from payments.adapters import PaymentGateway
    from payments.models.escrow_payment import EscrowPaymentQuerySet


@dataclass
class EscrowCreationResult:
    """
    Result of opening an escrow hold.

    Attributes:
        escrow_payment: The HELD row, with gateway_hold_id recorded
        client_secret: Token the brand's client uses to authorize the hold
    """

    escrow_payment: EscrowPayment
    client_secret: str | None = None


def escrow_fee_percent() -> Decimal:
    return Decimal(str(getattr(settings, "ESCROW_PLATFORM_FEE_PERCENT", 0)))


class EscrowService(BaseService):
    """
    Escrow payment lifecycle.

    The gateway is injected; when omitted it is built from settings on
    first use, so reconciler paths that never call the processor do not
    construct one.
    """

    def __init__(self, gateway: PaymentGateway | None = None):
        self._gateway = gateway

    @property
    def gateway(self) -> PaymentGateway:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    # =========================================================================
    # Lookups and guards
    # =========================================================================

    @classmethod
    def _load(cls, escrow_id: uuid.UUID | str, *, lock: bool = False) -> EscrowPayment:
        queryset = EscrowPayment.objects.select_related(
            "contract__brand",
            "contract__creator",
            "milestone",
        )
        if lock:
            queryset = queryset.select_for_update(of=("self",))
        return cls.get_or_not_found(queryset, "Escrow payment", pk=escrow_id)

    @staticmethod
    def _require_brand_party(escrow: EscrowPayment, user: User) -> None:
        if not escrow.contract.is_brand_party(user):
            raise AuthorizationError(
                "Only the brand on this contract can manage its escrow payments",
                details={"escrow_payment_id": str(escrow.pk)},
            )

    @staticmethod
    def _require_status(escrow: EscrowPayment, status: str, action: str) -> None:
        if escrow.status != status:
            raise InvalidStateError(
                f"Cannot {action} an escrow payment in {escrow.status} status",
                details={
                    "escrow_payment_id": str(escrow.pk),
                    "current_status": escrow.status,
                    "action": action,
                },
            )

    @staticmethod
    def _payee_account_for(escrow: EscrowPayment) -> PayeeAccount:
        account = PayeeAccount.objects.filter(creator_id=escrow.contract.creator_id).first()
        if account is None or not account.is_ready_for_payouts:
            raise PayeeNotConfiguredError(
                "Creator has not set up a payee account able to receive payouts",
                details={
                    "creator_id": str(escrow.contract.creator_id),
                    "escrow_payment_id": str(escrow.pk),
                },
            )
        return account

    @staticmethod
    def _save_transition(escrow: EscrowPayment) -> None:
        """Persist a transition; lose the race cleanly if another writer won."""
        try:
            escrow.save()
        except ConcurrentTransition:
            raise ConflictError(
                "Escrow payment was modified by another request",
                error_code="CONCURRENT_MODIFICATION",
                details={"escrow_payment_id": str(escrow.pk)},
            )

    @staticmethod
    def _metadata(escrow: EscrowPayment) -> dict[str, str]:
        contract = escrow.contract
        metadata = {
            "escrow_payment_id": str(escrow.pk),
            "contract_id": str(contract.pk),
            "brand_id": str(contract.brand_id),
            "creator_id": str(contract.creator_id),
        }
        if escrow.milestone_id:
            metadata["milestone_id"] = str(escrow.milestone_id)
        return metadata

    # =========================================================================
    # Reads
    # =========================================================================

    @staticmethod
    def list_escrow_payments(
        user: User,
        contract_id: uuid.UUID | str | None = None,
        status: str | None = None,
    ) -> EscrowPaymentQuerySet:
        """Escrow payments on contracts the user is a party to."""
        return (
            EscrowPayment.objects.for_party(user)
            .filter_by(contract_id=contract_id, status=status)
            .select_related("contract", "milestone")
            .order_by("-created_at")
        )

    @classmethod
    def get_escrow_payment(cls, user: User, escrow_id: uuid.UUID | str) -> EscrowPayment:
        escrow = cls._load(escrow_id)
        if not escrow.contract.is_party(user):
            raise AuthorizationError(
                "You are not a party to this contract",
                details={"escrow_payment_id": str(escrow.pk)},
            )
        return escrow

    # =========================================================================
    # Create
    # =========================================================================

    def create_escrow_payment(
        self,
        brand_user: User,
        contract_id: uuid.UUID | str,
        amount: Decimal,
        milestone_id: uuid.UUID | str | None = None,
    ) -> EscrowCreationResult:
        """
        Open a hold for an active contract.

        Raises:
            NotFoundError: Contract or milestone does not exist
            AuthorizationError: Caller is not the contract's brand
            InvalidStateError: Contract is not ACTIVE, or milestone already paid
            ValidationError: Amount is not positive
            GatewayError: Processor refused the hold (row removed)
        """
        logger = self.get_logger()
        amount = Decimal(amount)
        if amount <= 0:
            raise ValidationError(
                "Escrow amount must be greater than zero",
                details={"amount": str(amount)},
            )

        contract = self.get_or_not_found(
            Contract.objects.select_related("brand", "creator"),
            "Contract",
            pk=contract_id,
        )
        if not contract.is_brand_party(brand_user):
            raise AuthorizationError(
                "Only the brand on this contract can open escrow payments",
                details={"contract_id": str(contract.pk)},
            )
        if contract.status != ContractStatus.ACTIVE:
            raise InvalidStateError(
                "Escrow can only be opened on an active contract",
                details={"contract_id": str(contract.pk), "current_status": contract.status},
            )

        milestone = None
        if milestone_id:
            milestone = self.get_or_not_found(
                contract.milestones.all(), "Milestone", pk=milestone_id
            )
            if milestone.status == MilestoneStatus.PAID:
                raise InvalidStateError(
                    "Milestone has already been paid",
                    details={"milestone_id": str(milestone.pk)},
                )

        # Local row first; removed below if the processor refuses the hold
        escrow = EscrowPayment.objects.create(
            contract=contract,
            milestone=milestone,
            amount=amount,
            currency=getattr(settings, "PAYMENT_CURRENCY", "usd"),
        )
        log_context = {
            "escrow_payment_id": str(escrow.pk),
            "contract_id": str(contract.pk),
            "amount": str(amount),
        }

        try:
            hold = self.gateway.create_hold(
                amount=amount,
                currency=escrow.currency,
                metadata=self._metadata(escrow),
                idempotency_key=IdempotencyKeyGenerator.generate("create_hold", escrow.pk),
            )
        except GatewayError as e:
            EscrowPayment.objects.filter(pk=escrow.pk).delete()
            logger.warning(
                "Hold creation failed, escrow payment removed",
                extra={
                    **log_context,
                    "error_code": e.error_code,
                    "ambiguous": e.is_ambiguous,
                },
            )
            raise

        escrow.gateway_hold_id = hold.hold_id
        escrow.save(update_fields=["gateway_hold_id", "updated_at"])

        logger.info(
            "Escrow hold created",
            extra={**log_context, "gateway_hold_id": hold.hold_id},
        )
        return EscrowCreationResult(escrow_payment=escrow, client_secret=hold.client_secret)

    # =========================================================================
    # Release
    # =========================================================================

    def release_escrow_payment(
        self,
        brand_user: User,
        escrow_id: uuid.UUID | str,
        release_reason: str | None = None,
    ) -> EscrowPayment:
        """
        Transfer held funds to the creator.

        Raises:
            NotFoundError: Escrow payment does not exist
            AuthorizationError: Caller is not the contract's brand
            InvalidStateError: Escrow payment is not HELD, or the hold has
                not been authorized yet (HOLD_NOT_CONFIRMED)
            PayeeNotConfiguredError: Creator cannot receive transfers
            GatewayError: Capture or transfer failed. The row is HELD again
                unless the transfer outcome is ambiguous, in which case it
                stays RELEASE_PENDING
        """
        with transaction.atomic():
            escrow = self._load(escrow_id, lock=True)
            self._require_brand_party(escrow, brand_user)
            self._require_status(escrow, EscrowStatus.HELD, "release")
            if escrow.hold_confirmed_at is None:
                raise InvalidStateError(
                    "The brand has not authorized the hold yet",
                    error_code="HOLD_NOT_CONFIRMED",
                    details={"escrow_payment_id": str(escrow.pk), "action": "release"},
                )
            payee = self._payee_account_for(escrow)

            escrow.begin_release(release_reason)
            self._save_transition(escrow)

        return self._execute_release(escrow, payee)

    def retry_release(self, admin_user: User, escrow_id: uuid.UUID | str) -> EscrowPayment:
        """
        Re-send a transfer the processor reversed or failed.

        Raises:
            AuthorizationError: Caller is not platform staff
            InvalidStateError: Escrow payment is not RELEASE_FAILED
            PayeeNotConfiguredError: Creator cannot receive transfers
        """
        if not getattr(admin_user, "is_platform_admin", False):
            raise AuthorizationError("Only platform staff can retry a release")

        with transaction.atomic():
            escrow = self._load(escrow_id, lock=True)
            self._require_status(escrow, EscrowStatus.RELEASE_FAILED, "retry release of")
            payee = self._payee_account_for(escrow)

            escrow.retry_release()
            self._save_transition(escrow)

        self.get_logger().info(
            "Retrying escrow release",
            extra={
                "escrow_payment_id": str(escrow.pk),
                "attempt": escrow.release_attempts,
                "admin_user_id": admin_user.pk,
            },
        )
        return self._execute_release(escrow, payee)

    def _execute_release(self, escrow: EscrowPayment, payee: PayeeAccount) -> EscrowPayment:
        logger = self.get_logger()
        split = split_amount(escrow.amount, escrow_fee_percent())
        log_context = {
            "escrow_payment_id": str(escrow.pk),
            "contract_id": str(escrow.contract_id),
            "amount": str(split.creator_amount),
            "attempt": escrow.release_attempts,
        }

        if escrow.hold_captured_at is None:
            escrow = self._capture_hold(escrow, log_context)

        # Failure events carry the attempt so a late event for an earlier
        # transfer cannot abort this one.
        metadata = {**self._metadata(escrow), "release_attempt": str(escrow.release_attempts)}

        try:
            result = self.gateway.transfer(
                amount=split.creator_amount,
                currency=escrow.currency,
                payee_account_id=payee.gateway_account_id,
                metadata=metadata,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    "transfer", escrow.pk, escrow.release_attempts
                ),
                source_transaction=escrow.gateway_charge_id,
            )
        except GatewayError as e:
            if e.is_ambiguous:
                logger.warning(
                    "Transfer outcome unknown, escrow payment left pending",
                    extra={**log_context, "error_code": e.error_code},
                )
                raise

            escrow = self._abort_pending_release(escrow.pk)
            logger.warning(
                "Transfer failed, escrow payment restored",
                extra={**log_context, "error_code": e.error_code, "status": escrow.status},
            )
            raise

        return self.finalize_release(escrow.pk, result.transfer_id)

    def _capture_hold(self, escrow: EscrowPayment, log_context: dict) -> EscrowPayment:
        """
        Capture the authorized hold so the transfer can be funded from it.

        Nothing has reached the creator yet, so any capture failure, even
        an ambiguous one, puts the row back. The capture key does not
        change between attempts and the gateway treats an already
        captured hold as a success.
        """
        try:
            capture = self.gateway.capture_hold(
                hold_id=escrow.gateway_hold_id,
                idempotency_key=IdempotencyKeyGenerator.generate("capture_hold", escrow.pk),
            )
        except GatewayError as e:
            escrow = self._abort_pending_release(escrow.pk)
            self.get_logger().warning(
                "Hold capture failed, escrow payment restored",
                extra={**log_context, "error_code": e.error_code, "status": escrow.status},
            )
            raise

        with transaction.atomic():
            escrow = self._load(escrow.pk, lock=True)
            escrow.gateway_charge_id = capture.charge_id
            escrow.hold_captured_at = timezone.now()
            escrow.save(update_fields=["gateway_charge_id", "hold_captured_at", "updated_at"])
        return escrow

    def _abort_pending_release(self, escrow_id: uuid.UUID | str) -> EscrowPayment:
        with transaction.atomic():
            escrow = self._load(escrow_id, lock=True)
            if escrow.status == EscrowStatus.RELEASE_PENDING:
                escrow.abort_release()
                self._save_transition(escrow)
        return escrow

    @classmethod
    def finalize_release(cls, escrow_id: uuid.UUID | str, transfer_id: str) -> EscrowPayment:
        """
        Record a confirmed transfer.

        Called right after a successful transfer call, and by the
        reconciler when a transfer.created event arrives for a release
        that timed out. Recording the same transfer twice is a no-op.

        Raises:
            InvalidStateError: Row is neither RELEASE_PENDING nor already
                released with this transfer
        """
        with transaction.atomic():
            escrow = cls._load(escrow_id, lock=True)
            if (
                escrow.status == EscrowStatus.RELEASED
                and escrow.gateway_transfer_id == transfer_id
            ):
                return escrow
            cls._require_status(escrow, EscrowStatus.RELEASE_PENDING, "finalize release of")

            escrow.complete_release(transfer_id)
            cls._save_transition(escrow)

            contract = escrow.contract
            split = split_amount(escrow.amount, escrow_fee_percent())
            CreatorEarning.objects.create(
                creator_id=contract.creator_id,
                contract=contract,
                escrow_payment=escrow,
                amount=split.creator_amount,
                earning_type=EarningType.COMMISSION,
                description=f"Escrow release: {contract.title}",
            )

            milestone = escrow.milestone
            if milestone is not None and milestone.status == MilestoneStatus.APPROVED:
                milestone.mark_paid()
                milestone.save()

        cls.get_logger().info(
            "Escrow payment released",
            extra={
                "escrow_payment_id": str(escrow.pk),
                "contract_id": str(escrow.contract_id),
                "gateway_transfer_id": transfer_id,
                "creator_amount": str(split.creator_amount),
            },
        )
        return escrow

    # =========================================================================
    # Refund
    # =========================================================================

    def refund_escrow_payment(
        self,
        brand_user: User,
        escrow_id: uuid.UUID | str,
        refund_reason: str | None = None,
    ) -> EscrowPayment:
        """
        Give held funds back to the brand.

        The processor hold is canceled (or refunded if it was captured)
        before the row is marked REFUNDED.

        Raises:
            NotFoundError: Escrow payment does not exist
            AuthorizationError: Caller is not the contract's brand
            InvalidStateError: Escrow payment is not HELD
            GatewayError: Cancel failed; row is HELD again unless the
                outcome is ambiguous
        """
        logger = self.get_logger()

        with transaction.atomic():
            escrow = self._load(escrow_id, lock=True)
            self._require_brand_party(escrow, brand_user)
            self._require_status(escrow, EscrowStatus.HELD, "refund")

            escrow.begin_refund(refund_reason)
            self._save_transition(escrow)

        log_context = {
            "escrow_payment_id": str(escrow.pk),
            "gateway_hold_id": escrow.gateway_hold_id,
        }

        if not escrow.gateway_hold_id:
            # No processor hold was ever attached; nothing to give back
            return self.finalize_refund(escrow.pk)

        try:
            result = self.gateway.release_hold(
                hold_id=escrow.gateway_hold_id,
                idempotency_key=IdempotencyKeyGenerator.generate("release_hold", escrow.pk),
            )
        except GatewayError as e:
            if e.is_ambiguous:
                logger.warning(
                    "Hold release outcome unknown, escrow payment left pending",
                    extra={**log_context, "error_code": e.error_code},
                )
                raise

            with transaction.atomic():
                escrow = self._load(escrow.pk, lock=True)
                if escrow.status == EscrowStatus.REFUND_PENDING:
                    escrow.abort_refund()
                    self._save_transition(escrow)
            logger.warning(
                "Hold release failed, escrow payment restored",
                extra={**log_context, "error_code": e.error_code},
            )
            raise

        return self.finalize_refund(escrow.pk, result.refund_id)

    @classmethod
    def finalize_refund(
        cls,
        escrow_id: uuid.UUID | str,
        refund_id: str | None = None,
    ) -> EscrowPayment:
        """Record a confirmed hold release. Repeating it is a no-op."""
        with transaction.atomic():
            escrow = cls._load(escrow_id, lock=True)
            if escrow.status == EscrowStatus.REFUNDED:
                return escrow
            cls._require_status(escrow, EscrowStatus.REFUND_PENDING, "finalize refund of")

            escrow.complete_refund(refund_id)
            cls._save_transition(escrow)

        cls.get_logger().info(
            "Escrow payment refunded",
            extra={
                "escrow_payment_id": str(escrow.pk),
                "contract_id": str(escrow.contract_id),
                "gateway_refund_id": refund_id,
            },
        )
        return escrow

    # =========================================================================
    # Reconciler entry points
    # =========================================================================

    @classmethod
    def record_transfer_failure(
        cls,
        escrow_id: uuid.UUID | str,
        transfer_id: str | None,
        event_id: str,
        event_type: str,
        release_attempt: int | None = None,
    ) -> EscrowPayment:
        """
        Apply a processor report that a transfer did not reach the creator.

        RELEASED rows move to RELEASE_FAILED with a compensating REVERSAL
        earning; RELEASE_PENDING rows go back to where the release started.
        Both cases raise a ReconciliationAlert for operators.

        A pending row is only restored when release_attempt (read from the
        transfer's metadata) names its current attempt. During an operator
        retry the previous transfer's late events must not abort the new
        transfer.
        """
        logger = cls.get_logger()

        with transaction.atomic():
            escrow = cls._load(escrow_id, lock=True)
            details = {
                "event_id": event_id,
                "event_type": event_type,
                "status_before": escrow.status,
                "amount": str(escrow.amount),
            }

            if escrow.status == EscrowStatus.RELEASED:
                if transfer_id and escrow.gateway_transfer_id != transfer_id:
                    logger.warning(
                        "Transfer failure for a superseded transfer ignored",
                        extra={"escrow_payment_id": str(escrow.pk), "transfer_id": transfer_id},
                    )
                    return escrow

                escrow.mark_release_failed()
                cls._save_transition(escrow)

                commission = (
                    escrow.earnings.filter(earning_type=EarningType.COMMISSION)
                    .order_by("-created_at")
                    .first()
                )
                if commission is not None:
                    CreatorEarning.objects.create(
                        creator_id=commission.creator_id,
                        contract_id=commission.contract_id,
                        escrow_payment=escrow,
                        amount=-commission.amount,
                        earning_type=EarningType.REVERSAL,
                        description=f"Transfer {transfer_id} reversed by processor",
                    )

                ReconciliationAlert.objects.create(
                    alert_type=AlertType.TRANSFER_REVERSED,
                    escrow_payment=escrow,
                    gateway_object_id=transfer_id or "",
                    message="Transfer failed or was reversed after the escrow payment was released",
                    details=details,
                )
                logger.error(
                    "Released escrow payment's transfer failed at processor",
                    extra={
                        "escrow_payment_id": str(escrow.pk),
                        "transfer_id": transfer_id,
                        "event_id": event_id,
                    },
                )

            elif escrow.status == EscrowStatus.RELEASE_PENDING:
                if release_attempt != escrow.release_attempts:
                    logger.warning(
                        "Transfer failure for an earlier release attempt ignored",
                        extra={
                            "escrow_payment_id": str(escrow.pk),
                            "transfer_id": transfer_id,
                            "event_attempt": release_attempt,
                            "current_attempt": escrow.release_attempts,
                        },
                    )
                    return escrow

                escrow.abort_release()
                cls._save_transition(escrow)

                ReconciliationAlert.objects.create(
                    alert_type=AlertType.PENDING_TRANSFER_FAILED,
                    escrow_payment=escrow,
                    gateway_object_id=transfer_id or "",
                    message="Pending transfer failed at the processor; escrow payment restored",
                    details=details,
                )
                logger.warning(
                    "Pending transfer failed, escrow payment restored",
                    extra={
                        "escrow_payment_id": str(escrow.pk),
                        "status": escrow.status,
                        "event_id": event_id,
                    },
                )

            else:
                logger.info(
                    "Transfer failure needs no change",
                    extra={"escrow_payment_id": str(escrow.pk), "status": escrow.status},
                )

        return escrow
