"""
EscrowPayment model: funds held against a Contract until release or refund.

Usage:
    from payments.models import EscrowPayment
    from payments.state_machines import EscrowStatus

    escrow = EscrowPayment.objects.select_for_update().get(pk=escrow_id)
    escrow.begin_release()
    escrow.save()  # UPDATE ... WHERE status = 'held'

Every save after a transition is a conditional update on the status the
row was loaded with (django-fsm ConcurrentTransitionMixin). If another
writer moved the row first, save() raises ConcurrentTransition and no
row is changed.
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django_fsm import RETURN_VALUE, ConcurrentTransitionMixin, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import OPEN_ESCROW_STATES, EscrowStatus


class EscrowPaymentQuerySet(models.QuerySet):
    """Typed lookups for escrow payments."""

    def for_party(self, user) -> EscrowPaymentQuerySet:
        """Escrow payments on contracts where the user is Brand or Creator."""
        return self.filter(
            Q(contract__brand__user=user) | Q(contract__creator__user=user)
        )

    def filter_by(
        self, contract_id=None, status: str | None = None
    ) -> EscrowPaymentQuerySet:
        queryset = self
        if contract_id:
            queryset = queryset.filter(contract_id=contract_id)
        if status:
            queryset = queryset.filter(status=status)
        return queryset

    def open(self) -> EscrowPaymentQuerySet:
        return self.filter(status__in=OPEN_ESCROW_STATES)


class EscrowPayment(ConcurrentTransitionMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    Fund hold tied to a Contract and optionally one of its Milestones.

    State Flow:
        HELD -> RELEASE_PENDING -> RELEASED
        HELD -> REFUND_PENDING -> REFUNDED
        RELEASED -> RELEASE_FAILED -> RELEASE_PENDING (operator retry)

    Fields:
        contract: Owning contract (never deleted)
        milestone: Optional milestone this payment funds
        amount: Held amount in major currency units
        gateway_hold_id: Processor hold reference; null until the hold
            call succeeds
        gateway_transfer_id: Processor transfer reference, set only when
            a transfer is confirmed
        gateway_charge_id: Charge the captured hold settled under; the
            release transfer is funded from it
        hold_confirmed_at: When the payer authorized the hold. Release
            is refused until this is set
        release_attempts: Counter feeding the transfer idempotency key
    """

    contract = models.ForeignKey(
        "contracts.Contract",
        on_delete=models.PROTECT,
        related_name="escrow_payments",
    )
    milestone = models.ForeignKey(
        "contracts.Milestone",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="escrow_payments",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )
    status = FSMField(
        default=EscrowStatus.HELD,
        choices=EscrowStatus.choices,
        db_index=True,
        help_text="Current state of the escrow payment (managed by FSM)",
    )

    # Processor references
    gateway_hold_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Processor hold reference (e.g. PaymentIntent pi_xxx)",
    )
    gateway_transfer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Processor transfer reference (tr_xxx)",
    )
    gateway_refund_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Processor refund or cancellation reference",
    )
    gateway_charge_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Charge created when the hold was captured (ch_xxx)",
    )

    release_reason = models.TextField(null=True, blank=True)
    refund_reason = models.TextField(null=True, blank=True)
    release_attempts = models.PositiveSmallIntegerField(default=0)

    hold_confirmed_at = models.DateTimeField(null=True, blank=True)
    hold_captured_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    release_failed_at = models.DateTimeField(null=True, blank=True)

    objects = EscrowPaymentQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Escrow Payment"
        verbose_name_plural = "Escrow Payments"
        indexes = [
            models.Index(fields=["contract", "status"], name="escrow_contract_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="escrow_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"EscrowPayment({self.id}, {self.status}, {self.amount} {self.currency.upper()})"

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_ESCROW_STATES

    # ==========================================================================
    # Release
    # ==========================================================================

    @transition(
        field=status,
        source=EscrowStatus.HELD,
        target=EscrowStatus.RELEASE_PENDING,
    )
    def begin_release(self, reason: str | None = None):
        """Claim the row for an in-flight transfer."""
        self.release_reason = reason
        self.release_attempts += 1

    @transition(
        field=status,
        source=EscrowStatus.RELEASE_FAILED,
        target=EscrowStatus.RELEASE_PENDING,
    )
    def retry_release(self):
        """Operator re-release after the previous transfer was reversed."""
        self.gateway_transfer_id = None
        self.release_attempts += 1

    @transition(
        field=status,
        source=EscrowStatus.RELEASE_PENDING,
        target=RETURN_VALUE(EscrowStatus.HELD, EscrowStatus.RELEASE_FAILED),
    )
    def abort_release(self):
        """
        The transfer definitely did not happen.

        A first release goes back to HELD; an operator retry goes back to
        RELEASE_FAILED so it stays in the review queue.
        """
        if self.release_failed_at:
            return EscrowStatus.RELEASE_FAILED
        self.release_reason = None
        return EscrowStatus.HELD

    @transition(
        field=status,
        source=EscrowStatus.RELEASE_PENDING,
        target=EscrowStatus.RELEASED,
    )
    def complete_release(self, transfer_id: str):
        self.gateway_transfer_id = transfer_id
        self.released_at = timezone.now()

    @transition(
        field=status,
        source=EscrowStatus.RELEASED,
        target=EscrowStatus.RELEASE_FAILED,
    )
    def mark_release_failed(self):
        """Processor reversed or failed a transfer we recorded as released."""
        self.release_failed_at = timezone.now()

    # ==========================================================================
    # Refund
    # ==========================================================================

    @transition(
        field=status,
        source=EscrowStatus.HELD,
        target=EscrowStatus.REFUND_PENDING,
    )
    def begin_refund(self, reason: str | None = None):
        self.refund_reason = reason

    @transition(
        field=status,
        source=EscrowStatus.REFUND_PENDING,
        target=EscrowStatus.HELD,
    )
    def abort_refund(self):
        pass

    @transition(
        field=status,
        source=EscrowStatus.REFUND_PENDING,
        target=EscrowStatus.REFUNDED,
    )
    def complete_refund(self, refund_id: str | None = None):
        self.gateway_refund_id = refund_id
        self.refunded_at = timezone.now()
