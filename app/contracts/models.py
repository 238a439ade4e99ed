"""
Contract and Milestone models.

A Contract is the bilateral agreement between a Brand and a Creator that
escrow payments are held against. Milestones split the contract into
payable sub-deliverables. Neither is ever hard-deleted.

State Machines:

Contract:
    DRAFT -> PENDING_SIGNATURE -> ACTIVE -> COMPLETED
    DRAFT -> ACTIVE (when a single signature activates)
    DRAFT/PENDING_SIGNATURE/ACTIVE -> CANCELLED

Milestone (forward only, one step at a time):
    PENDING -> IN_PROGRESS -> SUBMITTED -> APPROVED -> PAID

Usage:
    from contracts.models import Contract, ContractStatus

    contract.add_signature(user, "data:image/png;base64,...")
    contract.activate()
    contract.save()
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import models
from django.db.models import Q, Sum
from django.utils import timezone
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

if TYPE_CHECKING:
    from authentication.models import User


class ContractStatus(models.TextChoices):
    """
    States for the Contract lifecycle.

    Terminal states: COMPLETED, CANCELLED
    """

    DRAFT = "draft", "Draft"
    PENDING_SIGNATURE = "pending_signature", "Pending Signature"
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class MilestoneStatus(models.TextChoices):
    """
    States for the Milestone lifecycle.

    Order matters: each status may only advance to the next one.
    """

    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    SUBMITTED = "submitted", "Submitted"
    APPROVED = "approved", "Approved"
    PAID = "paid", "Paid"


SIGNABLE_STATUSES = (ContractStatus.DRAFT, ContractStatus.PENDING_SIGNATURE)


class ContractQuerySet(models.QuerySet):
    """Typed lookups for contracts."""

    def for_party(self, user: User) -> ContractQuerySet:
        """Contracts where the user owns the Brand or the Creator side."""
        return self.filter(Q(brand__user=user) | Q(creator__user=user))

    def filter_by(self, status: str | None = None) -> ContractQuerySet:
        queryset = self
        if status:
            queryset = queryset.filter(status=status)
        return queryset


class Contract(UUIDPrimaryKeyMixin, BaseModel):
    """
    Bilateral agreement between a Brand and a Creator.

    Fields:
        brief: Brief the accepted application was made against
        brand: Paying party (immutable after creation)
        creator: Delivering party (immutable after creation)
        terms: Free-form terms; terms["signatures"] maps user id to
            {"signature": blob, "signed_at": iso timestamp}
        deliverables: Structured deliverable list
        total_amount: Contract value, strictly positive
        status: Lifecycle status (FSM)
    """

    brief = models.ForeignKey(
        "marketplace.Brief",
        on_delete=models.PROTECT,
        related_name="contracts",
    )
    brand = models.ForeignKey(
        "marketplace.Brand",
        on_delete=models.PROTECT,
        related_name="contracts",
    )
    creator = models.ForeignKey(
        "marketplace.Creator",
        on_delete=models.PROTECT,
        related_name="contracts",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    terms = models.JSONField(default=dict, blank=True)
    deliverables = models.JSONField(default=list, blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    status = FSMField(
        default=ContractStatus.DRAFT,
        choices=ContractStatus.choices,
        db_index=True,
    )
    activated_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = ContractQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["brand", "status"], name="contract_brand_status_idx"),
            models.Index(fields=["creator", "status"], name="contract_creator_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(total_amount__gt=0),
                name="contract_total_amount_positive",
            ),
        ]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_parties = (
            instance.__dict__.get("brand_id"),
            instance.__dict__.get("creator_id"),
        )
        return instance

    def save(self, *args, **kwargs):
        loaded = getattr(self, "_loaded_parties", None)
        if loaded is not None and not self._state.adding:
            if loaded != (self.brand_id, self.creator_id):
                raise ValueError("Contract brand and creator cannot be changed")
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"

    # =========================================================================
    # Parties and signatures
    # =========================================================================

    def is_brand_party(self, user: User) -> bool:
        return self.brand.user_id == user.pk

    def is_creator_party(self, user: User) -> bool:
        return self.creator.user_id == user.pk

    def is_party(self, user: User) -> bool:
        return self.is_brand_party(user) or self.is_creator_party(user)

    @property
    def signatures(self) -> dict:
        return dict((self.terms or {}).get("signatures", {}))

    def add_signature(self, user: User, signature: str) -> None:
        """Merge the user's signature into terms with a server timestamp."""
        terms = dict(self.terms or {})
        signatures = dict(terms.get("signatures", {}))
        signatures[str(user.pk)] = {
            "signature": signature,
            "signed_at": timezone.now().isoformat(),
        }
        terms["signatures"] = signatures
        self.terms = terms

    @property
    def is_fully_signed(self) -> bool:
        signed = self.signatures
        return (
            str(self.brand.user_id) in signed
            and str(self.creator.user_id) in signed
        )

    def milestone_total(self, exclude_pk=None) -> Decimal:
        queryset = self.milestones.all()
        if exclude_pk is not None:
            queryset = queryset.exclude(pk=exclude_pk)
        return queryset.aggregate(total=Sum("amount"))["total"] or Decimal("0")

    # =========================================================================
    # State transitions
    # =========================================================================

    @transition(
        field=status,
        source=ContractStatus.DRAFT,
        target=ContractStatus.PENDING_SIGNATURE,
    )
    def await_signatures(self):
        """First party signed; waiting for the other one."""

    @transition(
        field=status,
        source=[ContractStatus.DRAFT, ContractStatus.PENDING_SIGNATURE],
        target=ContractStatus.ACTIVE,
    )
    def activate(self):
        """Contract is in force; escrow holds may now be opened."""
        self.activated_at = timezone.now()

    @transition(
        field=status,
        source=ContractStatus.ACTIVE,
        target=ContractStatus.COMPLETED,
    )
    def complete(self):
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=[
            ContractStatus.DRAFT,
            ContractStatus.PENDING_SIGNATURE,
            ContractStatus.ACTIVE,
        ],
        target=ContractStatus.CANCELLED,
    )
    def cancel(self):
        self.cancelled_at = timezone.now()


class Milestone(UUIDPrimaryKeyMixin, BaseModel):
    """
    Payable sub-deliverable of a Contract.

    Status advances strictly one step at a time through MilestoneStatus.
    The PAID step is normally taken by the escrow release of a payment
    linked to this milestone.
    """

    contract = models.ForeignKey(
        Contract,
        on_delete=models.PROTECT,
        related_name="milestones",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateField(null=True, blank=True)
    status = FSMField(
        default=MilestoneStatus.PENDING,
        choices=MilestoneStatus.choices,
        db_index=True,
    )
    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["due_date", "created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="milestone_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"

    @transition(
        field=status,
        source=MilestoneStatus.PENDING,
        target=MilestoneStatus.IN_PROGRESS,
    )
    def start(self):
        pass

    @transition(
        field=status,
        source=MilestoneStatus.IN_PROGRESS,
        target=MilestoneStatus.SUBMITTED,
    )
    def submit(self):
        self.submitted_at = timezone.now()

    @transition(
        field=status,
        source=MilestoneStatus.SUBMITTED,
        target=MilestoneStatus.APPROVED,
    )
    def approve(self):
        self.approved_at = timezone.now()

    @transition(
        field=status,
        source=MilestoneStatus.APPROVED,
        target=MilestoneStatus.PAID,
    )
    def mark_paid(self):
        self.paid_at = timezone.now()


# Target status -> transition method name, for edits by a contract party.
# PAID is absent: only a completed escrow release calls mark_paid().
MILESTONE_TRANSITIONS = {
    MilestoneStatus.IN_PROGRESS: "start",
    MilestoneStatus.SUBMITTED: "submit",
    MilestoneStatus.APPROVED: "approve",
}

# Targets only the contract's brand may move a milestone to
BRAND_ONLY_MILESTONE_TARGETS = frozenset({MilestoneStatus.APPROVED})
