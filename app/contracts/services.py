"""
Contract service layer.

ContractService owns every write to Contract and Milestone rows:
drafting contracts from accepted applications, collecting signatures,
defining milestones and advancing their status.

Usage:
    from contracts.services import ContractService

    contract = ContractService.create_contract(
        brand_user,
        brief_id=brief.id,
        creator_id=creator.id,
        title="Spring campaign",
        total_amount=Decimal("1500.00"),
    )
    contract = ContractService.sign_contract(creator_user, contract.id, "sig")

Authorization model:
    - Only the Brand party drafts, edits, completes and cancels contracts
      and defines milestones.
    - Either party may sign, read, and update milestones.
    - Anyone else gets AuthorizationError.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import transaction
from django_fsm import TransitionNotAllowed, can_proceed

from contracts.models import (
    BRAND_ONLY_MILESTONE_TARGETS,
    MILESTONE_TRANSITIONS,
    SIGNABLE_STATUSES,
    Contract,
    ContractStatus,
    Milestone,
    MilestoneStatus,
)
from core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from core.services import BaseService
from marketplace.services import MarketplaceDirectory

if TYPE_CHECKING:
    from datetime import date

    from authentication.models import User
    from contracts.models import ContractQuerySet


CONTRACT_EDITABLE_FIELDS = (
    "title",
    "description",
    "terms",
    "deliverables",
    "total_amount",
    "start_date",
    "end_date",
)

MILESTONE_EDITABLE_FIELDS = ("title", "description", "amount", "due_date")

# Milestone amounts are frozen once the work is accepted
MILESTONE_LOCKED_STATUSES = (MilestoneStatus.APPROVED, MilestoneStatus.PAID)


class ContractService(BaseService):
    """Contract and milestone lifecycle operations."""

    # =========================================================================
    # Lookups
    # =========================================================================

    @classmethod
    def _load_contract(
        cls,
        contract_id: uuid.UUID | str,
        *,
        lock: bool = False,
    ) -> Contract:
        queryset = Contract.objects.select_related("brand", "creator")
        if lock:
            queryset = queryset.select_for_update(of=("self",))
        return cls.get_or_not_found(queryset, "Contract", pk=contract_id)

    @staticmethod
    def _require_party(contract: Contract, user: User) -> None:
        if not contract.is_party(user):
            raise AuthorizationError(
                "You are not a party to this contract",
                details={"contract_id": str(contract.pk)},
            )

    @staticmethod
    def _require_brand_party(contract: Contract, user: User) -> None:
        if not contract.is_brand_party(user):
            raise AuthorizationError(
                "Only the brand on this contract can perform this action",
                details={"contract_id": str(contract.pk)},
            )

    @staticmethod
    def _check_milestone_budget(
        contract: Contract,
        amount: Decimal,
        exclude_pk=None,
    ) -> None:
        allocated = contract.milestone_total(exclude_pk=exclude_pk)
        if allocated + amount > contract.total_amount:
            raise ValidationError(
                "Milestone amounts would exceed the contract total",
                error_code="MILESTONE_BUDGET_EXCEEDED",
                details={
                    "contract_total": str(contract.total_amount),
                    "allocated": str(allocated),
                    "requested": str(amount),
                },
            )

    @staticmethod
    def list_contracts(user: User, status: str | None = None) -> ContractQuerySet:
        """Contracts the user is a party to, newest first."""
        return (
            Contract.objects.for_party(user)
            .filter_by(status=status)
            .select_related("brand", "creator", "brief")
            .order_by("-created_at")
        )

    @classmethod
    def get_contract(cls, user: User, contract_id: uuid.UUID | str) -> Contract:
        """
        Fetch a contract with its milestones and escrow payments.

        Raises:
            NotFoundError: Contract does not exist
            AuthorizationError: User is not a party
        """
        queryset = Contract.objects.select_related(
            "brand", "creator", "brief"
        ).prefetch_related("milestones", "escrow_payments")
        contract = cls.get_or_not_found(queryset, "Contract", pk=contract_id)
        cls._require_party(contract, user)
        return contract

    # =========================================================================
    # Contract lifecycle
    # =========================================================================

    @classmethod
    def create_contract(
        cls,
        brand_user: User,
        *,
        brief_id: uuid.UUID | str,
        creator_id: uuid.UUID | str,
        title: str,
        total_amount: Decimal,
        description: str = "",
        terms: dict[str, Any] | None = None,
        deliverables: list[Any] | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Contract:
        """
        Draft a contract from an accepted brief application.

        Raises:
            NotFoundError: Brand profile, owned brief or accepted
                application is missing
            ValidationError: total_amount is not positive
        """
        logger = cls.get_logger()

        brand = MarketplaceDirectory.brand_for_user(brand_user)
        if brand is None:
            raise NotFoundError("Brand profile not found")

        brief = MarketplaceDirectory.find_brief_owned_by_brand(brief_id, brand.pk)
        if brief is None:
            raise NotFoundError(
                "Brief not found or not owned by this brand",
                details={"brief_id": str(brief_id)},
            )

        application = MarketplaceDirectory.find_accepted_application(
            brief.pk, creator_id
        )
        if application is None:
            raise NotFoundError(
                "No accepted application found for this creator and brief",
                details={"brief_id": str(brief_id), "creator_id": str(creator_id)},
            )

        if total_amount <= 0:
            raise ValidationError(
                "Contract total must be greater than zero",
                details={"total_amount": str(total_amount)},
            )

        clean_terms = dict(terms or {})
        clean_terms.pop("signatures", None)

        contract = Contract.objects.create(
            brief=brief,
            brand=brand,
            creator=application.creator,
            title=title,
            description=description,
            terms=clean_terms,
            deliverables=deliverables or [],
            total_amount=total_amount,
            start_date=start_date,
            end_date=end_date,
        )

        logger.info(
            "Contract drafted",
            extra={
                "contract_id": str(contract.pk),
                "brief_id": str(brief.pk),
                "brand_id": str(brand.pk),
                "creator_id": str(application.creator_id),
            },
        )
        return contract

    @classmethod
    def update_contract(
        cls,
        brand_user: User,
        contract_id: uuid.UUID | str,
        changes: dict[str, Any],
    ) -> Contract:
        """
        Edit a draft contract.

        Parties and brief are never editable; unknown keys are ignored.

        Raises:
            InvalidStateError: Contract is no longer a draft
            ValidationError: New total is below the milestone allocation
        """
        with transaction.atomic():
            contract = cls._load_contract(contract_id, lock=True)
            cls._require_brand_party(contract, brand_user)

            if contract.status != ContractStatus.DRAFT:
                raise InvalidStateError(
                    "Only draft contracts can be edited",
                    details={"current_status": contract.status},
                )

            updates = {
                key: value
                for key, value in changes.items()
                if key in CONTRACT_EDITABLE_FIELDS
            }

            if "terms" in updates:
                # Signatures are only written by sign_contract
                new_terms = dict(updates["terms"] or {})
                new_terms.pop("signatures", None)
                if contract.signatures:
                    new_terms["signatures"] = contract.signatures
                updates["terms"] = new_terms

            if "total_amount" in updates:
                allocated = contract.milestone_total()
                if updates["total_amount"] < allocated:
                    raise ValidationError(
                        "Contract total cannot be lower than its milestones",
                        error_code="MILESTONE_BUDGET_EXCEEDED",
                        details={
                            "allocated": str(allocated),
                            "requested": str(updates["total_amount"]),
                        },
                    )

            for key, value in updates.items():
                setattr(contract, key, value)
            contract.save()

        cls.get_logger().info(
            "Contract updated",
            extra={"contract_id": str(contract.pk), "fields": sorted(updates)},
        )
        return contract

    @classmethod
    def sign_contract(
        cls,
        user: User,
        contract_id: uuid.UUID | str,
        signature: str,
    ) -> Contract:
        """
        Record a party's signature.

        With CONTRACT_REQUIRE_ALL_SIGNATURES enabled the contract becomes
        ACTIVE once both parties have signed, and PENDING_SIGNATURE after
        the first one. With it disabled any signature activates.

        Raises:
            NotFoundError: Contract does not exist
            AuthorizationError: User is not a party
            InvalidStateError: Contract is not awaiting signatures
        """
        require_all = getattr(settings, "CONTRACT_REQUIRE_ALL_SIGNATURES", True)

        with transaction.atomic():
            contract = cls._load_contract(contract_id, lock=True)
            cls._require_party(contract, user)

            if contract.status not in SIGNABLE_STATUSES:
                raise InvalidStateError(
                    "Contract is not awaiting signatures",
                    details={"current_status": contract.status},
                )

            contract.add_signature(user, signature)

            if not require_all or contract.is_fully_signed:
                contract.activate()
            elif contract.status == ContractStatus.DRAFT:
                contract.await_signatures()

            contract.save()

        cls.get_logger().info(
            "Contract signed",
            extra={
                "contract_id": str(contract.pk),
                "user_id": str(user.pk),
                "status": contract.status,
            },
        )
        return contract

    @classmethod
    def complete_contract(cls, brand_user: User, contract_id: uuid.UUID | str) -> Contract:
        """
        Mark an active contract completed.

        Raises:
            InvalidStateError: Contract is not active or money is still held
        """
        return cls._close_contract(brand_user, contract_id, "complete")

    @classmethod
    def cancel_contract(cls, brand_user: User, contract_id: uuid.UUID | str) -> Contract:
        """
        Cancel a contract that has not completed.

        Raises:
            InvalidStateError: Contract already closed or money is still held
        """
        return cls._close_contract(brand_user, contract_id, "cancel")

    @classmethod
    def _close_contract(
        cls,
        brand_user: User,
        contract_id: uuid.UUID | str,
        action: str,
    ) -> Contract:
        from payments.models import EscrowPayment
        from payments.state_machines import OPEN_ESCROW_STATES

        with transaction.atomic():
            contract = cls._load_contract(contract_id, lock=True)
            cls._require_brand_party(contract, brand_user)

            open_escrow = EscrowPayment.objects.filter(
                contract=contract,
                status__in=OPEN_ESCROW_STATES,
            ).exists()
            if open_escrow:
                raise InvalidStateError(
                    "Contract still has escrow payments awaiting release or refund",
                    error_code="ESCROW_OUTSTANDING",
                    details={"contract_id": str(contract.pk)},
                )

            try:
                getattr(contract, action)()
            except TransitionNotAllowed:
                raise InvalidStateError(
                    f"Cannot {action} a contract in {contract.status} status",
                    details={"current_status": contract.status, "action": action},
                )
            contract.save()

        cls.get_logger().info(
            "Contract closed",
            extra={"contract_id": str(contract.pk), "status": contract.status},
        )
        return contract

    # =========================================================================
    # Milestones
    # =========================================================================

    @classmethod
    def create_milestone(
        cls,
        brand_user: User,
        contract_id: uuid.UUID | str,
        *,
        title: str,
        amount: Decimal,
        description: str = "",
        due_date: date | None = None,
    ) -> Milestone:
        """
        Add a milestone to a contract.

        The contract row is locked so concurrent creations cannot both
        fit under the contract total.

        Raises:
            NotFoundError: Contract does not exist
            AuthorizationError: User is not the brand party
            InvalidStateError: Contract is completed or cancelled
            ValidationError: Amount is not positive or exceeds the budget
        """
        with transaction.atomic():
            contract = cls._load_contract(contract_id, lock=True)
            cls._require_brand_party(contract, brand_user)

            if contract.status in (ContractStatus.COMPLETED, ContractStatus.CANCELLED):
                raise InvalidStateError(
                    "Cannot add milestones to a closed contract",
                    details={"current_status": contract.status},
                )
            if amount <= 0:
                raise ValidationError(
                    "Milestone amount must be greater than zero",
                    details={"amount": str(amount)},
                )
            cls._check_milestone_budget(contract, amount)

            milestone = Milestone.objects.create(
                contract=contract,
                title=title,
                description=description,
                amount=amount,
                due_date=due_date,
            )

        cls.get_logger().info(
            "Milestone created",
            extra={
                "contract_id": str(contract.pk),
                "milestone_id": str(milestone.pk),
                "amount": str(amount),
            },
        )
        return milestone

    @classmethod
    def update_milestone(
        cls,
        user: User,
        milestone_id: uuid.UUID | str,
        patch: dict[str, Any],
    ) -> Milestone:
        """
        Edit a milestone and optionally advance its status.

        A status in the patch must be the current status or the next one;
        anything else raises InvalidStateError and nothing is saved. Only
        the brand approves submitted work, and PAID is never accepted here:
        a milestone is paid when its escrow payment is released.

        Raises:
            NotFoundError: Milestone does not exist
            AuthorizationError: User is not a party to the contract, or a
                creator tried to approve
            InvalidStateError: Status jump or edit of an approved milestone
            ValidationError: New amount exceeds the contract budget
        """
        with transaction.atomic():
            milestone = cls.get_or_not_found(
                Milestone.objects.select_for_update(of=("self",)).select_related(
                    "contract__brand", "contract__creator"
                ),
                "Milestone",
                pk=milestone_id,
            )
            contract = milestone.contract
            cls._require_party(contract, user)

            updates = {
                key: value
                for key, value in patch.items()
                if key in MILESTONE_EDITABLE_FIELDS
            }
            if updates and milestone.status in MILESTONE_LOCKED_STATUSES:
                raise InvalidStateError(
                    "Approved milestones cannot be edited",
                    details={"current_status": milestone.status},
                )
            if "amount" in updates and updates["amount"] != milestone.amount:
                if updates["amount"] <= 0:
                    raise ValidationError("Milestone amount must be greater than zero")
                cls._check_milestone_budget(
                    contract, updates["amount"], exclude_pk=milestone.pk
                )

            for key, value in updates.items():
                setattr(milestone, key, value)

            target = patch.get("status")
            if target is not None and target != milestone.status:
                cls._advance_milestone(milestone, target, user)

            milestone.save()

        cls.get_logger().info(
            "Milestone updated",
            extra={
                "milestone_id": str(milestone.pk),
                "status": milestone.status,
                "fields": sorted(updates),
            },
        )
        return milestone

    @staticmethod
    def _advance_milestone(milestone: Milestone, target: str, user: User) -> None:
        details = {"current_status": milestone.status, "target_status": target}
        if target == MilestoneStatus.PAID:
            raise InvalidStateError(
                "Milestones are marked paid when their escrow payment is released",
                details=details,
            )
        method_name = MILESTONE_TRANSITIONS.get(target)
        if method_name is None:
            raise InvalidStateError(f"Cannot move milestone to {target}", details=details)

        transition_method = getattr(milestone, method_name)
        if not can_proceed(transition_method):
            raise InvalidStateError(
                f"Cannot move milestone from {milestone.status} to {target}",
                details=details,
            )
        if target in BRAND_ONLY_MILESTONE_TARGETS and not milestone.contract.is_brand_party(user):
            raise AuthorizationError(
                "Only the brand on this contract can approve a milestone",
                details={**details, "contract_id": str(milestone.contract_id)},
            )
        transition_method()
