"""
Tests for ContractService.

Covers:
- Drafting contracts from accepted applications
- Signature collection with and without the all-signatures flag
- Party authorization
- Milestone budget and forward-only status rules
- Completion/cancellation blocked by open escrow
"""

import uuid
from decimal import Decimal

import pytest
from django.test import override_settings

from contracts.models import ContractStatus, MilestoneStatus
from contracts.services import ContractService
from contracts.tests.factories import ContractFactory, MilestoneFactory
from core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from marketplace.models import ApplicationStatus
from marketplace.tests.factories import BriefApplicationFactory, BrandFactory
from payments.state_machines import EscrowStatus
from payments.tests.factories import EscrowPaymentFactory


class TestCreateContract:
    """Tests for ContractService.create_contract."""

    def test_drafts_contract_from_accepted_application(self, application, brand_user):
        """Contract starts in DRAFT with parties taken from the application."""
        contract = ContractService.create_contract(
            brand_user,
            brief_id=application.brief_id,
            creator_id=application.creator_id,
            title="Spring campaign",
            total_amount=Decimal("1500.00"),
        )

        assert contract.status == ContractStatus.DRAFT
        assert contract.brand == application.brief.brand
        assert contract.creator == application.creator
        assert contract.brief == application.brief
        assert contract.total_amount == Decimal("1500.00")

    def test_strips_client_supplied_signatures(self, application, brand_user):
        """Signatures can only be added by signing."""
        contract = ContractService.create_contract(
            brand_user,
            brief_id=application.brief_id,
            creator_id=application.creator_id,
            title="Campaign",
            total_amount=Decimal("100.00"),
            terms={"usage": "organic", "signatures": {"x": {"signature": "forged"}}},
        )

        assert contract.terms == {"usage": "organic"}
        assert contract.signatures == {}

    def test_pending_application_is_not_enough(self, db):
        application = BriefApplicationFactory(status=ApplicationStatus.PENDING)

        with pytest.raises(NotFoundError):
            ContractService.create_contract(
                application.brief.brand.user,
                brief_id=application.brief_id,
                creator_id=application.creator_id,
                title="Campaign",
                total_amount=Decimal("100.00"),
            )

    def test_brief_of_another_brand_is_not_found(self, application):
        other_brand = BrandFactory()

        with pytest.raises(NotFoundError):
            ContractService.create_contract(
                other_brand.user,
                brief_id=application.brief_id,
                creator_id=application.creator_id,
                title="Campaign",
                total_amount=Decimal("100.00"),
            )

    def test_creator_user_has_no_brand_profile(self, application, creator_user):
        with pytest.raises(NotFoundError):
            ContractService.create_contract(
                creator_user,
                brief_id=application.brief_id,
                creator_id=application.creator_id,
                title="Campaign",
                total_amount=Decimal("100.00"),
            )

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
    def test_total_must_be_positive(self, application, brand_user, amount):
        with pytest.raises(ValidationError):
            ContractService.create_contract(
                brand_user,
                brief_id=application.brief_id,
                creator_id=application.creator_id,
                title="Campaign",
                total_amount=amount,
            )


class TestSignContract:
    """Tests for signature collection."""

    @override_settings(CONTRACT_REQUIRE_ALL_SIGNATURES=True)
    def test_requires_both_parties_when_flag_enabled(
        self, draft_contract, brand_user, creator_user
    ):
        """First signature moves to PENDING_SIGNATURE, second activates."""
        contract = ContractService.sign_contract(brand_user, draft_contract.id, "brand-sig")

        assert contract.status == ContractStatus.PENDING_SIGNATURE
        assert str(brand_user.pk) in contract.signatures
        assert contract.activated_at is None

        contract = ContractService.sign_contract(creator_user, draft_contract.id, "creator-sig")

        assert contract.status == ContractStatus.ACTIVE
        assert set(contract.signatures) == {str(brand_user.pk), str(creator_user.pk)}
        assert contract.activated_at is not None

    @override_settings(CONTRACT_REQUIRE_ALL_SIGNATURES=False)
    def test_single_signature_activates_when_flag_disabled(self, draft_contract, creator_user):
        contract = ContractService.sign_contract(creator_user, draft_contract.id, "creator-sig")

        assert contract.status == ContractStatus.ACTIVE
        assert contract.signatures[str(creator_user.pk)]["signature"] == "creator-sig"
        assert "signed_at" in contract.signatures[str(creator_user.pk)]

    @override_settings(CONTRACT_REQUIRE_ALL_SIGNATURES=True)
    def test_same_party_signing_twice_stays_pending(self, draft_contract, brand_user):
        ContractService.sign_contract(brand_user, draft_contract.id, "first")
        contract = ContractService.sign_contract(brand_user, draft_contract.id, "second")

        assert contract.status == ContractStatus.PENDING_SIGNATURE
        assert contract.signatures[str(brand_user.pk)]["signature"] == "second"

    def test_outsider_cannot_sign(self, draft_contract, outsider):
        with pytest.raises(AuthorizationError):
            ContractService.sign_contract(outsider, draft_contract.id, "sig")

        draft_contract.refresh_from_db()
        assert draft_contract.signatures == {}

    def test_active_contract_cannot_be_signed(self, active_contract, brand_user):
        with pytest.raises(InvalidStateError):
            ContractService.sign_contract(brand_user, active_contract.id, "sig")

    def test_unknown_contract(self, brand_user):
        with pytest.raises(NotFoundError):
            ContractService.sign_contract(brand_user, uuid.uuid4(), "sig")


class TestUpdateContract:
    """Tests for draft edits."""

    def test_brand_edits_draft(self, draft_contract, brand_user):
        contract = ContractService.update_contract(
            brand_user,
            draft_contract.id,
            {"title": "Renamed", "total_amount": Decimal("2000.00")},
        )

        assert contract.title == "Renamed"
        assert contract.total_amount == Decimal("2000.00")

    def test_parties_are_not_editable(self, draft_contract, brand_user):
        other_brand = BrandFactory()
        original_brand_id = draft_contract.brand_id

        ContractService.update_contract(
            brand_user, draft_contract.id, {"brand": other_brand, "brand_id": other_brand.id}
        )

        draft_contract.refresh_from_db()
        assert draft_contract.brand_id == original_brand_id

    def test_creator_cannot_edit(self, draft_contract, creator_user):
        with pytest.raises(AuthorizationError):
            ContractService.update_contract(creator_user, draft_contract.id, {"title": "x"})

    def test_active_contract_cannot_be_edited(self, active_contract, brand_user):
        with pytest.raises(InvalidStateError):
            ContractService.update_contract(brand_user, active_contract.id, {"title": "x"})

    def test_total_cannot_drop_below_milestones(self, draft_contract, brand_user):
        MilestoneFactory(contract=draft_contract, amount=Decimal("600.00"))

        with pytest.raises(ValidationError):
            ContractService.update_contract(
                brand_user, draft_contract.id, {"total_amount": Decimal("500.00")}
            )


class TestCloseContract:
    """Tests for complete_contract and cancel_contract."""

    def test_complete_active_contract(self, active_contract, brand_user):
        contract = ContractService.complete_contract(brand_user, active_contract.id)

        assert contract.status == ContractStatus.COMPLETED
        assert contract.completed_at is not None

    def test_complete_requires_active(self, draft_contract, brand_user):
        with pytest.raises(InvalidStateError):
            ContractService.complete_contract(brand_user, draft_contract.id)

    def test_cancel_draft(self, draft_contract, brand_user):
        contract = ContractService.cancel_contract(brand_user, draft_contract.id)

        assert contract.status == ContractStatus.CANCELLED

    def test_cancel_completed_contract_fails(self, application, brand_user):
        contract = ContractFactory(application=application, status=ContractStatus.COMPLETED)

        with pytest.raises(InvalidStateError):
            ContractService.cancel_contract(brand_user, contract.id)

    @pytest.mark.parametrize(
        "escrow_status",
        [EscrowStatus.HELD, EscrowStatus.RELEASE_PENDING, EscrowStatus.RELEASE_FAILED],
    )
    def test_open_escrow_blocks_completion(self, active_contract, brand_user, escrow_status):
        EscrowPaymentFactory(contract=active_contract, status=escrow_status)

        with pytest.raises(InvalidStateError) as exc_info:
            ContractService.complete_contract(brand_user, active_contract.id)

        assert exc_info.value.error_code == "ESCROW_OUTSTANDING"
        active_contract.refresh_from_db()
        assert active_contract.status == ContractStatus.ACTIVE

    def test_open_escrow_blocks_cancellation(self, active_contract, brand_user):
        EscrowPaymentFactory(contract=active_contract)

        with pytest.raises(InvalidStateError):
            ContractService.cancel_contract(brand_user, active_contract.id)

    def test_settled_escrow_does_not_block(self, active_contract, brand_user):
        EscrowPaymentFactory(contract=active_contract, status=EscrowStatus.RELEASED)
        EscrowPaymentFactory(contract=active_contract, status=EscrowStatus.REFUNDED)

        contract = ContractService.complete_contract(brand_user, active_contract.id)

        assert contract.status == ContractStatus.COMPLETED

    def test_creator_cannot_cancel(self, active_contract, creator_user):
        with pytest.raises(AuthorizationError):
            ContractService.cancel_contract(creator_user, active_contract.id)


class TestMilestones:
    """Tests for milestone creation and updates."""

    def test_create_within_budget(self, active_contract, brand_user):
        milestone = ContractService.create_milestone(
            brand_user, active_contract.id, title="Draft video", amount=Decimal("400.00")
        )

        assert milestone.contract == active_contract
        assert milestone.status == MilestoneStatus.PENDING

    def test_budget_allows_exact_total(self, active_contract, brand_user):
        MilestoneFactory(contract=active_contract, amount=Decimal("600.00"))

        milestone = ContractService.create_milestone(
            brand_user, active_contract.id, title="Final", amount=Decimal("400.00")
        )

        assert active_contract.milestone_total() == Decimal("1000.00")
        assert milestone.amount == Decimal("400.00")

    def test_budget_exceeded(self, active_contract, brand_user):
        MilestoneFactory(contract=active_contract, amount=Decimal("600.00"))

        with pytest.raises(ValidationError) as exc_info:
            ContractService.create_milestone(
                brand_user, active_contract.id, title="Too much", amount=Decimal("400.01")
            )

        assert exc_info.value.error_code == "MILESTONE_BUDGET_EXCEEDED"
        assert active_contract.milestones.count() == 1

    def test_creator_cannot_create_milestones(self, active_contract, creator_user):
        with pytest.raises(AuthorizationError):
            ContractService.create_milestone(
                creator_user, active_contract.id, title="x", amount=Decimal("1.00")
            )

    def test_closed_contract_rejects_milestones(self, application, brand_user):
        contract = ContractFactory(application=application, status=ContractStatus.CANCELLED)

        with pytest.raises(InvalidStateError):
            ContractService.create_milestone(
                brand_user, contract.id, title="x", amount=Decimal("1.00")
            )

    def test_status_advances_one_step(self, active_contract, creator_user):
        milestone = MilestoneFactory(contract=active_contract)

        milestone = ContractService.update_milestone(
            creator_user, milestone.id, {"status": MilestoneStatus.IN_PROGRESS}
        )
        assert milestone.status == MilestoneStatus.IN_PROGRESS

        milestone = ContractService.update_milestone(
            creator_user, milestone.id, {"status": MilestoneStatus.SUBMITTED}
        )
        assert milestone.status == MilestoneStatus.SUBMITTED
        assert milestone.submitted_at is not None

    def test_same_status_is_a_no_op(self, active_contract, creator_user):
        milestone = MilestoneFactory(contract=active_contract)

        milestone = ContractService.update_milestone(
            creator_user, milestone.id, {"status": MilestoneStatus.PENDING, "title": "New"}
        )

        assert milestone.status == MilestoneStatus.PENDING
        assert milestone.title == "New"

    @pytest.mark.parametrize(
        "current,target",
        [
            (MilestoneStatus.PENDING, MilestoneStatus.SUBMITTED),
            (MilestoneStatus.PENDING, MilestoneStatus.PAID),
            (MilestoneStatus.SUBMITTED, MilestoneStatus.IN_PROGRESS),
            (MilestoneStatus.APPROVED, MilestoneStatus.PENDING),
        ],
    )
    def test_skipping_or_reversing_is_rejected(
        self, active_contract, brand_user, current, target
    ):
        milestone = MilestoneFactory(contract=active_contract, status=current)

        with pytest.raises(InvalidStateError):
            ContractService.update_milestone(brand_user, milestone.id, {"status": target})

        milestone.refresh_from_db()
        assert milestone.status == current

    def test_brand_approves_submitted_work(self, active_contract, brand_user):
        milestone = MilestoneFactory(contract=active_contract, status=MilestoneStatus.SUBMITTED)

        milestone = ContractService.update_milestone(
            brand_user, milestone.id, {"status": MilestoneStatus.APPROVED}
        )

        assert milestone.status == MilestoneStatus.APPROVED
        assert milestone.approved_at is not None

    def test_creator_cannot_approve_own_work(self, active_contract, creator_user):
        milestone = MilestoneFactory(contract=active_contract, status=MilestoneStatus.SUBMITTED)

        with pytest.raises(AuthorizationError):
            ContractService.update_milestone(
                creator_user, milestone.id, {"status": MilestoneStatus.APPROVED}
            )

        milestone.refresh_from_db()
        assert milestone.status == MilestoneStatus.SUBMITTED
        assert milestone.approved_at is None

    @pytest.mark.parametrize("party", ["brand_user", "creator_user"])
    def test_paid_is_not_settable_by_parties(self, request, active_contract, party):
        """Only a completed escrow release marks a milestone paid."""
        milestone = MilestoneFactory(contract=active_contract, status=MilestoneStatus.APPROVED)

        with pytest.raises(InvalidStateError):
            ContractService.update_milestone(
                request.getfixturevalue(party),
                milestone.id,
                {"status": MilestoneStatus.PAID},
            )

        milestone.refresh_from_db()
        assert milestone.status == MilestoneStatus.APPROVED
        assert milestone.paid_at is None

    def test_rejected_transition_saves_nothing(self, active_contract, brand_user):
        milestone = MilestoneFactory(contract=active_contract, title="Original")

        with pytest.raises(InvalidStateError):
            ContractService.update_milestone(
                brand_user,
                milestone.id,
                {"title": "Changed", "status": MilestoneStatus.APPROVED},
            )

        milestone.refresh_from_db()
        assert milestone.title == "Original"

    def test_amount_update_checks_budget(self, active_contract, brand_user):
        first = MilestoneFactory(contract=active_contract, amount=Decimal("500.00"))
        MilestoneFactory(contract=active_contract, amount=Decimal("500.00"))

        with pytest.raises(ValidationError):
            ContractService.update_milestone(
                brand_user, first.id, {"amount": Decimal("500.01")}
            )

        milestone = ContractService.update_milestone(
            brand_user, first.id, {"amount": Decimal("450.00")}
        )
        assert milestone.amount == Decimal("450.00")

    def test_approved_milestone_is_locked(self, active_contract, brand_user):
        milestone = MilestoneFactory(contract=active_contract, status=MilestoneStatus.APPROVED)

        with pytest.raises(InvalidStateError):
            ContractService.update_milestone(brand_user, milestone.id, {"title": "x"})

    def test_outsider_cannot_update(self, active_contract, outsider):
        milestone = MilestoneFactory(contract=active_contract)

        with pytest.raises(AuthorizationError):
            ContractService.update_milestone(outsider, milestone.id, {"title": "x"})


class TestListContracts:
    """Tests for list_contracts and get_contract visibility."""

    def test_lists_only_party_contracts(self, draft_contract, brand_user, creator_user):
        ContractFactory()

        assert list(ContractService.list_contracts(brand_user)) == [draft_contract]
        assert list(ContractService.list_contracts(creator_user)) == [draft_contract]

    def test_status_filter(self, draft_contract, active_contract, brand_user):
        result = ContractService.list_contracts(brand_user, status=ContractStatus.ACTIVE)

        assert list(result) == [active_contract]

    def test_outsider_cannot_read(self, draft_contract, outsider):
        with pytest.raises(AuthorizationError):
            ContractService.get_contract(outsider, draft_contract.id)
