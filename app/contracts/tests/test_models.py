"""
Tests for Contract and Milestone model behavior.
"""

from decimal import Decimal

import pytest
from django_fsm import TransitionNotAllowed

from contracts.models import ContractStatus, MilestoneStatus
from contracts.tests.factories import ContractFactory, MilestoneFactory
from marketplace.tests.factories import CreatorFactory


class TestContractModel:
    def test_parties_are_immutable(self, draft_contract):
        """Changing the creator after creation fails on save."""
        contract = type(draft_contract).objects.get(pk=draft_contract.pk)
        contract.creator = CreatorFactory()

        with pytest.raises(ValueError):
            contract.save()

    def test_signature_helpers(self, draft_contract, brand_user, creator_user):
        draft_contract.add_signature(brand_user, "b")
        assert not draft_contract.is_fully_signed

        draft_contract.add_signature(creator_user, "c")
        assert draft_contract.is_fully_signed

    def test_completed_contract_cannot_reactivate(self, application):
        contract = ContractFactory(application=application, status=ContractStatus.COMPLETED)

        with pytest.raises(TransitionNotAllowed):
            contract.activate()

    def test_milestone_total(self, active_contract):
        MilestoneFactory(contract=active_contract, amount=Decimal("100.00"))
        second = MilestoneFactory(contract=active_contract, amount=Decimal("50.00"))

        assert active_contract.milestone_total() == Decimal("150.00")
        assert active_contract.milestone_total(exclude_pk=second.pk) == Decimal("100.00")


class TestMilestoneModel:
    def test_forward_transitions_set_timestamps(self, db):
        milestone = MilestoneFactory()

        milestone.start()
        milestone.submit()
        milestone.approve()
        milestone.mark_paid()

        assert milestone.status == MilestoneStatus.PAID
        assert milestone.submitted_at is not None
        assert milestone.approved_at is not None
        assert milestone.paid_at is not None

    def test_cannot_skip(self, db):
        milestone = MilestoneFactory()

        with pytest.raises(TransitionNotAllowed):
            milestone.approve()
