"""
API tests for the contracts endpoints.
"""

import uuid
from decimal import Decimal

import pytest
from django.test import override_settings
from rest_framework import status

from contracts.models import ContractStatus, MilestoneStatus
from contracts.tests.factories import ContractFactory, MilestoneFactory
from payments.tests.factories import EscrowPaymentFactory

CONTRACTS_URL = "/api/v1/contracts/"


def contract_url(contract_id, suffix=""):
    return f"{CONTRACTS_URL}{contract_id}/{suffix}"


class TestContractListCreate:
    """Tests for GET/POST /api/v1/contracts/."""

    def test_requires_authentication(self, api_client, db):
        response = api_client.get(CONTRACTS_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_list_is_paginated_and_scoped(self, client_for, draft_contract, brand_user):
        ContractFactory()

        response = client_for(brand_user).get(CONTRACTS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 1
        assert response.data["results"][0]["id"] == str(draft_contract.id)

    def test_list_filters_by_status(self, client_for, draft_contract, active_contract, creator_user):
        response = client_for(creator_user).get(CONTRACTS_URL, {"status": "active"})

        assert [row["id"] for row in response.data["results"]] == [str(active_contract.id)]

    def test_brand_creates_contract(self, client_for, application, brand_user):
        response = client_for(brand_user).post(
            CONTRACTS_URL,
            {
                "brief_id": str(application.brief_id),
                "creator_id": str(application.creator_id),
                "title": "Launch campaign",
                "total_amount": "750.00",
                "deliverables": ["Video 1", "Video 2"],
            },
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == ContractStatus.DRAFT
        assert response.data["total_amount"] == "750.00"
        assert response.data["milestones"] == []

    def test_creator_cannot_create(self, client_for, application, creator_user):
        response = client_for(creator_user).post(
            CONTRACTS_URL,
            {
                "brief_id": str(application.brief_id),
                "creator_id": str(application.creator_id),
                "title": "Launch campaign",
                "total_amount": "750.00",
            },
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_end_date_before_start_date(self, client_for, application, brand_user):
        response = client_for(brand_user).post(
            CONTRACTS_URL,
            {
                "brief_id": str(application.brief_id),
                "creator_id": str(application.creator_id),
                "title": "Launch campaign",
                "total_amount": "750.00",
                "start_date": "2025-03-01",
                "end_date": "2025-02-01",
            },
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_missing_accepted_application(self, client_for, brand_user, application):
        response = client_for(brand_user).post(
            CONTRACTS_URL,
            {
                "brief_id": str(application.brief_id),
                "creator_id": str(uuid.uuid4()),
                "title": "Launch campaign",
                "total_amount": "750.00",
            },
            format="json",
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "NOT_FOUND"


class TestContractDetail:
    """Tests for GET/PATCH /api/v1/contracts/{id}/."""

    def test_party_reads_detail(self, client_for, active_contract, creator_user):
        MilestoneFactory(contract=active_contract)
        EscrowPaymentFactory(contract=active_contract)

        response = client_for(creator_user).get(contract_url(active_contract.id))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data["milestones"]) == 1
        assert len(response.data["escrow_payments"]) == 1

    def test_outsider_gets_403(self, client_for, draft_contract, outsider):
        response = client_for(outsider).get(contract_url(draft_contract.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_AUTHORIZED"

    def test_unknown_contract_404(self, client_for, brand_user):
        response = client_for(brand_user).get(contract_url(uuid.uuid4()))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_patch_draft(self, client_for, draft_contract, brand_user):
        response = client_for(brand_user).patch(
            contract_url(draft_contract.id), {"title": "Updated"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["title"] == "Updated"

    def test_patch_active_contract_rejected(self, client_for, active_contract, brand_user):
        response = client_for(brand_user).patch(
            contract_url(active_contract.id), {"title": "Updated"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_STATE"


class TestContractActions:
    """Tests for sign/complete/cancel actions."""

    @override_settings(CONTRACT_REQUIRE_ALL_SIGNATURES=True)
    def test_both_parties_sign(self, client_for, draft_contract, brand_user, creator_user):
        response = client_for(brand_user).patch(
            contract_url(draft_contract.id, "sign/"), {"signature": "b"}, format="json"
        )
        assert response.data["status"] == ContractStatus.PENDING_SIGNATURE

        response = client_for(creator_user).patch(
            contract_url(draft_contract.id, "sign/"), {"signature": "c"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == ContractStatus.ACTIVE

    def test_sign_requires_signature(self, client_for, draft_contract, brand_user):
        response = client_for(brand_user).patch(
            contract_url(draft_contract.id, "sign/"), {}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_complete_blocked_by_held_escrow(self, client_for, active_contract, brand_user):
        EscrowPaymentFactory(contract=active_contract)

        response = client_for(brand_user).patch(contract_url(active_contract.id, "complete/"))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "ESCROW_OUTSTANDING"

    def test_cancel(self, client_for, draft_contract, brand_user):
        response = client_for(brand_user).patch(contract_url(draft_contract.id, "cancel/"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == ContractStatus.CANCELLED


class TestMilestoneEndpoints:
    """Tests for milestone create/update endpoints."""

    def test_create_milestone_returns_200(self, client_for, active_contract, brand_user):
        response = client_for(brand_user).post(
            contract_url(active_contract.id, "milestones/"),
            {"title": "First cut", "amount": "300.00", "due_date": "2025-06-01"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == MilestoneStatus.PENDING
        assert response.data["amount"] == "300.00"

    def test_create_over_budget(self, client_for, active_contract, brand_user):
        response = client_for(brand_user).post(
            contract_url(active_contract.id, "milestones/"),
            {"title": "Everything", "amount": str(Decimal("1000.01"))},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "MILESTONE_BUDGET_EXCEEDED"

    def test_update_milestone_status(self, client_for, active_contract, creator_user):
        milestone = MilestoneFactory(contract=active_contract)

        response = client_for(creator_user).patch(
            f"{CONTRACTS_URL}milestones/{milestone.id}/",
            {"status": "in_progress"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == MilestoneStatus.IN_PROGRESS

    def test_skipping_status_rejected(self, client_for, active_contract, creator_user):
        milestone = MilestoneFactory(contract=active_contract)

        response = client_for(creator_user).patch(
            f"{CONTRACTS_URL}milestones/{milestone.id}/",
            {"status": "approved"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        milestone.refresh_from_db()
        assert milestone.status == MilestoneStatus.PENDING

    def test_creator_cannot_approve(self, client_for, active_contract, creator_user):
        milestone = MilestoneFactory(contract=active_contract, status=MilestoneStatus.SUBMITTED)

        response = client_for(creator_user).patch(
            f"{CONTRACTS_URL}milestones/{milestone.id}/",
            {"status": "approved"},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        milestone.refresh_from_db()
        assert milestone.status == MilestoneStatus.SUBMITTED

    def test_paid_status_rejected(self, client_for, active_contract, brand_user):
        milestone = MilestoneFactory(contract=active_contract, status=MilestoneStatus.APPROVED)

        response = client_for(brand_user).patch(
            f"{CONTRACTS_URL}milestones/{milestone.id}/",
            {"status": "paid"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        milestone.refresh_from_db()
        assert milestone.status == MilestoneStatus.APPROVED

    def test_unknown_status_value(self, client_for, active_contract, creator_user):
        milestone = MilestoneFactory(contract=active_contract)

        response = client_for(creator_user).patch(
            f"{CONTRACTS_URL}milestones/{milestone.id}/",
            {"status": "done"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
