"""
API tests for escrow, payee account and earnings endpoints.

The gateway is replaced with MockPaymentGateway by patching the factory
the views build their services from.
"""

import uuid
from decimal import Decimal
from unittest.mock import patch

import pytest
from rest_framework import status

from marketplace.tests.factories import ContentFactory
from payments.exceptions import GatewayCardDeclinedError
from payments.models import CreatorEarning, EscrowPayment
from payments.state_machines import EarningType, EscrowStatus
from payments.tests.factories import EscrowPaymentFactory, PayeeAccountFactory

ESCROW_URL = "/api/v1/escrow/"
PAYMENTS_URL = "/api/v1/payments/"


@pytest.fixture(autouse=True)
def patched_gateway(mock_gateway):
    with patch("payments.views.get_payment_gateway", return_value=mock_gateway):
        yield mock_gateway


class TestCreateEscrow:
    """Tests for POST /api/v1/escrow/contracts/{contract_id}/."""

    def test_brand_opens_hold(self, client_for, active_contract, brand_user):
        response = client_for(brand_user).post(
            f"{ESCROW_URL}contracts/{active_contract.id}/",
            {"amount": "500.00"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        escrow = response.data["escrow_payment"]
        assert escrow["status"] == EscrowStatus.HELD
        assert escrow["amount"] == "500.00"
        assert response.data["client_secret"] == f"{escrow['gateway_hold_id']}_secret"

    def test_gateway_refusal(self, client_for, mock_gateway, active_contract, brand_user):
        mock_gateway.create_hold_side_effect = GatewayCardDeclinedError("Card declined")

        response = client_for(brand_user).post(
            f"{ESCROW_URL}contracts/{active_contract.id}/",
            {"amount": "500.00"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "CARD_DECLINED"
        assert EscrowPayment.objects.count() == 0

    def test_creator_forbidden(self, client_for, active_contract, creator_user):
        response = client_for(creator_user).post(
            f"{ESCROW_URL}contracts/{active_contract.id}/",
            {"amount": "500.00"},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_amount_required(self, client_for, active_contract, brand_user):
        response = client_for(brand_user).post(
            f"{ESCROW_URL}contracts/{active_contract.id}/", {}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestEscrowList:
    """Tests for GET /api/v1/escrow/."""

    def test_lists_party_payments(self, client_for, held_escrow, creator_user):
        EscrowPaymentFactory()

        response = client_for(creator_user).get(ESCROW_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [row["id"] for row in response.data["results"]] == [str(held_escrow.id)]

    def test_filters(self, client_for, held_escrow, active_contract, brand_user):
        EscrowPaymentFactory(contract=active_contract, status=EscrowStatus.REFUNDED)

        response = client_for(brand_user).get(
            ESCROW_URL, {"contract_id": str(active_contract.id), "status": "held"}
        )

        assert [row["id"] for row in response.data["results"]] == [str(held_escrow.id)]

    def test_invalid_filter(self, client_for, brand_user):
        response = client_for(brand_user).get(ESCROW_URL, {"contract_id": "not-a-uuid"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_retrieve_outsider(self, client_for, held_escrow, outsider):
        response = client_for(outsider).get(f"{ESCROW_URL}{held_escrow.id}/")

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestReleaseRefund:
    """Tests for the release, refund and retry-release actions."""

    def test_release(self, client_for, held_escrow, brand_user, ready_payee):
        response = client_for(brand_user).patch(
            f"{ESCROW_URL}{held_escrow.id}/release/",
            {"release_reason": "Approved"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == EscrowStatus.RELEASED
        earning = CreatorEarning.objects.get(escrow_payment=held_escrow)
        assert earning.earning_type == EarningType.COMMISSION
        assert earning.amount == Decimal("100.00")

    def test_release_without_payee(self, client_for, held_escrow, brand_user):
        response = client_for(brand_user).patch(
            f"{ESCROW_URL}{held_escrow.id}/release/", {}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "PAYEE_NOT_CONFIGURED"
        held_escrow.refresh_from_db()
        assert held_escrow.status == EscrowStatus.HELD

    def test_release_not_held(self, client_for, active_contract, brand_user, ready_payee):
        escrow = EscrowPaymentFactory(contract=active_contract, status=EscrowStatus.REFUNDED)

        response = client_for(brand_user).patch(f"{ESCROW_URL}{escrow.id}/release/")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_STATE"

    def test_release_before_hold_authorized(
        self, client_for, mock_gateway, active_contract, brand_user, ready_payee
    ):
        escrow = EscrowPaymentFactory(contract=active_contract, hold_confirmed_at=None)

        response = client_for(brand_user).patch(f"{ESCROW_URL}{escrow.id}/release/")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "HOLD_NOT_CONFIRMED"
        assert mock_gateway.calls == []

    def test_creator_cannot_release(self, client_for, held_escrow, creator_user, ready_payee):
        response = client_for(creator_user).patch(f"{ESCROW_URL}{held_escrow.id}/release/")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_refund(self, client_for, mock_gateway, held_escrow, brand_user):
        response = client_for(brand_user).patch(
            f"{ESCROW_URL}{held_escrow.id}/refund/",
            {"refund_reason": "Campaign cancelled"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == EscrowStatus.REFUNDED
        assert len(mock_gateway.calls_to("release_hold")) == 1

    def test_retry_release_staff_only(self, client_for, active_contract, brand_user, admin_user, ready_payee):
        escrow = EscrowPaymentFactory(contract=active_contract, status=EscrowStatus.RELEASE_FAILED)

        response = client_for(brand_user).patch(f"{ESCROW_URL}{escrow.id}/retry-release/")
        assert response.status_code == status.HTTP_403_FORBIDDEN

        response = client_for(admin_user).patch(f"{ESCROW_URL}{escrow.id}/retry-release/")
        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == EscrowStatus.RELEASED

    def test_unknown_escrow(self, client_for, brand_user):
        response = client_for(brand_user).patch(f"{ESCROW_URL}{uuid.uuid4()}/refund/")

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestPayeeAccountEndpoints:
    def test_create_payee_account(self, client_for, creator_user):
        response = client_for(creator_user).post(f"{PAYMENTS_URL}payee-account/")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["is_ready_for_payouts"] is False

    def test_brand_cannot_create_payee_account(self, client_for, brand_user):
        response = client_for(brand_user).post(f"{PAYMENTS_URL}payee-account/")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_link(self, client_for, creator, creator_user):
        PayeeAccountFactory(creator=creator)

        response = client_for(creator_user).post(f"{PAYMENTS_URL}payee-account/link/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["url"].startswith("https://")

    def test_status_without_account(self, client_for, creator_user):
        response = client_for(creator_user).get(f"{PAYMENTS_URL}payee-account/status/")

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestEarningsEndpoints:
    def test_admin_processes_earning(self, client_for, admin_user):
        content = ContentFactory()

        response = client_for(admin_user).post(
            f"{PAYMENTS_URL}earnings/process/",
            {
                "creator_id": str(content.creator_id),
                "content_id": str(content.id),
                "earning_type": "cpm",
                "metrics": {"views": 10000, "clicks": 0},
            },
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["creator_amount"] == "22.50"
        assert response.data["platform_fee"] == "2.50"

    def test_commission_type_rejected(self, client_for, admin_user):
        content = ContentFactory()

        response = client_for(admin_user).post(
            f"{PAYMENTS_URL}earnings/process/",
            {
                "creator_id": str(content.creator_id),
                "content_id": str(content.id),
                "earning_type": "commission",
            },
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_creator_cannot_process(self, client_for, creator_user):
        response = client_for(creator_user).post(f"{PAYMENTS_URL}earnings/process/", {})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_summary(self, client_for, creator, creator_user):
        CreatorEarning.objects.create(
            creator=creator, amount=Decimal("12.50"), earning_type=EarningType.CPC
        )

        response = client_for(creator_user).get(f"{PAYMENTS_URL}earnings/summary/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["total"] == "12.50"
        assert response.data["count"] == 1
        assert response.data["by_type"] == {"cpc": "12.50"}
