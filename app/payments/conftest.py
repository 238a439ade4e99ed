"""
Pytest fixtures shared by the payments test packages.

Fixtures build a contract in a given state between a brand and a
creator, and a MockPaymentGateway the services are constructed with.

Usage:
    def test_release(escrow_service, held_escrow, brand_user, ready_payee):
        escrow = escrow_service.release_escrow_payment(brand_user, held_escrow.id)
        assert escrow.status == EscrowStatus.RELEASED
"""

import pytest

from authentication.models import UserRole
from authentication.tests.factories import UserFactory
from contracts.models import ContractStatus
from contracts.tests.factories import ContractFactory, MilestoneFactory
from marketplace.tests.factories import AcceptedApplicationFactory
from payments.services import EscrowService, PayeeService
from payments.tests.factories import EscrowPaymentFactory, PayeeAccountFactory
from payments.tests.mocks import MockPaymentGateway


# =============================================================================
# Gateway Fixtures
# =============================================================================


@pytest.fixture
def mock_gateway():
    """Fresh MockPaymentGateway with no failures configured."""
    return MockPaymentGateway()


@pytest.fixture
def escrow_service(mock_gateway):
    return EscrowService(gateway=mock_gateway)


@pytest.fixture
def payee_service(mock_gateway):
    return PayeeService(gateway=mock_gateway)


# =============================================================================
# Party Fixtures
# =============================================================================


@pytest.fixture
def application(db):
    return AcceptedApplicationFactory()


@pytest.fixture
def brand_user(application):
    return application.brief.brand.user


@pytest.fixture
def creator(application):
    return application.creator


@pytest.fixture
def creator_user(creator):
    return creator.user


@pytest.fixture
def admin_user(db):
    return UserFactory(role=UserRole.ADMIN, is_staff=True)


@pytest.fixture
def outsider(db):
    return UserFactory(role=UserRole.BRAND)


# =============================================================================
# Contract and Escrow Fixtures
# =============================================================================


@pytest.fixture
def active_contract(application):
    return ContractFactory(application=application, status=ContractStatus.ACTIVE)


@pytest.fixture
def draft_contract(application):
    return ContractFactory(application=application)


@pytest.fixture
def milestone(active_contract):
    return MilestoneFactory(contract=active_contract)


@pytest.fixture
def ready_payee(creator):
    """Payee account whose payouts are enabled."""
    return PayeeAccountFactory(creator=creator, ready=True)


@pytest.fixture
def held_escrow(active_contract):
    return EscrowPaymentFactory(contract=active_contract)
