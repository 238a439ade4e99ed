"""
Fixtures for contract tests.
"""

import pytest

from authentication.models import UserRole
from authentication.tests.factories import UserFactory
from contracts.models import ContractStatus
from contracts.tests.factories import ContractFactory
from marketplace.tests.factories import AcceptedApplicationFactory


@pytest.fixture
def application(db):
    """Accepted application the contract is drafted from."""
    return AcceptedApplicationFactory()


@pytest.fixture
def brand_user(application):
    return application.brief.brand.user


@pytest.fixture
def creator_user(application):
    return application.creator.user


@pytest.fixture
def outsider(db):
    """Brand user with no relation to the contract."""
    return UserFactory(role=UserRole.BRAND)


@pytest.fixture
def draft_contract(application):
    return ContractFactory(application=application)


@pytest.fixture
def active_contract(application):
    return ContractFactory(application=application, status=ContractStatus.ACTIVE)
