"""
Shared pytest fixtures for all apps.

Django bootstrapping and test settings live in the repository-root
conftest.py. App-specific fixtures are defined in each app's
tests/conftest.py.
"""

import pytest
from rest_framework.test import APIClient


@pytest.fixture
def api_client():
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture
def client_for():
    """
    Build an API client authenticated as the given user.

    Usage:
        def test_list(client_for, brand_user):
            response = client_for(brand_user).get("/api/v1/contracts/")
    """

    def _client_for(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client_for
