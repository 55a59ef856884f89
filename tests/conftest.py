"""Pytest configuration and shared fixtures.

Fixtures are organized by category:
- Data fixtures: Sample accounts and account documents
- Mock fixtures: Pre-configured mock identity service client
- Infrastructure fixtures: Metrics reset, service configuration
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.account_migration.api.client import IdentityToolkitClient
from src.account_migration.config import ServiceConfig
from src.account_migration.models.user import ProviderLink, UserRecord
from src.account_migration.observability.metrics import reset_global_collector

API_ORIGIN = "https://identity.example.com"

# =============================================================================
# Data Fixtures
# =============================================================================


def make_user(local_id: str = "123", **overrides: Any) -> UserRecord:
    """Build an account, overriding any field by its snake_case name."""
    fields: dict[str, Any] = {
        "local_id": local_id,
        "email": f"user{local_id}@example.com",
        "email_verified": True,
        "display_name": f"User {local_id}",
        "created_at": "1484124142000",
        "last_login_at": "1484124142001",
        "disabled": False,
    }
    fields.update(overrides)
    return UserRecord(**fields)


@pytest.fixture
def password_user() -> UserRecord:
    """Account with a URL-safe password hash, salt and two provider links."""
    return make_user(
        "pw-1",
        password_hash="ab-c_d==",
        salt="s-a_lt==",
        version=0,
        photo_url="https://example.com/pw-1.png",
        phone_number="+15555550100",
        provider_user_info=[
            ProviderLink(
                provider_id="google.com",
                raw_id="g-123",
                email="pw-1@gmail.com",
                display_name="G User",
                photo_url="https://example.com/g.png",
            ),
            ProviderLink(provider_id="github.com", raw_id="gh-9", email="pw-1@github.example"),
        ],
    )


@pytest.fixture
def sample_document() -> dict[str, Any]:
    """A valid account document as found in a JSON account file."""
    return {
        "localId": "doc-1",
        "email": "doc-1@example.com",
        "emailVerified": True,
        "passwordHash": "YWJj+/==",
        "salt": "c2FsdA==",
        "displayName": "Doc One",
        "lastSignedInAt": "1484124142001",
        "createdAt": "1484124142000",
        "providerUserInfo": [
            {"providerId": "facebook.com", "rawId": "fb-1", "email": "doc-1@fb.example"}
        ],
    }


@pytest.fixture
def user_factory():
    """Factory for accounts: user_factory("42", email=None, disabled=True)."""
    return make_user


# =============================================================================
# Mock Client Fixtures
# =============================================================================


@pytest.fixture
def mock_client() -> AsyncMock:
    """Create a mock identity service client.

    ``post`` returns an empty body by default. Tests set ``return_value`` or
    ``side_effect`` for the responses they need.
    """
    client = AsyncMock(spec=IdentityToolkitClient)
    client.post.return_value = {}
    return client


# =============================================================================
# Infrastructure Fixtures
# =============================================================================


@pytest.fixture
def service_config() -> ServiceConfig:
    """Service configuration pointing at the mocked API origin."""
    return ServiceConfig(
        project_id="demo-project",
        access_token="test-token",
        base_url=API_ORIGIN,
        timeout=5.0,
    )


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Start every test with an empty global metrics collector."""
    reset_global_collector()
    yield
    reset_global_collector()
