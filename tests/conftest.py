from __future__ import annotations

from datetime import datetime, timezone
from typing import Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from site_analytics.app import create_app
from site_analytics.config import AnalyticsConfig
from site_analytics.core.client import AnalyticsClient
from site_analytics.core.models import Site, User
from site_analytics.identity import IdentityClient

USER = User(id="user-1", email="owner@example.com")
GOOD_TOKEN = "good-token"

SITE = Site(
    id="site-1",
    user_id=USER.id,
    domain="example.com",
    api_key="key-123",
    goal_url="/thanks",
    created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
)


@pytest.fixture()
def config() -> AnalyticsConfig:
    return AnalyticsConfig(
        d1_database_id="test-db",
        cf_account_id="test-account",
        cf_api_token="test-token",
        identity_url="https://auth.example.test",
        identity_api_key="service-key",
    )


@pytest.fixture()
def store() -> AnalyticsClient:
    """D1 client with every store call mocked."""
    client = AnalyticsClient(
        d1_database_id="test-db",
        cf_account_id="test-account",
        cf_api_token="test-token",
    )
    client._query = AsyncMock(side_effect=AssertionError("unexpected raw query"))
    client.get_site_by_api_key = AsyncMock(
        side_effect=lambda key: SITE if key == SITE.api_key else None
    )
    client.get_site = AsyncMock(
        side_effect=lambda site_id, user_id: SITE if (site_id, user_id) == (SITE.id, SITE.user_id) else None
    )
    client.list_sites = AsyncMock(return_value=[SITE])
    client.create_site = AsyncMock(return_value=SITE)
    client.delete_site = AsyncMock(return_value=True)
    client.insert_pageview = AsyncMock(return_value=None)
    client.get_pageviews_in_range = AsyncMock(return_value=[])
    client.get_recent_pageviews = AsyncMock(return_value=[])
    return client


@pytest.fixture()
def identity() -> IdentityClient:
    """Identity client that accepts only GOOD_TOKEN."""
    identity = IdentityClient("https://auth.example.test", "service-key")
    identity.get_user = AsyncMock(side_effect=lambda token: USER if token == GOOD_TOKEN else None)
    identity.sign_in = AsyncMock()
    identity.sign_up = AsyncMock()
    return identity


@pytest.fixture()
def api(config, store, identity) -> Generator[TestClient, None, None]:
    with TestClient(create_app(config, store, identity)) as test_client:
        yield test_client
