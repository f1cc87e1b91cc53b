"""
API routes.

Each area has its own router factory; create_api_router mounts them all.
"""

from fastapi import APIRouter

from ..config import AnalyticsConfig
from ..core.client import AnalyticsClient
from ..identity import IdentityClient
from .analytics import create_analytics_router
from .auth import create_auth_router
from .sites import create_sites_router
from .tracking import create_tracking_router


def create_api_router(
    config: AnalyticsConfig,
    client: AnalyticsClient,
    identity: IdentityClient,
) -> APIRouter:
    """Router with tracking, analytics, site and account endpoints."""
    router = APIRouter()
    router.include_router(create_tracking_router(client))
    router.include_router(create_analytics_router(config, client, identity))
    router.include_router(create_sites_router(client, identity))
    router.include_router(create_auth_router(identity))
    return router


__all__ = [
    "create_api_router",
    "create_analytics_router",
    "create_auth_router",
    "create_sites_router",
    "create_tracking_router",
]
