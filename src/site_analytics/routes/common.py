"""
Helpers shared by the API routers.
"""

import asyncio
import logging

from ..core.client import AnalyticsClient
from ..core.models import Site, User
from ..errors import AuthenticationError, NotFoundError
from ..identity import IdentityClient

logger = logging.getLogger(__name__)


def _bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


async def require_user(identity: IdentityClient, authorization: str | None) -> User:
    """Resolve the caller or fail with 401."""
    token = _bearer_token(authorization)
    if not token:
        raise AuthenticationError("Unauthorized")

    user = await identity.get_user(token)
    if user is None:
        raise AuthenticationError("Invalid token")
    return user


async def require_site(client: AnalyticsClient, site_id: str, user: User) -> Site:
    """Fetch a site owned by the caller or fail with 404."""
    site = await client.get_site(site_id, user.id)
    if site is None:
        raise NotFoundError("Site not found")
    return site


async def parallel_queries(**queries) -> dict:
    """Run independent store reads concurrently.

    Args:
        **queries: Named coroutines (e.g. current=client.get_pageviews(...))

    Returns:
        Dict with the same keys mapped to each result. The first failure is
        logged and re-raised so the request fails as a whole.
    """
    names = list(queries.keys())
    results = await asyncio.gather(*queries.values(), return_exceptions=True)

    output = {}
    for name, result in zip(names, results):
        if isinstance(result, BaseException):
            logger.error(f"Query '{name}' failed: {result}")
            raise result
        output[name] = result
    return output
