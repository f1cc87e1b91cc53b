"""
Pageview ingestion endpoint used by the tracking pixel.
"""

import logging

import pydantic
from fastapi import APIRouter, HTTPException, Query, Request, Response

from ..core.aggregation import round_half_up
from ..core.client import AnalyticsClient
from ..core.models import Site, TrackPayload
from ..errors import StoreError, ValidationError

logger = logging.getLogger(__name__)


def _is_goal(site: Site, page_url: str) -> bool:
    """A pageview converts when its path equals the site's goal URL."""
    return bool(site.goal_url) and page_url == site.goal_url


def create_tracking_router(client: AnalyticsClient) -> APIRouter:
    """Create the public /track router.

    Args:
        client: D1 client used to resolve access keys and store pageviews
    """
    router = APIRouter(tags=["tracking"])

    @router.post("/track", status_code=204)
    async def track(request: Request, key: str | None = Query(None)):
        """Record one pageview for the site owning `key`."""
        if not key:
            raise HTTPException(status_code=401, detail="Missing API key")

        site = await client.get_site_by_api_key(key)
        if site is None:
            logger.debug("Rejected pageview with unknown API key")
            raise HTTPException(status_code=401, detail="Invalid API key")

        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("Invalid JSON body")

        try:
            payload = TrackPayload.model_validate(body)
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Invalid pageview payload",
                details=e.errors(include_url=False, include_context=False, include_input=False),
            )

        try:
            await client.insert_pageview(
                site_id=site.id,
                visitor_hash=payload.visitor_hash,
                session_id=payload.session_id,
                page_url=payload.page_url,
                referrer=(payload.referrer or "").strip() or None,
                user_agent=request.headers.get("user-agent", ""),
                duration=round_half_up(payload.duration or 0),
                is_goal=_is_goal(site, payload.page_url),
            )
        except StoreError as e:
            logger.error(f"Insert error for site {site.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to track")

        return Response(status_code=204)

    return router
