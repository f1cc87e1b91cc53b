"""
Aggregation endpoints for the dashboard.

Every endpoint is scoped to one site owned by the caller and one inclusive
date range, given either as from/to dates or as a named range.
"""

import logging
from datetime import date, datetime, timedelta, timezone

from fastapi import APIRouter, Header, HTTPException, Query

from ..config import RANGE_PRESETS, AnalyticsConfig
from ..core import aggregation
from ..core.client import AnalyticsClient
from ..core.models import DateRange, Overview
from ..identity import IdentityClient
from .common import parallel_queries, require_site, require_user

logger = logging.getLogger(__name__)

OVERVIEW_COLUMNS = "visitor_hash, session_id, duration, is_goal, timestamp"


def _today() -> date:
    """Current UTC date."""
    return datetime.now(timezone.utc).date()


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid date format: {value!r}. Use YYYY-MM-DD."
        )


def _parse_date_range(
    range_key: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    default_range: str = "30d",
) -> DateRange:
    """Resolve query parameters into an inclusive date range.

    Explicit dates take precedence over the named range. A missing `to`
    defaults to today and a missing `from` to 30 days before `to`.

    Named ranges (7d, 30d, 90d, 365d) end today and start N days earlier.
    Unknown names fall back to default_range.

    Raises:
        HTTPException: 400 for malformed dates or `to` before `from`
    """
    today = _today()

    if from_date or to_date:
        end = _parse_day(to_date) if to_date else today
        if from_date:
            start = _parse_day(from_date)
        else:
            try:
                start = end - timedelta(days=30)
            except OverflowError:
                raise HTTPException(status_code=400, detail=f"Date out of range: {to_date!r}")

        if end < start:
            raise HTTPException(
                status_code=400,
                detail="End date must be on or after start date"
            )
        return DateRange(start=start, end=end)

    days = RANGE_PRESETS.get(range_key or default_range, RANGE_PRESETS[default_range])
    return DateRange(start=today - timedelta(days=days), end=today)


def create_analytics_router(
    config: AnalyticsConfig,
    client: AnalyticsClient,
    identity: IdentityClient,
) -> APIRouter:
    """Create the /analytics router.

    Args:
        config: Service configuration
        client: D1 client for pageview reads
        identity: Identity provider client for bearer tokens
    """
    router = APIRouter(prefix="/analytics", tags=["analytics"])

    async def _scope(site_id, authorization, range_key, from_date, to_date):
        """Authenticate, check ownership and resolve the date range."""
        user = await require_user(identity, authorization)
        site = await require_site(client, site_id, user)
        date_range = _parse_date_range(range_key, from_date, to_date, config.default_range)
        return site, date_range

    @router.get("/{site_id}/overview")
    async def overview(
        site_id: str,
        authorization: str | None = Header(None),
        range_key: str | None = Query(None, alias="range"),
        from_date: str | None = Query(None, alias="from"),
        to_date: str | None = Query(None, alias="to"),
    ):
        """Headline numbers, previous-period comparison and daily visitors."""
        site, current_range = await _scope(site_id, authorization, range_key, from_date, to_date)
        try:
            previous_range = aggregation.previous_period(current_range)
        except OverflowError:
            raise HTTPException(
                status_code=400,
                detail="Date range has no previous period to compare against"
            )

        data = await parallel_queries(
            current=client.get_pageviews_in_range(site.id, current_range, OVERVIEW_COLUMNS),
            previous=client.get_pageviews_in_range(site.id, previous_range, OVERVIEW_COLUMNS),
            live=client.get_recent_pageviews(site.id, config.live_window_minutes),
        )

        current = aggregation.range_stats(data["current"])
        previous = aggregation.range_stats(data["previous"])

        result = Overview(
            **current.model_dump(),
            live_visitors=aggregation.unique_visitors(data["live"]),
            previous=previous,
            changes=aggregation.compare_stats(current, previous),
            graph=aggregation.daily_visitors(data["current"]),
            from_date=current_range.start,
            to_date=current_range.end,
        )
        return result.model_dump(mode="json", by_alias=True)

    @router.get("/{site_id}/referrals")
    async def referrals(
        site_id: str,
        authorization: str | None = Header(None),
        range_key: str | None = Query(None, alias="range"),
        from_date: str | None = Query(None, alias="from"),
        to_date: str | None = Query(None, alias="to"),
    ):
        """Referrers by pageview count. Pageviews without one count as Direct."""
        site, date_range = await _scope(site_id, authorization, range_key, from_date, to_date)
        rows = await client.get_pageviews_in_range(site.id, date_range, "referrer")
        return {
            "referrals": [r.model_dump() for r in aggregation.referrer_breakdown(rows)],
        }

    @router.get("/{site_id}/pages")
    async def pages(
        site_id: str,
        authorization: str | None = Header(None),
        range_key: str | None = Query(None, alias="range"),
        from_date: str | None = Query(None, alias="from"),
        to_date: str | None = Query(None, alias="to"),
    ):
        """Pages by pageview count."""
        site, date_range = await _scope(site_id, authorization, range_key, from_date, to_date)
        rows = await client.get_pageviews_in_range(site.id, date_range, "page_url")
        return {
            "pages": [p.model_dump() for p in aggregation.page_breakdown(rows)],
        }

    @router.get("/{site_id}/geo")
    async def geo(
        site_id: str,
        authorization: str | None = Header(None),
        range_key: str | None = Query(None, alias="range"),
        from_date: str | None = Query(None, alias="from"),
        to_date: str | None = Query(None, alias="to"),
    ):
        """Pageviews by country and city."""
        site, date_range = await _scope(site_id, authorization, range_key, from_date, to_date)
        rows = await client.get_pageviews_in_range(site.id, date_range, "country, city")
        return {
            "locations": [loc.model_dump() for loc in aggregation.geo_breakdown(rows)],
        }

    @router.get("/{site_id}/breakdown")
    async def breakdown(
        site_id: str,
        authorization: str | None = Header(None),
        type: str = Query("device"),
        range_key: str | None = Query(None, alias="range"),
        from_date: str | None = Query(None, alias="from"),
        to_date: str | None = Query(None, alias="to"),
    ):
        """Device (default) or browser breakdown."""
        site, date_range = await _scope(site_id, authorization, range_key, from_date, to_date)
        rows = await client.get_pageviews_in_range(site.id, date_range, "user_agent")

        if type == "browser":
            result = aggregation.browser_breakdown(rows)
        else:
            result = aggregation.device_breakdown(rows)
        return result.model_dump()

    return router
