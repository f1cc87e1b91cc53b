"""
HTTP client for the Cloudflare D1 database holding sites and pageviews.

Reads return raw rows; aggregation happens in core.aggregation.
"""
import logging
import secrets
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from ..errors import StoreError
from .models import DateRange, Site

logger = logging.getLogger(__name__)

# D1 (SQLite) datetime text format; lexical order equals time order
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

SITE_COLUMNS = "id, user_id, domain, api_key, goal_url, created_at"
PAGEVIEW_COLUMNS = (
    "id, site_id, visitor_hash, session_id, referrer, user_agent, "
    "country, city, page_url, duration, is_goal, timestamp"
)


def format_timestamp(value: datetime) -> str:
    """Render a datetime as UTC D1 text."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsClient:
    """Client for reading and writing analytics data in Cloudflare D1."""

    def __init__(
        self,
        d1_database_id: str,
        cf_account_id: str,
        cf_api_token: str,
        timeout: float = 30.0,
    ):
        self.database_id = d1_database_id
        self.account_id = cf_account_id
        self.api_token = cf_api_token
        self.timeout = timeout
        self.base_url = f"https://api.cloudflare.com/client/v4/accounts/{cf_account_id}/d1/database/{d1_database_id}"

    async def _query(self, sql: str, params: Optional[list] = None) -> list[dict]:
        """Execute a SQL query against D1."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/query",
                    headers={
                        "Authorization": f"Bearer {self.api_token}",
                        "Content-Type": "application/json",
                    },
                    json={"sql": sql, "params": params or []},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"D1 request failed: {e}")
            raise StoreError(f"D1 request failed: {e}") from e

        if not data.get("success"):
            logger.error(f"D1 query failed: {data.get('errors')}")
            raise StoreError(f"D1 query failed: {data.get('errors')}")

        results = data.get("result", [])
        if results and len(results) > 0:
            return results[0].get("results", [])
        return []

    async def _execute(self, sql: str, params: Optional[list] = None) -> None:
        """Execute a SQL statement without returning results."""
        await self._query(sql, params)

    # =========================================================================
    # SITES
    # =========================================================================

    async def get_site_by_api_key(self, api_key: str) -> Optional[Site]:
        """Resolve a pixel access key to its site."""
        result = await self._query(
            f"SELECT {SITE_COLUMNS} FROM sites WHERE api_key = ? LIMIT 1",
            [api_key],
        )
        return Site(**result[0]) if result else None

    async def get_site(self, site_id: str, user_id: str) -> Optional[Site]:
        """Get a site if it exists and is owned by user_id."""
        result = await self._query(
            f"SELECT {SITE_COLUMNS} FROM sites WHERE id = ? AND user_id = ? LIMIT 1",
            [site_id, user_id],
        )
        return Site(**result[0]) if result else None

    async def list_sites(self, user_id: str) -> list[Site]:
        """List an account's sites, newest first."""
        results = await self._query(
            f"SELECT {SITE_COLUMNS} FROM sites WHERE user_id = ? ORDER BY created_at DESC",
            [user_id],
        )
        return [Site(**r) for r in results]

    async def create_site(self, user_id: str, domain: str, goal_url: Optional[str] = None) -> Site:
        """Register a site with a fresh id and access key."""
        site = Site(
            id=str(uuid.uuid4()),
            user_id=user_id,
            domain=domain,
            api_key=secrets.token_urlsafe(24),
            goal_url=goal_url or None,
            created_at=utcnow().replace(microsecond=0),
        )
        await self._execute(
            """
            INSERT INTO sites (id, user_id, domain, api_key, goal_url, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [site.id, site.user_id, site.domain, site.api_key, site.goal_url,
             format_timestamp(site.created_at)],
        )
        logger.info(f"Created site {site.id} ({site.domain}) for user {user_id}")
        return site

    async def delete_site(self, site_id: str, user_id: str) -> bool:
        """Delete an owned site and its pageviews. Returns True if deleted."""
        site = await self.get_site(site_id, user_id)
        if site is None:
            return False

        # Pageviews go first so none is left referencing a missing site
        await self._execute("DELETE FROM pageviews WHERE site_id = ?", [site_id])
        await self._execute(
            "DELETE FROM sites WHERE id = ? AND user_id = ?",
            [site_id, user_id],
        )
        logger.info(f"Deleted site {site_id} for user {user_id}")
        return True

    # =========================================================================
    # PAGEVIEWS
    # =========================================================================

    async def insert_pageview(
        self,
        site_id: str,
        visitor_hash: str,
        session_id: str,
        page_url: str,
        referrer: Optional[str] = None,
        user_agent: str = "",
        duration: int = 0,
        is_goal: bool = False,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Append one pageview row. Geography is not resolved at ingestion."""
        await self._execute(
            """
            INSERT INTO pageviews (
                site_id, visitor_hash, session_id, referrer, user_agent,
                country, city, page_url, duration, is_goal, timestamp
            )
            VALUES (?, ?, ?, ?, ?, NULL, NULL, ?, ?, ?, ?)
            """,
            [
                site_id, visitor_hash, session_id, referrer, user_agent,
                page_url, duration, 1 if is_goal else 0,
                format_timestamp(timestamp or utcnow()),
            ],
        )

    async def get_pageviews(
        self,
        site_id: str,
        start_date: date,
        end_date: date,
        columns: str = PAGEVIEW_COLUMNS,
    ) -> list[dict[str, Any]]:
        """Raw pageview rows for a site within an inclusive date range."""
        return await self._query(
            f"""
            SELECT {columns}
            FROM pageviews
            WHERE site_id = ? AND date(timestamp) >= ? AND date(timestamp) <= ?
            ORDER BY timestamp ASC
            """,
            [site_id, start_date.isoformat(), end_date.isoformat()],
        )

    async def get_pageviews_in_range(
        self,
        site_id: str,
        date_range: DateRange,
        columns: str = PAGEVIEW_COLUMNS,
    ) -> list[dict[str, Any]]:
        return await self.get_pageviews(site_id, date_range.start, date_range.end, columns)

    async def get_recent_pageviews(
        self,
        site_id: str,
        minutes: int = 5,
        columns: str = "visitor_hash, session_id, timestamp",
    ) -> list[dict[str, Any]]:
        """Pageviews within the trailing window of the given length."""
        cutoff = utcnow() - timedelta(minutes=minutes)
        return await self._query(
            f"""
            SELECT {columns}
            FROM pageviews
            WHERE site_id = ? AND timestamp >= ?
            """,
            [site_id, format_timestamp(cutoff)],
        )

