"""
Pydantic models for analytics data.
"""
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

# =============================================================================
# Stored Records
# =============================================================================

class Site(BaseModel):
    """A tracked web property owned by one account."""
    id: str
    user_id: str
    domain: str
    api_key: str
    goal_url: str | None = None
    created_at: datetime | None = None


class PageView(BaseModel):
    """A single pageview event. Never updated after insert."""
    id: int | None = None
    site_id: str
    timestamp: datetime

    # Identity
    visitor_hash: str
    session_id: str

    page_url: str | None = None
    referrer: str | None = None
    user_agent: str = ""

    # Geography (not populated at ingestion)
    country: str | None = None
    city: str | None = None

    duration: int | None = 0  # seconds
    is_goal: bool = False

    @field_validator("is_goal", mode="before")
    @classmethod
    def _coerce_flag(cls, value):
        # D1 returns booleans as 0/1
        return bool(value) if value is not None else False


# =============================================================================
# Request Payloads
# =============================================================================

class TrackPayload(BaseModel):
    """Body posted by the tracking pixel."""
    visitor_hash: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    page_url: str = Field(min_length=1)
    referrer: str | None = None
    duration: float | None = Field(None, allow_inf_nan=False)


class SiteCreate(BaseModel):
    """Body for registering a new site."""
    domain: str | None = None
    goal_url: str | None = None


class Credentials(BaseModel):
    """Email/password pair forwarded to the identity provider."""
    email: str | None = None
    password: str | None = None


# =============================================================================
# Identity
# =============================================================================

class User(BaseModel):
    """An account as reported by the identity provider."""
    id: str
    email: str | None = None


class AuthSession(BaseModel):
    """Result of a successful login."""
    token: str
    user: User


# =============================================================================
# Aggregated Stats Models
# =============================================================================

class DateRange(BaseModel):
    """Inclusive date range for queries."""
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


class RangeStats(BaseModel):
    """Scalar aggregates for one date range."""
    total_visitors: int = 0
    total_sessions: int = 0
    avg_duration: int = 0  # seconds
    goal_conversions: int = 0
    conversion_rate: float = 0.0


class MetricChanges(BaseModel):
    """Percentage deltas against the previous period. None when undefined."""
    total_visitors: float | None = None
    total_sessions: float | None = None
    avg_duration: float | None = None


class DailyPoint(BaseModel):
    """Distinct visitors on one UTC calendar date."""
    date: date
    visitors: int


class Overview(RangeStats):
    """Overview card data."""
    live_visitors: int = 0
    previous: RangeStats
    changes: MetricChanges
    graph: list[DailyPoint]
    from_date: date = Field(serialization_alias="from")
    to_date: date = Field(serialization_alias="to")


class FrequencyEntry(BaseModel):
    """One row of a frequency table."""
    label: str
    count: int
    percentage: float


class ReferrerStats(BaseModel):
    referrer: str
    count: int
    percentage: float


class PageStats(BaseModel):
    page_url: str
    count: int
    percentage: float


class LocationStats(BaseModel):
    country: str
    city: str | None = None
    count: int
    percentage: float


class BreakdownItem(BaseModel):
    """Stats for a device or browser bucket."""
    name: str
    value: int
    percentage: float


class Breakdown(BaseModel):
    """Device or browser breakdown."""
    items: list[BreakdownItem]
    total: int
