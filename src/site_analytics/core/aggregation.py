"""
Aggregation over the pageview event log.

Every function here is pure: it takes rows already fetched for one site and
one inclusive date range and reduces them. Rows may be PageView models or the
plain dicts returned by D1; only the fields a function needs must be present.

Unique visitors and sessions are cardinalities of distinct values, never row
counts.
"""
import math
from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from typing import Any

from ..user_agent import classify_user_agent
from .models import (
    BreakdownItem, Breakdown, DailyPoint, DateRange, FrequencyEntry,
    LocationStats, MetricChanges, PageStats, RangeStats, ReferrerStats,
)

DIRECT_REFERRER = "Direct"
UNKNOWN_PAGE = "unknown"
UNKNOWN_COUNTRY = "Unknown"


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves upward: 2.5 -> 3, 6.25 -> 6.3, -2.5 -> -2."""
    if digits == 0:
        return int(math.floor(value + 0.5))
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _field(event: Any, name: str) -> Any:
    if isinstance(event, Mapping):
        return event.get(name)
    return getattr(event, name, None)


def _event_date(value: Any) -> date:
    """UTC calendar date of a stored timestamp."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # D1 stores "YYYY-MM-DD HH:MM:SS"; ISO "T" separated strings also work
    return date.fromisoformat(str(value)[:10])


# =============================================================================
# Scalars
# =============================================================================

def unique_visitors(events: Iterable[Any]) -> int:
    """Number of distinct visitor hashes."""
    return len({_field(e, "visitor_hash") for e in events})


def session_count(events: Iterable[Any]) -> int:
    """Number of distinct session ids."""
    return len({_field(e, "session_id") for e in events})


def average_duration(events: Iterable[Any]) -> int:
    """Mean duration in whole seconds, 0 when there are no events."""
    durations = [_field(e, "duration") or 0 for e in events]
    if not durations:
        return 0
    return round_half_up(sum(durations) / len(durations))


def goal_conversions(events: Iterable[Any]) -> int:
    """Distinct visitors with at least one goal pageview."""
    return len({_field(e, "visitor_hash") for e in events if _field(e, "is_goal")})


def percent_change(current: float, previous: float | None) -> float | None:
    """Percentage delta from previous to current.

    Undefined (None) when there is no previous value or it is zero.
    """
    if not previous:
        return None
    return round_half_up((current - previous) / previous * 100, 1)


def range_stats(events: Iterable[Any]) -> RangeStats:
    """Scalar aggregates for one range of events."""
    events = list(events)
    visitors = unique_visitors(events)
    conversions = goal_conversions(events)
    return RangeStats(
        total_visitors=visitors,
        total_sessions=session_count(events),
        avg_duration=average_duration(events),
        goal_conversions=conversions,
        conversion_rate=round_half_up(conversions / visitors * 100, 1) if visitors else 0.0,
    )


def compare_stats(current: RangeStats, previous: RangeStats) -> MetricChanges:
    return MetricChanges(
        total_visitors=percent_change(current.total_visitors, previous.total_visitors),
        total_sessions=percent_change(current.total_sessions, previous.total_sessions),
        avg_duration=percent_change(current.avg_duration, previous.avg_duration),
    )


def previous_period(date_range: DateRange) -> DateRange:
    """Window of equal length ending the day before date_range starts."""
    end = date_range.start - timedelta(days=1)
    start = end - timedelta(days=date_range.days - 1)
    return DateRange(start=start, end=end)


# =============================================================================
# Time Series
# =============================================================================

def daily_visitors(events: Iterable[Any]) -> list[DailyPoint]:
    """Distinct visitors per UTC day, ascending. Days without events are omitted."""
    by_day: dict[date, set] = {}
    for e in events:
        day = _event_date(_field(e, "timestamp"))
        by_day.setdefault(day, set()).add(_field(e, "visitor_hash"))

    return [
        DailyPoint(date=day, visitors=len(visitors))
        for day, visitors in sorted(by_day.items())
    ]


# =============================================================================
# Frequency Tables
# =============================================================================

def frequency_table(labels: Iterable[str]) -> list[FrequencyEntry]:
    """Count labels, sort by count descending, attach percentage of total.

    Ties keep first-seen order.
    """
    counts = Counter(labels)
    total = sum(counts.values())

    # Counter preserves insertion order and sorted() is stable
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [
        FrequencyEntry(
            label=label,
            count=count,
            percentage=round_half_up(count / total * 100, 1) if total > 0 else 0.0,
        )
        for label, count in ranked
    ]


def _referrer_label(referrer: str | None) -> str:
    return (referrer or "").strip() or DIRECT_REFERRER


def _location_label(event: Any) -> tuple[str, str | None]:
    country = _field(event, "country")
    if not country:
        return (UNKNOWN_COUNTRY, None)
    return (country, _field(event, "city") or None)


def referrer_breakdown(events: Iterable[Any]) -> list[ReferrerStats]:
    """Top referrers. Missing or blank referrers count as Direct."""
    table = frequency_table(_referrer_label(_field(e, "referrer")) for e in events)
    return [
        ReferrerStats(referrer=row.label, count=row.count, percentage=row.percentage)
        for row in table
    ]


def page_breakdown(events: Iterable[Any]) -> list[PageStats]:
    """Top pages by pageview count."""
    table = frequency_table(_field(e, "page_url") or UNKNOWN_PAGE for e in events)
    return [
        PageStats(page_url=row.label, count=row.count, percentage=row.percentage)
        for row in table
    ]


def geo_breakdown(events: Iterable[Any]) -> list[LocationStats]:
    """Pageviews by country, or country and city when the city is known."""
    locations: dict[str, tuple[str, str | None]] = {}
    labels = []
    for e in events:
        country, city = _location_label(e)
        label = f"{country} - {city}" if city else country
        locations[label] = (country, city)
        labels.append(label)

    rows = []
    for row in frequency_table(labels):
        country, city = locations[row.label]
        rows.append(LocationStats(country=country, city=city, count=row.count, percentage=row.percentage))
    return rows


def _breakdown(labels: Iterable[str]) -> Breakdown:
    table = frequency_table(labels)
    return Breakdown(
        items=[BreakdownItem(name=row.label, value=row.count, percentage=row.percentage) for row in table],
        total=sum(row.count for row in table),
    )


def device_breakdown(events: Iterable[Any]) -> Breakdown:
    """Pageviews by device category parsed from the stored User-Agent."""
    return _breakdown(classify_user_agent(_field(e, "user_agent")).device_label for e in events)


def browser_breakdown(events: Iterable[Any]) -> Breakdown:
    """Pageviews by browser family parsed from the stored User-Agent."""
    return _breakdown(classify_user_agent(_field(e, "user_agent")).browser for e in events)
