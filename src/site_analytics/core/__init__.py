"""
Core analytics module.

Contains the data models, the D1 client and the aggregation functions.
"""

from .client import AnalyticsClient
from .models import (
    AuthSession,
    Breakdown,
    BreakdownItem,
    DailyPoint,
    DateRange,
    LocationStats,
    MetricChanges,
    Overview,
    PageStats,
    PageView,
    RangeStats,
    ReferrerStats,
    Site,
    TrackPayload,
    User,
)

__all__ = [
    "Site", "PageView", "TrackPayload", "User", "AuthSession",
    "DateRange", "RangeStats", "MetricChanges", "DailyPoint", "Overview",
    "ReferrerStats", "PageStats", "LocationStats", "Breakdown", "BreakdownItem",
    "AnalyticsClient",
]
