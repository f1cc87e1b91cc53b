"""
Pageview analytics API for tracked websites.

Usage:
    from site_analytics import AnalyticsConfig, create_app

    app = create_app(AnalyticsConfig(
        d1_database_id="your-d1-id",
        cf_account_id="your-account-id",
        cf_api_token="your-api-token",
        identity_url="https://your-project.supabase.co",
        identity_api_key="your-service-key",
    ))

    # Or configure from SITE_ANALYTICS_* environment variables:
    #   uvicorn --factory site_analytics.app:create_app

The D1 schema is in site_analytics/schema.sql.
"""

from .app import create_app
from .config import AnalyticsConfig
from .core.client import AnalyticsClient
from .core.models import PageView, Site
from .identity import IdentityClient

__version__ = "0.1.0"
__all__ = [
    "create_app",
    "AnalyticsConfig",
    "AnalyticsClient",
    "IdentityClient",
    "PageView",
    "Site",
]
