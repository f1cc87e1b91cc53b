"""
Configuration for Site Analytics.
"""
import logging
import os
from dataclasses import dataclass, field

from .errors import ConfigError

logger = logging.getLogger(__name__)

# Named range shorthands accepted by the aggregation endpoints
RANGE_PRESETS = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "365d": 365,
}

ENV_PREFIX = "SITE_ANALYTICS_"


@dataclass
class AnalyticsConfig:
    """Configuration for a Site Analytics deployment."""

    # Required
    d1_database_id: str
    cf_account_id: str
    cf_api_token: str
    identity_url: str  # GoTrue-compatible auth server (e.g. https://xyz.supabase.co)
    identity_api_key: str  # Service key, also used for admin user creation

    # Aggregation
    live_window_minutes: int = 5
    default_range: str = "30d"

    # Performance
    query_timeout_seconds: float = 30.0

    # Service
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.default_range not in RANGE_PRESETS:
            raise ConfigError(
                f"default_range must be one of {', '.join(RANGE_PRESETS)}. "
                f"Got {self.default_range!r}."
            )
        if self.live_window_minutes <= 0:
            raise ConfigError("live_window_minutes must be positive")
        if self.query_timeout_seconds <= 0:
            raise ConfigError("query_timeout_seconds must be positive")
        self.identity_url = self.identity_url.rstrip("/")

    @property
    def default_range_days(self) -> int:
        return RANGE_PRESETS[self.default_range]

    @classmethod
    def from_env(cls, environ: dict | None = None) -> "AnalyticsConfig":
        """Build a config from SITE_ANALYTICS_* environment variables.

        Required: D1_DATABASE_ID, CF_ACCOUNT_ID, CF_API_TOKEN,
        IDENTITY_URL, IDENTITY_API_KEY.

        Optional: LIVE_WINDOW_MINUTES, DEFAULT_RANGE, QUERY_TIMEOUT_SECONDS,
        LOG_LEVEL, CORS_ORIGINS (comma separated).
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: str | None = None) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else default

        required = {
            "d1_database_id": "D1_DATABASE_ID",
            "cf_account_id": "CF_ACCOUNT_ID",
            "cf_api_token": "CF_API_TOKEN",
            "identity_url": "IDENTITY_URL",
            "identity_api_key": "IDENTITY_API_KEY",
        }
        missing = [ENV_PREFIX + name for name in required.values() if get(name) is None]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

        kwargs = {attr: get(name) for attr, name in required.items()}

        try:
            kwargs["live_window_minutes"] = int(get("LIVE_WINDOW_MINUTES", "5"))
            kwargs["query_timeout_seconds"] = float(get("QUERY_TIMEOUT_SECONDS", "30"))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        kwargs["default_range"] = get("DEFAULT_RANGE", "30d")
        kwargs["log_level"] = get("LOG_LEVEL", "INFO").upper()

        origins = get("CORS_ORIGINS")
        if origins:
            kwargs["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

        config = cls(**kwargs)
        logger.debug(f"Loaded config for D1 database {config.d1_database_id}")
        return config
