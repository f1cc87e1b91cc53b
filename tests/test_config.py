"""Tests for configuration loading."""

import pytest

from site_analytics.config import AnalyticsConfig
from site_analytics.errors import ConfigError

REQUIRED_ENV = {
    "SITE_ANALYTICS_D1_DATABASE_ID": "db-1",
    "SITE_ANALYTICS_CF_ACCOUNT_ID": "acct-1",
    "SITE_ANALYTICS_CF_API_TOKEN": "cf-token",
    "SITE_ANALYTICS_IDENTITY_URL": "https://auth.example.test/",
    "SITE_ANALYTICS_IDENTITY_API_KEY": "service-key",
}


class TestFromEnv:
    def test_defaults(self):
        config = AnalyticsConfig.from_env(REQUIRED_ENV)

        assert config.d1_database_id == "db-1"
        assert config.identity_url == "https://auth.example.test"
        assert config.live_window_minutes == 5
        assert config.default_range == "30d"
        assert config.default_range_days == 30
        assert config.cors_origins == ["*"]
        assert config.log_level == "INFO"

    def test_missing_required(self):
        env = {k: v for k, v in REQUIRED_ENV.items() if k != "SITE_ANALYTICS_CF_API_TOKEN"}

        with pytest.raises(ConfigError, match="SITE_ANALYTICS_CF_API_TOKEN"):
            AnalyticsConfig.from_env(env)

    def test_empty_value_counts_as_missing(self):
        with pytest.raises(ConfigError):
            AnalyticsConfig.from_env({**REQUIRED_ENV, "SITE_ANALYTICS_D1_DATABASE_ID": ""})

    def test_optional_settings(self):
        config = AnalyticsConfig.from_env({
            **REQUIRED_ENV,
            "SITE_ANALYTICS_LIVE_WINDOW_MINUTES": "10",
            "SITE_ANALYTICS_DEFAULT_RANGE": "7d",
            "SITE_ANALYTICS_LOG_LEVEL": "debug",
            "SITE_ANALYTICS_CORS_ORIGINS": "https://a.example, https://b.example,",
        })

        assert config.live_window_minutes == 10
        assert config.default_range_days == 7
        assert config.log_level == "DEBUG"
        assert config.cors_origins == ["https://a.example", "https://b.example"]

    def test_bad_number(self):
        with pytest.raises(ConfigError, match="numeric"):
            AnalyticsConfig.from_env({**REQUIRED_ENV, "SITE_ANALYTICS_LIVE_WINDOW_MINUTES": "five"})


class TestValidation:
    def _config(self, **overrides):
        values = {
            "d1_database_id": "db",
            "cf_account_id": "acct",
            "cf_api_token": "token",
            "identity_url": "https://auth.example.test",
            "identity_api_key": "key",
        }
        values.update(overrides)
        return AnalyticsConfig(**values)

    def test_unknown_default_range(self):
        with pytest.raises(ConfigError, match="default_range"):
            self._config(default_range="14d")

    def test_non_positive_live_window(self):
        with pytest.raises(ConfigError):
            self._config(live_window_minutes=0)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            self._config(query_timeout_seconds=-1)
