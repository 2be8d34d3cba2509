"""
Tests for fail-fast configuration validation.
"""

import pytest

from toolflix.config import ConfigurationError, Settings

VALID = {
    "database_url": "postgresql+asyncpg://u:p@localhost:5432/db",
    "jwt_secret": "0123456789abcdef",
}


class TestSettings:
    """Tests for Settings validation."""

    def test_valid_config(self):
        config = Settings(**VALID)

        assert config.chat_ttl_days == 7
        assert config.chat_ttl_ms == 7 * 86_400_000
        assert config.chat_rate_limit_ms == 30_000
        assert config.token_default_validity_days == 30

    def test_non_postgres_url_rejected(self, capsys):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(**{**VALID, "database_url": "mysql://u:p@localhost/db"})

        assert "PostgreSQL" in str(exc_info.value)
        assert "CRITICAL CONFIGURATION ERROR" in capsys.readouterr().err

    def test_short_jwt_secret_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(**{**VALID, "jwt_secret": "short"})
        assert "JWT_SECRET" in str(exc_info.value)

    def test_non_positive_ttl_rejected(self):
        with pytest.raises(ConfigurationError):
            Settings(**{**VALID, "chat_ttl_days": 0})

    def test_all_errors_reported_together(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(database_url="", jwt_secret="")

        message = str(exc_info.value)
        assert "DATABASE_URL" in message
        assert "JWT_SECRET" in message
