"""Tests for settings loading."""

import pytest

from usersync.config import Settings, load_settings
from usersync.errors import ConfigurationError
from usersync.importer import UpsertMode


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings({})
        assert settings == Settings()
        assert settings.upsert_mode is UpsertMode.UPDATE_THEN_INSERT

    def test_from_environment(self):
        settings = load_settings(
            {
                "USERSYNC_DB_URL": "sqlite:///x.db",
                "USERSYNC_POOL_SIZE": "2",
                "USERSYNC_LOG_LEVEL": "warning",
                "USERSYNC_VERBOSE": "yes",
                "USERSYNC_UPSERT_MODE": "merge",
            }
        )
        assert settings.db_url == "sqlite:///x.db"
        assert settings.pool_size == 2
        assert settings.log_level == "WARNING"
        assert settings.verbose is True
        assert settings.upsert_mode is UpsertMode.MERGE

    @pytest.mark.parametrize(
        "env",
        [
            {"USERSYNC_POOL_SIZE": "many"},
            {"USERSYNC_POOL_SIZE": "0"},
            {"USERSYNC_POOL_SIZE": "-2"},
            {"USERSYNC_UPSERT_MODE": "replace"},
            {"USERSYNC_LOG_LEVEL": "foo"},
        ],
    )
    def test_invalid_values(self, env):
        with pytest.raises(ConfigurationError):
            load_settings(env)

    def test_override_ignores_none(self):
        settings = Settings(db_url="sqlite:///a.db").override(db_url=None, pool_size=8)
        assert settings.db_url == "sqlite:///a.db"
        assert settings.pool_size == 8

    def test_db_url_required(self):
        with pytest.raises(ConfigurationError, match="db-url"):
            Settings().require_db_url()

    def test_override_rejects_empty_pool(self):
        with pytest.raises(ConfigurationError, match="pool_size"):
            Settings().override(pool_size=0)

    def test_unknown_log_level(self):
        with pytest.raises(ConfigurationError, match="log level"):
            Settings(log_level="LOUD")
