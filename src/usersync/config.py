"""Runtime settings, read from the environment and overridden by CLI flags."""

import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping

from usersync.errors import ConfigurationError
from usersync.importer import UpsertMode

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    db_url: str | None = None
    pool_size: int = 4
    log_level: str = "INFO"
    verbose: bool = False
    upsert_mode: UpsertMode = UpsertMode.UPDATE_THEN_INSERT

    def __post_init__(self):
        if self.pool_size < 1:
            raise ConfigurationError(f"pool_size must be at least 1, got {self.pool_size}")
        if self.log_level not in logging.getLevelNamesMapping():
            raise ConfigurationError(f"Unknown log level: {self.log_level!r}")

    def override(self, **values) -> "Settings":
        """Return a copy with every non-None value applied."""
        return replace(self, **{k: v for k, v in values.items() if v is not None})

    def require_db_url(self) -> str:
        if not self.db_url:
            raise ConfigurationError("'db-url' is required. Pass --db-url or set USERSYNC_DB_URL.")
        return self.db_url


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    try:
        pool_size = int(env.get("USERSYNC_POOL_SIZE", "4"))
    except ValueError:
        raise ConfigurationError("USERSYNC_POOL_SIZE must be an integer") from None
    try:
        mode = UpsertMode(env.get("USERSYNC_UPSERT_MODE", UpsertMode.UPDATE_THEN_INSERT.value))
    except ValueError:
        raise ConfigurationError(
            f"USERSYNC_UPSERT_MODE must be one of {[m.value for m in UpsertMode]}"
        ) from None
    return Settings(
        db_url=env.get("USERSYNC_DB_URL") or None,
        pool_size=pool_size,
        log_level=env.get("USERSYNC_LOG_LEVEL", "INFO").upper(),
        verbose=env.get("USERSYNC_VERBOSE", "").lower() in _TRUTHY,
        upsert_mode=mode,
    )


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.verbose else settings.log_level
    logging.basicConfig(level=level, format=LOG_FORMAT)
