"""Argument handling and service lifecycle shared by the CLI entry points."""

import argparse
from contextlib import contextmanager
from typing import Iterator

from usersync import create_service
from usersync.config import Settings, configure_logging, load_settings
from usersync.schema import ensure_schema
from usersync.service import DatabaseService


def base_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--db-url", help="Database URL (sqlite:/// or postgresql://); default $USERSYNC_DB_URL"
    )
    parser.add_argument("--pool-size", type=int, help="Connection pool size")
    parser.add_argument(
        "--verbose", action="store_true", default=None, help="Log diagnostics (DEBUG level)"
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    settings = load_settings().override(
        db_url=args.db_url, pool_size=args.pool_size, verbose=args.verbose
    )
    configure_logging(settings)
    return settings


@contextmanager
def open_service(settings: Settings) -> Iterator[DatabaseService]:
    """Connect, make sure the tables exist, and always close the pool."""
    service = create_service(settings.require_db_url(), settings.pool_size)
    service.connect()
    try:
        ensure_schema(service)
        yield service
    finally:
        service.close()
