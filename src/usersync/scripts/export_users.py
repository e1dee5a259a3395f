"""CLI entry point for exporting a table to a delimited file.

Usage:
    python -m usersync.scripts.export_users --db-url sqlite:///data.db --output users.csv [--entity user]
"""

import logging
import sys

from usersync.errors import SyncError
from usersync.exporter import export_records
from usersync.schema import SCHEMAS
from usersync.scripts.common import base_parser, open_service, settings_from_args

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = base_parser("Export a table to a quoted, comma-separated file")
    parser.add_argument("--output", required=True, help="Path of the file to create")
    parser.add_argument("--entity", choices=sorted(SCHEMAS), default="user", help="Table to export")
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args)
        with open_service(settings) as service:
            result = export_records(service, args.output, SCHEMAS[args.entity])
    except SyncError as e:
        logger.error("%s", e)
        return 1

    logger.info("Done. %d rows exported.", result.rows)
    return 0


if __name__ == "__main__":
    sys.exit(main())
