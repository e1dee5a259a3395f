"""CLI entry point for importing a delimited file with update-or-insert per row.

Usage:
    python -m usersync.scripts.import_users --db-url sqlite:///data.db --input users.csv [--mode merge]
"""

import logging
import sys

from usersync.errors import SyncError
from usersync.importer import UpsertMode, import_records
from usersync.schema import SCHEMAS
from usersync.scripts.common import base_parser, open_service, settings_from_args

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = base_parser("Import a quoted, comma-separated file into a table")
    parser.add_argument("--input", required=True, help="Path of the file to read")
    parser.add_argument("--entity", choices=sorted(SCHEMAS), default="user", help="Target table")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in UpsertMode],
        help="update-insert (two statements) or merge (single ON CONFLICT statement)",
    )
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args)
        if args.mode:
            settings = settings.override(upsert_mode=UpsertMode(args.mode))
        with open_service(settings) as service:
            result = import_records(
                service, args.input, SCHEMAS[args.entity], settings.upsert_mode
            )
    except SyncError as e:
        logger.error("%s", e)
        return 1

    logger.info("Done. %d rows imported.", result.rows)
    return 0


if __name__ == "__main__":
    sys.exit(main())
