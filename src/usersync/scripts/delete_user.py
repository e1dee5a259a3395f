"""CLI entry point for deleting a user and its pets under optimistic locking.

Usage:
    python -m usersync.scripts.delete_user --db-url sqlite:///data.db --user-id U001 --upd-ts 2025-01-01T12:00:00
"""

import json
import logging
import sys

from usersync.deleter import DeleteRequest, UserDeleter
from usersync.errors import SyncError
from usersync.scripts.common import base_parser, open_service, settings_from_args

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = base_parser("Delete a user and all of its pets")
    parser.add_argument("--user-id", required=True, help="Identifier of the user to delete")
    parser.add_argument(
        "--upd-ts", required=True, help="upd_ts last read for the user (concurrency token)"
    )
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args)
        request = DeleteRequest.parse(args.user_id, args.upd_ts)
        with open_service(settings) as service:
            response = UserDeleter(service).delete(request)
    except SyncError as e:
        logger.error("%s", e)
        return 1

    print(json.dumps(response.to_dict()))
    return 1 if response.has_error else 0


if __name__ == "__main__":
    sys.exit(main())
