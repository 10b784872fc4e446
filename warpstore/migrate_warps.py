#!/usr/bin/env python
# migrate_warps.py - Script to check and upgrade the warp table of the configured backend
import argparse
import logging
import sys

from warpstore.config import get_settings
from warpstore.storage import StorageError, open_data_connection

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("migration")


def migrate_data(create: bool, update: bool) -> bool:
    """Check the warp table and bring it to the current layout"""
    settings = get_settings().model_copy(
        update={
            "CREATE_IF_NOT_EXIST": create,
            "UPDATE_IF_NECESSARY": update,
            "CONTROL_DB_LAYOUT": create or update,
        }
    )
    logger.info(f"Checking warp table '{settings.TABLE_NAME}' ({settings.STORAGE_BACKEND})")

    try:
        connection = open_data_connection(settings).result()
    except StorageError as e:
        logger.error(f"Error during migration: {e!r} (cause: {e.__cause__!r})")
        return False

    try:
        connection.check_schema(create)
        connection.migrate_schema(update)
        logger.info(f"Table holds {len(connection.load_all())} warps")
        return True

    except StorageError as e:
        logger.error(f"Error during migration: {e!r} (cause: {e.__cause__!r})")
        return False

    finally:
        connection.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check and upgrade the warp table")
    parser.add_argument("--create", action="store_true", help="create the table if it does not exist")
    parser.add_argument("--update", action="store_true", help="apply pending schema changes")
    args = parser.parse_args(argv)

    logger.info("Running warp migration script")
    if migrate_data(args.create, args.update):
        logger.info("Migration completed successfully")
        return 0
    logger.error("Migration failed")
    return 1


if __name__ == "__main__":
    sys.exit(main())
