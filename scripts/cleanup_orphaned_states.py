"""Find and delete goal states whose goal no longer exists.

Usage:
    python scripts/cleanup_orphaned_states.py \\
        --mongodb-url mongodb://localhost:27017 \\
        --user-id <user-id> \\
        [--commit]
"""
import argparse
import asyncio
import logging

from motor.motor_asyncio import AsyncIOMotorClient

from app.config import settings
from app.database import check_transaction_support
from app.models.actor import Actor
from app.services.deletion_service import DeletionService

logger = logging.getLogger("cleanup_orphaned_states")


async def cleanup(mongodb_url: str, db_name: str, user_id: str, commit: bool) -> int:
    """Report (and with `commit`, delete) orphaned states for a user.

    Returns:
        Number of orphaned states found
    """
    client = AsyncIOMotorClient(mongodb_url)
    try:
        if settings.mongodb_transactions:
            await check_transaction_support(client)
        service = DeletionService(client[db_name])
        report = await service.cleanup_orphaned_states(Actor(user_id=user_id), dry_run=not commit)
    finally:
        client.close()

    for state_id in report.orphaned_state_ids:
        logger.info("Orphaned state: %s", state_id)
    if commit:
        logger.info("Deleted %d orphaned states", report.deleted)
    else:
        logger.info("Found %d orphaned states (dry run, pass --commit to delete)", len(report.orphaned_state_ids))
    return len(report.orphaned_state_ids)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Delete goal states whose goal no longer exists")
    parser.add_argument("--mongodb-url", default=settings.mongodb_url, help="MongoDB connection URL")
    parser.add_argument("--db-name", default=settings.mongodb_db_name, help="Database name")
    parser.add_argument("--user-id", required=True, help="User whose states to check")
    parser.add_argument("--commit", action="store_true", help="Delete instead of only reporting")
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(message)s")
    asyncio.run(cleanup(args.mongodb_url, args.db_name, args.user_id, args.commit))


if __name__ == "__main__":
    main()
