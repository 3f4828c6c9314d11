"""MongoDB database connection using Motor (async driver)."""
from contextlib import asynccontextmanager
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from app.config import settings

logger = logging.getLogger(__name__)

GOALS = "goals"
GOAL_STATES = "goal_states"
FIRE_GOALS = "fire_goals"
DOMAINS = "domains"


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        """Connect to MongoDB and make sure the partition indexes exist."""
        self.client = AsyncIOMotorClient(settings.mongodb_url)
        if settings.mongodb_transactions:
            await check_transaction_support(self.client)
        self.db = self.client[settings.mongodb_db_name]
        await ensure_indexes(self.db)
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")


async def check_transaction_support(client) -> None:
    """
    Make sure the server can run multi-document transactions.

    Raises:
        RuntimeError: If the server is a standalone instance
    """
    hello = await client.admin.command("hello")
    if "setName" in hello or hello.get("msg") == "isdbgrid":
        return
    raise RuntimeError(
        "MongoDB server does not support transactions (not a replica set or mongos); "
        "set MONGODB_TRANSACTIONS=false to run without them"
    )


async def ensure_indexes(db) -> None:
    """
    Create the indexes the carry-over queries scan.

    Goals are partitioned by (user, year, quarter); `in_path` is range-scanned
    for subtrees. States are partitioned by (user, year, quarter, week).
    """
    await db[GOALS].create_index(
        [("user_id", ASCENDING), ("year", ASCENDING), ("quarter", ASCENDING), ("in_path", ASCENDING)]
    )
    await db[GOALS].create_index(
        [("user_id", ASCENDING), ("year", ASCENDING), ("quarter", ASCENDING), ("parent_id", ASCENDING)]
    )
    await db[GOALS].create_index(
        [("user_id", ASCENDING), ("year", ASCENDING), ("adhoc.week_number", ASCENDING)]
    )
    await db[GOAL_STATES].create_index(
        [
            ("user_id", ASCENDING),
            ("year", ASCENDING),
            ("quarter", ASCENDING),
            ("week_number", ASCENDING),
            ("daily.day_of_week", ASCENDING),
        ]
    )
    await db[GOAL_STATES].create_index([("user_id", ASCENDING), ("goal_id", ASCENDING)])
    await db[FIRE_GOALS].create_index(
        [("user_id", ASCENDING), ("goal_id", ASCENDING)], unique=True
    )


@asynccontextmanager
async def transaction(db):
    """
    Run one carry-over invocation as a single unit of work.

    Yields a Motor session bound to a multi-document transaction when
    transactions are enabled, otherwise None.
    """
    if not settings.mongodb_transactions:
        yield None
        return

    async with await db.client.start_session() as session:
        async with session.start_transaction():
            yield session


# Global database instance
database = Database()


async def get_database() -> AsyncIOMotorDatabase:
    """Dependency to get database instance."""
    if database.db is None:
        raise RuntimeError("Database not connected")
    return database.db
