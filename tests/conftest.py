"""Pytest configuration and fixtures."""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from app.main import app
from app.models.actor import Actor
from app.utils.auth import create_access_token


@pytest.fixture(autouse=True)
def no_transactions(monkeypatch):
    """The in-memory database has no sessions, so run without transactions."""
    from app.config import settings
    monkeypatch.setattr(settings, "mongodb_transactions", False)


@pytest.fixture
def db():
    """In-memory Motor database, fresh for every test."""
    client = AsyncMongoMockClient()
    return client["goal_carryover_test"]


@pytest.fixture
def actor():
    """The acting user."""
    return Actor(user_id="user123")


@pytest.fixture
def other_actor():
    """A second user who owns nothing of the first user's."""
    return Actor(user_id="intruder456")


@pytest.fixture
def auth_headers(actor):
    """Bearer headers for the acting user."""
    token = create_access_token(user_id=actor.user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def app_client(db):
    """
    Create a test client bound to the in-memory database.

    This fixture:
    - Points the database dependency at the test database
    - Yields an async HTTP client for testing
    - Restores the original database afterwards
    """
    from app.database import database
    original_db = database.db
    database.db = db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    database.db = original_db
