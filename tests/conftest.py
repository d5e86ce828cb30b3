"""
Test configuration and fixtures.
"""
import pytest
import os
import asyncio
from fastapi.testclient import TestClient

# Use a test-specific SQLite database file
TEST_DB_FILE = "test_users.db"
TEST_DATABASE_URL = f"sqlite+aiosqlite:///./{TEST_DB_FILE}"

# Set the environment variables BEFORE importing the app
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["SYNC_DATABASE_URL"] = f"sqlite:///./{TEST_DB_FILE}"
os.environ["IS_LOCAL_TESTING"] = "true"
os.environ["EVENT_ADAPTER"] = "memory"
os.environ["CHANGE_FEED_POLL_INTERVAL"] = "0.02"
os.environ["RELAY_SHUTDOWN_TIMEOUT"] = "2"

# Now import after setting environment variables
from user_service.main import app
from user_service.core.database import engine
from user_service.models import Base


@pytest.fixture(scope="function", autouse=True)
def setup_test_db():
    """Set up and tear down test database for each test."""
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)

    from sqlalchemy import create_engine as sync_create_engine
    sync_engine = sync_create_engine(f"sqlite:///./{TEST_DB_FILE}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    yield

    # Dispose the async engine before cleaning up
    async def cleanup():
        await engine.dispose()

    asyncio.run(cleanup())

    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)


@pytest.fixture
def client():
    """
    Create a test client.
    Entering the client runs the lifespan, which starts the change relay.
    """
    with TestClient(app) as test_client:
        yield test_client
