"""
Shared fixtures: a throwaway SQLite file database per test, plus the
service/repository stack and an HTTP client wired against it.
"""

import os

# Keep test runs from writing app.log into the working tree
os.environ.setdefault("LOG_FILE", "")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from velox.core.config import Settings
from velox.db.session import Database
from velox.main import create_app
from velox.repositories.subscribers import SubscribersRepository
from velox.services.subscriptions import SubscriptionService


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'subscribers.db'}",
        LOG_FILE="",
        ADMIN_API_KEY="",
    )


@pytest_asyncio.fixture
async def db(settings):
    database = Database(settings.DATABASE_URL)
    await database.create_all()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def session(db):
    async with db.session_factory() as session:
        yield session


@pytest.fixture
def repo(session):
    return SubscribersRepository(session)


@pytest.fixture
def service(repo):
    return SubscriptionService(repo, token_max_attempts=3)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    # Entering the context runs the lifespan (schema creation / dispose)
    with TestClient(app) as client:
        yield client
