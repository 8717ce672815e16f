"""
Pytest configuration
Provides in-memory databases, a configured app and a test client.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from timely.config import Settings
from timely.main import create_app
from timely.services.user_store import UserStore
from timely.utils.database import build_engine, build_sessionmaker, create_tables

TEST_DB_URL = "sqlite+aiosqlite://"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DB_URL,
        jwt_secret="test-signing-key",
        bcrypt_rounds=4,
        rate_limit_enabled=False,
        cors_origins=["http://localhost:5173"],
        log_level="WARNING",
    )


@pytest.fixture
def run_with_store():
    """
    Run `scenario(store)` against a fresh in-memory database.
    Every call gets its own engine, loop and tables.
    """

    def runner(scenario):
        async def main():
            engine = build_engine(TEST_DB_URL)
            await create_tables(engine)
            try:
                async with build_sessionmaker(engine)() as db:
                    return await scenario(UserStore(db, bcrypt_rounds=4))
            finally:
                await engine.dispose()

        return asyncio.run(main())

    return runner


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def registered(client):
    """Register through the API; returns (raw_secret, user_id). The client keeps the session cookie."""
    response = client.post("/api/auth/register")
    assert response.status_code == 201
    body = response.json()
    return body["token"], body["user_id"]
