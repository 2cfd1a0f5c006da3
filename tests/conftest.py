"""Shared fixtures: a SQLite database file, recorded fan-out and API client."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

TEST_DB_PATH = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_TIMEZONE"] = "UTC"
os.environ.pop("SENDGRID_API_KEY", None)
os.environ.pop("SENDGRID_SENDER", None)

from marketplace_messaging.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from marketplace_messaging.infrastructure import database  # noqa: E402
from marketplace_messaging.infrastructure.models import ListingModel  # noqa: E402
from marketplace_messaging.infrastructure.realtime import (  # noqa: E402
    ChannelConnectionManager,
    RealtimeFanout,
)
from marketplace_messaging.infrastructure.security import create_access_token  # noqa: E402


class RecordingFanout(RealtimeFanout):
    """Fan-out that keeps every frame instead of sending it."""

    def __init__(self) -> None:
        super().__init__(ChannelConnectionManager())
        self.sent: list[tuple[str, dict[str, Any]]] = []

    def _schedule_send(self, channel: str, message: dict[str, Any]) -> None:
        self.sent.append((channel, message))

    def frames(self, channel: str | None = None, event: str | None = None) -> list[dict[str, Any]]:
        return [
            message
            for sent_channel, message in self.sent
            if (channel is None or sent_channel == channel)
            and (event is None or message["type"] == event)
        ]


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio, the loop the fan-out schedules on."""

    return "asyncio"


@pytest.fixture(autouse=True)
def setup_database():
    """Prepare a fresh schema for every test."""

    database.initialize_database()
    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.Base.metadata.create_all(bind=database.engine)
    yield
    database.engine.dispose()


@pytest.fixture()
def session():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def fanout() -> RecordingFanout:
    return RecordingFanout()


@pytest.fixture()
def make_listing(session):
    """Insert a row in the shared listings table."""

    def _make_listing(listing_id: str = "listing-1", owner_id: str = "seller", title: str = "Road bike"):
        session.add(ListingModel(id=listing_id, owner_id=owner_id, title=title))
        session.commit()
        return listing_id

    return _make_listing


@pytest.fixture()
def auth_headers():
    def _auth_headers(user_id: str, *, name: str | None = None, email: str | None = None) -> dict[str, str]:
        token = create_access_token(user_id, name=name, email=email)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture()
def client():
    """Return a test client bound to a clean application instance."""

    from fastapi.testclient import TestClient

    from marketplace_messaging.main import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


def pytest_sessionfinish(session, exitstatus):
    database.engine.dispose()
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()
