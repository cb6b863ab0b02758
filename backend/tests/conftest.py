import os

# Must be set before anything from talkback is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEND_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from talkback.infra.init_db import init_db
from talkback.infra.postgres import SessionLocal


class FakeConnection:
    """Stands in for a live socket; records every frame pushed to it."""

    def __init__(self, user_id, accept=True):
        self.user_id = user_id
        self.accept = accept
        self.frames = []
        self.closed = False

    def send(self, event, data):
        if self.closed or not self.accept:
            return False
        self.frames.append((event, data))
        return True

    async def close(self):
        self.closed = True

    def events(self, name):
        return [data for event, data in self.frames if event == name]


@pytest.fixture(autouse=True)
def fresh_db():
    init_db(drop=True)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def client():
    from talkback.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def anyio_backend():
    return "asyncio"


def auth(user_id):
    return {"X-User-Id": user_id}


@pytest.fixture
def headers():
    return auth
