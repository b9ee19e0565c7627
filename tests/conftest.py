# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from profast.core.jwt import create_access_token
from profast.db import USERS
from profast.main import app
from profast.repos.inmemory import InMemoryRepo
from profast.services.tracking import TrackingLedger

T0 = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture(scope="session")
def anyio_backend():
    # keep AnyIO on asyncio for the whole test session
    return "asyncio"


@pytest.fixture
def repo():
    return InMemoryRepo()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def tracking(repo, clock):
    return TrackingLedger(repo, clock=clock)


@pytest.fixture
async def test_client():
    # fresh lifespan (and so a fresh in-memory store) per test
    async with LifespanManager(app):
        transport = ASGITransport(app=app, raise_app_exceptions=True)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


@pytest.fixture
def app_store(test_client):
    return app.state.store


def auth(email: str) -> dict:
    tok = create_access_token({"sub": email, "email": email})
    return {"Authorization": f"Bearer {tok}"}


async def seed_user(store, email: str, role: str = "user") -> str:
    return await store.insert_one(USERS, {"email": email, "name": email.split("@")[0], "role": role})
