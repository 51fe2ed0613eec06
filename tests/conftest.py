"""Shared fixtures."""

import pytest
from helpers import ADMIN, FakeClock

from chatwarden.store import InMemoryStateStore, StateStore, paths


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def store():
    async with InMemoryStateStore() as s:
        yield s


@pytest.fixture
async def admin(store: StateStore) -> str:
    await store.set(paths.admin(ADMIN), True)
    return ADMIN
