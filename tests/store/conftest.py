"""Redis fixtures for store tests.

Uses REDIS_URL when set, otherwise a testcontainers Redis. Redis tests are
skipped when neither is available.
"""

import os
from uuid import uuid4

import pytest

from chatwarden.config import RedisStoreConfig


@pytest.fixture(scope="session")
def redis_url():
    if os.environ.get("REDIS_URL"):
        yield os.environ["REDIS_URL"]
        return

    redis_module = pytest.importorskip("testcontainers.redis")
    # Disable Ryuk for podman compatibility
    os.environ.setdefault("TESTCONTAINERS_RYUK_DISABLED", "true")
    try:
        container = redis_module.RedisContainer()
        container.start()
    except Exception as e:  # noqa: BLE001
        pytest.skip(f"Redis container unavailable: {e}")

    try:
        host = container.get_container_host_ip()
        port = container.get_exposed_port(6379)
        yield f"redis://{host}:{port}"
    finally:
        container.stop()


@pytest.fixture
async def redis_client(redis_url):
    from redis.asyncio import Redis

    client = Redis.from_url(redis_url, decode_responses=False)
    try:
        await client.ping()
        yield client
    finally:
        await client.aclose()


@pytest.fixture
async def redis_store(redis_client):
    from chatwarden.store.redis import RedisStateStore

    prefix = f"test-{uuid4().hex[:8]}:"
    config = RedisStoreConfig(
        key_prefix=prefix, channel=f"{prefix}changes", poll_interval=0.05
    )
    async with RedisStateStore(redis_client, config) as store:
        yield store

    keys = [key async for key in redis_client.scan_iter(match=f"{prefix}*")]
    if keys:
        await redis_client.delete(*keys)
