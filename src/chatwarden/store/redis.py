"""Redis state store implementation.

Layout, for a path ``p`` under the configured prefix:

- ``{prefix}v:{p}`` holds a msgpack-encoded scalar when ``p`` is a leaf.
- ``{prefix}c:{p}`` is a sorted set of the child segment names of ``p``,
  scored by insertion sequence so children come back in insertion order.

Every write publishes the changed paths on the configured channel.
Subscribers re-read their path when a related path changes.
"""

from collections.abc import AsyncIterator, Mapping
from typing import Any

import anyio
import msgpack
from redis.asyncio import Redis

from chatwarden.config import RedisStoreConfig
from chatwarden.store.base import EventKind, StoreEvent
from chatwarden.store.paths import join, push_id, split
from chatwarden.store.watch import Watch, related


def _normalize(value: Any) -> Any:
    if isinstance(value, Mapping):
        children = {str(k): _normalize(v) for k, v in value.items()}
        children = {k: v for k, v in children.items() if v is not None}
        return children or None
    if isinstance(value, tuple):
        return list(value)
    return value


def _parent(path: str) -> tuple[str, str]:
    segments = split(path)
    return join(*segments[:-1]), segments[-1]


class RedisStateStore:
    """State store that keeps the tree in Redis keys."""

    def __init__(self, redis: Redis, config: RedisStoreConfig | None = None) -> None:
        """Initialize the store.

        Args:
            redis: Async Redis client. Responses must not be decoded.
            config: Store configuration.
        """
        self._redis = redis
        self._config = config or RedisStoreConfig()
        self._closed = False

    def _leaf_key(self, path: str) -> str:
        return f"{self._config.key_prefix}v:{path}"

    def _index_key(self, path: str) -> str:
        return f"{self._config.key_prefix}c:{path}"

    @property
    def _seq_key(self) -> str:
        return f"{self._config.key_prefix}seq"

    def _check_open(self) -> None:
        if self._closed:
            msg = "Store is closed"
            raise RuntimeError(msg)

    async def _children(self, path: str) -> list[str]:
        raw = await self._redis.zrange(self._index_key(path), 0, -1)
        return [c.decode() if isinstance(c, bytes) else c for c in raw]

    async def _read(self, path: str) -> Any:
        raw = await self._redis.get(self._leaf_key(path))
        if raw is not None:
            return msgpack.unpackb(raw, raw=False)

        result: dict[str, Any] = {}
        for child in await self._children(path):
            value = await self._read(join(path, child))
            if value is not None:
                result[child] = value
        return result or None

    async def _subtree_keys(self, path: str) -> list[str]:
        keys = [self._leaf_key(path), self._index_key(path)]
        for child in await self._children(path):
            keys.extend(await self._subtree_keys(join(path, child)))
        return keys

    def _flatten(
        self,
        path: str,
        value: Any,
        leaves: list[tuple[str, Any]],
        links: list[tuple[str, str]],
    ) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                links.append((path, key))
                self._flatten(join(path, key), child, leaves, links)
        else:
            leaves.append((path, value))

    async def _write_many(self, writes: list[tuple[str, Any]]) -> None:
        stale: list[str] = []
        leaves: list[tuple[str, Any]] = []
        links: list[tuple[str, str]] = []
        removed: list[str] = []

        for path, value in writes:
            path = join(*split(path))
            value = _normalize(value)
            stale.extend(await self._subtree_keys(path))
            segments = split(path)
            if value is None:
                if segments:
                    removed.append(path)
                continue
            # a leaf above the written path is replaced by a branch
            stale.extend(
                self._leaf_key(join(*segments[:i])) for i in range(1, len(segments))
            )
            for i in range(len(segments)):
                links.append((join(*segments[:i]), segments[i]))
            self._flatten(path, value, leaves, links)

        base = 0
        if links:
            base = await self._redis.incrby(self._seq_key, len(links)) - len(links)

        async with self._redis.pipeline(transaction=True) as pipe:
            if stale:
                pipe.delete(*stale)
            for path in removed:
                parent, segment = _parent(path)
                pipe.zrem(self._index_key(parent), segment)
            for offset, (parent, segment) in enumerate(links):
                pipe.zadd(self._index_key(parent), {segment: base + offset}, nx=True)
            for path, value in leaves:
                pipe.set(self._leaf_key(path), msgpack.packb(value))
            await pipe.execute()

        for path in removed:
            await self._prune(path)

        await self._redis.publish(
            self._config.channel, msgpack.packb([p for p, _ in writes])
        )

    async def _prune(self, path: str) -> None:
        """Unlink ancestors of a removed path that no longer hold anything."""
        parent, _ = _parent(path)
        while parent:
            if await self._redis.zcard(self._index_key(parent)):
                return
            if await self._redis.exists(self._leaf_key(parent)):
                return
            grandparent, segment = _parent(parent)
            await self._redis.zrem(self._index_key(grandparent), segment)
            parent = grandparent

    async def get(self, path: str) -> Any:
        self._check_open()
        with anyio.fail_after(self._config.operation_timeout):
            return await self._read(join(*split(path)))

    async def set(self, path: str, value: Any) -> None:
        self._check_open()
        with anyio.fail_after(self._config.operation_timeout):
            await self._write_many([(path, value)])

    async def remove(self, path: str) -> None:
        await self.set(path, None)

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        self._check_open()
        with anyio.fail_after(self._config.operation_timeout):
            await self._write_many([(join(path, k), v) for k, v in values.items()])

    async def append(self, path: str, value: Any) -> str:
        key = push_id()
        await self.set(join(path, key), value)
        return key

    def subscribe(self, path: str, kind: EventKind) -> AsyncIterator[StoreEvent]:
        """Subscribe to changes at ``path``.

        Listens on the change channel before taking the initial snapshot so
        that no write in between is lost.
        """
        self._check_open()
        return self._subscribe_iter(path, kind)

    async def _subscribe_iter(
        self, path: str, kind: EventKind
    ) -> AsyncIterator[StoreEvent]:
        watch = Watch(join(*split(path)), kind)
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._config.channel)
        try:
            for event in watch.initial(await self.get(watch.path)):
                yield event

            while not self._closed:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=self._config.poll_interval,
                )
                if message is None:
                    continue
                changed = msgpack.unpackb(message["data"], raw=False)
                if not any(related(watch.segments, split(p)) for p in changed):
                    continue
                for event in watch.diff(await self.get(watch.path)):
                    yield event
        finally:
            await pubsub.unsubscribe(self._config.channel)
            await pubsub.aclose()

    async def close(self) -> None:
        """Close the store. The Redis client is owned by the caller."""
        self._closed = True

    async def __aenter__(self) -> "RedisStateStore":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()
