"""In-memory state store implementation."""

import copy
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import Any

import anyio
from anyio.streams.memory import MemoryObjectSendStream

from chatwarden.config import StoreConfig
from chatwarden.store.base import EventKind, StoreEvent
from chatwarden.store.paths import join, push_id, split
from chatwarden.store.watch import Watch, related

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Subscription:
    watch: Watch
    send: MemoryObjectSendStream[StoreEvent]
    lagged: bool = False


def _normalize(value: Any) -> Any:
    """Copy a value into tree form. None children and empty dicts vanish."""
    if isinstance(value, Mapping):
        children = {str(k): _normalize(v) for k, v in value.items()}
        children = {k: v for k, v in children.items() if v is not None}
        return children or None
    if isinstance(value, list | tuple):
        return [_normalize(v) for v in value]
    return value


class InMemoryStateStore:
    """State store backed by a nested dict.

    Subscriptions get a bounded buffer and writers never wait on it. A
    subscriber that falls behind is marked lagged. Once it drains its buffer it
    catches up from a snapshot. It still sees every child that remains, but
    several value changes may arrive as one.
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self._config = config or StoreConfig()
        self._root: dict[str, Any] = {}
        self._subscriptions: list[_Subscription] = []
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            msg = "Store is closed"
            raise RuntimeError(msg)

    def _read(self, segments: list[str]) -> Any:
        node: Any = self._root
        for seg in segments:
            if not isinstance(node, dict):
                return None
            node = node.get(seg)
            if node is None:
                return None
        return node

    def _write(self, segments: list[str], value: Any) -> None:
        value = _normalize(value)
        if not segments:
            self._root = value if isinstance(value, dict) else {}
            return
        if value is None:
            self._delete(segments)
            return

        node = self._root
        for seg in segments[:-1]:
            child = node.get(seg)
            if not isinstance(child, dict):
                child = {}
                node[seg] = child
            node = child
        node[segments[-1]] = value

    def _delete(self, segments: list[str]) -> None:
        chain: list[dict[str, Any]] = [self._root]
        node: Any = self._root
        for seg in segments[:-1]:
            node = node.get(seg)
            if not isinstance(node, dict):
                return
            chain.append(node)
        chain[-1].pop(segments[-1], None)

        # prune parents left empty
        for i in range(len(chain) - 1, 0, -1):
            if chain[i]:
                break
            chain[i - 1].pop(segments[i - 1], None)

    def _notify(self, changed: list[list[str]]) -> None:
        # Diff synchronously so concurrent writers never emit the same event twice.
        for sub in list(self._subscriptions):
            if sub.lagged:
                continue
            if not any(related(sub.watch.segments, c) for c in changed):
                continue
            events = sub.watch.diff(self._read(sub.watch.segments))
            for i, event in enumerate(events):
                try:
                    sub.send.send_nowait(event)
                except anyio.WouldBlock:
                    # the subscriber resyncs from a snapshot once it drains
                    logger.debug("Subscription to %s lagged", sub.watch.path)
                    sub.watch.rewind(events[i:])
                    sub.lagged = True
                    break
                except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                    self._drop(sub)
                    break

    def _drop(self, sub: _Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)
        sub.send.close()

    async def get(self, path: str) -> Any:
        self._check_open()
        return copy.deepcopy(self._read(split(path)))

    async def set(self, path: str, value: Any) -> None:
        self._check_open()
        segments = split(path)
        self._write(segments, value)
        self._notify([segments])

    async def remove(self, path: str) -> None:
        await self.set(path, None)

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        self._check_open()
        changed = []
        for key, value in values.items():
            segments = split(join(path, key))
            self._write(segments, value)
            changed.append(segments)
        self._notify(changed)

    async def append(self, path: str, value: Any) -> str:
        key = push_id()
        await self.set(join(path, key), value)
        return key

    def subscribe(self, path: str, kind: EventKind) -> AsyncIterator[StoreEvent]:
        """Subscribe to changes at ``path``.

        The subscription is registered when iteration starts. The first events
        describe the state at that moment, so nothing written earlier is missed.
        """
        self._check_open()
        return self._subscribe_iter(path, kind)

    async def _subscribe_iter(
        self, path: str, kind: EventKind
    ) -> AsyncIterator[StoreEvent]:
        send, receive = anyio.create_memory_object_stream[StoreEvent](
            self._config.buffer_size
        )
        watch = Watch(path, kind)
        initial = watch.initial(self._read(watch.segments))
        sub = _Subscription(watch=watch, send=send)
        self._subscriptions.append(sub)
        try:
            for event in initial:
                yield event
            async with receive:
                while True:
                    if sub.lagged and not receive.statistics().current_buffer_used:
                        if self._closed:
                            return
                        sub.lagged = False
                        for event in watch.diff(self._read(watch.segments)):
                            yield event
                        continue
                    try:
                        event = await receive.receive()
                    except anyio.EndOfStream:
                        return
                    yield event
        finally:
            self._drop(sub)

    async def close(self) -> None:
        """Close the store. Active subscriptions finish iterating."""
        self._closed = True
        for sub in list(self._subscriptions):
            self._drop(sub)

    async def __aenter__(self) -> "InMemoryStateStore":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()
