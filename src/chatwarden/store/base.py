"""State store protocol and event types."""

from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable


class EventKind(StrEnum):
    """What a subscription is notified about."""

    CHILD_ADDED = "child_added"
    """Each direct child of the path, existing ones first, then new ones."""

    VALUE = "value"
    """The whole value at the path, once on subscribe and after every change."""


@dataclass(frozen=True)
class StoreEvent:
    """A change delivered to a subscriber."""

    kind: EventKind
    path: str
    key: str | None
    value: Any


@runtime_checkable
class StateStore(Protocol):
    """Hierarchical key-value tree addressed by ``/``-separated paths.

    Values are JSON-like: dicts, lists, strings, numbers, booleans. Setting a
    path to ``None`` removes it, and parents left empty disappear with it.
    Writes to a single path are atomic. There are no multi-path transactions.
    """

    async def get(self, path: str) -> Any:
        """Return the value at ``path``, or ``None`` if absent."""
        ...

    async def set(self, path: str, value: Any) -> None:
        """Replace the value at ``path``."""
        ...

    async def remove(self, path: str) -> None:
        """Remove ``path``. Same as ``set(path, None)``."""
        ...

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        """Set several children of ``path`` in one atomic write."""
        ...

    async def append(self, path: str, value: Any) -> str:
        """Add ``value`` under a new generated child id and return the id."""
        ...

    def subscribe(self, path: str, kind: EventKind) -> AsyncIterator[StoreEvent]:
        """Watch ``path``. Leaving the iteration stops the subscription."""
        ...

    async def close(self) -> None:
        """Close the store and end all subscriptions."""
        ...
