"""State store adapters."""

from chatwarden.store.base import EventKind, StateStore, StoreEvent
from chatwarden.store.memory import InMemoryStateStore
from chatwarden.store.paths import path_key

__all__ = [
    "EventKind",
    "InMemoryStateStore",
    "StateStore",
    "StoreEvent",
    "path_key",
]
