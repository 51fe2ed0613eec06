"""Change detection shared by store backends."""

import copy
from typing import Any

from chatwarden.store.base import EventKind, StoreEvent
from chatwarden.store.paths import split


def related(a: list[str], b: list[str]) -> bool:
    """True if one path is an ancestor of (or equal to) the other."""
    n = min(len(a), len(b))
    return a[:n] == b[:n]


_UNSEEN = object()


class Watch:
    """Tracks what a subscriber has already seen at one path."""

    def __init__(self, path: str, kind: EventKind) -> None:
        self.path = path
        self.segments = split(path)
        self.kind = kind
        self._last: Any = None
        self._known: set[str] = set()

    @property
    def key(self) -> str | None:
        return self.segments[-1] if self.segments else None

    def initial(self, current: Any) -> list[StoreEvent]:
        if self.kind is EventKind.VALUE:
            self._last = copy.deepcopy(current)
            return [StoreEvent(self.kind, self.path, self.key, copy.deepcopy(current))]
        return self.diff(current)

    def rewind(self, undelivered: list[StoreEvent]) -> None:
        """Forget events that never reached the subscriber.

        The next diff reports those children again, or the current value.
        """
        if self.kind is EventKind.VALUE:
            self._last = _UNSEEN
        else:
            self._known -= {e.key for e in undelivered if e.key is not None}

    def diff(self, current: Any) -> list[StoreEvent]:
        """Events for whatever changed since the last call."""
        if self.kind is EventKind.VALUE:
            if current == self._last:
                return []
            self._last = copy.deepcopy(current)
            return [StoreEvent(self.kind, self.path, self.key, copy.deepcopy(current))]

        children = current if isinstance(current, dict) else {}
        added = [k for k in children if k not in self._known]
        self._known = set(children)
        return [
            StoreEvent(self.kind, self.path, k, copy.deepcopy(children[k]))
            for k in added
        ]
