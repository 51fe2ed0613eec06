"""Audit log of privileged mutations."""

import logging
from collections.abc import Mapping
from typing import Any

from chatwarden.clock import Clock, now_ms
from chatwarden.models import AuditLogEntry
from chatwarden.store import StateStore, paths

logger = logging.getLogger(__name__)


class AuditLogger:
    """Appends one entry to ``admin_logs`` per privileged mutation.

    Entries are keyed by timestamp-prefixed push ids. A failed append raises;
    callers decide how to record it.
    """

    def __init__(self, store: StateStore, clock: Clock = now_ms) -> None:
        self._store = store
        self._clock = clock

    async def record(
        self,
        actor_id: str,
        command: str,
        details: Mapping[str, Any] | None = None,
    ) -> str:
        entry = AuditLogEntry(
            actor_id=actor_id,
            command=command,
            timestamp=self._clock(),
            details=dict(details or {}),
        )
        key = await self._store.append(paths.ADMIN_LOGS, entry.to_store())
        logger.info("Audit %s: %s by %s %s", key, command, actor_id, entry.details)
        return key
