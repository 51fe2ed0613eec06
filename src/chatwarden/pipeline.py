"""Send pipeline: gate, slowmode, shadow routing and persistence."""

import logging
from dataclasses import dataclass

import anyio

from chatwarden.clock import Clock, now_ms
from chatwarden.models import ChatMessage, LastMessageMarker, Room
from chatwarden.moderation import ModerationGate, VerdictKind
from chatwarden.store import StateStore, paths

logger = logging.getLogger(__name__)

SLOWMODE = "slowmode"


@dataclass(frozen=True)
class Sent:
    message_id: str


@dataclass(frozen=True)
class ShadowSent:
    message_id: str


@dataclass(frozen=True)
class Rejected:
    reason: str


Outcome = Sent | ShadowSent | Rejected


class SendPipeline:
    """Accepts, shadow-routes or rejects outgoing chat messages.

    The slowmode check reads the sender's last-message marker and writes it
    after the message is stored. Within one pipeline that sequence is
    serialized per (user, room). Separate processes sharing a store can still
    race past it, so slowmode is a soft limit across processes.
    """

    def __init__(
        self,
        store: StateStore,
        gate: ModerationGate | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._gate = gate or ModerationGate(store)
        self._clock = clock
        self._locks: dict[tuple[str, str], anyio.Lock] = {}

    async def send(
        self,
        actor_id: str | None,
        display_name: str,
        room: str | None,
        text: str,
    ) -> Outcome:
        room = paths.resolve_room(room)
        verdict = await self._gate.evaluate(actor_id, room)

        if verdict.kind is VerdictKind.DENY:
            logger.debug("Send by %s to %s denied: %s", actor_id, room, verdict.reason)
            return Rejected(str(verdict.reason))

        assert actor_id
        if verdict.kind is VerdictKind.ALLOW_SHADOW:
            message = ChatMessage(
                sender_id=actor_id,
                display_name=display_name,
                text=text,
                timestamp=self._clock(),
            )
            message_id = await self._store.append(
                paths.shadow_messages(room), message.to_store()
            )
            logger.debug("Shadow-routed message %s from %s", message_id, actor_id)
            return ShadowSent(message_id)

        key = (paths.path_key(actor_id), paths.path_key(room))
        lock = self._locks.setdefault(key, anyio.Lock())
        try:
            async with lock:
                return await self._send_public(actor_id, display_name, room, text)
        finally:
            # idle locks are dropped so the map only holds senders in flight
            idle = not lock.locked() and not lock.statistics().tasks_waiting
            if idle and self._locks.get(key) is lock:
                del self._locks[key]

    async def _send_public(
        self, actor_id: str, display_name: str, room: str, text: str
    ) -> Outcome:
        marker_path = paths.last_message(actor_id, room)
        raw_marker = await self._store.get(marker_path)
        raw_room = await self._store.get(paths.room(room))
        slowmode_ms = Room.model_validate(raw_room).slowmode_ms if raw_room else 0

        now = self._clock()
        if raw_marker is not None and slowmode_ms:
            last = LastMessageMarker.model_validate(raw_marker).timestamp
            if now - last < slowmode_ms:
                return Rejected(SLOWMODE)

        message = ChatMessage(
            sender_id=actor_id,
            display_name=display_name,
            text=text,
            timestamp=now,
        )
        message_id = await self._store.append(paths.messages(room), message.to_store())
        await self._store.set(marker_path, LastMessageMarker(timestamp=now).to_store())
        return Sent(message_id)
