"""Moderation gate: may this actor send to this room right now?"""

from dataclasses import dataclass
from enum import StrEnum

from chatwarden.models import Room
from chatwarden.store import StateStore, paths


class VerdictKind(StrEnum):
    ALLOW = "allow"
    ALLOW_SHADOW = "allow_shadow"
    DENY = "deny"


class DenyReason(StrEnum):
    NO_IDENTITY = "no-identity"
    BANNED = "banned"
    MUTED = "muted"
    FROZEN = "frozen"
    ROOM_LOCKED = "room_locked"


@dataclass(frozen=True)
class Verdict:
    """Outcome of a gate evaluation. Denials are data, never exceptions."""

    kind: VerdictKind
    reason: DenyReason | None = None

    @classmethod
    def allow(cls) -> "Verdict":
        return cls(VerdictKind.ALLOW)

    @classmethod
    def allow_shadow(cls) -> "Verdict":
        return cls(VerdictKind.ALLOW_SHADOW)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Verdict":
        return cls(VerdictKind.DENY, reason)

    @property
    def allowed(self) -> bool:
        return self.kind is not VerdictKind.DENY


class ModerationGate:
    """Computes a send verdict from the current moderation state.

    Checks run in precedence order and stop at the first that applies:
    identity, ban, mute, shadowban, server freeze, room lock. A shadowban
    wins over freeze and room lock, so shadowbanned users keep writing to
    their shadow channel while everyone else is blocked.

    Each check is a separate read. The reads are not a consistent snapshot.
    """

    def __init__(self, store: StateStore) -> None:
        self._store = store

    async def evaluate(self, actor_id: str | None, room: str | None) -> Verdict:
        if not actor_id:
            return Verdict.deny(DenyReason.NO_IDENTITY)

        if await self._store.get(paths.ban(actor_id)) is not None:
            return Verdict.deny(DenyReason.BANNED)
        if await self._store.get(paths.mute(actor_id)) is not None:
            return Verdict.deny(DenyReason.MUTED)
        if await self._store.get(paths.shadowban(actor_id)) is not None:
            return Verdict.allow_shadow()

        if await self._store.get(paths.SERVER_FROZEN):
            return Verdict.deny(DenyReason.FROZEN)

        raw = await self._store.get(paths.room(paths.resolve_room(room)))
        if raw is not None and Room.model_validate(raw).locked:
            return Verdict.deny(DenyReason.ROOM_LOCKED)

        return Verdict.allow()
