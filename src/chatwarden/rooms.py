"""Room directory."""

from chatwarden.clock import Clock, now_ms
from chatwarden.errors import CommandValidationError, RoomExistsError
from chatwarden.models import Room
from chatwarden.store import StateStore, paths


class RoomDirectory:
    def __init__(self, store: StateStore, clock: Clock = now_ms) -> None:
        self._store = store
        self._clock = clock

    async def create_room(self, name: str, creator: str) -> str:
        """Create ``name`` unlocked with no slowmode and an empty message list.

        Returns the room's path key. Raises RoomExistsError when the key is taken.
        """
        if not name or not name.strip():
            msg = "Room name required"
            raise CommandValidationError(msg)
        if await self._store.get(paths.room(name)) is not None:
            raise RoomExistsError(paths.path_key(name))

        room = Room(display_name=name, creator=creator, created_at=self._clock())
        await self._store.set(paths.room(name), room.to_store())
        await self._store.remove(paths.messages(name))
        return paths.path_key(name)

    async def delete_room(self, name: str) -> None:
        """Remove the room record and its messages."""
        if not name:
            msg = "Room name required"
            raise CommandValidationError(msg)
        await self._store.remove(paths.room(name))
        await self._store.remove(paths.messages(name))

    async def get_room(self, name: str) -> Room | None:
        raw = await self._store.get(paths.room(name))
        return Room.model_validate(raw) if raw is not None else None

    async def list_rooms(self) -> dict[str, Room]:
        raw = await self._store.get(paths.ROOMS) or {}
        return {key: Room.model_validate(value) for key, value in raw.items()}
