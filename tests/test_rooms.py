"""Tests for RoomDirectory."""

import pytest
from helpers import START_MS, FakeClock

from chatwarden.errors import CommandValidationError, RoomExistsError
from chatwarden.models import Room
from chatwarden.rooms import RoomDirectory
from chatwarden.store import InMemoryStateStore, paths

pytestmark = pytest.mark.anyio


class TestRoomDirectory:
    async def test_create_and_get(
        self, store: InMemoryStateStore, clock: FakeClock
    ) -> None:
        rooms = RoomDirectory(store, clock)

        key = await rooms.create_room("general", "alice")

        assert key == "general"
        assert await rooms.get_room("general") == Room(
            display_name="general", creator="alice", created_at=START_MS
        )

    async def test_create_uses_path_key(
        self, store: InMemoryStateStore, clock: FakeClock
    ) -> None:
        key = await RoomDirectory(store, clock).create_room("v1.2 talk", "alice")
        assert key == "v1_2 talk"
        assert (await store.get(paths.room("v1.2 talk")))["displayName"] == "v1.2 talk"

    @pytest.mark.parametrize("name", ["", "   "])
    async def test_create_requires_name(
        self, store: InMemoryStateStore, clock: FakeClock, name: str
    ) -> None:
        with pytest.raises(CommandValidationError):
            await RoomDirectory(store, clock).create_room(name, "alice")
        assert await store.get(paths.ROOMS) is None

    async def test_create_existing_refused(
        self, store: InMemoryStateStore, clock: FakeClock
    ) -> None:
        rooms = RoomDirectory(store, clock)
        await rooms.create_room("general", "alice")
        await store.set("rooms/general/locked", True)

        with pytest.raises(RoomExistsError, match="general"):
            await rooms.create_room("general", "mallory")

        room = await rooms.get_room("general")
        assert room.creator == "alice"
        assert room.locked

    async def test_create_clears_stale_messages(
        self, store: InMemoryStateStore, clock: FakeClock
    ) -> None:
        rooms = RoomDirectory(store, clock)
        await store.append(paths.messages("general"), {"text": "old"})

        await rooms.create_room("general", "alice")

        assert await store.get(paths.messages("general")) is None

    async def test_delete(self, store: InMemoryStateStore, clock: FakeClock) -> None:
        rooms = RoomDirectory(store, clock)
        await rooms.create_room("general", "alice")
        await store.append(paths.messages("general"), {"text": "hi"})

        await rooms.delete_room("general")

        assert await rooms.get_room("general") is None
        assert await store.get(paths.messages("general")) is None

    async def test_delete_requires_name(
        self, store: InMemoryStateStore, clock: FakeClock
    ) -> None:
        with pytest.raises(CommandValidationError):
            await RoomDirectory(store, clock).delete_room("")

    async def test_list_rooms(
        self, store: InMemoryStateStore, clock: FakeClock
    ) -> None:
        rooms = RoomDirectory(store, clock)
        assert await rooms.list_rooms() == {}

        await rooms.create_room("general", "alice")
        await store.set("rooms/ghost/locked", True)

        listed = await rooms.list_rooms()
        assert list(listed) == ["general", "ghost"]
        assert listed["ghost"] == Room(locked=True)
