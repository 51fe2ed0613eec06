"""Live views over the store for clients."""

from collections.abc import AsyncIterator

from chatwarden.models import ChatMessage, Room, SiteCustomization
from chatwarden.store import EventKind, StateStore, paths


async def room_messages(
    store: StateStore, room: str | None
) -> AsyncIterator[tuple[str, ChatMessage]]:
    """Yield ``(message_id, message)`` for existing and newly added messages."""
    async for event in store.subscribe(
        paths.messages(paths.resolve_room(room)), EventKind.CHILD_ADDED
    ):
        if event.key is None or not event.value:
            continue
        yield event.key, ChatMessage.model_validate(event.value)


async def rooms(store: StateStore) -> AsyncIterator[dict[str, Room]]:
    """Yield the full room table now and after every change."""
    async for event in store.subscribe(paths.ROOMS, EventKind.VALUE):
        raw = event.value or {}
        yield {key: Room.model_validate(value) for key, value in raw.items()}


async def site_customization(store: StateStore) -> AsyncIterator[SiteCustomization]:
    """Yield the site customization now and after every change."""
    async for event in store.subscribe(paths.SITE_CUSTOM, EventKind.VALUE):
        yield SiteCustomization.model_validate(event.value or {})
