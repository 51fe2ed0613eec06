"""Tests for the HTTP application."""

from collections.abc import AsyncIterator, Mapping
from http import HTTPStatus

import httpx
import pytest
from fastapi import FastAPI
from helpers import ADMIN

from chatwarden.app import create_app
from chatwarden.identity import Identity
from chatwarden.models import AdminCommand, ModerationRecord
from chatwarden.store import InMemoryStateStore, paths

pytestmark = pytest.mark.anyio

USER = "u1"
USER_HEADERS = {"X-User-Id": USER, "X-Display-Name": "User One"}
ADMIN_HEADERS = {"X-User-Id": ADMIN}
SLOWMODE_MS = 60_000
MESSAGE_COUNT = 3
LIMIT = 2


class FixedIdentity:
    def identify(self, headers: Mapping[str, str]) -> Identity | None:
        return Identity(user_id="fixed", display_name="Fixed User")


@pytest.fixture
def app(store: InMemoryStateStore) -> FastAPI:
    return create_app(store)


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c


class TestMessages:
    async def test_send_and_read(
        self, client: httpx.AsyncClient, store: InMemoryStateStore
    ) -> None:
        response = await client.post(
            "/rooms/general/messages", json={"text": "hello"}, headers=USER_HEADERS
        )
        assert response.status_code == HTTPStatus.OK
        body = response.json()
        assert body["status"] == "sent"

        response = await client.get("/rooms/general/messages")
        messages = response.json()
        assert list(messages) == [body["messageId"]]
        message = messages[body["messageId"]]
        assert message["senderId"] == USER
        assert message["displayName"] == "User One"
        assert message["text"] == "hello"

    async def test_send_without_identity_forbidden(
        self, client: httpx.AsyncClient
    ) -> None:
        response = await client.post("/rooms/general/messages", json={"text": "hi"})
        assert response.status_code == HTTPStatus.FORBIDDEN
        assert response.json()["detail"] == "no-identity"

    async def test_banned_user_forbidden(
        self, client: httpx.AsyncClient, store: InMemoryStateStore
    ) -> None:
        await store.set(
            paths.ban(USER), ModerationRecord(issuer=ADMIN, timestamp=1).to_store()
        )
        response = await client.post(
            "/rooms/general/messages", json={"text": "hi"}, headers=USER_HEADERS
        )
        assert response.status_code == HTTPStatus.FORBIDDEN
        assert response.json()["detail"] == "banned"

    async def test_slowmode_too_many_requests(
        self, client: httpx.AsyncClient, store: InMemoryStateStore
    ) -> None:
        await store.set("rooms/general/slowmodeMs", SLOWMODE_MS)
        first = await client.post(
            "/rooms/general/messages", json={"text": "one"}, headers=USER_HEADERS
        )
        second = await client.post(
            "/rooms/general/messages", json={"text": "two"}, headers=USER_HEADERS
        )
        assert first.status_code == HTTPStatus.OK
        assert second.status_code == HTTPStatus.TOO_MANY_REQUESTS

    async def test_shadow_send_looks_normal(
        self, client: httpx.AsyncClient, store: InMemoryStateStore
    ) -> None:
        await store.set(
            paths.shadowban(USER),
            ModerationRecord(issuer=ADMIN, timestamp=1).to_store(),
        )
        response = await client.post(
            "/rooms/general/messages", json={"text": "psst"}, headers=USER_HEADERS
        )
        assert response.status_code == HTTPStatus.OK
        assert response.json()["status"] == "sent"

        messages = await client.get("/rooms/general/messages")
        assert messages.json() == {}
        assert await store.get(paths.shadow_messages("general")) is not None

    async def test_read_limit(
        self, client: httpx.AsyncClient, store: InMemoryStateStore
    ) -> None:
        ids = []
        for i in range(MESSAGE_COUNT):
            ids.append(
                await store.append(
                    paths.messages("general"),
                    {
                        "senderId": USER,
                        "displayName": USER,
                        "text": str(i),
                        "timestamp": i,
                    },
                )
            )
        response = await client.get(
            "/rooms/general/messages", params={"limit": LIMIT}
        )
        assert list(response.json()) == ids[-LIMIT:]

    async def test_empty_text_rejected(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/rooms/general/messages", json={"text": ""}, headers=USER_HEADERS
        )
        assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


class TestRooms:
    async def test_create_and_list(
        self, client: httpx.AsyncClient, store: InMemoryStateStore, admin: str
    ) -> None:
        response = await client.post(
            "/rooms", json={"name": "general"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == HTTPStatus.CREATED
        assert response.json() == {"room": "general"}

        rooms = (await client.get("/rooms")).json()
        assert rooms["general"]["displayName"] == "general"
        assert rooms["general"]["creator"] == admin
        assert rooms["general"]["locked"] is False
        assert rooms["general"]["slowmodeMs"] == 0

        [entry] = (await store.get(paths.ADMIN_LOGS)).values()
        assert entry["actorId"] == admin
        assert entry["command"] == "createRoom"
        assert entry["details"] == {"roomName": "general"}

    async def test_create_requires_identity(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/rooms", json={"name": "general"})
        assert response.status_code == HTTPStatus.UNAUTHORIZED

    async def test_create_requires_name(
        self, client: httpx.AsyncClient, admin: str
    ) -> None:
        response = await client.post(
            "/rooms", json={"name": " "}, headers=ADMIN_HEADERS
        )
        assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY

    async def test_non_admin_cannot_reset_locked_room(
        self, client: httpx.AsyncClient, store: InMemoryStateStore
    ) -> None:
        room = {
            "displayName": "general",
            "creator": ADMIN,
            "locked": True,
            "slowmodeMs": SLOWMODE_MS,
        }
        await store.set(paths.room("general"), room)
        message_id = await store.append(paths.messages("general"), {"text": "kept"})

        response = await client.post(
            "/rooms", json={"name": "general"}, headers=USER_HEADERS
        )

        assert response.status_code == HTTPStatus.FORBIDDEN
        assert await store.get(paths.room("general")) == room
        assert list(await store.get(paths.messages("general"))) == [message_id]
        assert await store.get(paths.ADMIN_LOGS) is None

    async def test_existing_room_not_replaced(
        self, client: httpx.AsyncClient, store: InMemoryStateStore, admin: str
    ) -> None:
        await store.set("rooms/general/locked", True)

        response = await client.post(
            "/rooms", json={"name": "general"}, headers=ADMIN_HEADERS
        )

        assert response.status_code == HTTPStatus.CONFLICT
        assert await store.get(paths.room("general")) == {"locked": True}
        assert await store.get(paths.ADMIN_LOGS) is None


class TestIdentity:
    async def test_custom_identity_provider(self, store: InMemoryStateStore) -> None:
        app = create_app(store, identity_provider=FixedIdentity())
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        ) as client:
            response = await client.post(
                "/rooms/general/messages", json={"text": "hi"}
            )
        assert response.status_code == HTTPStatus.OK

        [message] = (await store.get(paths.messages("general"))).values()
        assert message["senderId"] == "fixed"
        assert message["displayName"] == "Fixed User"

    async def test_display_name_defaults_to_user_id(
        self, client: httpx.AsyncClient, store: InMemoryStateStore
    ) -> None:
        await client.post(
            "/rooms/general/messages", json={"text": "hi"}, headers={"X-User-Id": USER}
        )
        [message] = (await store.get(paths.messages("general"))).values()
        assert message["displayName"] == USER


class TestAdminCommands:
    async def test_admin_command_queued(
        self, client: httpx.AsyncClient, store: InMemoryStateStore, admin: str
    ) -> None:
        response = await client.post(
            "/admin/commands",
            json={"name": "ban", "payload": {"target": USER}},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == HTTPStatus.ACCEPTED

        key = response.json()["key"]
        queued = AdminCommand.model_validate(
            await store.get(paths.admin_command(key))
        )
        assert queued.name == "ban"
        assert queued.issued_by == admin
        assert not queued.processed

    async def test_queued_command_processed(
        self,
        app: FastAPI,
        client: httpx.AsyncClient,
        store: InMemoryStateStore,
        admin: str,
    ) -> None:
        response = await client.post(
            "/admin/commands", json={"name": "freeze"}, headers=ADMIN_HEADERS
        )
        key = response.json()["key"]
        raw = await store.get(paths.admin_command(key))

        await app.state.processor.handle(key, AdminCommand.model_validate(raw))

        assert await store.get(paths.SERVER_FROZEN) is True
        frozen = await client.post(
            "/rooms/general/messages", json={"text": "hi"}, headers=USER_HEADERS
        )
        assert frozen.status_code == HTTPStatus.FORBIDDEN
        assert frozen.json()["detail"] == "frozen"

    async def test_non_admin_refused(
        self, client: httpx.AsyncClient, store: InMemoryStateStore
    ) -> None:
        response = await client.post(
            "/admin/commands", json={"name": "freeze"}, headers=USER_HEADERS
        )
        assert response.status_code == HTTPStatus.FORBIDDEN
        assert await store.get(paths.ADMIN_COMMANDS) is None

    async def test_anonymous_refused(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/admin/commands", json={"name": "freeze"})
        assert response.status_code == HTTPStatus.UNAUTHORIZED


class TestSite:
    async def test_site_customization(
        self, client: httpx.AsyncClient, store: InMemoryStateStore
    ) -> None:
        await store.set(paths.SITE_CUSTOM, {"siteTitle": "Lounge"})
        response = await client.get("/site")
        assert response.json() == {
            "accentColor": None,
            "bgUrl": None,
            "logoUrl": None,
            "siteTitle": "Lounge",
        }
