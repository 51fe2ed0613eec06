"""FastAPI application exposing sends, rooms and the admin command queue."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from pydantic import BaseModel, Field

from chatwarden.audit import AuditLogger
from chatwarden.commands import CommandKind, CommandQueueProcessor, submit_command
from chatwarden.config import WardenConfig
from chatwarden.errors import CommandValidationError, RoomExistsError
from chatwarden.identity import HeaderIdentityProvider, Identity, IdentityProvider
from chatwarden.models import ChatMessage, Room, SiteCustomization
from chatwarden.pipeline import SLOWMODE, Rejected, SendPipeline
from chatwarden.rooms import RoomDirectory
from chatwarden.store import InMemoryStateStore, StateStore, paths

logger = logging.getLogger(__name__)


# Request models
class SendMessageRequest(BaseModel):
    text: str = Field(min_length=1)


class CreateRoomRequest(BaseModel):
    name: str


class AdminCommandRequest(BaseModel):
    name: str = Field(min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)


# Dependencies
def get_store(request: Request) -> StateStore:
    return request.app.state.store


def get_pipeline(request: Request) -> SendPipeline:
    return request.app.state.pipeline


def get_processor(request: Request) -> CommandQueueProcessor:
    return request.app.state.processor


def get_identity(request: Request) -> Identity | None:
    provider: IdentityProvider = request.app.state.identity_provider
    return provider.identify(request.headers)


def require_identity(
    identity: Annotated[Identity | None, Depends(get_identity)],
) -> Identity:
    if identity is None:
        raise HTTPException(HTTPStatus.UNAUTHORIZED, "Sign in first")
    return identity


StoreDep = Annotated[StateStore, Depends(get_store)]
PipelineDep = Annotated[SendPipeline, Depends(get_pipeline)]
ProcessorDep = Annotated[CommandQueueProcessor, Depends(get_processor)]
IdentityDep = Annotated[Identity | None, Depends(get_identity)]
SignedInDep = Annotated[Identity, Depends(require_identity)]


def create_app(
    store: StateStore | None = None,
    config: WardenConfig | None = None,
    identity_provider: IdentityProvider | None = None,
) -> FastAPI:
    """Build the application. The command processor runs for the app's lifetime."""
    store = store or InMemoryStateStore()
    processor = CommandQueueProcessor(store, config=config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting command queue processor...")
        async with asyncio.TaskGroup() as tg:
            tg.create_task(processor.run())
            yield
            logger.info("Shutting down command queue processor...")
            await processor.close()

    app = FastAPI(title="chatwarden", lifespan=lifespan)
    app.state.store = store
    app.state.pipeline = SendPipeline(store)
    app.state.processor = processor
    app.state.identity_provider = identity_provider or HeaderIdentityProvider()

    @app.post("/rooms/{room}/messages")
    async def send_message(
        room: str,
        request: SendMessageRequest,
        identity: IdentityDep,
        pipeline: PipelineDep,
    ) -> dict[str, str]:
        """Send a message. Shadow-routed sends look the same as normal ones."""
        outcome = await pipeline.send(
            identity.user_id if identity else None,
            identity.display_name if identity else "",
            room,
            request.text,
        )
        if isinstance(outcome, Rejected):
            status = (
                HTTPStatus.TOO_MANY_REQUESTS
                if outcome.reason == SLOWMODE
                else HTTPStatus.FORBIDDEN
            )
            raise HTTPException(status, outcome.reason)
        return {"status": "sent", "messageId": outcome.message_id}

    @app.get("/rooms/{room}/messages")
    async def get_messages(
        room: str,
        store: StoreDep,
        limit: Annotated[int, Query(ge=1, le=100)] = 50,
    ) -> dict[str, ChatMessage]:
        """Get the most recent public messages of a room."""
        raw = await store.get(paths.messages(room)) or {}
        recent = list(raw.items())[-limit:]
        return {key: ChatMessage.model_validate(value) for key, value in recent}

    @app.get("/rooms")
    async def list_rooms(store: StoreDep) -> dict[str, Room]:
        return await RoomDirectory(store).list_rooms()

    @app.post("/rooms", status_code=HTTPStatus.CREATED)
    async def create_room(
        request: CreateRoomRequest,
        identity: SignedInDep,
        store: StoreDep,
        processor: ProcessorDep,
    ) -> dict[str, str]:
        """Create a room. Admins only, audited like the createRoom command."""
        if not await processor.is_admin(identity.user_id):
            raise HTTPException(HTTPStatus.FORBIDDEN, "Access denied. Not admin.")
        try:
            key = await RoomDirectory(store).create_room(request.name, identity.user_id)
        except CommandValidationError as e:
            raise HTTPException(HTTPStatus.UNPROCESSABLE_ENTITY, str(e)) from e
        except RoomExistsError as e:
            raise HTTPException(HTTPStatus.CONFLICT, str(e)) from e
        await AuditLogger(store).record(
            identity.user_id, CommandKind.CREATE_ROOM.value, {"roomName": request.name}
        )
        return {"room": key}

    @app.post("/admin/commands", status_code=HTTPStatus.ACCEPTED)
    async def enqueue_command(
        request: AdminCommandRequest,
        identity: SignedInDep,
        store: StoreDep,
        processor: ProcessorDep,
    ) -> dict[str, str]:
        """Queue an admin command. Non-admins are refused before anything is written."""
        if not await processor.is_admin(identity.user_id):
            raise HTTPException(HTTPStatus.FORBIDDEN, "Access denied. Not admin.")
        key = await submit_command(
            store, request.name, request.payload, issued_by=identity.user_id
        )
        return {"key": key}

    @app.get("/site")
    async def get_site(store: StoreDep) -> SiteCustomization:
        raw = await store.get(paths.SITE_CUSTOM) or {}
        return SiteCustomization.model_validate(raw)

    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
