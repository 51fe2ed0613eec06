"""Command queue processor."""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import anyio
import pydantic
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from chatwarden.audit import AuditLogger
from chatwarden.clock import Clock, now_ms
from chatwarden.commands.handlers import registry as default_registry
from chatwarden.commands.kinds import PAYLOAD_TYPES, parse_kind
from chatwarden.commands.middleware import (
    CommandEnvelope,
    Middleware,
    chain,
    timeout,
)
from chatwarden.commands.registry import CommandRegistry, HandlerContext
from chatwarden.config import WardenConfig
from chatwarden.errors import AuthorizationError, CommandValidationError
from chatwarden.models import AdminCommand
from chatwarden.store import EventKind, StateStore, paths

logger = logging.getLogger(__name__)

AUTO_ACTOR = "auto"

QueuedCommand = tuple[str, dict[str, Any]]


def _describe(error: BaseException) -> str:
    if isinstance(error, Exception) and str(error):
        return str(error)
    return type(error).__name__


async def submit_command(
    store: StateStore,
    name: str,
    payload: Mapping[str, Any] | None = None,
    issued_by: str | None = None,
) -> str:
    """Append a pending command to the queue and return its key."""
    command = AdminCommand(name=name, payload=dict(payload or {}), issued_by=issued_by)
    return await store.append(paths.ADMIN_COMMANDS, command.to_store())


class CommandQueueProcessor:
    """Consumes ``admin_commands`` and applies each command once.

    One task follows the queue subscription and feeds a bounded buffer. A
    second task drains it in arrival order, finishing each command (dispatch,
    audit, mark processed) before taking the next one.

    A fresh subscription replays every queued command, so commands already
    marked processed are skipped.
    """

    def __init__(
        self,
        store: StateStore,
        registry: CommandRegistry | None = None,
        config: WardenConfig | None = None,
        clock: Clock = now_ms,
        middlewares: Sequence[Middleware] = (),
    ) -> None:
        registry = registry or default_registry
        registry.check_exhaustive()

        self._store = store
        self._registry = registry
        self._config = config or WardenConfig()
        self._clock = clock
        self._audit = AuditLogger(store, clock)

        all_middlewares = list(middlewares)
        if self._config.handler_timeout is not None:
            all_middlewares.append(timeout(self._config.handler_timeout))
        self._dispatch = chain(self._invoke, all_middlewares)

        self._running = False
        self._cancel_scope: anyio.CancelScope | None = None

    @property
    def processed_by(self) -> str:
        return self._config.processor_actor or AUTO_ACTOR

    async def run(self) -> None:
        """Process commands until closed or the store closes."""
        if self._running:
            msg = "CommandQueueProcessor is already running"
            raise RuntimeError(msg)

        self._running = True
        send, receive = anyio.create_memory_object_stream[QueuedCommand](
            self._config.queue_buffer
        )
        try:
            async with anyio.create_task_group() as tg:
                self._cancel_scope = tg.cancel_scope
                tg.start_soon(self._follow_queue, send)
                tg.start_soon(self._work, receive)
        finally:
            self._running = False
            self._cancel_scope = None

    async def _follow_queue(self, send: MemoryObjectSendStream[QueuedCommand]) -> None:
        async with send:
            async for event in self._store.subscribe(
                paths.ADMIN_COMMANDS, EventKind.CHILD_ADDED
            ):
                if event.key is None or not isinstance(event.value, dict):
                    continue
                await send.send((event.key, event.value))

    async def _work(self, receive: MemoryObjectReceiveStream[QueuedCommand]) -> None:
        async with receive:
            async for key, raw in receive:
                try:
                    command = AdminCommand.model_validate(raw)
                except pydantic.ValidationError as e:
                    logger.warning("Malformed admin command %s: %s", key, e)
                    await self._mark_processed(key, f"malformed command: {e}")
                    continue
                await self.handle(key, command)

    async def close(self) -> None:
        """Stop processing. The command in progress is abandoned unmarked."""
        if self._cancel_scope:
            self._cancel_scope.cancel()

    async def is_admin(self, actor_id: str | None) -> bool:
        if not actor_id:
            return False
        return await self._store.get(paths.admin(actor_id)) is not None

    async def handle(self, key: str, command: AdminCommand) -> bool:
        """Apply one command and mark it processed.

        Returns False when the command was already processed and nothing was
        done. Handler, validation and audit failures are recorded on the
        command. A failure to mark it processed propagates.
        """
        if command.processed:
            logger.debug("Skipping already processed command %s", key)
            return False

        actor_id = command.issued_by or self._config.processor_actor
        error: str | None = None
        try:
            if not await self.is_admin(actor_id):
                raise AuthorizationError(actor_id)

            kind = parse_kind(command.name)
            if kind is None:
                # Unrecognized names are marked processed without an error.
                logger.warning(
                    "Ignoring unknown admin command %s: %r", key, command.name
                )
            else:
                assert actor_id
                await self._dispatch(
                    CommandEnvelope(key, kind, command.payload, actor_id)
                )
        except AuthorizationError as e:
            logger.warning("Rejected admin command %s: %s", key, e)
            error = str(e)
        except Exception as e:
            logger.exception("Admin command %s (%s) failed", key, command.name)
            error = _describe(e)

        await self._mark_processed(key, error)
        return True

    async def _invoke(self, envelope: CommandEnvelope) -> None:
        try:
            payload = PAYLOAD_TYPES[envelope.kind].model_validate(envelope.payload)
        except pydantic.ValidationError as e:
            raise CommandValidationError(str(e)) from e

        handler = self._registry.get(envelope.kind)
        context = HandlerContext(
            store=self._store, actor_id=envelope.actor_id, clock=self._clock
        )
        details = payload.audit_details()
        try:
            await handler(payload, context)
        except BaseException as e:
            # the handler may have written before failing
            details["error"] = _describe(e)
            with anyio.CancelScope(shield=True):
                await self._audit.record(
                    envelope.actor_id, envelope.kind.value, details
                )
            raise
        await self._audit.record(envelope.actor_id, envelope.kind.value, details)

    async def _mark_processed(self, key: str, error: str | None) -> None:
        await self._store.update(
            paths.admin_command(key),
            {"processed": True, "processedBy": self.processed_by, "error": error},
        )
