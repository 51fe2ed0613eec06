"""Middlewares wrapping command dispatch."""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import anyio

from chatwarden.commands.kinds import CommandKind


@dataclass(frozen=True)
class CommandEnvelope:
    """A command that passed authorization, on its way to a handler."""

    key: str
    kind: CommandKind
    payload: dict[str, Any]
    actor_id: str


Dispatch = Callable[[CommandEnvelope], Awaitable[None]]
Middleware = Callable[[Dispatch], Dispatch]


def chain(dispatch: Dispatch, middlewares: list[Middleware]) -> Dispatch:
    """Wrap ``dispatch`` so the first middleware runs outermost."""
    for middleware in reversed(middlewares):
        dispatch = middleware(dispatch)
    return dispatch


def logged(logger: logging.Logger | None = None) -> Middleware:
    """Middleware that logs each dispatch with its duration."""
    log = logger or logging.getLogger("chatwarden.commands")

    def middleware(next_dispatch: Dispatch) -> Dispatch:
        async def dispatch(envelope: CommandEnvelope) -> None:
            start = time.perf_counter()
            try:
                await next_dispatch(envelope)
            except Exception:
                log.warning(
                    "Command %s (%s) by %s failed after %.3fs",
                    envelope.key,
                    envelope.kind.value,
                    envelope.actor_id,
                    time.perf_counter() - start,
                )
                raise
            log.info(
                "Command %s (%s) by %s done in %.3fs",
                envelope.key,
                envelope.kind.value,
                envelope.actor_id,
                time.perf_counter() - start,
            )

        return dispatch

    return middleware


def timeout(seconds: float) -> Middleware:
    """Middleware that fails a dispatch taking longer than ``seconds``."""

    def middleware(next_dispatch: Dispatch) -> Dispatch:
        async def dispatch(envelope: CommandEnvelope) -> None:
            with anyio.fail_after(seconds):
                await next_dispatch(envelope)

        return dispatch

    return middleware
