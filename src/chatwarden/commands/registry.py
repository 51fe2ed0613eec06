"""Command handler registry."""

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, get_type_hints

from chatwarden.clock import Clock
from chatwarden.commands.kinds import PAYLOAD_TYPES, CommandKind
from chatwarden.store import StateStore


@dataclass(frozen=True)
class HandlerContext:
    """What a handler may use. The actor has already been authorized."""

    store: StateStore
    actor_id: str
    clock: Clock


CommandHandler = Callable[[Any, HandlerContext], Awaitable[None]]


class CommandRegistry:
    """Maps each command kind to exactly one handler."""

    def __init__(self) -> None:
        self._handlers: dict[CommandKind, CommandHandler] = {}

    def handler(self, kind: CommandKind) -> Callable[[CommandHandler], CommandHandler]:
        """Decorator to register the handler for ``kind``.

        The first parameter must be annotated with the kind's payload type.

        Usage:
            @registry.handler(CommandKind.BAN)
            async def ban_user(payload: TargetPayload, ctx: HandlerContext) -> None:
                ...
        """

        def decorator(func: CommandHandler) -> CommandHandler:
            hints = get_type_hints(func)
            params = list(inspect.signature(func).parameters.keys())

            if not params:
                msg = f"Handler {func.__name__} must have at least one parameter"
                raise TypeError(msg)

            first_param = params[0]
            if first_param not in hints:
                msg = (
                    f"First parameter {first_param!r} of {func.__name__} must be typed"
                )
                raise TypeError(msg)

            expected = PAYLOAD_TYPES[kind]
            if hints[first_param] is not expected:
                msg = (
                    f"Handler {func.__name__} for {kind.name} must take "
                    f"{expected.__name__}, not {hints[first_param]!r}"
                )
                raise TypeError(msg)

            if kind in self._handlers:
                msg = f"{kind.name} already handled by {self._handlers[kind].__name__}"
                raise ValueError(msg)

            self._handlers[kind] = func
            return func

        return decorator

    def get(self, kind: CommandKind) -> CommandHandler:
        return self._handlers[kind]

    def missing(self) -> list[CommandKind]:
        return [kind for kind in CommandKind if kind not in self._handlers]

    def check_exhaustive(self) -> None:
        """Raise if any command kind has no handler."""
        missing = self.missing()
        if missing:
            names = ", ".join(kind.name for kind in missing)
            msg = f"No handler registered for: {names}"
            raise RuntimeError(msg)
