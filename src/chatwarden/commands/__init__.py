"""Admin command queue."""

from chatwarden.commands.kinds import ALIASES, PAYLOAD_TYPES, CommandKind, parse_kind
from chatwarden.commands.middleware import CommandEnvelope, Middleware, logged, timeout
from chatwarden.commands.processor import CommandQueueProcessor, submit_command
from chatwarden.commands.registry import CommandRegistry, HandlerContext

__all__ = [
    "ALIASES",
    "PAYLOAD_TYPES",
    "CommandEnvelope",
    "CommandKind",
    "CommandQueueProcessor",
    "CommandRegistry",
    "HandlerContext",
    "Middleware",
    "logged",
    "parse_kind",
    "submit_command",
    "timeout",
]
