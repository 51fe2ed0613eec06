"""chatwarden: moderation gate and admin command queue for real-time chat.

This package re-exports the core components. The Redis store, the HTTP app
and tracing live in their own modules and need their extras installed.
"""

from chatwarden.audit import AuditLogger
from chatwarden.commands import CommandKind, CommandQueueProcessor, submit_command
from chatwarden.config import RedisStoreConfig, StoreConfig, WardenConfig
from chatwarden.errors import (
    AuthorizationError,
    ChatWardenError,
    CommandValidationError,
    RoomExistsError,
)
from chatwarden.identity import HeaderIdentityProvider, Identity, IdentityProvider
from chatwarden.moderation import DenyReason, ModerationGate, Verdict, VerdictKind
from chatwarden.pipeline import Outcome, Rejected, SendPipeline, Sent, ShadowSent
from chatwarden.rooms import RoomDirectory
from chatwarden.store import EventKind, InMemoryStateStore, StateStore, path_key

__version__ = "0.1.0"

__all__ = [
    # store
    "EventKind",
    "InMemoryStateStore",
    "StateStore",
    "path_key",
    # moderation
    "DenyReason",
    "ModerationGate",
    "Verdict",
    "VerdictKind",
    # sending
    "Outcome",
    "Rejected",
    "SendPipeline",
    "Sent",
    "ShadowSent",
    # commands
    "AuditLogger",
    "CommandKind",
    "CommandQueueProcessor",
    "RoomDirectory",
    "submit_command",
    # identity
    "HeaderIdentityProvider",
    "Identity",
    "IdentityProvider",
    # config
    "RedisStoreConfig",
    "StoreConfig",
    "WardenConfig",
    # errors
    "AuthorizationError",
    "ChatWardenError",
    "CommandValidationError",
    "RoomExistsError",
]
