"""Documents stored in the shared state tree.

Field names are snake_case in Python and camelCase in the store.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Document(BaseModel):
    """Base for stored documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_store(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ModerationRecord(Document):
    """Ban, mute or shadowban entry for a user."""

    issuer: str
    timestamp: int


class Room(Document):
    """A chat room. Records created by a bare lock or slowmode write have no name."""

    display_name: str = ""
    creator: str = ""
    created_at: int = 0
    locked: bool = False
    slowmode_ms: int = Field(default=0, ge=0)


class ChatMessage(Document):
    """A message as written to a room or to its shadow channel."""

    model_config = ConfigDict(frozen=True)

    sender_id: str
    display_name: str
    text: str
    timestamp: int


class LastMessageMarker(Document):
    timestamp: int


class Nickname(Document):
    name: str
    issuer: str
    timestamp: int


class ProfileImage(Document):
    url: str
    issuer: str
    timestamp: int


class Announcement(Document):
    text: str
    issuer: str
    timestamp: int


class SiteCustomization(Document):
    """Site-wide look, observed by every client."""

    accent_color: str | None = None
    bg_url: str | None = None
    logo_url: str | None = None
    site_title: str | None = None


class AdminCommand(Document):
    """A queued administrative request and, once handled, its outcome."""

    name: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)
    issued_by: str | None = None
    processed: bool = False
    processed_by: str | None = None
    error: str | None = None


class AuditLogEntry(Document):
    model_config = ConfigDict(frozen=True)

    actor_id: str
    command: str
    timestamp: int
    details: dict[str, Any] = Field(default_factory=dict)
