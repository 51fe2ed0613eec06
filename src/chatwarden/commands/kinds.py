"""Command kinds, their name aliases and their typed payloads."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from chatwarden.store.paths import DEFAULT_ROOM


class CommandKind(StrEnum):
    """Every supported admin command. Values are the names written to the audit log."""

    BAN = "banUser"
    UNBAN = "unbanUser"
    MUTE = "muteUser"
    UNMUTE = "unmuteUser"
    SHADOWBAN = "shadowbanUser"
    UNSHADOWBAN = "unshadowbanUser"
    FORCE_LOGOUT = "forceLogout"
    CHANGE_NICKNAME = "changeNickname"
    RESET_PROFILE_IMAGE = "resetPfp"
    CLEAR_CHAT = "clearChat"
    DELETE_USER_MESSAGES = "deleteUserMessages"
    DELETE_MESSAGE = "deleteMessage"
    GLOBAL_ANNOUNCEMENT = "globalAnnouncement"
    LOCK_ROOM = "lockRoom"
    UNLOCK_ROOM = "unlockRoom"
    SET_SLOWMODE = "setSlowmode"
    CREATE_ROOM = "createRoom"
    DELETE_ROOM = "deleteRoom"
    FREEZE_SERVER = "freezeServer"
    UNFREEZE_SERVER = "unfreezeServer"
    SET_ACCENT_COLOR = "setAccentColor"
    SET_BACKGROUND = "setBackground"
    SET_SERVER_LOGO = "setServerLogo"
    SET_SERVER_TITLE = "setServerTitle"


_EXTRA_ALIASES = {
    "ban": CommandKind.BAN,
    "unban": CommandKind.UNBAN,
    "mute": CommandKind.MUTE,
    "unmute": CommandKind.UNMUTE,
    "shadowban": CommandKind.SHADOWBAN,
    "unshadowban": CommandKind.UNSHADOWBAN,
    "freeze": CommandKind.FREEZE_SERVER,
    "freeserver": CommandKind.FREEZE_SERVER,
    "unfreeze": CommandKind.UNFREEZE_SERVER,
    "setaccent": CommandKind.SET_ACCENT_COLOR,
}

ALIASES: dict[str, CommandKind] = {
    **{kind.value.lower(): kind for kind in CommandKind},
    **_EXTRA_ALIASES,
}


def parse_kind(name: str | None) -> CommandKind | None:
    """Resolve a queued command name, case-insensitively. None if unknown."""
    return ALIASES.get((name or "").strip().lower())


def _fallback(data: Any, field: str, *alternatives: str) -> Any:
    if isinstance(data, dict) and not data.get(field):
        for alt in alternatives:
            if data.get(alt):
                return {**data, field: data[alt]}
    return data


class Payload(BaseModel):
    """Base for command payloads. Input keys are camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    def audit_details(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class EmptyPayload(Payload):
    pass


class TargetPayload(Payload):
    target: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _target_fallback(cls, data: Any) -> Any:
        return _fallback(data, "target", "uid", "email")


class NicknamePayload(TargetPayload):
    new_name: str = Field(min_length=1)


class RoomPayload(Payload):
    room: str = Field(min_length=1)


class DefaultRoomPayload(Payload):
    room: str = DEFAULT_ROOM

    @model_validator(mode="before")
    @classmethod
    def _default_room(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("room"):
            return {**data, "room": DEFAULT_ROOM}
        return data


class DeleteMessagePayload(DefaultRoomPayload):
    msg_key: str = Field(min_length=1)


class SlowmodePayload(RoomPayload):
    ms_delay: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _zero_delay(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("msDelay") is None:
            return {**data, "msDelay": 0}
        return data


class RoomNamePayload(Payload):
    room_name: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _room_name_fallback(cls, data: Any) -> Any:
        return _fallback(data, "roomName", "room")


class AnnouncementPayload(Payload):
    text: str = ""

    @model_validator(mode="before")
    @classmethod
    def _text_fallback(cls, data: Any) -> Any:
        return _fallback(data, "text", "message")


class ColorPayload(Payload):
    color_hex: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _color_fallback(cls, data: Any) -> Any:
        return _fallback(data, "colorHex", "color")


class UrlPayload(Payload):
    url: str = Field(min_length=1)


class BackgroundPayload(UrlPayload):
    @model_validator(mode="before")
    @classmethod
    def _url_fallback(cls, data: Any) -> Any:
        return _fallback(data, "url", "bg")


class TitlePayload(Payload):
    title: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _title_fallback(cls, data: Any) -> Any:
        return _fallback(data, "title", "text")


PAYLOAD_TYPES: dict[CommandKind, type[Payload]] = {
    CommandKind.BAN: TargetPayload,
    CommandKind.UNBAN: TargetPayload,
    CommandKind.MUTE: TargetPayload,
    CommandKind.UNMUTE: TargetPayload,
    CommandKind.SHADOWBAN: TargetPayload,
    CommandKind.UNSHADOWBAN: TargetPayload,
    CommandKind.FORCE_LOGOUT: TargetPayload,
    CommandKind.CHANGE_NICKNAME: NicknamePayload,
    CommandKind.RESET_PROFILE_IMAGE: TargetPayload,
    CommandKind.CLEAR_CHAT: DefaultRoomPayload,
    CommandKind.DELETE_USER_MESSAGES: TargetPayload,
    CommandKind.DELETE_MESSAGE: DeleteMessagePayload,
    CommandKind.GLOBAL_ANNOUNCEMENT: AnnouncementPayload,
    CommandKind.LOCK_ROOM: RoomPayload,
    CommandKind.UNLOCK_ROOM: RoomPayload,
    CommandKind.SET_SLOWMODE: SlowmodePayload,
    CommandKind.CREATE_ROOM: RoomNamePayload,
    CommandKind.DELETE_ROOM: RoomNamePayload,
    CommandKind.FREEZE_SERVER: EmptyPayload,
    CommandKind.UNFREEZE_SERVER: EmptyPayload,
    CommandKind.SET_ACCENT_COLOR: ColorPayload,
    CommandKind.SET_BACKGROUND: BackgroundPayload,
    CommandKind.SET_SERVER_LOGO: UrlPayload,
    CommandKind.SET_SERVER_TITLE: TitlePayload,
}
