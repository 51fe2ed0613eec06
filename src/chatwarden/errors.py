"""Exceptions raised by chatwarden."""


class ChatWardenError(Exception):
    """Base class for chatwarden errors."""


class AuthorizationError(ChatWardenError):
    """The acting identity is not allowed to perform a privileged operation."""

    def __init__(self, actor_id: str | None) -> None:
        self.actor_id = actor_id
        super().__init__(f"unauthorized: {actor_id or 'anonymous'} is not an admin")


class CommandValidationError(ChatWardenError):
    """A required parameter is missing or malformed. Nothing was written."""



class RoomExistsError(ChatWardenError):
    """A room with the same key already exists."""

    def __init__(self, room: str) -> None:
        self.room = room
        super().__init__(f"Room {room} already exists")
