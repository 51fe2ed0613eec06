"""Path keys and path builders for the shared state tree."""

import os
import re
import threading
import time

ADMINS = "admins"
BANNED = "banned"
MUTED = "muted"
SHADOWBANNED = "shadowbanned"
FORCE_LOGOUT = "force_logout"
NICKNAMES = "nicknames"
PROFILE_IMAGES = "pfp"
ROOMS = "rooms"
MESSAGES = "messages"
SHADOW_MESSAGES = "shadow_messages"
LAST_MESSAGE = "last_message"
SERVER_FROZEN = "server/frozen"
ADMIN_COMMANDS = "admin_commands"
ADMIN_LOGS = "admin_logs"
ANNOUNCEMENTS = "announcements"
SITE_CUSTOM = "siteCustom"

DEFAULT_ROOM = "global"

_UNSAFE = re.compile(r"[./#$\[\]]")


def path_key(identifier: object) -> str:
    """Normalize an identifier so it can be used as a single path segment."""
    return _UNSAFE.sub("_", str(identifier))


def join(*segments: str) -> str:
    return "/".join(s.strip("/") for s in segments if s)


def split(path: str) -> list[str]:
    return [s for s in path.split("/") if s]


def resolve_room(room: str | None) -> str:
    """Map an empty room name to the default room."""
    return room or DEFAULT_ROOM


def admin(user_id: str) -> str:
    return join(ADMINS, path_key(user_id))


def ban(user_id: str) -> str:
    return join(BANNED, path_key(user_id))


def mute(user_id: str) -> str:
    return join(MUTED, path_key(user_id))


def shadowban(user_id: str) -> str:
    return join(SHADOWBANNED, path_key(user_id))


def force_logout(user_id: str) -> str:
    return join(FORCE_LOGOUT, path_key(user_id))


def nickname(user_id: str) -> str:
    return join(NICKNAMES, path_key(user_id))


def profile_image(user_id: str) -> str:
    return join(PROFILE_IMAGES, path_key(user_id))


def room(name: str) -> str:
    return join(ROOMS, path_key(name))


def messages(room_name: str) -> str:
    return join(MESSAGES, path_key(room_name))


def message(room_name: str, message_id: str) -> str:
    return join(MESSAGES, path_key(room_name), path_key(message_id))


def shadow_messages(room_name: str) -> str:
    return join(SHADOW_MESSAGES, path_key(room_name))


def last_message(user_id: str, room_name: str) -> str:
    return join(LAST_MESSAGE, path_key(user_id), path_key(room_name))


def admin_command(key: str) -> str:
    return join(ADMIN_COMMANDS, key)


_PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"
_TIME_CHARS = 8
_RANDOM_CHARS = 12


class PushIdGenerator:
    """Generates 20 character child ids that sort in creation order.

    The first 8 characters encode the millisecond timestamp. Ids generated
    within the same millisecond increment the random suffix so they still
    sort after their predecessor.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_random = [0] * _RANDOM_CHARS

    def __call__(self, now_ms: int | None = None) -> str:
        ms = int(time.time() * 1000) if now_ms is None else now_ms
        with self._lock:
            if ms <= self._last_ms:
                ms = self._last_ms
                self._increment()
            else:
                self._last_ms = ms
                self._last_random = [b % 64 for b in os.urandom(_RANDOM_CHARS)]
                # leave headroom so same-millisecond increments do not overflow
                self._last_random[0] %= 32
            random_part = "".join(_PUSH_CHARS[i] for i in self._last_random)

        time_part = []
        for _ in range(_TIME_CHARS):
            time_part.append(_PUSH_CHARS[ms % 64])
            ms //= 64
        return "".join(reversed(time_part)) + random_part

    def _increment(self) -> None:
        for i in range(_RANDOM_CHARS - 1, -1, -1):
            if self._last_random[i] != len(_PUSH_CHARS) - 1:
                self._last_random[i] += 1
                return
            self._last_random[i] = 0


push_id = PushIdGenerator()
