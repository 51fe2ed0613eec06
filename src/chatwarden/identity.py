"""Identity provider interface."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Identity:
    """The acting user. ``user_id`` is opaque text."""

    user_id: str
    display_name: str


class IdentityProvider(Protocol):
    def identify(self, headers: Mapping[str, str]) -> Identity | None:
        """Return the signed-in identity for a request, or None when anonymous."""
        ...


class HeaderIdentityProvider:
    """Trusts identity headers set by a fronting proxy.

    The display name falls back to the user id.
    """

    def __init__(
        self,
        user_header: str = "x-user-id",
        name_header: str = "x-display-name",
    ) -> None:
        self.user_header = user_header
        self.name_header = name_header

    def identify(self, headers: Mapping[str, str]) -> Identity | None:
        user_id = headers.get(self.user_header)
        if not user_id:
            return None
        return Identity(
            user_id=user_id, display_name=headers.get(self.name_header) or user_id
        )
