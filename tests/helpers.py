"""Test helpers shared across test modules."""

import anyio

from chatwarden.models import AdminCommand
from chatwarden.store import StateStore, paths

ADMIN = "alice@example.com"
START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


async def wait_processed(
    store: StateStore, key: str, timeout: float = 2
) -> AdminCommand:
    """Poll until the queued command ``key`` is marked processed."""
    with anyio.fail_after(timeout):
        while True:
            raw = await store.get(paths.admin_command(key))
            if raw and raw.get("processed"):
                return AdminCommand.model_validate(raw)
            await anyio.sleep(0.005)
