"""Configuration dataclasses."""

from dataclasses import dataclass


@dataclass
class StoreConfig:
    """Configuration shared by state store adapters."""

    buffer_size: int = 100
    """Events buffered per subscription before writers wait for the reader."""

    operation_timeout: float | None = 10.0
    """Seconds before a store operation raises TimeoutError. None disables."""


@dataclass
class RedisStoreConfig(StoreConfig):
    """Configuration for the Redis state store."""

    key_prefix: str = "chatwarden:"
    """Prefix for every Redis key written by the store."""

    channel: str = "chatwarden:changes"
    """Pub/sub channel used to announce changed paths."""

    poll_interval: float = 1.0
    """Seconds a subscription waits for a change before checking for close."""


@dataclass
class WardenConfig:
    """Configuration for the send pipeline and the command queue processor."""

    processor_actor: str | None = None
    """Identity the processor runs as. Recorded as processedBy, "auto" when unset."""

    queue_buffer: int = 100
    """Commands buffered between the queue subscription and the worker."""

    handler_timeout: float | None = None
    """Seconds a single command handler may run. None disables."""
