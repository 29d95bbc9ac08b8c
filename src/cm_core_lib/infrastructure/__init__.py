"""Infrastructure adapters (event-bus connections)."""

from .redis_setup import build_redis_client, get_redis_client

__all__ = [
    "build_redis_client",
    "get_redis_client",
]
