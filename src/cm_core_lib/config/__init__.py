"""Configuration Module

Environment-driven settings for the data store and the event bus.
"""

from .settings import (
    DataStoreSettings,
    EventBusSettings,
    RedisMode,
    parse_sentinel_hosts,
)

__all__ = [
    "DataStoreSettings",
    "EventBusSettings",
    "RedisMode",
    "parse_sentinel_hosts",
]
