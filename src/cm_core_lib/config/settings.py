"""Environment-driven settings for the library's collaborators.

Settings objects are built by the host process once at startup and passed
explicitly to clients and event sources; nothing here is read at import time
and there is no module-level singleton.

Environment Variables:
    Data store (bulk reads):
        CM_DATA_STORE_URL: Base URL of the REST data store (fallback: SUPABASE_URL)
        CM_DATA_STORE_KEY: API key (fallback: SUPABASE_ANON_KEY)
        CM_CASES_TABLE: Case table name (default: "corruption_cases")
        CM_REQUEST_TIMEOUT: Request timeout in seconds (default: 30.0)
        CM_PAGE_SIZE: Rows per page for bulk reads (default: 1000)

    Event bus (live updates over Redis pub/sub):
        REDIS_MODE: "standalone" (default) or "sentinel"
        REDIS_HOST / REDIS_PORT / REDIS_DB / REDIS_PASSWORD
        REDIS_SENTINEL_HOSTS: Comma-separated "host:port" pairs (sentinel mode)
        REDIS_MASTER_SET: Sentinel master set name (default: "mymaster")
        CM_EVENTS_CHANNEL: Pub/sub channel (default: "corruption_cases_changes")
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SENTINEL_PORT = 26379


class RedisMode(Enum):
    """Redis deployment topology."""

    STANDALONE = "standalone"  # Single node (development/self-hosted)
    SENTINEL = "sentinel"  # Sentinel-managed HA


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid float in {key}: {raw}, using {default}")
        return default


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer in {key}: {raw}, using {default}")
        return default


def parse_sentinel_hosts(hosts_str: str) -> List[Tuple[str, int]]:
    """Parse comma-separated sentinel host:port string.

    Example:
        >>> parse_sentinel_hosts("sentinel1:26379,sentinel2")
        [('sentinel1', 26379), ('sentinel2', 26379)]
    """
    sentinels = []

    for host_port in hosts_str.split(","):
        host_port = host_port.strip()
        if not host_port:
            continue

        if ":" in host_port:
            host, port_str = host_port.rsplit(":", 1)
            sentinels.append((host, int(port_str)))
        else:
            sentinels.append((host_port, DEFAULT_SENTINEL_PORT))

    return sentinels


@dataclass(frozen=True)
class DataStoreSettings:
    """Connection settings for the case data store.

    Attributes:
        base_url: Data store base URL (e.g. https://project.supabase.co)
        api_key: API key sent as ``apikey`` and bearer token
        cases_table: Table holding case rows
        timeout: Request timeout in seconds
        page_size: Rows requested per page
    """

    base_url: str
    api_key: str
    cases_table: str = "corruption_cases"
    timeout: float = 30.0
    page_size: int = 1000

    def __post_init__(self):
        if not self.base_url:
            raise ValueError("Data store base_url is required")
        if not self.api_key:
            raise ValueError("Data store api_key is required")
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")

    @classmethod
    def from_env(cls, **overrides) -> 'DataStoreSettings':
        """Build settings from environment variables; keyword overrides win.

        Raises:
            ValueError: If no URL or key is configured
        """
        values = {
            "base_url": os.getenv("CM_DATA_STORE_URL") or os.getenv("SUPABASE_URL", ""),
            "api_key": os.getenv("CM_DATA_STORE_KEY") or os.getenv("SUPABASE_ANON_KEY", ""),
            "cases_table": os.getenv("CM_CASES_TABLE", "corruption_cases"),
            "timeout": _env_float("CM_REQUEST_TIMEOUT", 30.0),
            "page_size": _env_int("CM_PAGE_SIZE", 1000),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass(frozen=True)
class EventBusSettings:
    """Redis pub/sub settings for the live-update channel."""

    mode: RedisMode = RedisMode.STANDALONE
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    sentinel_hosts: List[Tuple[str, int]] = field(default_factory=list)
    master_set: str = "mymaster"
    channel: str = "corruption_cases_changes"
    health_check_interval: int = 30

    def __post_init__(self):
        if self.mode is RedisMode.SENTINEL and not self.sentinel_hosts:
            raise ValueError("sentinel_hosts are required for Sentinel mode")

    @classmethod
    def from_env(cls, **overrides) -> 'EventBusSettings':
        """Build settings from environment variables; keyword overrides win."""
        mode_str = os.getenv("REDIS_MODE", "standalone")
        try:
            mode = RedisMode(mode_str.lower())
        except ValueError:
            logger.warning(f"Invalid REDIS_MODE '{mode_str}', defaulting to 'standalone'")
            mode = RedisMode.STANDALONE

        values = {
            "mode": mode,
            "host": os.getenv("REDIS_HOST", "localhost"),
            "port": _env_int("REDIS_PORT", 6379),
            "db": _env_int("REDIS_DB", 0),
            "password": os.getenv("REDIS_PASSWORD") or None,
            "sentinel_hosts": parse_sentinel_hosts(os.getenv("REDIS_SENTINEL_HOSTS", "")),
            "master_set": os.getenv("REDIS_MASTER_SET", "mymaster"),
            "channel": os.getenv("CM_EVENTS_CHANNEL", "corruption_cases_changes"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
