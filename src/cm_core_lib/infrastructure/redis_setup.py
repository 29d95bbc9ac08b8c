"""Event-bus Redis connection factory.

Builds the async Redis client used by RedisEventSource, from explicit
EventBusSettings:
- Standalone Redis (development/self-hosted)
- Redis Sentinel (HA deployments, automatic master failover)
"""

import logging

from redis.asyncio import Redis
from redis.asyncio.sentinel import Sentinel

from cm_core_lib.config.settings import EventBusSettings, RedisMode
from cm_core_lib.utils import service_startup_retry

logger = logging.getLogger(__name__)


@service_startup_retry
async def _verify_redis_connection(client: Redis) -> None:
    """Ping the event bus, retrying with backoff.

    Raises:
        redis.exceptions.RedisError: If the ping still fails after retries
    """
    await client.ping()
    logger.info("Event bus connection verified")


def build_redis_client(settings: EventBusSettings) -> Redis:
    """Create (but do not connect) a Redis client for ``settings``."""
    if settings.mode is RedisMode.SENTINEL:
        logger.info(
            f"Using Redis Sentinel for event bus: master={settings.master_set}, "
            f"sentinels={settings.sentinel_hosts}"
        )
        sentinel = Sentinel(
            settings.sentinel_hosts,
            sentinel_kwargs={"password": settings.password} if settings.password else {},
            socket_keepalive=True,
            health_check_interval=settings.health_check_interval,
        )
        return sentinel.master_for(
            settings.master_set,
            db=settings.db,
            password=settings.password,
            decode_responses=True,
            socket_keepalive=True,
            health_check_interval=settings.health_check_interval,
        )

    logger.info(f"Using standalone Redis for event bus: {settings.host}:{settings.port}/{settings.db}")
    return Redis(
        host=settings.host,
        port=settings.port,
        db=settings.db,
        password=settings.password,
        decode_responses=True,
        socket_keepalive=True,
        health_check_interval=settings.health_check_interval,
        socket_connect_timeout=5,
    )


async def get_redis_client(settings: EventBusSettings) -> Redis:
    """Create a Redis client for the event bus and verify it responds.

    Args:
        settings: Event bus settings (see EventBusSettings.from_env)

    Returns:
        Connected async Redis client

    Raises:
        redis.exceptions.RedisError: If the connection fails after retries
    """
    client = build_redis_client(settings)
    await _verify_redis_connection(client)
    logger.info(f"Event bus ready on channel '{settings.channel}'")
    return client
