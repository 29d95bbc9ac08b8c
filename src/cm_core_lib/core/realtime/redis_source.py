"""Redis pub/sub change-event source.

Listens on a pub/sub channel where the data store's change feed is relayed as
JSON, either ``{"kind": ..., "record": {...}}`` or the realtime shape
``{"eventType": "UPDATE", "new": {...}, "old": {...}}``.
"""

import json
import logging
from typing import AsyncIterator, Optional

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from cm_core_lib.config.settings import EventBusSettings
from cm_core_lib.core.realtime.sources import ChangeEventSource, SourceMessage
from cm_core_lib.exceptions import SubscriptionError
from cm_core_lib.infrastructure.redis_setup import get_redis_client
from cm_core_lib.models.events import ChangeEvent, ConnectionStatus

logger = logging.getLogger(__name__)


class RedisEventSource(ChangeEventSource):
    """Change-event source reading a Redis pub/sub channel.

    Usage:
        settings = EventBusSettings.from_env()
        source = RedisEventSource(settings)
        await reducer.attach(source)
    """

    def __init__(self, settings: EventBusSettings, client: Optional[Redis] = None):
        """Initialize source.

        Args:
            settings: Event bus settings (channel, connection)
            client: Existing Redis client to reuse; the source then does not
                close it. When None a client is created on connect().
        """
        self.settings = settings
        self._client = client
        self._owns_client = client is None
        self._pubsub = None

        logger.info(f"Initialized RedisEventSource for channel '{settings.channel}'")

    @property
    def source_name(self) -> str:
        return f"redis:{self.settings.channel}"

    async def connect(self) -> None:
        try:
            if self._client is None:
                self._client = await get_redis_client(self.settings)
            self._pubsub = self._client.pubsub()
            await self._pubsub.subscribe(self.settings.channel)
        except (RedisError, OSError) as e:
            logger.error(f"Failed to subscribe to '{self.settings.channel}': {e}")
            raise SubscriptionError(f"Failed to subscribe to '{self.settings.channel}': {e}") from e

        logger.info(f"Subscribed to '{self.settings.channel}'")

    def _decode(self, data) -> Optional[ChangeEvent]:
        try:
            return ChangeEvent.from_payload(json.loads(data))
        except (ValueError, ValidationError, TypeError) as e:
            logger.warning(f"Dropping undecodable change message on '{self.settings.channel}': {e}")
            return None

    async def messages(self) -> AsyncIterator[SourceMessage]:
        if self._pubsub is None:
            raise SubscriptionError("RedisEventSource.messages() called before connect()")

        yield ConnectionStatus.SUBSCRIBED
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                event = self._decode(message.get("data"))
                if event is not None:
                    yield event
        except RedisTimeoutError as e:
            logger.error(f"Event bus timed out on '{self.settings.channel}': {e}")
            yield ConnectionStatus.TIMEOUT
        except (RedisError, OSError) as e:
            logger.error(f"Event bus failed on '{self.settings.channel}': {e}")
            yield ConnectionStatus.ERROR
        yield ConnectionStatus.CLOSED

    async def close(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is not None:
            try:
                await pubsub.unsubscribe(self.settings.channel)
            except (RedisError, OSError) as e:
                logger.warning(f"Unsubscribe from '{self.settings.channel}' failed: {e}")
            await pubsub.aclose()

        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.aclose()

        logger.info(f"Closed RedisEventSource for '{self.settings.channel}'")
