"""
Change-event source interface.

A source is the pull side of the live subscription on the case collection.
The reducer connects it, iterates ``messages()`` in order and closes it when
done, so every listener acquired by ``connect()`` is released by ``close()``.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Union

from cm_core_lib.exceptions import SubscriptionError
from cm_core_lib.models.events import ChangeEvent, ConnectionStatus

logger = logging.getLogger(__name__)

SourceMessage = Union[ChangeEvent, ConnectionStatus]


class ChangeEventSource(ABC):
    """Abstract base class for live-update channels"""

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return a short name for logs"""
        pass

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the subscription.

        Raises:
            SubscriptionError: If the channel cannot be opened
        """
        pass

    @abstractmethod
    def messages(self) -> AsyncIterator[SourceMessage]:
        """Yield change events and status signals in arrival order"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the subscription. Must be safe to call more than once."""
        pass


_END_OF_STREAM = object()


class QueueEventSource(ChangeEventSource):
    """In-process source backed by an asyncio.Queue.

    Bridges callback-style transports into a pull-based channel: the
    transport's callbacks call ``publish()`` / ``publish_payload()`` /
    ``publish_status()`` and the reducer pulls in FIFO order.

    Usage:
        source = QueueEventSource()
        await reducer.attach(source)
        source.publish(ChangeEvent(kind=EventKind.INSERT, record=case))
        await source.drained()
    """

    def __init__(self, name: str = "queue", maxsize: int = 0):
        self.name = name
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._connected = False
        self._closed = False
        self._consumers = 0

    @property
    def source_name(self) -> str:
        return self.name

    @property
    def is_open(self) -> bool:
        """True between a successful connect() and close()"""
        return self._connected and not self._closed

    async def connect(self) -> None:
        if self._closed:
            raise SubscriptionError(f"Event source '{self.name}' is closed")
        self._connected = True
        logger.info(f"Event source '{self.name}' connected")

    def publish(self, event: ChangeEvent) -> None:
        if self._closed:
            raise SubscriptionError(f"Event source '{self.name}' is closed")
        self._queue.put_nowait(event)

    def publish_payload(self, payload: Dict[str, Any]) -> None:
        """Decode a raw change payload and publish it"""
        self.publish(ChangeEvent.from_payload(payload))

    def publish_status(self, status: ConnectionStatus) -> None:
        if self._closed:
            raise SubscriptionError(f"Event source '{self.name}' is closed")
        self._queue.put_nowait(ConnectionStatus(status))

    async def drained(self) -> None:
        """Wait until every published message has been consumed or discarded"""
        await self._queue.join()

    def _discard_pending(self) -> int:
        discarded = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            discarded += 1
        return discarded

    async def messages(self) -> AsyncIterator[SourceMessage]:
        self._consumers += 1
        try:
            while True:
                message = await self._queue.get()
                if message is _END_OF_STREAM:
                    self._queue.task_done()
                    return
                try:
                    yield message
                finally:
                    self._queue.task_done()
                if message is ConnectionStatus.CLOSED:
                    return
        finally:
            self._consumers -= 1
            if self._closed and not self._consumers:
                self._discard_pending()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._consumers:
            # A live consumer stops at the end marker
            self._queue.put_nowait(_END_OF_STREAM)
        else:
            discarded = self._discard_pending()
            if discarded:
                logger.warning(f"Event source '{self.name}' discarded {discarded} unread message(s)")
        logger.info(f"Event source '{self.name}' closed")
