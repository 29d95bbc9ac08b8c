"""Live-update reducer.

Folds a stream of insert/update/delete events into a running
AggregationResult. It keeps a local copy of every known record keyed by id
and re-aggregates the full copy after each event (once per batch for
``apply_many``), so after any finite event sequence the snapshot equals a
direct aggregation of the implied record set.

Connection lifecycle:
  DISCONNECTED → CONNECTED     on successful subscription
  CONNECTED    → DISCONNECTED  on subscription failure, timeout or close

No retries happen here; re-subscribing is the caller's decision.
"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from cm_core_lib.core.aggregation.aggregator import Aggregator
from cm_core_lib.core.realtime.sources import ChangeEventSource
from cm_core_lib.exceptions import SubscriptionError
from cm_core_lib.models.case import CaseRecord, TimeField
from cm_core_lib.models.events import ChangeEvent, ConnectionStatus, EventKind
from cm_core_lib.models.metrics import AggregationResult, MetricsSnapshot, TimeInterval

logger = logging.getLogger(__name__)

CONNECT_FAILED_MESSAGE = "Failed to connect to realtime updates"
TIMED_OUT_MESSAGE = "Connection timed out"


class ReducerState(str, Enum):
    """Connection state of the reducer"""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LiveUpdateReducer:
    """Keeps an AggregationResult current as change events arrive.

    Usage:
        reducer = LiveUpdateReducer(clock=lambda: now)
        reducer.load(await client.fetch_all_cases())
        async with reducer:
            await reducer.attach(source)
            ...
            reducer.snapshot.total_cases
    """

    def __init__(
        self,
        aggregator: Optional[Aggregator] = None,
        clock: Callable[[], datetime] = _utc_now,
        time_field: TimeField = TimeField.PUBLISHED_DATE,
        interval: TimeInterval = TimeInterval.MONTH,
    ):
        """Initialize reducer.

        Args:
            aggregator: Aggregator used for every recomputation
            clock: Supplies ``now``; read once per recomputation
            time_field: Time-series axis passed to the aggregator
            interval: Time-series granularity passed to the aggregator
        """
        self.aggregator = aggregator or Aggregator()
        self.clock = clock
        self.time_field = TimeField(time_field)
        self.interval = TimeInterval(interval)

        self._records: Dict[str, CaseRecord] = {}
        self._result = self._aggregate()

        self.update_count = 0
        self.last_update: Optional[CaseRecord] = None
        self.state = ReducerState.DISCONNECTED
        self.error: Optional[str] = None

        self._source: Optional[ChangeEventSource] = None
        self._task: Optional[asyncio.Task] = None

    # ============================================================
    # Observable state
    # ============================================================
    @property
    def result(self) -> AggregationResult:
        return self._result

    @property
    def snapshot(self) -> MetricsSnapshot:
        return self._result.snapshot

    @property
    def is_connected(self) -> bool:
        return self.state is ReducerState.CONNECTED

    @property
    def records(self) -> List[CaseRecord]:
        """Materialized record set, in first-seen order"""
        return list(self._records.values())

    # ============================================================
    # Folding
    # ============================================================
    def _aggregate(self) -> AggregationResult:
        return self.aggregator.aggregate(
            self._records.values(),
            self.clock(),
            time_field=self.time_field,
            interval=self.interval,
        )

    def _fold(self, event: ChangeEvent) -> None:
        self.update_count += 1
        self.last_update = event.record

        record_id = event.record.id
        if not record_id:
            logger.warning(f"Ignoring {event.kind.value} event without a record id")
            return

        if event.kind is EventKind.DELETE:
            self._records.pop(record_id, None)
        else:
            # Insert and update are both upserts: last write wins
            self._records[record_id] = event.record

    def load(self, records: Iterable[CaseRecord]) -> AggregationResult:
        """Replace the record set (e.g. with a bulk read) and recompute.

        Loading does not count as an update.
        """
        self._records = {}
        for record in records:
            if record.id:
                self._records[record.id] = record
        self._result = self._aggregate()
        return self._result

    def apply(self, event: ChangeEvent) -> AggregationResult:
        """Apply one event and recompute"""
        self._fold(event)
        self._result = self._aggregate()
        return self._result

    def apply_many(self, events: Iterable[ChangeEvent]) -> AggregationResult:
        """Apply events in order, recomputing once at the end"""
        applied = 0
        for event in events:
            self._fold(event)
            applied += 1
        if applied:
            self._result = self._aggregate()
        return self._result

    # ============================================================
    # Subscription lifecycle
    # ============================================================
    def _set_connected(self) -> None:
        if not self.is_connected:
            logger.info("Realtime updates connected")
        self.state = ReducerState.CONNECTED
        self.error = None

    def _set_disconnected(self, error: Optional[str] = None) -> None:
        if self.is_connected:
            logger.info(f"Realtime updates disconnected{f': {error}' if error else ''}")
        self.state = ReducerState.DISCONNECTED
        if error:
            self.error = error

    def _handle_status(self, status: ConnectionStatus) -> None:
        if status is ConnectionStatus.SUBSCRIBED:
            self._set_connected()
        elif status is ConnectionStatus.ERROR:
            self._set_disconnected(CONNECT_FAILED_MESSAGE)
        elif status is ConnectionStatus.TIMEOUT:
            self._set_disconnected(TIMED_OUT_MESSAGE)
        elif status is ConnectionStatus.CLOSED:
            self._set_disconnected()

    async def attach(self, source: ChangeEventSource) -> bool:
        """Subscribe to ``source`` and start consuming its messages.

        Args:
            source: Change-event source to pull from

        Returns:
            True if connected; False if the subscription failed (see ``error``)

        Raises:
            RuntimeError: If a source is already attached
        """
        if self._source is not None:
            raise RuntimeError("A change-event source is already attached; close() first")

        self._source = source
        try:
            await source.connect()
        except SubscriptionError as e:
            logger.error(f"Subscription to {source.source_name} failed: {e}")
            self._set_disconnected(str(e) or CONNECT_FAILED_MESSAGE)
            await self._release_source()
            return False

        self._set_connected()
        self._task = asyncio.create_task(self._consume(source))
        return True

    async def _consume(self, source: ChangeEventSource) -> None:
        stream = source.messages()
        try:
            async for message in stream:
                if isinstance(message, ConnectionStatus):
                    self._handle_status(message)
                    if message is ConnectionStatus.CLOSED:
                        break
                else:
                    self.apply(message)
            self._set_disconnected()
        except Exception as e:
            logger.error(f"Realtime channel {source.source_name} failed: {e}")
            self._set_disconnected(f"{CONNECT_FAILED_MESSAGE}: {e}")
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
            await self._release_source()

    async def _release_source(self) -> None:
        source, self._source = self._source, None
        if source is not None:
            await source.close()

    async def wait_closed(self) -> None:
        """Wait until the consumer stops (source closed or failed)"""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def close(self) -> None:
        """Stop consuming events and release the subscription"""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._release_source()
        self._set_disconnected()

    async def __aenter__(self) -> 'LiveUpdateReducer':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
