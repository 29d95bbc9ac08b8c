"""Metrics service - fetch, aggregate and keep metrics live.

Purpose: The one-call surface a presentation layer talks to

Key Operations:
- refresh(): Bulk read every case and aggregate it (memoized by input)
- start_live_updates(): Seed a LiveUpdateReducer from a bulk read and attach
  it to a change-event source
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from cm_core_lib.clients.case_store_client import CaseStoreClient
from cm_core_lib.core.aggregation import AggregationCache, Aggregator
from cm_core_lib.core.realtime import ChangeEventSource, LiveUpdateReducer
from cm_core_lib.models import AggregationResult, TimeField, TimeInterval

logger = logging.getLogger(__name__)


class MetricsService:
    """Fetches cases from the data store and turns them into metrics.

    DataFetchError from the client propagates unchanged: a failed read never
    produces an (empty) result.

    Usage:
        service = MetricsService(CaseStoreClient(DataStoreSettings.from_env()))
        result = await service.refresh(now=datetime.now(timezone.utc))
    """

    def __init__(
        self,
        client: CaseStoreClient,
        aggregator: Optional[Aggregator] = None,
        cache: Optional[AggregationCache] = None,
    ):
        """Initialize service.

        Args:
            client: Case store client used for bulk reads
            aggregator: Aggregator for every pass (default options if None)
            cache: Result cache (a private 32-entry cache if None)
        """
        self.client = client
        self.aggregator = aggregator or Aggregator()
        self.cache = cache if cache is not None else AggregationCache()

    async def refresh(
        self,
        now: datetime,
        time_field: TimeField = TimeField.PUBLISHED_DATE,
        interval: TimeInterval = TimeInterval.MONTH,
        correlation_id: Optional[str] = None,
    ) -> AggregationResult:
        """Read every case and aggregate.

        Args:
            now: Reference instant for month/year counters
            time_field: Time-series axis
            interval: Time-series granularity
            correlation_id: Optional correlation ID for request tracing

        Returns:
            AggregationResult (served from cache when nothing changed)

        Raises:
            DataFetchError: If the bulk read fails
        """
        cases = await self.client.fetch_all_cases(correlation_id=correlation_id)
        result = self.cache.get_or_compute(
            self.aggregator, cases, now, time_field=time_field, interval=interval
        )
        logger.info(
            f"Refreshed metrics: {result.snapshot.total_cases} case(s) "
            f"(cache hits={self.cache.hits}, misses={self.cache.misses})"
        )
        return result

    async def start_live_updates(
        self,
        source: ChangeEventSource,
        clock: Optional[Callable[[], datetime]] = None,
        time_field: TimeField = TimeField.PUBLISHED_DATE,
        interval: TimeInterval = TimeInterval.MONTH,
    ) -> LiveUpdateReducer:
        """Seed a reducer from a bulk read, then attach it to ``source``.

        The returned reducer is disconnected (with ``error`` set) when the
        subscription could not be opened; its snapshot is still valid.
        The caller owns the reducer and must close() it.

        Raises:
            DataFetchError: If the seeding read fails
        """
        cases = await self.client.fetch_all_cases()

        kwargs = {"aggregator": self.aggregator, "time_field": time_field, "interval": interval}
        if clock is not None:
            kwargs["clock"] = clock
        reducer = LiveUpdateReducer(**kwargs)
        reducer.load(cases)

        if not await reducer.attach(source):
            logger.warning(f"Live updates unavailable: {reducer.error}")
        return reducer
