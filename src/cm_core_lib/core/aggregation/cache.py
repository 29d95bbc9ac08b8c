"""
Aggregation cache keyed by input identity.

Aggregation is a pure function of (records, now, time field, interval), so a
result can be reused whenever the same inputs come back, e.g. when a
dashboard re-renders without the case collection having changed.
"""

import hashlib
import logging
import time
from typing import Dict, Iterable, List, Optional, Tuple

from cm_core_lib.core.aggregation.aggregator import Aggregator
from cm_core_lib.models.case import CaseRecord, TimeField
from cm_core_lib.models.common import ensure_utc
from cm_core_lib.models.metrics import AggregationResult, TimeInterval


class AggregationCache:
    """Bounded cache of AggregationResults"""

    def __init__(self, max_size: int = 32):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.cache: Dict[str, Tuple[float, AggregationResult]] = {}
        self.hits = 0
        self.misses = 0
        self.logger = logging.getLogger(__name__)

    def _get_cache_key(
        self,
        cases: Iterable[CaseRecord],
        now,
        time_field: TimeField,
        interval: TimeInterval,
    ) -> str:
        """Hash record contents (in order) together with the pass parameters"""
        digest = hashlib.sha256()
        for case in cases:
            digest.update(case.model_dump_json().encode())
            digest.update(b"\n")
        digest.update(
            f"{ensure_utc(now).isoformat()}|{TimeField(time_field).value}|"
            f"{TimeInterval(interval).value}".encode()
        )
        return digest.hexdigest()

    def check(
        self,
        cases: List[CaseRecord],
        now,
        time_field: TimeField = TimeField.PUBLISHED_DATE,
        interval: TimeInterval = TimeInterval.MONTH,
    ) -> Optional[AggregationResult]:
        """Return a private copy of the cached result for these inputs, if any.

        Result lists and count maps are mutable, so every caller gets its own
        deep copy and cannot alter the cached entry.
        """
        cache_key = self._get_cache_key(cases, now, time_field, interval)
        entry = self.cache.get(cache_key)
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry[1].model_copy(deep=True)

    def store(
        self,
        cases: List[CaseRecord],
        result: AggregationResult,
    ) -> None:
        """Store a copy of ``result`` under the inputs it was computed from"""
        cache_key = self._get_cache_key(cases, result.now, result.time_field, result.interval)
        self.cache[cache_key] = (time.monotonic(), result.model_copy(deep=True))

        # Evict oldest entries if cache is full
        while len(self.cache) > self.max_size:
            oldest_key = min(self.cache.keys(), key=lambda k: self.cache[k][0])
            del self.cache[oldest_key]
            self.logger.debug(f"Evicted aggregation cache entry {oldest_key[:12]}")

    def get_or_compute(
        self,
        aggregator: Aggregator,
        cases: Iterable[CaseRecord],
        now,
        time_field: TimeField = TimeField.PUBLISHED_DATE,
        interval: TimeInterval = TimeInterval.MONTH,
    ) -> AggregationResult:
        """Cached aggregation: compute and store on a miss"""
        cases = list(cases)
        cached = self.check(cases, now, time_field, interval)
        if cached is not None:
            return cached

        result = aggregator.aggregate(cases, now, time_field=time_field, interval=interval)
        self.store(cases, result)
        return result

    def clear(self) -> None:
        self.cache.clear()
