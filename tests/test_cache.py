import pytest

from cm_core_lib.core.aggregation import AggregationCache, Aggregator
from cm_core_lib.models import CaseRecord, TimeInterval


def test_same_inputs_hit_the_cache(sample_cases, now):
    cache = AggregationCache()
    aggregator = Aggregator()

    first = cache.get_or_compute(aggregator, sample_cases, now)
    second = cache.get_or_compute(aggregator, list(sample_cases), now)

    assert second == first
    assert second is not first
    assert (cache.hits, cache.misses) == (1, 1)


def test_changed_record_or_parameters_miss(sample_cases, now):
    cache = AggregationCache()
    aggregator = Aggregator()
    cache.get_or_compute(aggregator, sample_cases, now)

    edited = sample_cases[:2] + [sample_cases[2].model_copy(update={"case_status": "convicted"})]
    cache.get_or_compute(aggregator, edited, now)
    cache.get_or_compute(aggregator, sample_cases, now, interval=TimeInterval.DAY)

    assert cache.misses == 3
    assert cache.hits == 0


def test_oldest_entry_is_evicted(now):
    cache = AggregationCache(max_size=1)
    aggregator = Aggregator()
    a = [CaseRecord(id="a")]
    b = [CaseRecord(id="b")]

    cache.get_or_compute(aggregator, a, now)
    cache.get_or_compute(aggregator, b, now)

    assert len(cache.cache) == 1
    assert cache.check(a, now) is None
    assert cache.check(b, now) is not None


def test_clear_and_invalid_size(now):
    cache = AggregationCache()
    cache.get_or_compute(Aggregator(), [], now)
    cache.clear()

    assert cache.cache == {}
    with pytest.raises(ValueError):
        AggregationCache(max_size=0)


def test_callers_cannot_corrupt_cached_result(sample_cases, now):
    cache = AggregationCache()
    aggregator = Aggregator()

    first = cache.get_or_compute(aggregator, sample_cases, now)
    first.regions.clear()
    first.sectors[0].corruption_types.append("tampered")
    second = cache.get_or_compute(aggregator, sample_cases, now)
    second.regions[0].cases_by_status["tampered"] = 99
    third = cache.get_or_compute(aggregator, sample_cases, now)

    assert third == Aggregator().aggregate(sample_cases, now)
    assert "tampered" not in third.sectors[0].corruption_types
    assert "tampered" not in third.regions[0].cases_by_status
