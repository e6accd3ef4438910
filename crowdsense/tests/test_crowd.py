# crowdsense/tests/test_crowd.py
import asyncio
from datetime import datetime, timezone

import pytest

from crowdsense.crowd import (
    CrowdAggregator,
    HourBucket,
    HourlyStat,
    floor_to_hour,
    fold_by_hour_of_day,
    hour_labels,
)
from crowdsense.errors import InvalidArgument, StoreUnavailable


def epoch(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


NOW = epoch(2024, 1, 2, 3, 17, 40)


def test_floor_to_hour():
    assert floor_to_hour(NOW) == epoch(2024, 1, 2, 3, 0, 0)
    assert floor_to_hour(epoch(2024, 1, 2, 3, 0, 0)) == epoch(2024, 1, 2, 3, 0, 0)
    assert floor_to_hour(NOW + 0.9) == epoch(2024, 1, 2, 3, 0, 0)


def test_hour_bucket_mean():
    b = HourBucket()
    assert b.mean == 0.0
    b.add(4)
    b.add(6)
    assert b.mean == 5.0


# ---------------- average_count ----------------

def test_average_of_four_and_six(make_store, make_scan):
    store = make_store(scans=[make_scan(NOW - 60, 4), make_scan(NOW - 30, 6)])
    assert asyncio.run(CrowdAggregator(store).average_count("B-1", 5, now=NOW)) == 5.0


def test_average_without_samples_is_zero(make_store, make_scan):
    store = make_store(scans=[make_scan(NOW - 60, None)])
    assert asyncio.run(CrowdAggregator(store).average_count("B-1", 5, now=NOW)) == 0.0
    assert asyncio.run(CrowdAggregator(make_store()).average_count("B-1", 5, now=NOW)) == 0.0


def test_average_window_is_inclusive_both_ends(make_store, make_scan):
    store = make_store(scans=[
        make_scan(NOW - 300, 10),   # exactly at from
        make_scan(NOW, 20),         # exactly at now
        make_scan(NOW - 301, 1000), # just outside
    ])
    assert asyncio.run(CrowdAggregator(store).average_count("B-1", 5, now=NOW)) == 15.0
    assert store.calls == [("query_scans_in_range", "B-1", NOW - 300, NOW, False)]


def test_average_counts_duplicates_and_measured_zero(make_store, make_scan):
    store = make_store(scans=[
        make_scan(NOW - 10, 0),
        make_scan(NOW - 10, 0),
        make_scan(NOW - 10, 9),
        make_scan(NOW - 5, None),
    ])
    assert asyncio.run(CrowdAggregator(store).average_count("B-1", 1, now=NOW)) == 3.0


def test_average_rejects_negative_window(make_store):
    with pytest.raises(InvalidArgument):
        asyncio.run(CrowdAggregator(make_store()).average_count("B-1", -1, now=NOW))


# ---------------- hourly_stat ----------------

def test_hourly_stat_single_sample_example(make_store, make_scan):
    store = make_store(scans=[make_scan(epoch(2024, 1, 1, 3, 10, 0), 8)])
    stat = asyncio.run(CrowdAggregator(store).hourly_stat("B-1", 1, now=NOW))

    assert stat.start == epoch(2024, 1, 1, 3, 0, 0)
    assert len(stat.values) == 24
    assert stat.values[0] == 8.0
    assert all(v == 0.0 for v in stat.values[1:])
    assert store.calls == [
        ("query_scans_in_range", "B-1", stat.start, epoch(2024, 1, 2, 3, 0, 0) - 1, True)
    ]


def test_hourly_stat_empty_store_is_zero_filled(make_store):
    stat = asyncio.run(CrowdAggregator(make_store()).hourly_stat("B-1", 3, now=NOW))
    assert stat.values == [0.0] * 72
    assert stat.start == floor_to_hour(NOW) - 72 * 3600


def test_hourly_stat_bucket_boundaries_and_means(make_store, make_scan):
    start = epoch(2024, 1, 1, 3, 0, 0)
    store = make_store(scans=[
        make_scan(start, 2),
        make_scan(start + 3599, 4),
        make_scan(start + 3600, 10),
        make_scan(start + 3600, None),
        make_scan(start + 23 * 3600 + 3599, 7),   # last second before the anchor
        make_scan(floor_to_hour(NOW), 99),          # the current hour is excluded
        make_scan(NOW, 99),
        make_scan(start - 1, 99),
    ])
    stat = asyncio.run(CrowdAggregator(store).hourly_stat("B-1", 1, now=NOW))

    assert stat.values[0] == 3.0
    assert stat.values[1] == 10.0
    assert stat.values[23] == 7.0
    assert sum(stat.values) == 20.0


def test_hourly_stat_discards_out_of_range_points(make_store, make_scan):
    class LeakyStore(make_store):
        async def query_scans_in_range(self, beacon_id, start, end, projected=False):
            points = await super().query_scans_in_range(beacon_id, start, end, projected)
            # a store that ignores the range bounds
            return points + [type(points[0])(end + 1, 50), type(points[0])(start - 3600, 50)]

    start = epoch(2024, 1, 1, 3, 0, 0)
    store = LeakyStore(scans=[make_scan(start + 5, 1)])
    stat = asyncio.run(CrowdAggregator(store).hourly_stat("B-1", 1, now=NOW))
    assert stat.values[0] == 1.0
    assert sum(stat.values) == 1.0


def test_hourly_stat_bucket_start():
    stat = HourlyStat([0.0] * 3, 7200)
    assert [stat.bucket_start(i) for i in range(3)] == [7200, 10800, 14400]


@pytest.mark.parametrize("days", [0, -1])
def test_hourly_stat_rejects_non_positive_period(make_store, days):
    store = make_store()
    with pytest.raises(InvalidArgument):
        asyncio.run(CrowdAggregator(store).hourly_stat("B-1", days, now=NOW))
    assert store.calls == []


def test_hourly_stat_is_idempotent(make_store, make_scan):
    store = make_store(scans=[make_scan(NOW - 4000, 3), make_scan(NOW - 8000, 5)])
    agg = CrowdAggregator(store)
    first = asyncio.run(agg.hourly_stat("B-1", 2, now=NOW))
    second = asyncio.run(agg.hourly_stat("B-1", 2, now=NOW))
    assert first == second


# ---------------- hour-of-day folding ----------------

def test_fold_by_hour_of_day_utc():
    start = epoch(2024, 1, 1, 0, 0, 0)
    values = [float(h) for h in range(24)] + [float(h) + 2 for h in range(24)]
    folded = fold_by_hour_of_day(HourlyStat(values, start), "UTC")
    assert folded == [float(h) + 1 for h in range(24)]


def test_fold_by_hour_of_day_shifts_to_local_time():
    start = epoch(2024, 1, 1, 0, 0, 0)
    values = [0.0] * 24
    values[0] = 12.0   # 00:00 UTC is 09:00 in Seoul
    folded = fold_by_hour_of_day(HourlyStat(values, start), "Asia/Seoul")
    assert folded[9] == 12.0
    assert folded[0] == 0.0


def test_fold_by_hour_of_day_unknown_zone():
    with pytest.raises(InvalidArgument):
        fold_by_hour_of_day(HourlyStat([1.0], 0), "Mars/Olympus_Mons")


def test_hour_labels():
    labels = hour_labels()
    assert len(labels) == 24
    assert labels[0] == "00:00" and labels[23] == "23:00"


def test_store_failure_propagates_from_both_aggregations(make_store, make_scan):
    store = make_store(scans=[make_scan(NOW - 60, 4)])
    store.fail = True
    agg = CrowdAggregator(store)
    with pytest.raises(StoreUnavailable):
        asyncio.run(agg.average_count("B-1", 5, now=NOW))
    with pytest.raises(StoreUnavailable):
        asyncio.run(agg.hourly_stat("B-1", 1, now=NOW))
