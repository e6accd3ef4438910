# path: crowdsense/crowd.py
"""Crowd density aggregation over a beacon's scan samples.

- average_count: mean device count over the last `window_minutes`,
  range [now - window, now] inclusive, samples without a count ignored,
  0.0 if nothing qualifies
- hourly_stat: one mean per hour over the last `period_days * 24` full
  UTC hours, anchored at the current hour boundary:
      anchor = now floored to the hour
      start  = anchor - hours * 3600
      bucket = (ts - start) // 3600   for start <= ts < anchor
  empty hours are 0.0, the output always has exactly `hours` entries
- fold_by_hour_of_day: reshapes an hourly histogram into a 24-slot
  profile by local hour of day, for charting
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime
from typing import List, NamedTuple, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidArgument
from .store import Store

logger = logging.getLogger("crowdsense.crowd")

SECONDS_PER_HOUR = 3600
HOURS_PER_DAY = 24


def _epoch_now(now: Optional[float]) -> int:
    return int(time.time()) if now is None else int(math.floor(now))


def floor_to_hour(epoch_seconds: float) -> int:
    """Zero the minutes and seconds of a UTC epoch timestamp."""
    s = int(math.floor(epoch_seconds))
    return s - s % SECONDS_PER_HOUR


@dataclass
class HourBucket:
    total: float = 0.0
    n: int = 0

    def add(self, count: float) -> None:
        self.total += count
        self.n += 1

    @property
    def mean(self) -> float:
        return self.total / self.n if self.n else 0.0


class HourlyStat(NamedTuple):
    values: List[float]
    start: int

    def bucket_start(self, i: int) -> int:
        return self.start + i * SECONDS_PER_HOUR


class CrowdAggregator:
    def __init__(self, store: Store) -> None:
        self._store = store

    async def average_count(
        self, beacon_id: str, window_minutes: int, now: Optional[float] = None
    ) -> float:
        if window_minutes < 0:
            raise InvalidArgument(f"window_minutes must be >= 0, got {window_minutes}")
        to = _epoch_now(now)
        frm = to - window_minutes * 60

        samples = await self._store.query_scans_in_range(beacon_id, frm, to)
        counts = [s.count for s in samples if s.count is not None]
        logger.debug(
            "avg beacon=%s range=[%d, %d] samples=%d valid=%d",
            beacon_id, frm, to, len(samples), len(counts),
        )
        if not counts:
            return 0.0
        return sum(counts) / len(counts)

    async def hourly_stat(
        self, beacon_id: str, period_days: int, now: Optional[float] = None
    ) -> HourlyStat:
        hours = period_days * HOURS_PER_DAY
        if hours <= 0:
            raise InvalidArgument(f"period_days must be >= 1, got {period_days}")

        anchor = floor_to_hour(_epoch_now(now))
        start = anchor - hours * SECONDS_PER_HOUR
        end_exclusive = anchor

        points = await self._store.query_scans_in_range(
            beacon_id, start, end_exclusive - 1, projected=True
        )

        buckets = [HourBucket() for _ in range(hours)]
        discarded = 0
        for p in points:
            if p.count is None:
                continue
            if p.timestamp < start or p.timestamp >= end_exclusive:
                discarded += 1
                continue
            buckets[(p.timestamp - start) // SECONDS_PER_HOUR].add(p.count)

        if discarded:
            logger.warning(
                "beacon=%s: %d samples outside [%d, %d) discarded",
                beacon_id, discarded, start, end_exclusive,
            )
        logger.debug("stat beacon=%s hours=%d start=%d samples=%d", beacon_id, hours, start, len(points))
        return HourlyStat([b.mean for b in buckets], start)


def hour_labels() -> List[str]:
    return [f"{h:02d}:00" for h in range(HOURS_PER_DAY)]


def fold_by_hour_of_day(stat: HourlyStat, tz: str) -> List[float]:
    """Average histogram values by local hour of day (index 0 = 00:00-01:00).

    Every histogram value takes part, including zero-filled hours.
    """
    try:
        zone = ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidArgument(f"unknown time zone: {tz!r}") from exc

    buckets = [HourBucket() for _ in range(HOURS_PER_DAY)]
    for i, v in enumerate(stat.values):
        hh = datetime.fromtimestamp(stat.bucket_start(i), tz=zone).hour
        buckets[hh].add(v)
    return [b.mean for b in buckets]
