# path: crowdsense/geo.py
"""Nearest-beacon ranking inside one region.

- Fetches up to `limit * overfetch_factor` beacons of the region
- Drops beacons without registered coordinates
- Ranks the rest by haversine great-circle distance to the query point
  (spherical earth, R = 6,371,000 m)
- Returns the closest `limit`, ties kept in store order

There is no radius cutoff: the beacon `radius` field is informational and a
far-away beacon still ranks if it is among the closest k.
"""

from __future__ import annotations

import logging
import math
from typing import List, NamedTuple

from .errors import InvalidArgument
from .schemas import Beacon
from .store import Store

logger = logging.getLogger("crowdsense.geo")

EARTH_RADIUS_M = 6371000.0
OVERFETCH_FACTOR = 5


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two lat/lon points (degrees)."""
    p1 = math.radians(lat1)
    p2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2.0) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2.0) ** 2
    # rounding can push a a hair above 1 for antipodal points
    a = min(1.0, a)
    return 2.0 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


class RankedCandidate(NamedTuple):
    distance_m: float
    beacon: Beacon


class GeoRanker:
    def __init__(self, store: Store, overfetch_factor: int = OVERFETCH_FACTOR) -> None:
        self._store = store
        self._overfetch = overfetch_factor

    async def rank_by_distance(
        self, lat: float, lon: float, region: str, limit: int
    ) -> List[Beacon]:
        if limit < 0:
            raise InvalidArgument(f"limit must be >= 0, got {limit}")
        if limit == 0:
            return []

        candidates = await self._store.scan_by_region(region, limit * self._overfetch)
        ranked = [
            RankedCandidate(haversine_m(lat, lon, b.latitude, b.longitude), b)
            for b in candidates
            if b.has_coordinates
        ]
        # list.sort is stable, equal distances stay in store order
        ranked.sort(key=lambda rc: rc.distance_m)

        logger.debug(
            "region=%s candidates=%d with_coords=%d limit=%d",
            region, len(candidates), len(ranked), limit,
        )
        return [rc.beacon for rc in ranked[:limit]]
