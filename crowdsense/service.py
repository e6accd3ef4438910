# path: crowdsense/service.py
"""Facade bundling the query components over one store.

Each component gets the store through its constructor, so the HTTP layer
(or a test) decides which store is used. None of them keep state between
calls.
"""

from __future__ import annotations

from typing import List, Optional

from .crowd import CrowdAggregator, HourlyStat
from .errors import InvalidArgument, NotFound
from .geo import OVERFETCH_FACTOR, GeoRanker
from .names import NameMatcher
from .schemas import Beacon
from .store import Store


class BeaconService:
    def __init__(self, store: Store, overfetch_factor: int = OVERFETCH_FACTOR) -> None:
        self.store = store
        self.geo = GeoRanker(store, overfetch_factor)
        self.names = NameMatcher(store, overfetch_factor)
        self.crowd = CrowdAggregator(store)

    async def rank_by_distance(
        self, lat: float, lon: float, region: str, limit: int
    ) -> List[Beacon]:
        return await self.geo.rank_by_distance(lat, lon, region, limit)

    async def match_by_name(self, fragment: str, strict: bool, limit: int) -> List[Beacon]:
        return await self.names.match_by_name(fragment, strict, limit)

    async def list_by_region(self, region: str, limit: int) -> List[Beacon]:
        if limit < 0:
            raise InvalidArgument(f"limit must be >= 0, got {limit}")
        return await self.store.scan_by_region(region, limit)

    async def get_by_id(self, beacon_id: str) -> Beacon:
        beacon = await self.store.get_by_id(beacon_id)
        if beacon is None:
            raise NotFound(f"beacon {beacon_id!r} not found")
        return beacon

    async def average_count(
        self, beacon_id: str, window_minutes: int, now: Optional[float] = None
    ) -> float:
        return await self.crowd.average_count(beacon_id, window_minutes, now)

    async def hourly_stat(
        self, beacon_id: str, period_days: int, now: Optional[float] = None
    ) -> HourlyStat:
        return await self.crowd.hourly_stat(beacon_id, period_days, now)
