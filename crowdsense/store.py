# path: crowdsense/store.py
"""Store adapter over the `beacons` and `scans` tables.

- Point lookup by beacon id
- Region scan (index on beacons.region), truncated to a fetch cap
- Name scan (index on beacons.name): equality or case-sensitive substring
- Inclusive time-range query over one beacon's scans, optionally projected
  onto (ts, count)

Every call either returns the complete result or raises `StoreUnavailable`;
transport and timeout errors are never turned into empty results.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Protocol, Sequence, Union

import asyncpg

from .db import Database
from .errors import StoreUnavailable
from .schemas import Beacon, MatchMode, ScanPoint, ScanSample

_STORE_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.InterfaceError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.QueryCanceledError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
)

_BEACON_COLUMNS = "id, region, name, latitude, longitude, radius"


class Store(Protocol):
    """What the query components need from a backing store."""

    async def get_by_id(self, beacon_id: str) -> Optional[Beacon]: ...

    async def scan_by_region(self, region: str, fetch_cap: int) -> List[Beacon]: ...

    async def scan_by_name(
        self, name_filter: str, mode: MatchMode, fetch_cap: int
    ) -> List[Beacon]: ...

    async def query_scans_in_range(
        self, beacon_id: str, start: int, end: int, projected: bool = False
    ) -> Sequence[Union[ScanSample, ScanPoint]]: ...


def beacon_from_row(row) -> Beacon:
    return Beacon(
        id=row["id"],
        region=row["region"],
        name=row["name"] or "",
        latitude=float(row["latitude"]) if row["latitude"] is not None else None,
        longitude=float(row["longitude"]) if row["longitude"] is not None else None,
        radius=row["radius"],
    )


class BeaconStore:
    """asyncpg implementation of `Store`."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def _fetch(self, query: str, *args) -> List[asyncpg.Record]:
        try:
            async with self._db.acquire() as conn:
                return await conn.fetch(query, *args)
        except _STORE_ERRORS as exc:
            raise StoreUnavailable(f"{type(exc).__name__}: {exc}") from exc

    async def get_by_id(self, beacon_id: str) -> Optional[Beacon]:
        rows = await self._fetch(
            f"SELECT {_BEACON_COLUMNS} FROM beacons WHERE id = $1 LIMIT 1", beacon_id
        )
        return beacon_from_row(rows[0]) if rows else None

    async def scan_by_region(self, region: str, fetch_cap: int) -> List[Beacon]:
        if fetch_cap <= 0:
            return []
        rows = await self._fetch(
            f"SELECT {_BEACON_COLUMNS} FROM beacons WHERE region = $1 LIMIT $2",
            region,
            fetch_cap,
        )
        return [beacon_from_row(r) for r in rows]

    async def scan_by_name(
        self, name_filter: str, mode: MatchMode, fetch_cap: int
    ) -> List[Beacon]:
        if fetch_cap <= 0:
            return []
        if mode is MatchMode.equals:
            where = "name = $1"
        else:
            # strpos keeps % and _ literal, unlike LIKE
            where = "strpos(name, $1) > 0"
        rows = await self._fetch(
            f"SELECT {_BEACON_COLUMNS} FROM beacons WHERE {where} LIMIT $2",
            name_filter,
            fetch_cap,
        )
        return [beacon_from_row(r) for r in rows]

    async def query_scans_in_range(
        self, beacon_id: str, start: int, end: int, projected: bool = False
    ) -> Union[List[ScanSample], List[ScanPoint]]:
        if projected:
            rows = await self._fetch(
                "SELECT ts, count FROM scans WHERE beacon_id = $1 AND ts BETWEEN $2 AND $3",
                beacon_id,
                start,
                end,
            )
            return [ScanPoint(int(r["ts"]), r["count"]) for r in rows]

        rows = await self._fetch(
            """
            SELECT beacon_id, ts, count, rssi
              FROM scans
             WHERE beacon_id = $1 AND ts BETWEEN $2 AND $3
            """,
            beacon_id,
            start,
            end,
        )
        return [
            ScanSample(
                beacon_id=r["beacon_id"],
                timestamp=int(r["ts"]),
                count=r["count"],
                rssi=r["rssi"],
            )
            for r in rows
        ]
