# path: crowdsense/scripts/seed.py

from __future__ import annotations
import asyncio
import os
import random
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import asyncpg

from crowdsense.config import get_settings

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schema.sql"

BeaconRow = Tuple[str, str, str, Optional[float], Optional[float], Optional[int]]

SAMPLE_BEACONS: Sequence[BeaconRow] = [
    ("B-001", "Seoul", "Gangnam Station Exit 10", 37.4979, 127.0276, 30),
    ("B-002", "Seoul", "Gangnam Station Exit 11", 37.4981, 127.0282, 30),
    ("B-003", "Seoul", "COEX Mall East Gate", 37.5118, 127.0592, 50),
    ("B-004", "Seoul", "Seoul Station Hall", 37.5547, 126.9707, 80),
    ("B-005", "Seoul", "Warehouse (unregistered)", None, None, None),
    ("B-101", "Busan", "Haeundae Beach Entrance", 35.1587, 129.1604, 100),
]


def sample_scans(
    beacon_ids: Sequence[str],
    now: int,
    hours: int = 24,
    step_s: int = 600,
    seed: int = 7,
) -> List[Tuple[str, int, Optional[int], Optional[int]]]:
    """Synthetic (beacon_id, ts, count, rssi) rows covering the last `hours`.

    Roughly one sample in twenty carries no count, like a scan that
    reported only RSSI.
    """
    rng = random.Random(seed)
    start = now - hours * 3600
    rows = []
    for bid in beacon_ids:
        for ts in range(start, now, step_s):
            count = None if rng.random() < 0.05 else rng.randint(0, 60)
            rows.append((bid, ts, count, rng.randint(-95, -40)))
    return rows


async def ensure_schema(conn: asyncpg.Connection) -> None:
    exists = await conn.fetchval("SELECT to_regclass('public.beacons')")
    if not exists:
        schema_path = os.environ.get("SCHEMA_PATH", str(SCHEMA_PATH))
        ddl = Path(schema_path).read_text(encoding="utf-8")
        await conn.execute(ddl)


async def seed() -> None:
    db_url = get_settings().database_url
    # async SQLAlchemy URLs -> asyncpg URL
    db_url_clean = db_url.replace("postgresql+asyncpg", "postgresql")
    conn = await asyncpg.connect(db_url_clean)

    try:
        await ensure_schema(conn)

        await conn.executemany(
            """
            INSERT INTO beacons (id, region, name, latitude, longitude, radius)
            VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (id) DO NOTHING
            """,
            SAMPLE_BEACONS,
        )

        already = await conn.fetchval("SELECT COUNT(*) FROM scans")
        if not already:
            rows = sample_scans([b[0] for b in SAMPLE_BEACONS], int(time.time()))
            await conn.executemany(
                "INSERT INTO scans (beacon_id, ts, count, rssi) VALUES ($1, $2, $3, $4)",
                rows,
            )
            print(f"✓ {len(rows)} scans generated")

        print("✓ Schema loaded & seed data (beacons) created")
    finally:
        await conn.close()


if __name__ == "__main__":
    asyncio.run(seed())
