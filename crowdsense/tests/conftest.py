# crowdsense/tests/conftest.py
import pytest

from crowdsense.errors import StoreUnavailable
from crowdsense.schemas import Beacon, MatchMode, ScanPoint, ScanSample


class FakeStore:
    """In-memory stand-in for BeaconStore; keeps insertion order as store order."""

    def __init__(self, beacons=(), scans=()):
        self.beacons = list(beacons)
        self.scans = list(scans)
        self.calls = []
        self.fail = False

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail:
            raise StoreUnavailable("connection refused")

    async def get_by_id(self, beacon_id):
        self._record("get_by_id", beacon_id)
        for b in self.beacons:
            if b.id == beacon_id:
                return b
        return None

    async def scan_by_region(self, region, fetch_cap):
        self._record("scan_by_region", region, fetch_cap)
        return [b for b in self.beacons if b.region == region][: max(fetch_cap, 0)]

    async def scan_by_name(self, name_filter, mode, fetch_cap):
        self._record("scan_by_name", name_filter, mode, fetch_cap)
        if mode is MatchMode.equals:
            found = [b for b in self.beacons if b.name == name_filter]
        else:
            found = [b for b in self.beacons if name_filter in b.name]
        return found[: max(fetch_cap, 0)]

    async def query_scans_in_range(self, beacon_id, start, end, projected=False):
        self._record("query_scans_in_range", beacon_id, start, end, projected)
        rows = [s for s in self.scans if s.beacon_id == beacon_id and start <= s.timestamp <= end]
        if projected:
            return [ScanPoint(s.timestamp, s.count) for s in rows]
        return rows


def beacon(id, region="Seoul", name=None, lat=None, lon=None, radius=None):
    return Beacon(id=id, region=region, name=name or id, latitude=lat, longitude=lon, radius=radius)


def scan(ts, count, beacon_id="B-1"):
    return ScanSample(beacon_id=beacon_id, timestamp=ts, count=count)


@pytest.fixture
def make_store():
    return FakeStore


@pytest.fixture
def make_beacon():
    return beacon


@pytest.fixture
def make_scan():
    return scan
