# path: crowdsense/schemas.py
"""Pydantic models for stored records and response payloads.

`Beacon` and `ScanSample` mirror rows of the `beacons` and `scans` tables.
The `*Out` classes define the JSON sent back by the API; they rename a few
fields (`region` -> `type`, `latitude` -> `lat`) to keep the wire format the
map front end already consumes.
"""
from enum import Enum
from typing import Generic, List, NamedTuple, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MatchMode(str, Enum):
    equals = "equals"
    contains = "contains"

    @classmethod
    def from_strict(cls, strict: bool) -> "MatchMode":
        return cls.equals if strict else cls.contains


class StatBucket(str, Enum):
    hour = "hour"


class Beacon(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique, stable beacon identifier")
    region: str = Field(..., description="Coarse region/type partition")
    name: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius: Optional[int] = Field(
        None, description="Coverage radius in meters, informational only"
    )

    @model_validator(mode="after")
    def check_coordinates(self) -> "Beacon":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError(
                f"beacon {self.id}: latitude and longitude must both be set or both be absent"
            )
        return self

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class ScanSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    beacon_id: str
    timestamp: int = Field(..., description="Epoch seconds")
    # None means the sample carries no measurement, which is not the same as 0
    count: Optional[int] = Field(None, ge=0)
    rssi: Optional[int] = None


class ScanPoint(NamedTuple):
    """Projection of a scan row onto the two columns the histogram needs."""

    timestamp: int
    count: Optional[int]


class BeaconOut(BaseModel):
    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    radius: Optional[int] = None

    @classmethod
    def from_beacon(cls, beacon: Beacon) -> "BeaconOut":
        return cls(
            id=beacon.id,
            name=beacon.name,
            type=beacon.region,
            lat=beacon.latitude,
            lon=beacon.longitude,
            radius=beacon.radius,
        )


class BeaconIdsOut(BaseModel):
    ids: List[BeaconOut]


class CrowdAvgOut(BaseModel):
    id: str
    avg: float
    unit: str = "minutes"


class CrowdStatOut(BaseModel):
    """Hourly histogram; bucket `i` starts at `start + i * 3600`."""

    list: List[float]
    start: int
    labels: Optional[List[str]] = None
    bucket: Optional[StatBucket] = None
    tz: Optional[str] = None


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    code: int
    data: Optional[T] = None
    message: Optional[str] = None
