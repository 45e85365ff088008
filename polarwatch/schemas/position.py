"""Pydantic schemas for raw inputs: AIS positions, static identity, sensor detections."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from polarwatch.schemas.base import AISClassEnum


def _as_utc(v: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class BoundingBox(BaseModel):
    """Query area in WGS-84 degrees."""

    south: float = Field(ge=-90, le=90)
    west: float = Field(ge=-180, le=180)
    north: float = Field(ge=-90, le=90)
    east: float = Field(ge=-180, le=180)

    @classmethod
    def from_string(cls, value: str) -> "BoundingBox":
        """Parse "lon1,lat1,lon2,lat2" (south-west corner first)."""
        parts = [p.strip() for p in value.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Bounding box needs 4 comma-separated numbers, got {value!r}")
        west, south, east, north = (float(p) for p in parts)
        return cls(south=south, west=west, north=north, east=east)

    def to_param(self) -> str:
        """Format as "lon1,lat1,lon2,lat2" for the AIS web service."""
        return f"{self.west},{self.south},{self.east},{self.north}"


class PositionReport(BaseModel):
    """One AIS position report. Immutable once received."""

    model_config = ConfigDict(frozen=True)

    mmsi: str
    timestamp: datetime
    latitude: float
    longitude: float
    speed: float = Field(default=0.0, ge=0)
    heading: Optional[float] = None
    vessel_name: Optional[str] = None
    vessel_type: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class StaticInfo(BaseModel):
    """Declared vessel attributes from an AIS static snapshot. Any field may be missing."""

    mmsi: str
    name: Optional[str] = None
    callsign: Optional[str] = None
    imo: Optional[int] = None
    ship_type: Optional[str] = None
    ship_type_code: Optional[int] = None
    length: Optional[float] = None
    beam: Optional[float] = None
    draught: Optional[float] = None
    flag: Optional[str] = None
    destination: Optional[str] = None
    eta: Optional[str] = None
    ais_class: Optional[AISClassEnum] = None
    stat_timestamp: Optional[datetime] = None


class ExternalDetection(BaseModel):
    """A vessel detection from independent sensing (SAR, RF, optical)."""

    track_id: Optional[str] = None
    mmsi: Optional[str] = None
    latitude: float
    longitude: float
    timestamp: datetime
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    inferred_type: Optional[str] = None
    source: Optional[str] = None
    length_estimate_m: Optional[float] = None
    heading: Optional[float] = None
    speed_estimate_kn: Optional[float] = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)
