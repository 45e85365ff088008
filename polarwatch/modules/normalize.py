"""Raw record normalization for AIS positions, static snapshots and sensor detections.

Upstream services return loosely-typed JSON with varying key names. The
mappers here turn one raw record into a schema object, or return None (with
a log line) when the record is unusable. They never raise.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from polarwatch.schemas.position import ExternalDetection, PositionReport, StaticInfo

logger = logging.getLogger(__name__)

# --- Shared helpers ---

_COMMON_TIMESTAMP_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%d-%m-%Y %H:%M:%S",
]

# Epoch values above this are milliseconds, not seconds
_EPOCH_MS_THRESHOLD = 100_000_000_000

# AIS heading value meaning "not available"
_HEADING_NOT_AVAILABLE = 511

# AIS speed over ground value meaning "not available"
_SPEED_NOT_AVAILABLE = 102.3


def _first(rec: dict[str, Any], *keys: str) -> Any:
    """Return the first non-None value among keys."""
    for key in keys:
        value = rec.get(key)
        if value is not None:
            return value
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(result) else result


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_timestamp_flexible(ts: Any) -> datetime | None:
    """Parse a timestamp from various formats.

    Returns a datetime object or None if parsing fails.
    Supports: ISO 8601, Unix epoch (seconds or milliseconds), and common
    strftime formats. Naive results are UTC.
    """
    if isinstance(ts, datetime):
        return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

    if isinstance(ts, (int, float)) and not isinstance(ts, bool) and ts > 1_000_000_000:
        seconds = ts / 1000.0 if ts > _EPOCH_MS_THRESHOLD else ts
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OSError, ValueError, OverflowError):
            return None

    if isinstance(ts, str):
        ts_str = ts.strip()
        if not ts_str:
            return None

        if ts_str.isdigit():
            if len(ts_str) == 12:
                try:
                    return datetime.strptime(ts_str, "%Y%m%d%H%M").replace(tzinfo=timezone.utc)
                except ValueError:
                    return None
            return parse_timestamp_flexible(int(ts_str))

        try:
            parsed = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            pass

        for fmt in _COMMON_TIMESTAMP_FORMATS:
            try:
                return datetime.strptime(ts_str, fmt).replace(tzinfo=timezone.utc)
            except ValueError:
                continue

    return None


def _clean_heading(value: Any) -> Optional[float]:
    heading = _to_float(value)
    if heading is None:
        return None
    if heading == _HEADING_NOT_AVAILABLE or not (0 <= heading <= 360):
        return None
    return heading


# --- Position reports ---

def _map_compact_position(row: list | tuple) -> Optional[PositionReport]:
    """Map the compact array form [mmsi, ts, lon, lat, course, speed, _, _, _, heading?]."""
    if len(row) < 6:
        logger.warning("Rejected compact AIS row (too short): %r", row)
        return None
    mmsi, ts_raw, lon, lat, course, speed = row[:6]
    heading_raw = row[9] if len(row) > 9 else None
    heading = _clean_heading(heading_raw)
    if heading is None:
        heading = _clean_heading(course)
    return _build_position(mmsi, ts_raw, lat, lon, speed, heading, None, None, row)


def _build_position(
    mmsi: Any,
    ts_raw: Any,
    lat: Any,
    lon: Any,
    speed: Any,
    heading: Optional[float],
    name: Any,
    vessel_type: Any,
    raw: Any,
) -> Optional[PositionReport]:
    mmsi_str = _to_str(mmsi)
    ts = parse_timestamp_flexible(ts_raw)
    lat_f, lon_f = _to_float(lat), _to_float(lon)
    if mmsi_str is None or ts is None or lat_f is None or lon_f is None:
        logger.warning("Rejected AIS record (missing mmsi/timestamp/position): %r", raw)
        return None
    if not (-90 <= lat_f <= 90) or not (-180 <= lon_f <= 180):
        logger.warning("Rejected AIS record (coordinates out of range): %r", raw)
        return None
    speed_f = _to_float(speed)
    if speed_f == _SPEED_NOT_AVAILABLE:
        logger.debug("Speed not available for MMSI %s, using 0.0", mmsi_str)
        speed_f = None
    try:
        return PositionReport(
            mmsi=mmsi_str,
            timestamp=ts,
            latitude=lat_f,
            longitude=lon_f,
            speed=speed_f or 0.0,
            heading=heading,
            vessel_name=_to_str(name),
            vessel_type=_to_str(vessel_type),
        )
    except ValidationError as exc:
        logger.warning("Rejected AIS record: %s | row: %r", exc.errors()[0]["msg"], raw)
        return None


def map_position_record(rec: Any) -> Optional[PositionReport]:
    """Map one raw AIS position (dict with aliased keys, or compact array)."""
    if isinstance(rec, (list, tuple)):
        return _map_compact_position(rec)
    if not isinstance(rec, dict):
        logger.warning("Rejected AIS record (unsupported shape): %r", rec)
        return None
    return _build_position(
        mmsi=_first(rec, "mmsi", "MMSI", "imo", "IMO"),
        ts_raw=_first(rec, "timestamp", "time", "Time", "lastUpdate", "last_report", "ts"),
        lat=_first(rec, "latitude", "lat", "Latitude", "Lat"),
        lon=_first(rec, "longitude", "lon", "lng", "Longitude", "Lon"),
        speed=_first(rec, "speed", "sog", "SOG", "Speed", "speedOverGround"),
        heading=_clean_heading(_first(rec, "heading", "cog", "COG", "headingTrue", "HDG")),
        name=_first(rec, "vesselName", "vessel_name", "name", "shipname", "ShipName", "NAME"),
        vessel_type=_first(rec, "vesselType", "vessel_type", "type", "shiptype", "TYPE"),
        raw=rec,
    )


# --- Static identity ---

def _sum_dims(rec: dict[str, Any], a: str, b: str) -> Optional[float]:
    first, second = _to_float(rec.get(a)), _to_float(rec.get(b))
    if first and second:
        return first + second
    return None


def map_static_record(rec: Any, mmsi: str) -> Optional[StaticInfo]:
    """Map one raw AIS static snapshot. Dimensions fall back to bow+stern / port+starboard."""
    if isinstance(rec, list):
        rec = rec[0] if rec else None
    if not isinstance(rec, dict):
        return None

    ship_type_raw = _first(rec, "shipTypeText", "shipTypeDesc", "shiptype_text", "shiptype", "type")
    ship_type_code = _first(rec, "shipType", "shiptype_code")
    if ship_type_code is None and isinstance(rec.get("type"), (int, float)):
        ship_type_code = rec["type"]
    ais_class = _to_str(_first(rec, "class", "aisClass", "Class"))
    stat_ts = rec.get("timestamp")

    try:
        return StaticInfo(
            mmsi=_to_str(_first(rec, "mmsi", "MMSI")) or mmsi,
            name=_to_str(_first(rec, "name", "shipname", "ShipName", "vesselName")),
            callsign=_to_str(_first(rec, "callsign", "CallSign", "call_sign")),
            imo=_to_int(_first(rec, "imo", "IMO")) or None,
            ship_type=ship_type_raw if isinstance(ship_type_raw, str) else None,
            ship_type_code=_to_int(ship_type_code),
            length=_to_float(_first(rec, "length", "Length")) or _sum_dims(rec, "dimension_to_bow", "dimension_to_stern"),
            beam=_to_float(_first(rec, "beam", "Beam")) or _sum_dims(rec, "dimension_to_port", "dimension_to_starboard"),
            draught=_to_float(_first(rec, "draught", "Draught", "draft")),
            flag=_to_str(_first(rec, "flag", "Flag", "country", "Country")),
            destination=_to_str(_first(rec, "destination", "Destination")),
            eta=_to_str(_first(rec, "eta", "ETA")),
            ais_class=ais_class.upper() if ais_class and ais_class.upper() in ("A", "B") else None,
            stat_timestamp=parse_timestamp_flexible(stat_ts) if stat_ts is not None else None,
        )
    except ValidationError as exc:
        logger.warning("Rejected static record for MMSI %s: %s", mmsi, exc)
        return None


# --- Sensor detections ---

def map_detection_record(rec: Any) -> Optional[ExternalDetection]:
    """Map one raw sensor detection; requires position and timestamp."""
    if not isinstance(rec, dict):
        return None
    lat = _to_float(_first(rec, "lat", "latitude"))
    lon = _to_float(_first(rec, "lon", "lng", "longitude"))
    ts = parse_timestamp_flexible(_first(rec, "timestamp", "ts", "time"))
    if lat is None or lon is None or ts is None:
        logger.warning("Rejected detection (missing position/timestamp): %r", rec)
        return None

    confidence = _to_float(rec.get("confidence"))
    if confidence is not None and not (0 <= confidence <= 1):
        confidence = None
    try:
        return ExternalDetection(
            track_id=_to_str(_first(rec, "id", "trackId", "track_id")),
            mmsi=_to_str(_first(rec, "mmsi", "MMSI")),
            latitude=lat,
            longitude=lon,
            timestamp=ts,
            confidence=confidence,
            inferred_type=_to_str(_first(rec, "inferredType", "inferred_type", "type", "classification")),
            source=_to_str(_first(rec, "source", "sensor")),
            length_estimate_m=_to_float(_first(rec, "length", "length_m", "lengthEstimateM")),
            heading=_to_float(rec.get("heading")),
            speed_estimate_kn=_to_float(_first(rec, "speed", "sog", "speedKnotsEstimate")),
        )
    except ValidationError as exc:
        logger.warning("Rejected detection: %s | row: %r", exc.errors()[0]["msg"], rec)
        return None
