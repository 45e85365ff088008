"""File ingestion for offline analysis.

Loads AIS positions, sensor detections and static identity snapshots from
CSV or JSON files and maps every row through normalize.py. Invalid rows are
rejected with a warning (never silently dropped); structural problems such
as missing required CSV columns raise ValueError.
"""
from __future__ import annotations

import io
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

import polars as pl

from polarwatch.modules.normalize import (
    map_detection_record,
    map_position_record,
    map_static_record,
)
from polarwatch.schemas.position import ExternalDetection, PositionReport, StaticInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")

POSITION_REQUIRED_COLUMNS = {"mmsi", "timestamp", "latitude", "longitude"}
DETECTION_REQUIRED_COLUMNS = {"timestamp", "latitude", "longitude"}

# CSV header aliases → canonical column names
_COLUMN_ALIASES = {
    "lat": "latitude",
    "lon": "longitude",
    "lng": "longitude",
    "sog": "speed",
    "cog": "heading",
    "time": "timestamp",
    "datetime": "timestamp",
    "basedatetime": "timestamp",
    "shipname": "vessel_name",
    "name": "vessel_name",
    "shiptype": "vessel_type",
    "ship_type": "vessel_type",
}


def _read_csv(path: Path, required: set[str]) -> list[dict[str, Any]]:
    raw = path.read_bytes()
    if raw[:3] == b"\xef\xbb\xbf":
        raw = raw[3:]
    # All columns as strings: keeps MMSI leading zeros; mappers coerce numbers
    df = pl.read_csv(io.BytesIO(raw), infer_schema_length=0) if raw.strip() else pl.DataFrame()

    df = df.rename({col: col.lower().strip() for col in df.columns})
    renames = {k: v for k, v in _COLUMN_ALIASES.items() if k in df.columns and v not in df.columns}
    if renames:
        df = df.rename(renames)

    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"{path.name} missing required columns: {sorted(missing)}")
    return list(df.iter_rows(named=True))


def _read_json(path: Path, key: str) -> list:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValueError(f"{path.name}: expected a list or an object with '{key}'")
    return data


def _load(
    path: str | Path,
    key: str,
    required: set[str],
    mapper: Callable[[Any], Optional[T]],
) -> list[T]:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        rows: list = _read_csv(path, required)
    elif suffix == ".json":
        rows = _read_json(path, key)
    else:
        raise ValueError(f"Unsupported file type {suffix!r} for {path.name} (use .csv or .json)")

    loaded = [item for item in (mapper(r) for r in rows) if item is not None]
    rejected = len(rows) - len(loaded)
    if rejected:
        logger.warning("%s: rejected %d of %d %s", path.name, rejected, len(rows), key)
    logger.info("%s: loaded %d %s", path.name, len(loaded), key)
    return loaded


def load_positions(path: str | Path) -> list[PositionReport]:
    """Load AIS positions from a .csv or .json file."""
    return _load(path, "positions", POSITION_REQUIRED_COLUMNS, map_position_record)


def load_detections(path: str | Path) -> list[ExternalDetection]:
    """Load sensor detections from a .csv or .json file."""
    return _load(path, "detections", DETECTION_REQUIRED_COLUMNS, map_detection_record)


def load_static_infos(path: str | Path) -> dict[str, StaticInfo]:
    """Load static snapshots from JSON: a list of records or an object keyed by MMSI."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        items = [(str(mmsi), rec) for mmsi, rec in data.items()]
    elif isinstance(data, list):
        items = [(str(rec.get("mmsi", "")), rec) for rec in data if isinstance(rec, dict)]
    else:
        raise ValueError(f"{path.name}: expected a JSON list or object of static records")

    infos: dict[str, StaticInfo] = {}
    for mmsi, rec in items:
        info = map_static_record(rec, mmsi)
        if info is None or not info.mmsi:
            logger.warning("%s: rejected static record %r", path.name, rec)
            continue
        infos[info.mmsi] = info
    logger.info("%s: loaded %d static records", path.name, len(infos))
    return infos
