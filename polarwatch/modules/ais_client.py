"""Kystdatahuset AIS client: position history and static vessel identity.

Endpoints (relative to settings.AIS_API_BASE_URL):
  POST /positions/within-bbox-time     positions for bbox + time window
  GET  /statinfo/for-mmsis-time        static snapshot for one MMSI

Both calls degrade instead of raising: positions → [] and static info →
None on any transport, HTTP or decoding failure, so the analysis core only
ever sees well-typed (possibly empty) input.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx

from polarwatch.config import settings
from polarwatch.modules.normalize import map_position_record, map_static_record
from polarwatch.schemas.position import BoundingBox, PositionReport, StaticInfo
from polarwatch.utils.http_retry import retry_request

logger = logging.getLogger(__name__)

_HEADERS = {
    "Accept": "application/json, text/plain",
    "Content-Type": "application/json",
}


def _base_url(base_url: str | None) -> str:
    return (base_url or settings.AIS_API_BASE_URL).rstrip("/")


def format_date_for_api(dt: datetime) -> str:
    """Format a timestamp as YYYYMMDDHHMM in UTC."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y%m%d%H%M")


def extract_position_records(payload: Any) -> list:
    """Locate the list of raw position records inside a response payload.

    Accepts a bare list, or an object whose ``positions`` / ``data`` /
    ``results`` key (or first list-valued key) holds the records.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for key in ("positions", "data", "results"):
        if isinstance(payload.get(key), list):
            return payload[key]
    for value in payload.values():
        if isinstance(value, list):
            return value
    return []


def fetch_positions(
    bbox: BoundingBox,
    start: datetime,
    end: datetime,
    min_speed: float = 0.0,
    base_url: str | None = None,
) -> list[PositionReport]:
    """Fetch AIS positions inside bbox between start and end.

    Records slower than min_speed are dropped client-side in case the server
    ignores the filter. Returns [] on any failure.
    """
    url = f"{_base_url(base_url)}/positions/within-bbox-time"
    body = {
        "bbox": bbox.to_param(),
        "start": format_date_for_api(start),
        "end": format_date_for_api(end),
        "minSpeed": min_speed,
    }

    try:
        with httpx.Client(timeout=settings.HTTP_TIMEOUT, follow_redirects=True) as client:
            resp = retry_request(client.post, url, json=body, headers=_HEADERS)
            payload = resp.json()
    except httpx.HTTPStatusError as exc:
        logger.error("AIS position request failed: HTTP %d", exc.response.status_code)
        return []
    except httpx.HTTPError as exc:
        logger.error("AIS position request failed: %s", exc)
        return []
    except ValueError as exc:
        logger.warning("AIS position response is not JSON, returning no positions: %s", exc)
        return []

    raw = extract_position_records(payload)
    mapped = [p for p in (map_position_record(r) for r in raw) if p is not None]
    positions = [p for p in mapped if p.speed >= min_speed]
    logger.info(
        "AIS: %d raw records, %d normalized, %d after min-speed %.1f kn for bbox %s",
        len(raw), len(mapped), len(positions), min_speed, body["bbox"],
    )
    return positions


def fetch_static_info(
    mmsi: str,
    at: datetime,
    base_url: str | None = None,
) -> Optional[StaticInfo]:
    """Fetch the static AIS snapshot for mmsi at (or near) a time.

    Returns None when the vessel is unknown (404) or the request fails.
    """
    url = f"{_base_url(base_url)}/statinfo/for-mmsis-time"
    params = {"mmsis": mmsi, "time": format_date_for_api(at)}

    try:
        with httpx.Client(timeout=settings.HTTP_TIMEOUT, follow_redirects=True) as client:
            resp = retry_request(client.get, url, params=params, headers=_HEADERS)
            payload = resp.json()
    except httpx.HTTPStatusError as exc:
        if exc.response.status_code == 404:
            logger.debug("No static info for MMSI %s", mmsi)
        else:
            logger.error("Static info request for MMSI %s failed: HTTP %d", mmsi, exc.response.status_code)
        return None
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Static info request for MMSI %s failed: %s", mmsi, exc)
        return None

    return map_static_record(payload, mmsi)


def static_lookup_at(at: datetime, base_url: str | None = None) -> Callable[[str], Optional[StaticInfo]]:
    """Build a static lookup callable for analyze_window() pinned to one time."""
    def lookup(mmsi: str) -> Optional[StaticInfo]:
        return fetch_static_info(mmsi, at, base_url=base_url)
    return lookup
