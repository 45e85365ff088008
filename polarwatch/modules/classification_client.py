"""External sensor classification client.

Queries a detection service for vessels seen by independent sensing (SAR,
RF, optical) inside a bounding box and time window, each with an inferred
vessel type. Detections may lack an MMSI; those are dark vessel candidates.

Endpoint: POST {settings.CLASSIFICATION_API_BASE_URL}/classify/detections
Any failure returns an empty list.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from polarwatch.config import settings
from polarwatch.modules.normalize import map_detection_record
from polarwatch.schemas.position import BoundingBox, ExternalDetection
from polarwatch.utils.http_retry import retry_request

logger = logging.getLogger(__name__)


def _iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def build_request(bbox: BoundingBox, start: datetime, end: datetime) -> dict:
    return {
        "bbox": {
            "southwest": {"lat": bbox.south, "lng": bbox.west},
            "northeast": {"lat": bbox.north, "lng": bbox.east},
        },
        "start": _iso(start),
        "end": _iso(end),
    }


def classify_detections(
    bbox: BoundingBox,
    start: datetime,
    end: datetime,
    base_url: str | None = None,
) -> list[ExternalDetection]:
    """Fetch classified sensor detections for a window. Returns [] on failure."""
    url = f"{(base_url or settings.CLASSIFICATION_API_BASE_URL).rstrip('/')}/classify/detections"

    try:
        with httpx.Client(timeout=settings.HTTP_TIMEOUT) as client:
            resp = retry_request(client.post, url, json=build_request(bbox, start, end))
            data = resp.json()
    except httpx.HTTPStatusError as exc:
        logger.error("External classification failed: HTTP %d", exc.response.status_code)
        return []
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("External classification failed: %s", exc)
        return []

    if isinstance(data, dict) and isinstance(data.get("detections"), list):
        raw = data["detections"]
    elif isinstance(data, list):
        raw = data
    else:
        raw = []

    detections = [d for d in (map_detection_record(r) for r in raw) if d is not None]
    logger.info("External classification: %d detections (%d raw)", len(detections), len(raw))
    return detections
