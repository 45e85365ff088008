"""Dark vessel detection: sensor-to-AIS correlation.

Matches external (non-AIS) detections to AIS positions by space/time
proximity and flags what cannot be explained by broadcast identity.

Checks (additive; anomalies of different types for one MMSI are all kept):
  1. NO_AIS_MATCH (high)         detection with no AIS track and no AIS
                                 position within 1.0 nm / 30 min
  2. AIS_GAP (medium)            MMSI with a single AIS point in the window
  3. UNUSUAL_BEHAVIOR (high)     MMSI on the analyst forced-dark list that
                                 has an AIS track, once per MMSI

Match score: distance_nm + time_diff_minutes / 60, lowest wins.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path
from typing import Iterable, Optional, Sequence

import yaml

from polarwatch.config import settings
from polarwatch.schemas.base import DarkVesselAnomalyTypeEnum, SeverityEnum
from polarwatch.schemas.dark_vessel import DarkVesselAnomaly
from polarwatch.schemas.position import ExternalDetection, PositionReport
from polarwatch.utils.geo import distance_nm

logger = logging.getLogger(__name__)


# ── Helpers ──────────────────────────────────────────────────────────────────

def index_positions(positions: Iterable[PositionReport]) -> dict[str, list[PositionReport]]:
    """Group positions by MMSI, preserving first-seen order."""
    by_mmsi: dict[str, list[PositionReport]] = defaultdict(list)
    for p in positions:
        by_mmsi[p.mmsi].append(p)
    return dict(by_mmsi)


def find_nearest_ais_match(
    det: ExternalDetection,
    ais_positions: Iterable[PositionReport],
    max_distance_nm: Optional[float] = None,
    max_time_diff_minutes: Optional[float] = None,
) -> Optional[PositionReport]:
    """Return the AIS position closest to a detection in space and time.

    Candidates must lie within max_time_diff_minutes and max_distance_nm;
    among them the lowest distance_nm + minutes/60 wins. None if no candidate.
    """
    max_dist = settings.DARK_MATCH_MAX_DISTANCE_NM if max_distance_nm is None else max_distance_nm
    max_dt = (
        settings.DARK_MATCH_MAX_TIME_DIFF_MINUTES
        if max_time_diff_minutes is None
        else max_time_diff_minutes
    )

    best: Optional[PositionReport] = None
    best_score = float("inf")
    for p in ais_positions:
        dt_min = abs((p.timestamp - det.timestamp).total_seconds()) / 60.0
        if dt_min > max_dt:
            continue
        dist = distance_nm(det.latitude, det.longitude, p.latitude, p.longitude)
        if dist > max_dist:
            continue
        score = dist + dt_min / 60.0
        if score < best_score:
            best_score = score
            best = p
    return best


def load_forced_dark_list(path: str | Path) -> frozenset[str]:
    """Load analyst forced-dark MMSIs from a YAML file.

    Accepted shapes::

        forced_dark:
          - mmsi: "316014621"
            reason: "analyst tip"

    or a bare list of MMSIs, or a single MMSI. Entries without a usable
    MMSI are skipped with a warning. A missing file raises
    FileNotFoundError; malformed YAML raises yaml.YAMLError.
    """
    with open(path) as f:
        data = yaml.safe_load(f)

    entries = data.get("forced_dark", []) if isinstance(data, dict) else data
    if entries is None:
        entries = []
    elif not isinstance(entries, list):
        entries = [entries]

    mmsis: set[str] = set()
    for entry in entries:
        mmsi = entry.get("mmsi") if isinstance(entry, dict) else entry
        if isinstance(mmsi, bool) or not isinstance(mmsi, (str, int)) or not str(mmsi).strip():
            logger.warning("Forced-dark entry without MMSI skipped: %r", entry)
            continue
        mmsis.add(str(mmsi).strip())

    logger.info("Loaded %d forced-dark MMSIs from %s", len(mmsis), path)
    return frozenset(mmsis)


def default_forced_dark_mmsis() -> frozenset[str]:
    """Forced-dark MMSIs from settings, extended by FORCED_DARK_CONFIG if set.

    An unreadable or malformed FORCED_DARK_CONFIG is logged and the settings
    list is used alone.
    """
    mmsis = settings.forced_dark_mmsis()
    if settings.FORCED_DARK_CONFIG:
        try:
            mmsis = mmsis | load_forced_dark_list(settings.FORCED_DARK_CONFIG)
        except (OSError, yaml.YAMLError) as exc:
            logger.error(
                "Could not load forced-dark list %s, using settings only: %s",
                settings.FORCED_DARK_CONFIG, exc,
            )
    return mmsis


# ── Main detection function ──────────────────────────────────────────────────

def detect_dark_vessels(
    ais_positions: Sequence[PositionReport],
    external_detections: Sequence[ExternalDetection],
    forced_dark_mmsis: Optional[Iterable[str]] = None,
    max_distance_nm: Optional[float] = None,
    max_time_diff_minutes: Optional[float] = None,
) -> list[DarkVesselAnomaly]:
    """Flag sensor detections and AIS tracks that suggest dark activity.

    Args:
        ais_positions: All AIS positions in the window, across vessels.
        external_detections: All sensor detections in the window.
        forced_dark_mmsis: Analyst override list. None uses
            default_forced_dark_mmsis().
        max_distance_nm: Correlation distance limit (default 1.0 nm).
        max_time_diff_minutes: Correlation time limit (default 30 min).

    Returns:
        Anomalies in check order: NO_AIS_MATCH, AIS_GAP, UNUSUAL_BEHAVIOR.
    """
    anomalies: list[DarkVesselAnomaly] = []
    by_mmsi = index_positions(ais_positions)

    # 1. Detections without an AIS track
    for det in external_detections:
        if det.mmsi and det.mmsi in by_mmsi:
            continue
        matched = find_nearest_ais_match(
            det, ais_positions,
            max_distance_nm=max_distance_nm,
            max_time_diff_minutes=max_time_diff_minutes,
        )
        if matched is None:
            anomalies.append(DarkVesselAnomaly(
                type=DarkVesselAnomalyTypeEnum.NO_AIS_MATCH,
                detection=det,
                description="Sensor detection without corresponding AIS track (potential dark vessel).",
                severity=SeverityEnum.HIGH,
                metadata={"inferred_type": det.inferred_type, "source": det.source},
            ))

    # 2. Lone AIS pings, possible intermittent transmission
    for mmsi, points in by_mmsi.items():
        if len(points) == 1:
            anomalies.append(DarkVesselAnomaly(
                type=DarkVesselAnomalyTypeEnum.AIS_GAP,
                mmsi=mmsi,
                description="Single AIS point in interval (possible intermittent transmission).",
                severity=SeverityEnum.MEDIUM,
                metadata={"timestamp": points[0].timestamp.isoformat()},
            ))

    # 3. Analyst override list
    forced = default_forced_dark_mmsis() if forced_dark_mmsis is None else forced_dark_mmsis
    for mmsi in sorted(set(forced)):
        if mmsi in by_mmsi:
            anomalies.append(DarkVesselAnomaly(
                type=DarkVesselAnomalyTypeEnum.UNUSUAL_BEHAVIOR,
                mmsi=mmsi,
                description="Manually flagged as dark (forced override).",
                severity=SeverityEnum.HIGH,
                metadata={"reason": "forced_dark_list"},
            ))

    logger.info(
        "Dark vessel check: %d AIS tracks, %d detections, %d anomalies",
        len(by_mmsi), len(external_detections), len(anomalies),
    )
    return anomalies
