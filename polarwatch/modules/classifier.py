"""Rule-based movement classifier.

Maps trajectory metrics to one of STATIONARY / ANCHORED / TRANSIT /
MANEUVERING / UNKNOWN. Rules are evaluated in table order and the first
match wins; later rules never see a vessel an earlier rule accepted.

Order:
  1. insufficient data                  → UNKNOWN
  2. near-zero speed, minimal drift     → STATIONARY
  3. low max speed, high dwell, drift   → ANCHORED
  4. sustained distance at speed        → TRANSIT
  5. high heading dispersion underway   → MANEUVERING
  6. fallback                           → UNKNOWN
"""
from __future__ import annotations

import logging
from typing import Callable, NamedTuple, Optional, Sequence

from pydantic import BaseModel

from polarwatch.config import settings
from polarwatch.schemas.analysis import TrajectoryMetrics
from polarwatch.schemas.base import VesselClassification
from polarwatch.schemas.position import PositionReport, StaticInfo

logger = logging.getLogger(__name__)

# Dwell ratio above which a slow vessel is considered anchored
_ANCHORED_MIN_DWELL_RATIO: float = 0.7

# Floor on duration (hours) for the stationary drift allowance
_STATIONARY_MIN_DURATION_HOURS: float = 0.1


class ClassifierConfig(BaseModel):
    """Classification thresholds. Defaults come from settings."""

    stationary_speed_threshold: float = settings.STATIONARY_SPEED_THRESHOLD_KN
    dwell_speed_threshold: float = settings.DWELL_SPEED_THRESHOLD_KN
    min_transit_distance_nm: float = settings.MIN_TRANSIT_DISTANCE_NM
    min_duration_minutes: float = settings.MIN_DURATION_MINUTES
    maneuvering_heading_std_dev: float = settings.MANEUVERING_HEADING_STD_DEV_DEG
    anchored_max_speed: float = settings.ANCHORED_MAX_SPEED_KN
    anchored_max_drift_nm_per_hour: float = settings.ANCHORED_MAX_DRIFT_NM_PER_HOUR


class _Rule(NamedTuple):
    name: str
    matches: Callable[[TrajectoryMetrics, ClassifierConfig], bool]
    classification: VesselClassification
    rationale: str


def _insufficient_data(m: TrajectoryMetrics, c: ClassifierConfig) -> bool:
    return m.point_count == 0 or m.duration_hours * 60 < c.min_duration_minutes


def _stationary(m: TrajectoryMetrics, c: ClassifierConfig) -> bool:
    drift_allowance = c.anchored_max_drift_nm_per_hour * max(
        m.duration_hours, _STATIONARY_MIN_DURATION_HOURS
    )
    return m.avg_speed < c.stationary_speed_threshold and m.total_distance_nm < drift_allowance


def _anchored(m: TrajectoryMetrics, c: ClassifierConfig) -> bool:
    return (
        m.max_speed <= c.anchored_max_speed
        and m.total_distance_nm < c.anchored_max_drift_nm_per_hour * m.duration_hours
        and m.dwell_ratio > _ANCHORED_MIN_DWELL_RATIO
    )


def _transit(m: TrajectoryMetrics, c: ClassifierConfig) -> bool:
    return (
        m.total_distance_nm >= c.min_transit_distance_nm
        and m.avg_speed >= c.dwell_speed_threshold
    )


def _maneuvering(m: TrajectoryMetrics, c: ClassifierConfig) -> bool:
    return (
        m.heading_std_dev is not None
        and m.heading_std_dev > c.maneuvering_heading_std_dev
        and m.avg_speed > c.stationary_speed_threshold
    )


RULES: tuple[_Rule, ...] = (
    _Rule(
        "insufficient_data", _insufficient_data,
        VesselClassification.UNKNOWN, "Insufficient data duration or points",
    ),
    _Rule(
        "stationary", _stationary,
        VesselClassification.STATIONARY, "Very low average speed and minimal positional drift",
    ),
    _Rule(
        "anchored", _anchored,
        VesselClassification.ANCHORED, "Low speed profile with high dwell ratio and limited drift",
    ),
    _Rule(
        "transit", _transit,
        VesselClassification.TRANSIT, "Covered significant distance at sustained speed",
    ),
    _Rule(
        "maneuvering", _maneuvering,
        VesselClassification.MANEUVERING, "High heading variance indicative of maneuvering",
    ),
)

_FALLBACK_RATIONALE = "Heuristics did not match any category decisively"


def classify(
    metrics: TrajectoryMetrics,
    positions: Sequence[PositionReport] = (),
    static_info: Optional[StaticInfo] = None,
    config: Optional[ClassifierConfig] = None,
) -> tuple[VesselClassification, str]:
    """Classify a vessel's movement from its trajectory metrics.

    positions and static_info are accepted for context; the current rules
    only read metrics.

    Returns:
        (classification, rationale)
    """
    cfg = config or ClassifierConfig()
    for rule in RULES:
        if rule.matches(metrics, cfg):
            logger.debug("MMSI %s matched rule %s", metrics.mmsi, rule.name)
            return rule.classification, rule.rationale
    return VesselClassification.UNKNOWN, _FALLBACK_RATIONALE
