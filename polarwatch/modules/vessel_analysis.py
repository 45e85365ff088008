"""Window analysis orchestration.

Provides:
  - group_positions_by_identity()   split a window's positions per MMSI
  - analyze_vessel()                metrics + classification for one MMSI
  - attribute_detections()          assign sensor detections to AIS tracks
  - analyze_window()                full pipeline for one query window
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Sequence

from polarwatch.modules.classifier import ClassifierConfig, classify
from polarwatch.modules.consistency import build_consistency_report
from polarwatch.modules.dark_vessel_detector import (
    detect_dark_vessels,
    find_nearest_ais_match,
    index_positions,
)
from polarwatch.modules.trajectory_metrics import compute_trajectory_metrics, sort_positions
from polarwatch.schemas.analysis import AnalyzedVessel, WindowAnalysis
from polarwatch.schemas.position import ExternalDetection, PositionReport, StaticInfo

logger = logging.getLogger(__name__)

StaticLookup = Callable[[str], Optional[StaticInfo]]


def group_positions_by_identity(
    positions: Iterable[PositionReport],
) -> dict[str, list[PositionReport]]:
    """Group positions by MMSI in first-seen order."""
    return index_positions(positions)


def analyze_vessel(
    mmsi: str,
    positions: Sequence[PositionReport],
    static_info: Optional[StaticInfo] = None,
    config: Optional[ClassifierConfig] = None,
) -> AnalyzedVessel:
    """Compute metrics and classify a single vessel."""
    cfg = config or ClassifierConfig()
    metrics = compute_trajectory_metrics(
        mmsi, positions, dwell_speed_threshold=cfg.dwell_speed_threshold,
    )
    classification, rationale = classify(metrics, positions, static_info, cfg)
    return AnalyzedVessel(
        mmsi=mmsi,
        positions=sort_positions(positions),
        static_info=static_info,
        metrics=metrics,
        classification=classification,
        rationale=rationale,
    )


def attribute_detections(
    ais_positions: Sequence[PositionReport],
    detections: Iterable[ExternalDetection],
) -> dict[str, list[ExternalDetection]]:
    """Assign each sensor detection to the AIS track it describes.

    A detection carrying an MMSI with an AIS track belongs to that track.
    Any other detection belongs to the track of its nearest space/time AIS
    match, if there is one; otherwise it is left unattributed.
    """
    by_mmsi = index_positions(ais_positions)
    attributed: dict[str, list[ExternalDetection]] = {}
    for det in detections:
        if det.mmsi and det.mmsi in by_mmsi:
            attributed.setdefault(det.mmsi, []).append(det)
            continue
        match = find_nearest_ais_match(det, ais_positions)
        if match is not None:
            attributed.setdefault(match.mmsi, []).append(det)
    return attributed


def _lookup_static(lookup: Optional[StaticLookup], mmsi: str) -> Optional[StaticInfo]:
    if lookup is None:
        return None
    try:
        return lookup(mmsi)
    except Exception as exc:
        logger.warning("Static info lookup failed for MMSI %s: %s", mmsi, exc)
        return None


def analyze_window(
    positions: Sequence[PositionReport],
    detections: Sequence[ExternalDetection] = (),
    static_lookup: Optional[StaticLookup] = None,
    config: Optional[ClassifierConfig] = None,
    forced_dark_mmsis: Optional[Iterable[str]] = None,
) -> WindowAnalysis:
    """Run the full analysis for one window.

    Steps:
      1. Group positions by MMSI and analyse each vessel.
      2. Run dark vessel detection over all positions and detections.
      3. Build a consistency report per vessel from its attributed detections.

    Args:
        positions: All AIS positions in the window.
        detections: All sensor detections in the window.
        static_lookup: Callable returning StaticInfo for an MMSI. Failures
            are logged and treated as unknown identity.
        config: Classifier thresholds.
        forced_dark_mmsis: Analyst override list for the dark vessel check.
    """
    grouped = group_positions_by_identity(positions)
    vessels = [
        analyze_vessel(mmsi, points, _lookup_static(static_lookup, mmsi), config)
        for mmsi, points in grouped.items()
    ]

    anomalies = detect_dark_vessels(positions, detections, forced_dark_mmsis=forced_dark_mmsis)

    attributed = attribute_detections(positions, detections)
    reports = [build_consistency_report(v, attributed.get(v.mmsi, [])) for v in vessels]

    logger.info(
        "Window analysis: %d vessels, %d detections, %d anomalies",
        len(vessels), len(detections), len(anomalies),
    )
    return WindowAnalysis(vessels=vessels, anomalies=anomalies, reports=reports)
