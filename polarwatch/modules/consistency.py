"""Vessel type consistency scoring: declared identity vs. observed behaviour.

Compares the AIS-declared vessel type against sensor-inferred types, the
declared length and the observed speed profile. Each mismatch raises a
graded issue; the report summary is ALERT / WARN / OK.

Issues:
  TYPE_MISMATCH       (medium)   declared type differs from the single
                                 sensor-inferred type
  SIZE_IMPLAUSIBLE    (medium)   declared length outside the type's range
  SPEED_OUT_OF_RANGE  (high)     max speed > 115% of the type's envelope
  INFERRED_CONFLICT   (low)      sensors disagree on the type
"""
from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from polarwatch.schemas.analysis import AnalyzedVessel
from polarwatch.schemas.base import ConsistencyCodeEnum, SeverityEnum
from polarwatch.schemas.consistency import ConsistencyIssue, ConsistencyReport
from polarwatch.schemas.position import ExternalDetection

logger = logging.getLogger(__name__)

# ── Lookup tables ─────────────────────────────────────────────────────────

# Free-text type tokens (lowercase, letters only) → canonical type
TYPE_SYNONYMS: Mapping[str, str] = MappingProxyType({
    "tanker": "TANKER",
    "crude": "TANKER",
    "bulk": "BULK",
    "bulker": "BULK",
    "cargo": "CARGO",
    "container": "CONTAINER",
    "fishing": "FISHING",
    "fish": "FISHING",
    "research": "RESEARCH",
    "supply": "SUPPORT",
    "support": "SUPPORT",
    "icebreaker": "ICEBREAKER",
    "passenger": "PASSENGER",
    "ferry": "PASSENGER",
})

# Expected length overall (metres) per canonical type
TYPE_LENGTH_RANGES_M: Mapping[str, tuple[float, float]] = MappingProxyType({
    "TANKER": (60, 400),
    "BULK": (60, 330),
    "CARGO": (50, 350),
    "CONTAINER": (100, 400),
    "FISHING": (8, 90),
    "RESEARCH": (20, 150),
    "SUPPORT": (15, 120),
    "ICEBREAKER": (50, 180),
    "PASSENGER": (30, 360),
})

# Typical maximum service speed (knots) per canonical type
TYPE_MAX_SPEED_KN: Mapping[str, float] = MappingProxyType({
    "TANKER": 22,
    "BULK": 22,
    "CARGO": 26,
    "CONTAINER": 30,
    "FISHING": 18,
    "RESEARCH": 20,
    "SUPPORT": 24,
    "ICEBREAKER": 24,
    "PASSENGER": 34,
})

# Observed speed may exceed the envelope by this factor before flagging
_SPEED_TOLERANCE: float = 1.15

# AIS ship type codes (ITU-R M.1371) with a canonical equivalent
_ITU_CODE_TYPES: tuple[tuple[range, str], ...] = (
    (range(30, 31), "FISHING"),
    (range(60, 70), "PASSENGER"),
    (range(70, 80), "CARGO"),
    (range(80, 90), "TANKER"),
)

_NON_LETTERS = re.compile(r"[^a-z]")


# ── Helpers ───────────────────────────────────────────────────────────────

def normalize_type(raw: Optional[str]) -> Optional[str]:
    """Map a free-text vessel type to its canonical token.

    Unrecognised values are returned upper-cased verbatim; empty → None.
    """
    if not raw:
        return None
    key = _NON_LETTERS.sub("", raw.lower())
    return TYPE_SYNONYMS.get(key, raw.upper())


def type_from_itu_code(code: Optional[int]) -> Optional[str]:
    """Canonical type for an AIS numeric ship type code, if one exists."""
    if code is None:
        return None
    for codes, vessel_type in _ITU_CODE_TYPES:
        if code in codes:
            return vessel_type
    return None


def declared_type_for(vessel: AnalyzedVessel) -> Optional[str]:
    """Declared type: static text, then static ITU code, then latest position text."""
    info = vessel.static_info
    if info is not None:
        declared = normalize_type(info.ship_type) or type_from_itu_code(info.ship_type_code)
        if declared:
            return declared
    for p in reversed(vessel.positions):
        if p.vessel_type:
            return normalize_type(p.vessel_type)
    return None


def _inferred_types(detections: Iterable[ExternalDetection]) -> list[str]:
    """Distinct normalised inferred types, in first-seen order."""
    seen: dict[str, None] = {}
    for d in detections:
        norm = normalize_type(d.inferred_type)
        if norm:
            seen.setdefault(norm, None)
    return list(seen)


# ── Main scoring function ─────────────────────────────────────────────────

def build_consistency_report(
    vessel: AnalyzedVessel,
    external_detections: Optional[Iterable[ExternalDetection]] = None,
) -> ConsistencyReport:
    """Score one analysed vessel against the sensor detections attributed to it.

    Missing static info or an empty detection list only means fewer checks
    can run; this never raises for absent optional data.
    """
    issues: list[ConsistencyIssue] = []
    declared = declared_type_for(vessel)
    candidates = _inferred_types(external_detections or [])
    inferred = candidates[0] if len(candidates) == 1 else None

    if declared and inferred and declared != inferred:
        issues.append(ConsistencyIssue(
            code=ConsistencyCodeEnum.TYPE_MISMATCH,
            severity=SeverityEnum.MEDIUM,
            message=f"Declared type {declared} differs from inferred {inferred}",
            context={"declared_type": declared, "inferred_type": inferred},
        ))

    length = vessel.static_info.length if vessel.static_info else None
    length_range = TYPE_LENGTH_RANGES_M.get(declared) if declared else None
    if length_range and length:
        min_len, max_len = length_range
        if length < min_len or length > max_len:
            issues.append(ConsistencyIssue(
                code=ConsistencyCodeEnum.SIZE_IMPLAUSIBLE,
                severity=SeverityEnum.MEDIUM,
                message=f"Length {length:g}m unusual for {declared} (expected {min_len}-{max_len}m)",
                context={"length": length, "declared_type": declared},
            ))

    envelope = TYPE_MAX_SPEED_KN.get(declared) if declared else None
    max_speed = vessel.metrics.max_speed
    if envelope is not None and max_speed > envelope * _SPEED_TOLERANCE:
        issues.append(ConsistencyIssue(
            code=ConsistencyCodeEnum.SPEED_OUT_OF_RANGE,
            severity=SeverityEnum.HIGH,
            message=(
                f"Observed max speed {max_speed} kn exceeds typical "
                f"{declared} capability ({envelope} kn)"
            ),
            context={"max_speed": max_speed, "envelope_kn": envelope, "declared_type": declared},
        ))

    if len(candidates) > 1:
        issues.append(ConsistencyIssue(
            code=ConsistencyCodeEnum.INFERRED_CONFLICT,
            severity=SeverityEnum.LOW,
            message=f"Multiple inferred types: {', '.join(candidates)}",
            context={"inferred_types": candidates},
        ))

    report = ConsistencyReport(
        mmsi=vessel.mmsi,
        issues=issues,
        inferred_type=inferred,
        declared_type=declared,
    )
    if issues:
        logger.info(
            "MMSI %s consistency %s: %s",
            vessel.mmsi, report.summary.value, ", ".join(i.code.value for i in issues),
        )
    return report
