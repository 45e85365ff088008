"""Shared enums for all analysis schemas."""
from __future__ import annotations

import enum


class VesselClassification(str, enum.Enum):
    STATIONARY = "STATIONARY"
    ANCHORED = "ANCHORED"
    MANEUVERING = "MANEUVERING"
    TRANSIT = "TRANSIT"
    UNKNOWN = "UNKNOWN"


class SeverityEnum(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConsistencyCodeEnum(str, enum.Enum):
    TYPE_MISMATCH = "TYPE_MISMATCH"
    SIZE_IMPLAUSIBLE = "SIZE_IMPLAUSIBLE"
    SPEED_OUT_OF_RANGE = "SPEED_OUT_OF_RANGE"
    INFERRED_CONFLICT = "INFERRED_CONFLICT"


class ConsistencySummaryEnum(str, enum.Enum):
    OK = "OK"
    WARN = "WARN"
    ALERT = "ALERT"


class DarkVesselAnomalyTypeEnum(str, enum.Enum):
    NO_AIS_MATCH = "NO_AIS_MATCH"
    # Declared for sensor reports carrying an MMSI that contradicts the AIS
    # track at the same position. No rule emits it yet.
    MMSI_MISMATCH = "MMSI_MISMATCH"
    AIS_GAP = "AIS_GAP"
    UNUSUAL_BEHAVIOR = "UNUSUAL_BEHAVIOR"


class AISClassEnum(str, enum.Enum):
    A = "A"
    B = "B"
