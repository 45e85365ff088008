"""Pydantic schemas for trajectory metrics and analyzed vessels."""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from polarwatch.schemas.base import VesselClassification
from polarwatch.schemas.consistency import ConsistencyReport
from polarwatch.schemas.dark_vessel import DarkVesselAnomaly
from polarwatch.schemas.position import PositionReport, StaticInfo

# Start/end time reported for a vessel with no positions
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class TrajectoryMetrics(BaseModel):
    mmsi: str
    point_count: int = 0
    start_time: datetime = EPOCH
    end_time: datetime = EPOCH
    duration_hours: float = Field(default=0.0, ge=0)
    total_distance_nm: float = 0.0
    avg_speed: float = 0.0
    max_speed: float = 0.0
    speed_std_dev: float = 0.0
    heading_std_dev: Optional[float] = None
    dwell_ratio: float = 0.0


class AnalyzedVessel(BaseModel):
    mmsi: str
    positions: list[PositionReport]
    static_info: Optional[StaticInfo] = None
    metrics: TrajectoryMetrics
    classification: VesselClassification
    rationale: str


class WindowAnalysis(BaseModel):
    """Everything produced for one bounding box / time window query."""

    vessels: list[AnalyzedVessel] = Field(default_factory=list)
    anomalies: list[DarkVesselAnomaly] = Field(default_factory=list)
    reports: list[ConsistencyReport] = Field(default_factory=list)

    def classification_counts(self) -> dict[VesselClassification, int]:
        counts = Counter(v.classification for v in self.vessels)
        return {c: counts.get(c, 0) for c in VesselClassification}
