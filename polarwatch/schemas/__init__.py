"""Import all schemas so callers can use ``from polarwatch.schemas import ...``."""
from polarwatch.schemas.base import (
    AISClassEnum,
    ConsistencyCodeEnum,
    ConsistencySummaryEnum,
    DarkVesselAnomalyTypeEnum,
    SeverityEnum,
    VesselClassification,
)
from polarwatch.schemas.position import BoundingBox, ExternalDetection, PositionReport, StaticInfo
from polarwatch.schemas.consistency import ConsistencyIssue, ConsistencyReport
from polarwatch.schemas.dark_vessel import DarkVesselAnomaly
from polarwatch.schemas.analysis import AnalyzedVessel, TrajectoryMetrics, WindowAnalysis
