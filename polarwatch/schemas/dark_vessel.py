"""Pydantic schema for dark vessel anomalies."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from polarwatch.schemas.base import DarkVesselAnomalyTypeEnum, SeverityEnum
from polarwatch.schemas.position import ExternalDetection


class DarkVesselAnomaly(BaseModel):
    type: DarkVesselAnomalyTypeEnum
    # None for AIS-only anomalies
    detection: Optional[ExternalDetection] = None
    mmsi: Optional[str] = None
    description: str
    severity: SeverityEnum
    metadata: dict[str, Any] = Field(default_factory=dict)
