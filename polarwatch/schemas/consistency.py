"""Pydantic schemas for declared-vs-observed consistency reports."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field

from polarwatch.schemas.base import ConsistencyCodeEnum, ConsistencySummaryEnum, SeverityEnum


class ConsistencyIssue(BaseModel):
    code: ConsistencyCodeEnum
    severity: SeverityEnum
    message: str
    context: dict[str, Any] = Field(default_factory=dict)


class ConsistencyReport(BaseModel):
    mmsi: str
    issues: list[ConsistencyIssue] = Field(default_factory=list)
    inferred_type: Optional[str] = None
    declared_type: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def summary(self) -> ConsistencySummaryEnum:
        """ALERT if any issue is high severity, WARN if any issue exists, else OK."""
        if any(i.severity == SeverityEnum.HIGH for i in self.issues):
            return ConsistencySummaryEnum.ALERT
        if self.issues:
            return ConsistencySummaryEnum.WARN
        return ConsistencySummaryEnum.OK
