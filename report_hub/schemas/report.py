"""
Normalized Report Schemas.

Pydantic schemas for the unified entity set every report generation is
normalized into before persistence. Validation failures here surface as
FormatError from the adapters.
"""

from datetime import datetime
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator

from report_hub.models.report import EventStatus, ReportKind, ReportStatus


def _tag_list(value: Any) -> List[str]:
    """De-duplicate and sort a tag collection."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    elif isinstance(value, Mapping):
        # Agent tag sets serialize as {"hash": {tag: true}}
        value = value.get("hash", value)
    return sorted({str(tag) for tag in value})


class MetricData(BaseModel):
    """A single flattened metric."""

    category: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    value: StrictFloat | StrictInt


class ResourceEventData(BaseModel):
    """A property-level event."""

    property: Optional[str] = None
    previous_value: Any = None
    desired_value: Any = None
    historical_value: Any = None
    message: Optional[str] = None
    name: Optional[str] = None
    status: EventStatus
    audited: bool = False
    time: Optional[datetime] = None


class ResourceStatusData(BaseModel):
    """Per-resource outcome, keyed by ``Type[title]``."""

    resource_type: str = Field(..., min_length=1)
    title: str
    evaluation_time: Optional[float] = None
    file: Optional[str] = None
    line: Optional[int] = None
    source_description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    time: Optional[datetime] = None
    change_count: int = Field(0, ge=0)
    out_of_sync_count: Optional[int] = Field(None, ge=0)
    events: List[ResourceEventData] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> List[str]:
        """Tags are a set; store them sorted and de-duplicated."""
        return _tag_list(v)

    @property
    def key(self) -> str:
        return f"{self.resource_type}[{self.title}]"


class ReportLogData(BaseModel):
    """A log line."""

    level: Optional[str] = None
    message: Optional[str] = None
    source: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    time: Optional[datetime] = None
    file: Optional[str] = None
    line: Optional[int] = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> List[str]:
        """Tags are a set; store them sorted and de-duplicated."""
        return _tag_list(v)


class NormalizedReport(BaseModel):
    """Generation-independent view of one run report."""

    report_format: int = Field(..., ge=0, le=2)
    host: str = Field(..., min_length=1, max_length=255)
    kind: ReportKind = ReportKind.APPLY
    time: datetime
    configuration_version: str
    puppet_version: str
    metrics: List[MetricData] = Field(default_factory=list)
    resource_statuses: List[ResourceStatusData] = Field(default_factory=list)
    logs: List[ReportLogData] = Field(default_factory=list)

    @field_validator("metrics")
    @classmethod
    def validate_unique_metrics(cls, v: List[MetricData]) -> List[MetricData]:
        """(category, name) must be unique within a report."""
        seen = set()
        for metric in v:
            key = (metric.category, metric.name)
            if key in seen:
                raise ValueError(f"duplicate metric {metric.category}/{metric.name}")
            seen.add(key)
        return v

    @property
    def events(self) -> List[ResourceEventData]:
        return [event for status in self.resource_statuses for event in status.events]


class ReportSummary(BaseModel):
    """Read-side summary of a persisted report with its metric rollups."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    host: str
    kind: ReportKind
    time: datetime
    status: ReportStatus
    baseline: bool
    configuration_version: Optional[str] = None
    puppet_version: Optional[str] = None
    total_resources: float = 0
    failed_resources: float = 0
    failed_restarts: float = 0
    skipped_resources: float = 0
    changed_resources: float = 0
    total_time: str = "0.00"
