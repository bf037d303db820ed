# Database models
from report_hub.models.report import (
    # Report models
    Node,
    Report,
    Metric,
    ResourceStatus,
    ResourceEvent,
    ReportLog,
    # Enums
    ReportKind,
    ReportStatus,
    EventStatus,
)

__all__ = [
    "Node",
    "Report",
    "Metric",
    "ResourceStatus",
    "ResourceEvent",
    "ReportLog",
    "ReportKind",
    "ReportStatus",
    "EventStatus",
]
