"""
Report status resolution.

Status is derived from a report's metrics and events, never stored
independently of them. Works on both normalized schemas and persisted rows.
"""

from typing import Any, Iterable

from report_hub.models.report import EventStatus, ReportStatus


def _value(status: Any) -> str:
    return status.value if isinstance(status, EventStatus) else str(status)


def _metric(metrics: Iterable[Any], category: str, name: str) -> float:
    for metric in metrics:
        if metric.category == category and metric.name == name:
            return metric.value
    return 0


def resolve_status(metrics: Iterable[Any], events: Iterable[Any]) -> ReportStatus:
    """
    Derive the summary status of a report.

    Precedence: failed, then changed, then unchanged.

    Args:
        metrics: Objects with category, name and value
        events: Objects with a status

    Returns:
        ReportStatus
    """
    metrics = list(metrics)
    statuses = [_value(event.status) for event in events]

    if EventStatus.FAILED.value in statuses or _metric(metrics, "resources", "failed") > 0:
        return ReportStatus.FAILED
    if EventStatus.SUCCESS.value in statuses or _metric(metrics, "changes", "total") > 0:
        return ReportStatus.CHANGED
    return ReportStatus.UNCHANGED


def resolve_report_status(report: Any) -> ReportStatus:
    """Derive the status of a NormalizedReport or persisted Report."""
    return resolve_status(report.metrics, report.events)
