"""
Inspect report differencing.

Compares the audited prior values two inspect reports recorded for each
resource. The result maps "Type[title]" to {property: (ours, theirs)} and
only lists properties whose values differ.
"""

from typing import Any, Dict, Tuple

import structlog

from report_hub.core.exceptions import IncorrectReportKind
from report_hub.models.report import EventStatus, Report, ReportKind

logger = structlog.get_logger(__name__)

AuditedValues = Dict[str, Dict[str, Any]]
ReportDiff = Dict[str, Dict[str, Tuple[Any, Any]]]


def audited_values(report: Report) -> AuditedValues:
    """Map each resource key to its audited property values."""
    values: AuditedValues = {}
    for status in report.resource_statuses:
        properties = values.setdefault(status.name, {})
        for event in status.events:
            if event.status == EventStatus.AUDIT.value and event.property is not None:
                properties[event.property] = event.previous_value
    return values


def diff_reports(report: Report, other: Report) -> ReportDiff:
    """
    Field-level diff of two inspect reports.

    Resources present in only one report still appear, with their properties
    paired against None. A resource whose audited values all match maps to an
    empty dict.

    Raises:
        IncorrectReportKind: If either report is not an inspect report
    """
    for candidate in (report, other):
        if candidate.kind != ReportKind.INSPECT.value:
            logger.warning("Diff refused", report_id=candidate.id, kind=candidate.kind)
            raise IncorrectReportKind(f"Only inspect reports can be diffed, report {candidate.id} is {candidate.kind}")

    ours = audited_values(report)
    theirs = audited_values(other)

    result: ReportDiff = {}
    for resource in list(ours) + [key for key in theirs if key not in ours]:
        our_properties = ours.get(resource, {})
        their_properties = theirs.get(resource, {})
        changes = {}
        for prop in list(our_properties) + [p for p in their_properties if p not in our_properties]:
            pair = (our_properties.get(prop), their_properties.get(prop))
            if pair[0] != pair[1]:
                changes[prop] = pair
        result[resource] = changes
    return result
