"""
Report format sniffing.

Classifies a decoded document into a format generation once, and hands it to
the matching adapter.
"""

from typing import Any, Dict, Mapping, Type

import structlog

from report_hub.core.exceptions import FormatError
from report_hub.normalization.base import BaseReportAdapter, FormatVersion
from report_hub.normalization.v0 import LegacyReportAdapter
from report_hub.normalization.v1 import ResourceStatusReportAdapter
from report_hub.normalization.v2 import AuditedReportAdapter
from report_hub.schemas.report import NormalizedReport

logger = structlog.get_logger(__name__)

ADAPTERS: Dict[FormatVersion, Type[BaseReportAdapter]] = {
    FormatVersion.V0: LegacyReportAdapter,
    FormatVersion.V1: ResourceStatusReportAdapter,
    FormatVersion.V2: AuditedReportAdapter,
}

_V2_RESOURCE_FIELDS = ("out_of_sync_count",)
_V2_EVENT_FIELDS = ("historical_value", "audited")


def _has_v2_fields(statuses: Mapping[Any, Any]) -> bool:
    for status in statuses.values():
        if not isinstance(status, Mapping):
            continue
        if any(field in status for field in _V2_RESOURCE_FIELDS):
            return True
        for event in status.get("events") or []:
            if isinstance(event, Mapping) and any(field in event for field in _V2_EVENT_FIELDS):
                return True
    return False


def sniff(document: Any) -> FormatVersion:
    """
    Classify a decoded report document.

    An explicit report_format is authoritative; otherwise the generation is
    inferred from the resource section.

    Args:
        document: Decoded report document

    Returns:
        The document's FormatVersion

    Raises:
        FormatError: If the document has no recognizable report shape
    """
    if not isinstance(document, Mapping):
        raise FormatError(f"Report document is a {type(document).__name__}, expected a mapping")

    missing = [name for name in ("host", "time") if document.get(name) in (None, "")]
    if missing:
        raise FormatError(f"Report document is missing {', '.join(missing)}")

    statuses = document.get("resource_statuses")
    if statuses is not None and not isinstance(statuses, Mapping):
        raise FormatError("Report resource_statuses must be a mapping keyed by Type[title]")

    declared = document.get("report_format")
    if declared is not None:
        if isinstance(declared, bool):
            raise FormatError(f"Unsupported report_format {declared!r}")
        try:
            version = FormatVersion(int(declared))
        except (TypeError, ValueError) as e:
            raise FormatError(f"Unsupported report_format {declared!r}") from e
        if version is FormatVersion.V0 and statuses:
            raise FormatError("Format 0 reports cannot carry resource_statuses")
        return version

    if statuses is None:
        return FormatVersion.V0
    if _has_v2_fields(statuses):
        return FormatVersion.V2
    return FormatVersion.V1


def get_adapter(document: Any) -> BaseReportAdapter:
    """Sniff a document and return the adapter for its generation."""
    version = sniff(document)
    logger.debug("Report format detected", report_format=int(version), host=document.get("host"))
    return ADAPTERS[version](document)


def normalize_document(document: Any) -> NormalizedReport:
    """Sniff and normalize a decoded document in one step."""
    return get_adapter(document).normalize()
