"""
Format 2 report adapter.

Format 2 resources record how many of their properties were out of sync, and
events record the audited historical value.
"""

from typing import Any, Dict, List, Mapping

from report_hub.normalization.base import BaseReportAdapter, FormatVersion, plain_value
from report_hub.schemas.report import ResourceStatusData


class AuditedReportAdapter(BaseReportAdapter):
    """Adapter for format 2 reports."""

    version = FormatVersion.V2

    def normalize_resource_statuses(self) -> List[ResourceStatusData]:
        return self.build_resource_statuses()

    def resource_status_extras(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {"out_of_sync_count": raw.get("out_of_sync_count")}

    def event_extras(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "historical_value": plain_value(raw.get("historical_value")),
            "audited": bool(raw.get("audited", False)),
        }
