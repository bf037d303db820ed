"""
Format 0 report adapter.

The earliest agents send metrics and logs only. They carry no
configuration_version field; the applied catalog version is announced in a
log line instead.
"""

import re
from typing import List, Mapping

from report_hub.normalization.base import BaseReportAdapter, FormatVersion, UNKNOWN_VERSION
from report_hub.schemas.report import ResourceStatusData

_APPLYING_VERSION = re.compile(r"Applying configuration version '([^']*)'")


class LegacyReportAdapter(BaseReportAdapter):
    """Adapter for reports without a resource status section."""

    version = FormatVersion.V0
    configuration_version_fields = ("configuration_version", "config_version")
    puppet_version_fields = ("puppet_version", "version")

    def normalize_resource_statuses(self) -> List[ResourceStatusData]:
        return []

    def configuration_version(self) -> str:
        declared = self._scalar(self.configuration_version_fields)
        if declared:
            return declared

        for entry in self.document.get("logs") or []:
            message = entry.get("message") if isinstance(entry, Mapping) else None
            match = _APPLYING_VERSION.search(str(message or ""))
            if match:
                return match.group(1)
        return UNKNOWN_VERSION
