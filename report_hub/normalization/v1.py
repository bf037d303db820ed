"""
Format 1 report adapter.

Adds resource_statuses keyed by "Type[title]". Out-of-sync counts are not
recorded and are derived on read; events carry no audit information.
"""

from typing import List

from report_hub.normalization.base import BaseReportAdapter, FormatVersion
from report_hub.schemas.report import ResourceStatusData


class ResourceStatusReportAdapter(BaseReportAdapter):
    """Adapter for format 1 reports."""

    version = FormatVersion.V1
    puppet_version_fields = ("puppet_version", "version")

    def normalize_resource_statuses(self) -> List[ResourceStatusData]:
        return self.build_resource_statuses()
