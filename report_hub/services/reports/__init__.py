"""
Report services.

Ingestion, destruction, baselines, diffing and bulk import of run reports.
"""

from report_hub.services.reports.diff import diff_reports
from report_hub.services.reports.importer import ImportStats, ReportImporter
from report_hub.services.reports.ingestion import ReportIngestionService
from report_hub.services.reports.nodes import NodeDirectory
from report_hub.services.reports.report_service import ReportService
from report_hub.services.reports.status import resolve_report_status, resolve_status

__all__ = [
    "ImportStats",
    "NodeDirectory",
    "ReportImporter",
    "ReportIngestionService",
    "ReportService",
    "diff_reports",
    "resolve_report_status",
    "resolve_status",
]
