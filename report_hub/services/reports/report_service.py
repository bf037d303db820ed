"""
Report Service Layer.

Operations on persisted reports:
- Lookup and listing (inspections, baselines)
- Destruction with node pointer recomputation
- Baseline marking for inspect reports
- Retention pruning
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from report_hub.core.exceptions import IncorrectReportKind, ReportNotFoundError
from report_hub.models.report import Report, ReportKind
from report_hub.services.reports.diff import ReportDiff, diff_reports
from report_hub.services.reports.nodes import NodeDirectory

logger = structlog.get_logger(__name__)


class ReportService:
    """Service for persisted report operations."""

    def __init__(self, db: Session):
        self.db = db
        self.nodes = NodeDirectory(db)

    # ==========================================================================
    # Queries
    # ==========================================================================

    def get_report(self, report_id: int) -> Report:
        """Get a report by ID."""
        report = self.db.get(Report, report_id)
        if report is None:
            raise ReportNotFoundError(f"Report {report_id} not found")
        return report

    def inspections(self) -> List[Report]:
        """All inspect reports, oldest first."""
        query = select(Report).where(Report.kind == ReportKind.INSPECT.value).order_by(Report.time, Report.id)
        return list(self.db.scalars(query).all())

    def baselines(self) -> List[Report]:
        """All reports currently flagged as their host's baseline."""
        query = select(Report).where(Report.baseline.is_(True)).order_by(Report.host, Report.id)
        return list(self.db.scalars(query).all())

    def baseline_for(self, host: str) -> Optional[Report]:
        query = select(Report).where(Report.host == host, Report.baseline.is_(True))
        return self.db.scalars(query).first()

    def diff(self, report: Report, other: Report) -> ReportDiff:
        """Diff two inspect reports."""
        return diff_reports(report, other)

    # ==========================================================================
    # Mutations
    # ==========================================================================

    def destroy_report(self, report: Report) -> None:
        """
        Delete a report and everything it owns.

        If it was its node's most recent apply report, the node is re-pointed
        at the next most recent apply report, or cleared when none remain.
        """
        report_id, host = report.id, report.host
        try:
            node = self.nodes.lock(host)
            was_pointer = node is not None and node.last_apply_report_id == report_id

            if was_pointer:
                node.last_apply_report = None
                self.db.flush()

            self.db.delete(report)
            self.db.flush()

            if was_pointer:
                self.nodes.refresh_pointer(node)

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("Failed to destroy report", report_id=report_id, host=host, error=str(e))
            raise

        logger.info("Report destroyed", report_id=report_id, host=host, repointed=was_pointer)

    def mark_baseline(self, report: Report) -> Report:
        """
        Make an inspect report its host's only baseline.

        Raises:
            IncorrectReportKind: If the report is not an inspect report
        """
        if report.kind != ReportKind.INSPECT.value:
            logger.warning("Baseline refused", report_id=report.id, kind=report.kind)
            raise IncorrectReportKind(f"Only inspect reports can be baselines, report {report.id} is {report.kind}")

        try:
            # Serializes baseline changes per host
            self.nodes.lock(report.host)
            self.db.execute(
                update(Report)
                .where(Report.host == report.host, Report.id != report.id, Report.baseline.is_(True))
                .values(baseline=False)
                .execution_options(synchronize_session="fetch")
            )
            report.baseline = True
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Baseline set", report_id=report.id, host=report.host)
        return report

    def prune(self, older_than: timedelta, now: Optional[datetime] = None) -> int:
        """
        Destroy reports older than the given age.

        Each report is destroyed in its own transaction.

        Returns:
            Number of reports destroyed
        """
        now = now or datetime.now(timezone.utc).replace(tzinfo=None)
        cutoff = now - older_than
        query = select(Report).where(Report.time < cutoff).order_by(Report.time, Report.id)
        reports = list(self.db.scalars(query).all())

        for report in reports:
            self.destroy_report(report)

        logger.info("Reports pruned", cutoff=cutoff.isoformat(), count=len(reports))
        return len(reports)
