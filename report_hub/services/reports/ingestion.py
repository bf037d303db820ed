"""
Report Ingestion Service.

Turns raw report text into a persisted Report:
- Parse the YAML text
- Sniff the format generation and normalize
- Resolve the summary status
- Persist the report and its children in one transaction
- Refresh the host's most recent apply report pointer
"""

from pathlib import Path
from typing import Union

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from report_hub.core.exceptions import ArgumentError, UniquenessError
from report_hub.models.report import (
    Metric,
    Node,
    Report,
    ReportKind,
    ReportLog,
    ResourceEvent,
    ResourceStatus,
)
from report_hub.normalization import load_report_text, normalize_document
from report_hub.schemas.report import NormalizedReport
from report_hub.services.reports.nodes import NodeDirectory
from report_hub.services.reports.status import resolve_report_status

logger = structlog.get_logger(__name__)


def build_report(node: Node, normalized: NormalizedReport) -> Report:
    """Build the Report entity graph for a normalized report."""
    status = resolve_report_status(normalized)

    return Report(
        node=node,
        host=normalized.host,
        kind=normalized.kind.value,
        time=normalized.time,
        status=status.value,
        report_format=normalized.report_format,
        configuration_version=normalized.configuration_version,
        puppet_version=normalized.puppet_version,
        baseline=False,
        metrics=[
            Metric(category=m.category, name=m.name, value=float(m.value))
            for m in normalized.metrics
        ],
        resource_statuses=[
            ResourceStatus(
                resource_type=rs.resource_type,
                title=rs.title,
                evaluation_time=rs.evaluation_time,
                file=rs.file,
                line=rs.line,
                source_description=rs.source_description,
                tags=rs.tags,
                time=rs.time,
                change_count=rs.change_count,
                stored_out_of_sync_count=rs.out_of_sync_count,
                events=[
                    ResourceEvent(
                        property=e.property,
                        previous_value=e.previous_value,
                        desired_value=e.desired_value,
                        historical_value=e.historical_value,
                        message=e.message,
                        name=e.name,
                        status=e.status.value,
                        audited=e.audited,
                        time=e.time,
                    )
                    for e in rs.events
                ],
            )
            for rs in normalized.resource_statuses
        ],
        logs=[
            ReportLog(
                level=log.level,
                message=log.message,
                source=log.source,
                tags=log.tags,
                time=log.time,
                file=log.file,
                line=log.line,
            )
            for log in normalized.logs
        ],
    )


class ReportIngestionService:
    """Service for ingesting raw report text."""

    def __init__(self, db: Session):
        self.db = db
        self.nodes = NodeDirectory(db)

    def parse(self, text: str) -> NormalizedReport:
        """
        Parse, sniff and normalize report text without touching the database.

        Raises:
            ArgumentError: If the text is blank, unparseable or malformed
        """
        try:
            return normalize_document(load_report_text(text))
        except ArgumentError as e:
            logger.warning("Report rejected", error=str(e))
            raise

    def ingest(self, text: str) -> Report:
        """
        Ingest one report.

        Args:
            text: Raw YAML report text

        Returns:
            The persisted Report

        Raises:
            ArgumentError: If the text cannot be turned into a report
            UniquenessError: If a report for the same host and time exists
        """
        normalized = self.parse(text)
        return self.persist(normalized)

    def ingest_file(self, path: Union[str, Path]) -> Report:
        """Ingest a report file."""
        return self.ingest(Path(path).read_text(encoding="utf-8"))

    def persist(self, normalized: NormalizedReport) -> Report:
        """Persist a normalized report and update its node in one transaction."""
        try:
            node = self.nodes.find_or_create(normalized.host)
            report = build_report(node, normalized)
            self.db.add(report)
            self.db.flush()

            if report.kind == ReportKind.APPLY.value:
                self.nodes.refresh_pointer(node)

            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if self._exists(normalized):
                logger.warning(
                    "Duplicate report rejected",
                    host=normalized.host,
                    time=normalized.time.isoformat(),
                )
                raise UniquenessError(normalized.host, normalized.time) from e
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Report ingested",
            report_id=report.id,
            host=report.host,
            kind=report.kind,
            time=report.time.isoformat(),
            status=report.status,
            report_format=report.report_format,
        )
        return report

    def _exists(self, normalized: NormalizedReport) -> bool:
        query = select(Report.id).where(Report.host == normalized.host, Report.time == normalized.time)
        return self.db.scalar(query) is not None
