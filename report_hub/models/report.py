"""
Run Report Database Models.

This module contains the database models for agent run reports:
- Nodes (managed hosts, keyed by certname)
- Reports (one apply or inspect run of a host)
- Metrics (category/name/value table of a report)
- Resource Statuses (per-resource outcome of a run)
- Resource Events (property-level events of a resource)
- Report Logs (log lines emitted during a run)
"""

import enum
from typing import Any, Dict, List, Tuple

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from report_hub.core.database import Base


class ReportKind(str, enum.Enum):
    """Kind of agent run."""

    APPLY = "apply"
    INSPECT = "inspect"


class ReportStatus(str, enum.Enum):
    """Summary status derived from a report's children."""

    UNCHANGED = "unchanged"
    CHANGED = "changed"
    FAILED = "failed"


class EventStatus(str, enum.Enum):
    """Outcome of a single property event."""

    SUCCESS = "success"
    FAILED = "failed"
    NOOP = "noop"
    AUDIT = "audit"


class Node(Base):
    """
    Managed Node model.

    Only reported_at, last_apply_report_id and status are written by report
    ingestion and destruction; everything else belongs to the node registry.
    """

    __tablename__ = "nodes"
    __table_args__ = (
        Index("ix_nodes_reported_at", "reported_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)

    # Most recent apply report (derived, see NodeDirectory.refresh_pointer)
    reported_at = Column(DateTime)
    last_apply_report_id = Column(
        Integer,
        ForeignKey("reports.id", ondelete="SET NULL", use_alter=True, name="fk_nodes_last_apply_report_id"),
    )
    status = Column(String(20), default=ReportStatus.UNCHANGED.value, nullable=False)

    reports = relationship("Report", back_populates="node", foreign_keys="Report.node_id")
    last_apply_report = relationship("Report", foreign_keys=[last_apply_report_id], post_update=True)

    def __repr__(self):
        return f"<Node(id={self.id}, name={self.name}, status={self.status})>"


class Report(Base):
    """
    Agent run report.

    Write-once: only the baseline flag changes after ingestion.
    """

    __tablename__ = "reports"
    __table_args__ = (
        UniqueConstraint("host", "time", name="uq_reports_host_time"),
        Index("ix_reports_node_id", "node_id"),
        Index("ix_reports_kind", "kind"),
        Index("ix_reports_host_kind_time", "host", "kind", "time"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    node_id = Column(Integer, ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False)

    host = Column(String(255), nullable=False)
    kind = Column(String(20), default=ReportKind.APPLY.value, nullable=False)
    time = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False)
    report_format = Column(Integer, nullable=False)
    configuration_version = Column(String(255))
    puppet_version = Column(String(255))
    baseline = Column(Boolean, default=False, nullable=False)

    # Relationships
    node = relationship("Node", back_populates="reports", foreign_keys=[node_id])
    metrics = relationship("Metric", back_populates="report", cascade="all, delete-orphan")
    resource_statuses = relationship(
        "ResourceStatus", back_populates="report", cascade="all, delete-orphan",
        order_by="ResourceStatus.id",
    )
    logs = relationship(
        "ReportLog", back_populates="report", cascade="all, delete-orphan",
        order_by="ReportLog.id",
    )

    @property
    def is_inspect(self) -> bool:
        return self.kind == ReportKind.INSPECT.value

    @property
    def events(self) -> List["ResourceEvent"]:
        """All events across this report's resource statuses."""
        return [event for status in self.resource_statuses for event in status.events]

    def metric_value(self, category: str, name: str) -> float:
        """Value of a metric, or 0 when the report does not carry it."""
        for metric in self.metrics:
            if metric.category == category and metric.name == name:
                return metric.value
        return 0

    @property
    def total_resources(self) -> float:
        return self.metric_value("resources", "total")

    @property
    def failed_resources(self) -> float:
        return self.metric_value("resources", "failed")

    @property
    def failed_restarts(self) -> float:
        return self.metric_value("resources", "failed_restarts")

    @property
    def skipped_resources(self) -> float:
        return self.metric_value("resources", "skipped")

    @property
    def changed_resources(self) -> float:
        return self.metric_value("changes", "total")

    @property
    def total_time(self) -> str:
        return "%0.2f" % self.metric_value("time", "total")

    def diff(self, other: "Report") -> Dict[str, Dict[str, Tuple[Any, Any]]]:
        """Audited property differences between this inspect report and another."""
        from report_hub.services.reports.diff import diff_reports

        return diff_reports(self, other)

    def __repr__(self):
        return f"<Report(id={self.id}, host={self.host}, kind={self.kind}, time={self.time}, status={self.status})>"


class Metric(Base):
    """A single category/name/value metric of a report."""

    __tablename__ = "metrics"
    __table_args__ = (
        UniqueConstraint("report_id", "category", "name", name="uq_metrics_report_category_name"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(Integer, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False)

    category = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    value = Column(Float, nullable=False)

    report = relationship("Report", back_populates="metrics")

    def __repr__(self):
        return f"<Metric(category={self.category}, name={self.name}, value={self.value})>"


class ResourceStatus(Base):
    """
    Per-resource outcome of a run.

    Identified within its report by ``Type[title]``. Reports older than
    format 2 do not record out_of_sync_count; it is derived on read.
    """

    __tablename__ = "resource_statuses"
    __table_args__ = (
        Index("ix_resource_statuses_report_id", "report_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(Integer, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False)

    resource_type = Column(String(255), nullable=False)
    title = Column(Text, nullable=False)
    evaluation_time = Column(Float)
    file = Column(Text)
    line = Column(Integer)
    source_description = Column(Text)
    tags = Column(JSON, default=list)
    time = Column(DateTime)
    change_count = Column(Integer, default=0, nullable=False)
    stored_out_of_sync_count = Column("out_of_sync_count", Integer)

    report = relationship("Report", back_populates="resource_statuses")
    events = relationship(
        "ResourceEvent", back_populates="resource_status", cascade="all, delete-orphan",
        order_by="ResourceEvent.id",
    )

    @property
    def name(self) -> str:
        return f"{self.resource_type}[{self.title}]"

    @property
    def out_of_sync_count(self) -> int:
        if self.stored_out_of_sync_count is not None:
            return self.stored_out_of_sync_count
        return 1 if (self.change_count or 0) > 0 else 0

    def __repr__(self):
        return f"<ResourceStatus(id={self.id}, name={self.name}, change_count={self.change_count})>"


class ResourceEvent(Base):
    """A property-level event recorded against a resource status."""

    __tablename__ = "resource_events"
    __table_args__ = (
        Index("ix_resource_events_resource_status_id", "resource_status_id"),
        Index("ix_resource_events_status", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    resource_status_id = Column(Integer, ForeignKey("resource_statuses.id", ondelete="CASCADE"), nullable=False)

    property = Column(String(255))
    previous_value = Column(JSON)
    desired_value = Column(JSON)
    historical_value = Column(JSON)
    message = Column(Text)
    name = Column(String(255))
    status = Column(String(20), nullable=False)
    audited = Column(Boolean, default=False, nullable=False)
    time = Column(DateTime)

    resource_status = relationship("ResourceStatus", back_populates="events")

    def __repr__(self):
        return f"<ResourceEvent(id={self.id}, property={self.property}, status={self.status})>"


class ReportLog(Base):
    """A log line emitted during a run."""

    __tablename__ = "report_logs"
    __table_args__ = (
        Index("ix_report_logs_report_id", "report_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(Integer, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False)

    level = Column(String(20))
    message = Column(Text)
    source = Column(Text)
    tags = Column(JSON, default=list)
    time = Column(DateTime)
    file = Column(Text)
    line = Column(Integer)

    report = relationship("Report", back_populates="logs")

    def __repr__(self):
        return f"<ReportLog(id={self.id}, level={self.level}, source={self.source})>"
