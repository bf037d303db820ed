"""
Node directory.

Find-or-create by name under a row lock, and recomputation of the node's
most recent apply report pointer.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from report_hub.models.report import Node, Report, ReportKind, ReportStatus

logger = structlog.get_logger(__name__)

# Dialects with INSERT ... ON CONFLICT DO NOTHING
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class NodeDirectory:
    """Node rows touched by report ingestion and destruction."""

    def __init__(self, db: Session):
        self.db = db

    def _locked_query(self, name: str):
        return (
            select(Node)
            .where(Node.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        )

    def lock(self, name: str) -> Optional[Node]:
        """Load a node by name holding its row lock for the transaction."""
        return self.db.scalars(self._locked_query(name)).one_or_none()

    def find_or_create(self, name: str) -> Node:
        """
        Get the node by name, creating it if absent, holding its row lock.

        Creation relies on the unique name constraint, so concurrent
        ingestions for a new host both end up with the same row.
        """
        insert = _UPSERT_INSERTS.get(self.db.get_bind().dialect.name)
        if insert is not None:
            result = self.db.execute(
                insert(Node)
                .values(name=name, status=ReportStatus.UNCHANGED.value)
                .on_conflict_do_nothing(index_elements=["name"])
            )
            if result.rowcount == 1:
                logger.info("Node created", node=name)
            return self.db.scalars(self._locked_query(name)).one()

        node = self.lock(name)
        if node is None:
            node = Node(name=name, status=ReportStatus.UNCHANGED.value)
            self.db.add(node)
            self.db.flush()
            logger.info("Node created", node=name)
        return node

    def latest_apply_report(self, node: Node) -> Optional[Report]:
        query = (
            select(Report)
            .where(Report.host == node.name, Report.kind == ReportKind.APPLY.value)
            .order_by(Report.time.desc(), Report.id.desc())
            .limit(1)
        )
        return self.db.scalars(query).first()

    def refresh_pointer(self, node: Node) -> Optional[Report]:
        """
        Point the node at its most recent apply report.

        Recomputed from the stored reports rather than patched, so arrival
        order of ingestions and deletions does not matter.
        """
        latest = self.latest_apply_report(node)
        if latest is None:
            node.last_apply_report = None
            node.reported_at = None
            node.status = ReportStatus.UNCHANGED.value
        else:
            node.last_apply_report = latest
            node.reported_at = latest.time
            node.status = latest.status

        logger.debug(
            "Node pointer refreshed",
            node=node.name,
            last_apply_report_id=latest.id if latest else None,
            status=node.status,
        )
        return latest
