"""
Tests for report destruction, baselines, queries and pruning.
"""

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import func, select

from report_hub.core.exceptions import IncorrectReportKind, ReportNotFoundError
from report_hub.models import Metric, Node, Report, ReportLog, ResourceEvent, ResourceStatus
from tests.helpers import inspect_report_yaml, read_fixture

NOW = datetime(2011, 3, 1, 12, 0, 0)
WEEK_AGO = datetime.combine(date(2011, 2, 22), datetime.min.time())


def count(db, model):
    return db.scalar(select(func.count()).select_from(model))


def node_named(db, name):
    db.expire_all()
    return db.scalars(select(Node).where(Node.name == name)).one()


class TestDestroyReport:
    @pytest.fixture
    def older(self, make_report):
        return make_report("node.example.com", WEEK_AGO)

    def test_repoints_node_at_next_most_recent_apply_report(self, db, reports, make_report, older):
        newer = make_report("node.example.com", NOW, failed=1)
        node = node_named(db, "node.example.com")
        assert node.last_apply_report_id == newer.id
        assert node.status == "failed"

        reports.destroy_report(newer)

        node = node_named(db, "node.example.com")
        assert node.last_apply_report_id == older.id
        assert node.reported_at == older.time
        assert node.status == "unchanged"

    def test_never_repoints_at_inspect_report(self, db, reports, make_report, older):
        make_report("node.example.com", NOW - timedelta(days=3), kind="inspect")
        newer = make_report("node.example.com", NOW, failed=1)

        reports.destroy_report(newer)

        node = node_named(db, "node.example.com")
        assert node.last_apply_report_id == older.id
        assert node.reported_at == older.time
        assert node.status == "unchanged"

    def test_clears_node_when_no_apply_reports_remain(self, db, reports, older):
        reports.destroy_report(older)

        node = node_named(db, "node.example.com")
        assert node.last_apply_report_id is None
        assert node.reported_at is None
        assert node.status == "unchanged"
        assert count(db, Report) == 0

    def test_destroying_non_pointer_report_keeps_pointer(self, db, reports, make_report, older):
        newer = make_report("node.example.com", NOW, changes=1)

        reports.destroy_report(older)

        node = node_named(db, "node.example.com")
        assert node.last_apply_report_id == newer.id
        assert node.status == "changed"

    def test_destroys_all_dependent_rows(self, db, ingestion, reports):
        report = ingestion.ingest(read_fixture("puppet26/report_ok_service_started_ok.yaml"))
        for model in (ResourceStatus, ResourceEvent, ReportLog, Metric):
            assert count(db, model) != 0

        reports.destroy_report(report)

        for model in (ResourceStatus, ResourceEvent, ReportLog, Metric):
            assert count(db, model) == 0
        assert count(db, Node) == 1


class TestBaseline:
    @pytest.fixture
    def inspected(self, ingestion):
        first = ingestion.ingest(inspect_report_yaml("2010-12-10 12:00:00 -08:00", "file", "foo"))
        second = ingestion.ingest(inspect_report_yaml("2010-12-03 12:00:00 -08:00", "absent"))
        return first, second

    def test_sets_baseline(self, db, reports, inspected):
        report, _ = inspected

        reports.mark_baseline(report)
        db.refresh(report)

        assert report.baseline is True
        assert reports.baselines() == [report]
        assert reports.baseline_for("mattmac.puppetlabs.lan") is report

    def test_unsets_other_baselines_for_host(self, db, reports, inspected):
        report, report2 = inspected
        assert not report.baseline
        assert not report2.baseline

        reports.mark_baseline(report)
        db.refresh(report)
        assert report.baseline
        assert not report2.baseline

        reports.mark_baseline(report2)
        assert report2.baseline
        db.refresh(report)
        assert not report.baseline

        assert reports.baselines() == [report2]

    def test_baselines_are_per_host(self, db, reports, ingestion, inspected):
        report, _ = inspected
        other_host = ingestion.ingest(
            inspect_report_yaml("2010-12-10 12:00:00 -08:00", "file", "foo").replace(
                "mattmac.puppetlabs.lan", "other.puppetlabs.lan"
            )
        )

        reports.mark_baseline(report)
        reports.mark_baseline(other_host)
        db.expire_all()

        assert {r.host for r in reports.baselines()} == {"mattmac.puppetlabs.lan", "other.puppetlabs.lan"}

    def test_apply_report_cannot_be_baseline(self, db, reports, make_report):
        apply_report = make_report("node.example.com", NOW)

        with pytest.raises(IncorrectReportKind):
            reports.mark_baseline(apply_report)

        db.refresh(apply_report)
        assert apply_report.baseline is False
        assert reports.baselines() == []


class TestQueries:
    def test_get_report(self, reports, make_report):
        report = make_report("node.example.com", NOW)
        assert reports.get_report(report.id) is report

    def test_get_missing_report(self, reports):
        with pytest.raises(ReportNotFoundError):
            reports.get_report(404)

    def test_inspections(self, reports, ingestion, make_report):
        make_report("node.example.com", NOW)
        inspect = ingestion.ingest(inspect_report_yaml("2010-12-10 12:00:00 -08:00", "file", "foo"))

        assert reports.inspections() == [inspect]


class TestPrune:
    def test_prunes_old_reports_and_repoints(self, db, reports, make_report):
        make_report("node.example.com", NOW - timedelta(days=60), changes=1)
        make_report("node.example.com", NOW - timedelta(days=45), failed=1)
        recent = make_report("node.example.com", NOW - timedelta(days=5))
        make_report("stale.example.com", NOW - timedelta(days=90))

        pruned = reports.prune(timedelta(days=30), now=NOW)

        assert pruned == 3
        assert count(db, Report) == 1
        assert node_named(db, "node.example.com").last_apply_report_id == recent.id
        stale = node_named(db, "stale.example.com")
        assert stale.last_apply_report_id is None
        assert stale.reported_at is None

    def test_nothing_to_prune(self, reports, make_report):
        make_report("node.example.com", NOW)
        assert reports.prune(timedelta(days=30), now=NOW) == 0
