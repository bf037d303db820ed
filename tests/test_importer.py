"""
Tests for bulk report import and the command line.
"""

import shutil
from contextlib import contextmanager
from datetime import datetime

import pytest
from sqlalchemy import func, select

from report_hub import cli
from report_hub.models import Report
from report_hub.services.reports import ReportImporter
from report_hub.services.reports.importer import iter_report_files
from tests.helpers import FIXTURES_DIR, SELF_REFERENTIAL_REPORT, inspect_report_yaml, simple_report_yaml


@pytest.fixture
def report_dir(tmp_path):
    directory = tmp_path / "reports"
    shutil.copytree(FIXTURES_DIR, directory)
    return directory


def count_reports(session_factory):
    with session_factory() as session:
        return session.scalar(select(func.count()).select_from(Report))


class TestImporter:
    def test_imports_directory_tree(self, session_factory, report_dir):
        stats = ReportImporter(session_factory).import_paths([report_dir])

        assert (stats.imported, stats.duplicates, stats.failed) == (5, 0, 0)
        assert count_reports(session_factory) == 5

    def test_reimport_counts_duplicates(self, session_factory, report_dir):
        importer = ReportImporter(session_factory)
        importer.import_paths([report_dir])

        stats = importer.import_paths([report_dir])

        assert (stats.imported, stats.duplicates, stats.failed) == (0, 5, 0)
        assert stats.total == 5
        assert count_reports(session_factory) == 5

    def test_bad_file_does_not_block_others(self, session_factory, report_dir):
        (report_dir / "broken.yaml").write_text("foo bar baz bad data invalid", encoding="utf-8")

        stats = ReportImporter(session_factory).import_paths([report_dir])

        assert (stats.imported, stats.failed) == (5, 1)
        assert "broken.yaml" in stats.failures[0]

    def test_self_referential_report_does_not_block_others(self, session_factory, report_dir):
        (report_dir / "loop.yaml").write_text(SELF_REFERENTIAL_REPORT, encoding="utf-8")

        stats = ReportImporter(session_factory).import_paths([report_dir])

        assert (stats.imported, stats.failed) == (5, 1)
        assert "loop.yaml" in stats.failures[0]

    def test_missing_file_is_a_failure(self, session_factory, tmp_path):
        stats = ReportImporter(session_factory).import_paths([tmp_path / "missing.yaml"])
        assert stats.failed == 1

    def test_patterns_filter_directories(self, tmp_path):
        (tmp_path / "a.yaml").write_text("x", encoding="utf-8")
        (tmp_path / "b.yml").write_text("x", encoding="utf-8")
        (tmp_path / "notes.txt").write_text("x", encoding="utf-8")

        found = [p.name for p in iter_report_files([tmp_path], ["*.yaml", "*.yml"])]

        assert found == ["a.yaml", "b.yml"]


class TestCommandLine:
    @pytest.fixture(autouse=True)
    def isolated_database(self, monkeypatch, session_factory):
        @contextmanager
        def db_context():
            session = session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

        monkeypatch.setattr(cli, "SessionLocal", session_factory)
        monkeypatch.setattr(cli, "get_db_context", db_context)
        monkeypatch.setattr(cli, "init_db", lambda: None)
        monkeypatch.setattr(cli, "close_db", lambda: None)
        monkeypatch.setattr(cli, "configure_logging", lambda: None)

    def test_import(self, session_factory, report_dir):
        assert cli.main(["import", str(report_dir)]) == 0
        assert count_reports(session_factory) == 5

    def test_import_with_failures_exits_non_zero(self, report_dir):
        (report_dir / "broken.yaml").write_text("", encoding="utf-8")
        assert cli.main(["import", str(report_dir)]) == 1

    def test_prune(self, session_factory, tmp_path):
        path = tmp_path / "old.yaml"
        path.write_text(simple_report_yaml("node.example.com", datetime(2001, 1, 1)), encoding="utf-8")
        cli.main(["import", str(path)])

        assert cli.main(["prune", "--days", "30"]) == 0
        assert count_reports(session_factory) == 0

    @pytest.mark.parametrize("days", ["0", "-1", "soon"])
    def test_prune_rejects_non_positive_days(self, session_factory, tmp_path, days):
        path = tmp_path / "recent.yaml"
        path.write_text(simple_report_yaml("node.example.com", datetime.now()), encoding="utf-8")
        cli.main(["import", str(path)])

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["prune", "--days", days])

        assert exc_info.value.code != 0
        assert count_reports(session_factory) == 1

    def test_prune_keeps_reports_inside_window(self, session_factory, tmp_path):
        path = tmp_path / "recent.yaml"
        path.write_text(simple_report_yaml("node.example.com", datetime.now()), encoding="utf-8")
        cli.main(["import", str(path)])

        assert cli.main(["prune", "--days", "1"]) == 0
        assert cli.main(["prune"]) == 0
        assert count_reports(session_factory) == 1

    def test_baseline(self, session_factory, report_dir):
        cli.main(["import", str(report_dir)])
        with session_factory() as session:
            report_id = session.scalar(select(Report.id).where(Report.host == "quiet.example.com"))

        # Only inspect reports can be baselines
        assert cli.main(["baseline", str(report_id)]) == 1
        assert cli.main(["baseline", "9999"]) == 1

    def test_baseline_replaces_previous(self, session_factory, tmp_path, capsys):
        (tmp_path / "first.yaml").write_text(inspect_report_yaml("2011-01-01 12:00:00", "file"), encoding="utf-8")
        (tmp_path / "second.yaml").write_text(inspect_report_yaml("2011-01-02 12:00:00", "absent"), encoding="utf-8")
        cli.main(["import", str(tmp_path)])
        with session_factory() as session:
            first_id, second_id = session.scalars(select(Report.id).order_by(Report.time)).all()

        assert cli.main(["baseline", str(first_id)]) == 0
        assert cli.main(["baseline", str(second_id)]) == 0

        err = capsys.readouterr().err
        assert f"Report {second_id} is now the baseline for mattmac.puppetlabs.lan." in err
        assert "Resources: 0" in err
        assert f"Replaced baseline: report {first_id}" in err
        with session_factory() as session:
            baselines = session.scalars(select(Report.id).where(Report.baseline.is_(True))).all()
        assert baselines == [second_id]

    def test_requires_a_command(self):
        with pytest.raises(SystemExit):
            cli.main([])
