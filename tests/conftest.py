"""
Shared fixtures: an in-memory SQLite database and report helpers.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from report_hub.core.database import init_db
from report_hub.services.reports import ReportIngestionService, ReportService
from tests.helpers import simple_report_yaml


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def ingestion(db):
    return ReportIngestionService(db)


@pytest.fixture
def reports(db):
    return ReportService(db)


@pytest.fixture
def make_report(ingestion):
    """Ingest a metrics-only report."""
    def _make(host, time, kind="apply", failed=0, changes=0):
        return ingestion.ingest(simple_report_yaml(host, time, kind=kind, failed=failed, changes=changes))
    return _make
