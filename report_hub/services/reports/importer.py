"""
Bulk report import.

Walks files and directories of report YAML and ingests each file in its own
session, so one bad report never blocks the rest.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Sequence, Union

import structlog
from sqlalchemy.orm import Session

from report_hub.core.config import settings
from report_hub.core.exceptions import ArgumentError, UniquenessError
from report_hub.services.reports.ingestion import ReportIngestionService

logger = structlog.get_logger(__name__)


@dataclass
class ImportStats:
    """Statistics for an import run."""
    imported: int = 0
    duplicates: int = 0
    failed: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.imported + self.duplicates + self.failed


def iter_report_files(paths: Iterable[Union[str, Path]], patterns: Sequence[str]) -> Iterator[Path]:
    """Expand directories into matching report files, sorted by name."""
    for path in map(Path, paths):
        if path.is_dir():
            matches = set()
            for pattern in patterns:
                matches.update(p for p in path.rglob(pattern) if p.is_file())
            yield from sorted(matches)
        else:
            yield path


class ReportImporter:
    """Import report files through the ingestion pipeline."""

    def __init__(self, session_factory: Callable[[], Session], patterns: Sequence[str] = ()):
        self.session_factory = session_factory
        self.patterns = list(patterns) or settings.reports.import_patterns_list

    def import_paths(self, paths: Iterable[Union[str, Path]]) -> ImportStats:
        stats = ImportStats()

        for path in iter_report_files(paths, self.patterns):
            session = self.session_factory()
            try:
                ReportIngestionService(session).ingest_file(path)
                stats.imported += 1
            except UniquenessError:
                stats.duplicates += 1
            except (ArgumentError, OSError, UnicodeDecodeError) as e:
                stats.failed += 1
                stats.failures.append(f"{path}: {e}")
                logger.warning("Report import failed", path=str(path), error=str(e))
            finally:
                session.close()

        logger.info(
            "Report import finished",
            imported=stats.imported,
            duplicates=stats.duplicates,
            failed=stats.failed,
        )
        return stats
