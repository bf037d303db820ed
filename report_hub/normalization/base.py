"""
Base Report Normalization Adapter.

This module defines the report format generations and the base adapter class
for normalizing decoded agent reports into the unified entity set.

Report Generations:
- v0: metrics and free-text logs only, no per-resource section
- v1: resource_statuses keyed by "Type[title]", no out_of_sync_count,
      historical_value or audited
- v2: v1 plus out_of_sync_count per resource and historical_value/audited
      per event

Every generation shares the metrics table and log shape; adapters differ in
where the version scalars live and what the resource section carries.
"""

import math
import re
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from enum import IntEnum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

import structlog
from pydantic import ValidationError

from report_hub.core.exceptions import FormatError
from report_hub.models.report import ReportKind
from report_hub.schemas.report import (
    MetricData,
    NormalizedReport,
    ReportLogData,
    ResourceEventData,
    ResourceStatusData,
)

logger = structlog.get_logger(__name__)

UNKNOWN_VERSION = "unknown"

_TZ_SUFFIX = re.compile(r"\s*([+-]\d{2}):?(\d{2})$")
# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"\.(\d+)")

# Agents before format 2 spell the failed event status "failure"
_EVENT_STATUS_ALIASES = {"failure": "failed"}


def _is_finite(value: Any) -> bool:
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


class FormatVersion(IntEnum):
    """Report wire-format generations."""

    V0 = 0
    V1 = 1
    V2 = 2


def coerce_time(value: Any, field: str = "time", required: bool = False) -> Optional[datetime]:
    """
    Coerce a report timestamp to naive UTC.

    Args:
        value: datetime, date or ISO-8601 string
        field: Field name used in error messages
        required: Whether a missing value is an error

    Returns:
        Naive UTC datetime, or None when absent and not required
    """
    if value is None or value == "":
        if required:
            raise FormatError(f"Report field '{field}' is required")
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _TZ_SUFFIX.sub(r"\1:\2", text)
        text = _FRACTION.sub(lambda m: "." + m.group(1).ljust(6, "0")[:6], text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise FormatError(f"Report field '{field}' is not a timestamp: {value!r}") from e
    else:
        raise FormatError(f"Report field '{field}' is not a timestamp: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def plain_value(value: Any, _path: FrozenSet[int] = frozenset()) -> Any:
    """
    Reduce a decoded event value to JSON-storable types.

    YAML anchors can make a container contain itself; such values cannot be
    stored and raise FormatError.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Mapping, list, tuple, set)):
        if id(value) in _path:
            raise FormatError("Report value refers to itself through a YAML alias")
        path = _path | {id(value)}
        if isinstance(value, Mapping):
            return {str(k): plain_value(v, path) for k, v in value.items()}
        return [plain_value(v, path) for v in value]
    return str(value)


def split_resource_key(key: Any) -> Tuple[str, str]:
    """
    Split a ``Type[title]`` resource key.

    The type ends at the first "[" and the title runs to the trailing "]",
    so titles may themselves contain brackets.
    """
    text = str(key)
    start = text.find("[")
    if start <= 0 or not text.endswith("]"):
        raise FormatError(f"Resource key {text!r} is not of the form Type[title]")
    return text[:start], text[start + 1:-1]


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class BaseReportAdapter(ABC):
    """
    Base class for report normalization adapters.

    One subclass per format generation; the sniffer picks the subclass and
    callers only use normalize().
    """

    version: FormatVersion

    # Top-level scalar fields holding the version strings, in lookup order
    configuration_version_fields: Tuple[str, ...] = ("configuration_version",)
    puppet_version_fields: Tuple[str, ...] = ("puppet_version",)

    def __init__(self, document: Mapping[str, Any]):
        """
        Initialize the adapter.

        Args:
            document: Decoded report document already classified by the sniffer
        """
        self.document = document

    def normalize(self) -> NormalizedReport:
        """
        Build the unified entity set for this report.

        Returns:
            NormalizedReport instance

        Raises:
            FormatError: If any value cannot be coerced
        """
        try:
            report = NormalizedReport(
                report_format=int(self.version),
                host=str(self.document["host"]),
                kind=self.normalize_kind(),
                time=coerce_time(self.document.get("time"), required=True),
                configuration_version=self.configuration_version(),
                puppet_version=self.puppet_version(),
                metrics=self.normalize_metrics(),
                resource_statuses=self.normalize_resource_statuses(),
                logs=self.normalize_logs(),
            )
        except ValidationError as e:
            raise FormatError(f"Report does not match format {int(self.version)}: {e}") from e

        logger.debug(
            "Report normalized",
            host=report.host,
            report_format=report.report_format,
            metrics=len(report.metrics),
            resource_statuses=len(report.resource_statuses),
            logs=len(report.logs),
        )
        return report

    @abstractmethod
    def normalize_resource_statuses(self) -> List[ResourceStatusData]:
        """
        Build the per-resource section.

        Returns:
            List of resource statuses with their events
        """
        pass

    def normalize_kind(self) -> ReportKind:
        kind = self.document.get("kind") or ReportKind.APPLY.value
        try:
            return ReportKind(str(kind))
        except ValueError as e:
            raise FormatError(f"Unknown report kind {kind!r}") from e

    def _scalar(self, fields: Tuple[str, ...]) -> Optional[str]:
        for name in fields:
            value = self.document.get(name)
            if value is not None and value != "":
                return str(value)
        return None

    def configuration_version(self) -> str:
        return self._scalar(self.configuration_version_fields) or UNKNOWN_VERSION

    def puppet_version(self) -> str:
        return self._scalar(self.puppet_version_fields) or UNKNOWN_VERSION

    def normalize_metrics(self) -> List[MetricData]:
        """
        Flatten the category -> name -> value table.

        A category is either a plain name -> value mapping or an agent metric
        object whose ``values`` is a list of [name, label, value] triples.
        """
        raw = self.document.get("metrics") or {}
        if not isinstance(raw, Mapping):
            raise FormatError("Report metrics must be a mapping of categories")

        metrics = []
        for category, table in raw.items():
            for name, value in self._metric_pairs(category, table):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise FormatError(f"Metric {category}/{name} has non-numeric value {value!r}")
                if not _is_finite(value):
                    raise FormatError(f"Metric {category}/{name} has non-finite value {value!r}")
                metrics.append(MetricData(category=str(category), name=str(name), value=value))
        return metrics

    def _metric_pairs(self, category: Any, table: Any) -> List[Tuple[Any, Any]]:
        if table is None:
            return []
        if isinstance(table, Mapping) and isinstance(table.get("values"), list):
            pairs = []
            for entry in table["values"]:
                if not isinstance(entry, (list, tuple)) or len(entry) < 2:
                    raise FormatError(f"Metric category {category} has a malformed value entry {entry!r}")
                # Older agents serialize metric names as Ruby symbols (":total")
                pairs.append((str(entry[0]).lstrip(":"), entry[-1]))
            return pairs
        if isinstance(table, Mapping):
            return list(table.items())
        raise FormatError(f"Metric category {category} must be a mapping")

    def normalize_logs(self) -> List[ReportLogData]:
        raw = self.document.get("logs") or []
        if not isinstance(raw, list):
            raise FormatError("Report logs must be a list")

        logs = []
        for entry in raw:
            if not isinstance(entry, Mapping):
                raise FormatError(f"Report log entry must be a mapping, got {entry!r}")
            logs.append(ReportLogData(
                level=_text(entry.get("level")),
                message=_text(entry.get("message")),
                source=_text(entry.get("source")),
                tags=entry.get("tags"),
                time=coerce_time(entry.get("time"), field="logs.time"),
                file=_text(entry.get("file")),
                line=entry.get("line"),
            ))
        return logs

    # ------------------------------------------------------------------
    # Resource section helpers (format 1 and later)
    # ------------------------------------------------------------------

    def _raw_resource_statuses(self) -> Mapping[Any, Any]:
        raw = self.document.get("resource_statuses") or {}
        if not isinstance(raw, Mapping):
            raise FormatError("Report resource_statuses must be a mapping keyed by Type[title]")
        return raw

    def resource_status_extras(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Generation-specific resource status fields."""
        return {}

    def event_extras(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Generation-specific event fields."""
        return {}

    def build_resource_statuses(self) -> List[ResourceStatusData]:
        statuses = []
        for key, raw in self._raw_resource_statuses().items():
            if not isinstance(raw, Mapping):
                raise FormatError(f"Resource status {key} must be a mapping")
            resource_type, title = split_resource_key(key)

            raw_events = raw.get("events") or []
            if not isinstance(raw_events, list):
                raise FormatError(f"Events of resource {key} must be a list")

            statuses.append(ResourceStatusData(
                resource_type=resource_type,
                title=title,
                evaluation_time=raw.get("evaluation_time"),
                file=_text(raw.get("file")),
                line=raw.get("line"),
                source_description=_text(raw.get("source_description")),
                tags=raw.get("tags"),
                time=coerce_time(raw.get("time"), field=f"{key}.time"),
                change_count=raw.get("change_count") or 0,
                events=[self.build_event(key, event) for event in raw_events],
                **self.resource_status_extras(raw),
            ))
        return statuses

    def build_event(self, key: Any, raw: Any) -> ResourceEventData:
        if not isinstance(raw, Mapping):
            raise FormatError(f"Event of resource {key} must be a mapping")
        status = _text(raw.get("status"))
        return ResourceEventData(
            property=_text(raw.get("property")),
            previous_value=plain_value(raw.get("previous_value")),
            desired_value=plain_value(raw.get("desired_value")),
            message=_text(raw.get("message")),
            name=_text(raw.get("name")),
            status=_EVENT_STATUS_ALIASES.get(status, status),
            time=coerce_time(raw.get("time"), field=f"{key}.events.time"),
            **self.event_extras(raw),
        )
