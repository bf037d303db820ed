"""
Report ingestion error taxonomy.
"""


class ReportHubError(Exception):
    """Base exception for report errors."""
    pass


class ArgumentError(ReportHubError, ValueError):
    """Report text could not be accepted (blank, unparseable or malformed)."""
    pass


class FormatError(ArgumentError):
    """Decoded document does not match any supported report generation."""
    pass


class UniquenessError(ReportHubError):
    """A report for the same host and time already exists."""

    def __init__(self, host: str, time):
        self.host = host
        self.time = time
        super().__init__(f"A report for host {host!r} at {time} already exists")


class IncorrectReportKind(ReportHubError):
    """Operation requires an inspect report."""
    pass


class ReportNotFoundError(ReportHubError):
    """Report not found."""
    pass
