"""
Report Hub.

Ingestion, normalization, status and diffing of configuration agent run
reports.
"""

__version__ = "0.1.0"
