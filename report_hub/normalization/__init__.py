"""
Report normalization.

Decoding, format sniffing and per-generation adapters.
"""

from report_hub.normalization.base import BaseReportAdapter, FormatVersion, UNKNOWN_VERSION
from report_hub.normalization.loader import load_report_text
from report_hub.normalization.sniffer import ADAPTERS, get_adapter, normalize_document, sniff

__all__ = [
    "ADAPTERS",
    "BaseReportAdapter",
    "FormatVersion",
    "UNKNOWN_VERSION",
    "get_adapter",
    "load_report_text",
    "normalize_document",
    "sniff",
]
