"""
Client Modules

HTTP client for the report-generation service.
"""

from .report_client import ReportClient, get_client

__all__ = [
    "ReportClient",
    "get_client",
]
