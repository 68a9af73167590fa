"""
Sandbox Module: The Browser Boundary

Components:
- ExecutionSandbox: the protocol the scraper and orchestrator depend on
- SeleniumSandbox: Chrome WebDriver implementation
- SessionContext / fetch_bytes: cookie-carrying HTTP downloads for clip images
"""

from .base import ExecutionSandbox
from .http_fetcher import HttpFetchResult, fetch_bytes
from .session_context import SessionContext
from .selenium_sandbox import SeleniumSandbox, make_driver

__all__ = [
    "ExecutionSandbox",
    "HttpFetchResult",
    "fetch_bytes",
    "SessionContext",
    "SeleniumSandbox",
    "make_driver",
]
