"""
Error taxonomy.

Extraction-side errors are recovered close to where they happen and only
degrade the completeness of a StudyRecord. Service-boundary errors are always
surfaced to the operator, split so they can tell a connectivity problem
(ServiceUnreachable) from a request the service refused (ServiceRejected).
"""

from typing import Optional


class UltraLinqHelperError(Exception):
    """Base class for all errors raised by this package."""


class FieldNotFound(UltraLinqHelperError):
    """Every strategy for a logical field came up empty."""

    def __init__(self, field: str):
        super().__init__(f"Field not found: {field}")
        self.field = field


class ScrapeFailure(UltraLinqHelperError):
    """A single page could not be scraped."""

    def __init__(self, reason: str, url: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.url = url


class NotAStudyPage(ScrapeFailure):
    """None of the study view containers are present on the page."""

    def __init__(self, url: Optional[str] = None):
        super().__init__("not a study page", url=url)


class ImageFetchFailure(UltraLinqHelperError):
    """One clip image could not be downloaded."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason


class SandboxError(UltraLinqHelperError):
    """The browser sandbox failed to read, navigate or evaluate."""


class ServiceError(UltraLinqHelperError):
    """Base class for report-generation service failures."""


class ServiceUnreachable(ServiceError):
    """The transport failed (connection refused, DNS, timeout)."""


class ServiceRejected(ServiceError):
    """The service answered with a failure; message is the service's own text."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ReportGenerationError(UltraLinqHelperError):
    """The AI model could not produce a report (service side)."""
