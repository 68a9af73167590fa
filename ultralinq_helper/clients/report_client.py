"""
=============================================================================
REPORT CLIENT FOR THE REPORT-GENERATION SERVICE
=============================================================================

PURPOSE:
    Send a scraped StudyRecord (or a whole PatientHistory) to the
    report-generation service and return the drafted report text.

ERRORS:
    - ServiceUnreachable: transport failed (refused, DNS, timeout)
    - ServiceRejected:    the service answered with a failure; the message
                          is the service's own `error` text, verbatim

    Both are always raised to the caller. Unlike scraping, nothing here is
    recovered silently: the operator must see why no report came back.

USAGE:
    client = ReportClient(settings.service_url)
    report = await client.submit(record)

=============================================================================
"""

from typing import Any, Dict, Optional, Union
import logging

import httpx

from ..errors import ServiceRejected, ServiceUnreachable
from ..schemas import HistoryReport, PatientHistory, StudyRecord

logger = logging.getLogger(__name__)

GENERATE_REPORT_PATH = "/generate-report"
ANALYZE_HISTORY_PATH = "/analyze-patient-history-extension"
HEALTH_PATH = "/health"


class ReportClient:
    """
    Async HTTP client for the report-generation service.

    A fresh httpx.AsyncClient is opened per request; requests are rare and
    long (the model call dominates).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout_s: float = 180.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        ARGS:
            base_url: Service root URL
            timeout_s: Per-request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_s,
            transport=self._transport,
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"HTTP {response.status_code}"

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(path, json=body)
        except httpx.TransportError as e:
            logger.error(f"[REPORT CLIENT] {self.base_url}{path} unreachable: {e}")
            raise ServiceUnreachable(f"Report service unreachable at {self.base_url}: {e}") from e

        if not response.is_success:
            message = self._error_message(response)
            logger.error(f"[REPORT CLIENT] {path} rejected ({response.status_code}): {message}")
            raise ServiceRejected(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ServiceRejected("Invalid JSON in service response", status_code=response.status_code) from e
        if not isinstance(data, dict):
            raise ServiceRejected("Unexpected service response", status_code=response.status_code)
        return data

    async def generate_report(self, record: StudyRecord) -> str:
        """
        Draft a report for one study.

        RETURNS:
            The report text
        """
        logger.info(f"[REPORT CLIENT] Requesting report: {record.study_type.value}, "
                    f"{len(record.measurements)} measurements, {len(record.images)} images")
        data = await self._post(GENERATE_REPORT_PATH, record.report_request())

        report = data.get("report")
        if not report:
            raise ServiceRejected(data.get("error") or "Service returned no report")
        return report

    async def analyze_history(self, history: PatientHistory) -> HistoryReport:
        """
        Request the longitudinal synthesis for a patient's studies.

        RETURNS:
            HistoryReport with report text, study count and date range
        """
        logger.info(f"[REPORT CLIENT] Requesting longitudinal analysis: "
                    f"{history.study_type.value}, {len(history.studies)} studies")
        data = await self._post(ANALYZE_HISTORY_PATH, history.history_request())

        if data.get("success") is False or not data.get("report"):
            raise ServiceRejected(data.get("error") or "Service returned no report")
        return HistoryReport.model_validate(data)

    async def submit(self, payload: Union[StudyRecord, PatientHistory]) -> str:
        """Submit either kind of payload and return the report text."""
        if isinstance(payload, PatientHistory):
            return (await self.analyze_history(payload)).report
        return await self.generate_report(payload)

    async def health(self) -> bool:
        """True when the service answers its health check."""
        try:
            async with self._client() as client:
                response = await client.get(HEALTH_PATH)
        except httpx.TransportError as e:
            logger.debug(f"[REPORT CLIENT] Health check failed: {e}")
            return False
        return response.status_code == 200


# ============================================================
# SINGLETON INSTANCE
# ============================================================

_client: Optional[ReportClient] = None


def get_client(base_url: Optional[str] = None, timeout_s: float = 180.0) -> ReportClient:
    """Get or create the shared client. A new base_url replaces it."""
    global _client
    if _client is None or (base_url and base_url.rstrip("/") != _client.base_url):
        _client = ReportClient(base_url or "http://localhost:3000", timeout_s=timeout_s)
    return _client
