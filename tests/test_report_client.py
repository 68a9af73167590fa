"""Tests for ReportClient using httpx.MockTransport."""

import asyncio
import json

import httpx
import pytest

from ultralinq_helper.clients import report_client
from ultralinq_helper.clients.report_client import ReportClient, get_client
from ultralinq_helper.errors import ServiceRejected, ServiceUnreachable
from ultralinq_helper.schemas import (
    AnalysisType,
    ImagePayload,
    PatientHistory,
    PatientInfo,
    StudyRecord,
    StudyType,
)

BASE = "http://report-service.test"


def _client(handler) -> ReportClient:
    return ReportClient(BASE, timeout_s=5.0, transport=httpx.MockTransport(handler))


@pytest.fixture
def record() -> StudyRecord:
    return StudyRecord(
        study_type=StudyType.CAROTID,
        patient_info=PatientInfo(name="DOE, JANE", date_of_birth="01/02/1950", study_date="03/04/2024"),
        measurements=("R ICA PSV: 85 cm/s",),
        conclusion="Mild right ICA stenosis.",
        images=(ImagePayload(encoded_data="QUJD", media_type="image/png"),),
        source_url="https://app.ultralinq.net/study/1",
    )


class TestGenerateReport:
    def test_posts_wire_payload(self, record):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"report": "FINDINGS ..."})

        report = asyncio.run(_client(handler).generate_report(record))

        assert report == "FINDINGS ..."
        assert seen["path"] == "/generate-report"
        assert seen["body"] == {
            "studyType": "carotid",
            "patientInfo": {"name": "DOE, JANE", "dateOfBirth": "01/02/1950", "studyDate": "03/04/2024"},
            "measurements": ["R ICA PSV: 85 cm/s"],
            "conclusion": "Mild right ICA stenosis.",
            "imageData": [{"data": "QUJD", "mimeType": "image/png"}],
        }

    def test_http_500_message_verbatim(self, record):
        def handler(request):
            return httpx.Response(500, json={"error": "quota exceeded"})

        with pytest.raises(ServiceRejected) as exc_info:
            asyncio.run(_client(handler).generate_report(record))

        assert exc_info.value.message == "quota exceeded"
        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "quota exceeded"

    def test_non_json_error_body(self, record):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(ServiceRejected) as exc_info:
            asyncio.run(_client(handler).generate_report(record))
        assert exc_info.value.message == "HTTP 502"

    def test_connection_refused(self, record):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(ServiceUnreachable):
            asyncio.run(_client(handler).generate_report(record))

    def test_success_without_report(self, record):
        def handler(request):
            return httpx.Response(200, json={})

        with pytest.raises(ServiceRejected):
            asyncio.run(_client(handler).generate_report(record))


class TestAnalyzeHistory:
    def test_history_report_parsed(self, record):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "success": True,
                "report": "TRENDS ...",
                "studiesAnalyzed": 1,
                "dateRange": {"earliest": "03/04/2024", "latest": "03/04/2024"},
                "patientInfo": {"name": "DOE, JANE", "dob": "01/02/1950", "studyDate": "03/04/2024"},
            })

        history = PatientHistory(patient_name="DOE, JANE", study_type=AnalysisType.LEFT_LEG, studies=(record,))
        result = asyncio.run(_client(handler).analyze_history(history))

        assert seen["path"] == "/analyze-patient-history-extension"
        assert seen["body"]["studyType"] == "left_leg"
        assert seen["body"]["patientName"] == "DOE, JANE"
        assert seen["body"]["studies"][0]["sourceUrl"] == record.source_url
        assert result.report == "TRENDS ..."
        assert result.studies_analyzed == 1
        assert result.date_range.earliest == "03/04/2024"
        assert result.patient_info.date_of_birth == "01/02/1950"

    def test_submit_dispatches_on_payload(self, record):
        def handler(request):
            if request.url.path == "/generate-report":
                return httpx.Response(200, json={"report": "single"})
            return httpx.Response(200, json={"success": True, "report": "history"})

        client = _client(handler)
        history = PatientHistory(patient_name="P", study_type=AnalysisType.AORTA, studies=(record,))
        assert asyncio.run(client.submit(record)) == "single"
        assert asyncio.run(client.submit(history)) == "history"

    def test_success_false_is_rejected(self, record):
        def handler(request):
            return httpx.Response(200, json={"success": False, "error": "No studies provided"})

        history = PatientHistory(patient_name="P", study_type=AnalysisType.AORTA, studies=(record,))
        with pytest.raises(ServiceRejected, match="No studies provided"):
            asyncio.run(_client(handler).analyze_history(history))


class TestSharedClient:
    def test_reused_until_base_url_changes(self, monkeypatch):
        monkeypatch.setattr(report_client, "_client", None)

        first = get_client("http://one.test/", timeout_s=5.0)
        assert get_client("http://one.test") is first
        assert get_client() is first
        assert first.base_url == "http://one.test"
        assert first.timeout_s == 5.0

        second = get_client("http://two.test")
        assert second is not first
        assert second.base_url == "http://two.test"


class TestHealth:
    def test_healthy(self):
        client = _client(lambda request: httpx.Response(200, json={"status": "healthy"}))
        assert asyncio.run(client.health()) is True

    def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert asyncio.run(_client(handler).health()) is False
