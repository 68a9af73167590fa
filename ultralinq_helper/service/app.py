"""
Report-Generation Service: FastAPI Server

REST Endpoints:
- GET  /health                             liveness
- POST /generate-report                    one study -> {report}
- POST /analyze-patient-history            many studies -> longitudinal report
- POST /analyze-patient-history-extension  same, the path the scraper posts to

Errors are returned as JSON {"error": "..."} (plus "success": false on the
history endpoints) so the client can show the service's message verbatim.

Run with: uvicorn ultralinq_helper.service.app:create_app --factory --port 3000
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import Settings
from ..errors import ReportGenerationError
from .models import HistoryRequest, ReportRequest, compute_date_range
from .report_engine import ReportEngine

logger = logging.getLogger(__name__)


def create_app(engine: Optional[ReportEngine] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the service.

    Args:
        engine: Anything with draft_study_report / draft_history_report
                (defaults to the Gemini-backed ReportEngine)
        settings: Used only when the engine is created here
    """
    engine = engine or ReportEngine(settings or Settings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info("  ULTRALINQ REPORT SERVICE STARTING")
        logger.info("=" * 60)
        logger.info("REST Endpoints:")
        logger.info("  Health Check:     GET  /health")
        logger.info("  Single Study:     POST /generate-report")
        logger.info("  Longitudinal:     POST /analyze-patient-history-extension")
        logger.info("=" * 60)
        yield
        logger.info("  ULTRALINQ REPORT SERVICE SHUTTING DOWN")

    app = FastAPI(
        title="UltraLinq Report Service",
        description="Drafts vascular ultrasound reports from scraped UltraLinq studies",
        version=__version__,
        lifespan=lifespan
    )

    # The scraper may run from a browser context
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        logger.warning(f"[SERVICE] Invalid request to {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request body"})

    @app.get("/health")
    async def health():
        """Simple health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    @app.post("/generate-report")
    async def generate_report(request: ReportRequest):
        logger.info(f"[SERVICE] /generate-report: {request.study_type}, "
                    f"{len(request.measurements)} measurements, {len(request.images)} images")
        try:
            report = await engine.draft_study_report(request)
        except ReportGenerationError as e:
            logger.error(f"[SERVICE] /generate-report failed: {e}")
            return JSONResponse(status_code=500, content={"error": f"Failed to generate report: {e}"})
        return {"report": report}

    async def analyze_history(request: HistoryRequest):
        if not request.studies:
            return JSONResponse(status_code=400, content={"success": False, "error": "No studies provided"})

        logger.info(f"[SERVICE] Longitudinal analysis: {request.study_type}, "
                    f"{len(request.studies)} studies for {request.patient_name}")
        date_range = compute_date_range(study.patient_info.study_date for study in request.studies)

        try:
            report = await engine.draft_history_report(request, date_range)
        except ReportGenerationError as e:
            logger.error(f"[SERVICE] Longitudinal analysis failed: {e}")
            return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

        return {
            "success": True,
            "report": report,
            "studiesAnalyzed": len(request.studies),
            "dateRange": date_range.to_wire(),
            "patientInfo": request.studies[0].patient_info.to_wire(),
        }

    app.add_api_route("/analyze-patient-history", analyze_history, methods=["POST"])
    app.add_api_route("/analyze-patient-history-extension", analyze_history, methods=["POST"])

    return app
