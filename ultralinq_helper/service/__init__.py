"""
Service Module: Report Generation over HTTP

Components:
- create_app: FastAPI application factory
- ReportEngine: Gemini-backed report drafting
- prompts: per-study-type and longitudinal prompt templates
"""

from .app import create_app
from .report_engine import ReportEngine

__all__ = [
    "create_app",
    "ReportEngine",
]
