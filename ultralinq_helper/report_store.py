"""
Report Store: Audit Copies of Drafted Reports

Every drafted report can be written to a plain-text file next to the
operator's working directory (or REPORT_DIR):

    report_<Patient_Name>_<study_type>_<epoch_ms>.txt

The header records who, what and when; the body is the report verbatim.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import logging
import re

from .schemas import DateRange

logger = logging.getLogger(__name__)

REPORT_TITLE = "ULTRALINQ LONGITUDINAL ANALYSIS REPORT"


def _safe_name(value: str) -> str:
    """Whitespace runs become underscores; path separators are removed."""
    safe = re.sub(r"\s+", "_", value.strip())
    safe = safe.replace("/", "_").replace("\\", "_").replace("\x00", "")
    return safe or "Patient"


def report_filename(patient_name: str, study_type: str, when: datetime) -> str:
    epoch_ms = int(when.timestamp() * 1000)
    return f"report_{_safe_name(patient_name)}_{_safe_name(study_type)}_{epoch_ms}.txt"


def render_report(
    patient_name: str,
    study_type: str,
    report: str,
    studies_analyzed: int,
    date_range: DateRange,
    when: datetime,
    title: str = REPORT_TITLE
) -> str:
    return (
        f"{title}\n"
        f"Patient: {patient_name}\n"
        f"Study Type: {study_type}\n"
        f"Analysis Date: {when.isoformat()}\n"
        f"Studies Analyzed: {studies_analyzed}\n"
        f"Date Range: {date_range.earliest} to {date_range.latest}\n"
        f"\n"
        f"{report}\n"
    )


def save_report(
    report_dir: Path,
    patient_name: str,
    study_type: str,
    report: str,
    studies_analyzed: int,
    date_range: DateRange,
    now: Optional[datetime] = None,
    title: str = REPORT_TITLE
) -> Path:
    """
    Write an audit copy of a report.

    Args:
        report_dir: Target directory (created if missing)
        patient_name: As sent to the service
        study_type: Study type value (e.g. "left_leg")
        report: Report body
        studies_analyzed: Number of studies behind the report
        date_range: Earliest and latest study dates
        now: Timestamp override (defaults to the current UTC time)

    Returns:
        Path of the written file
    """
    when = now or datetime.now(timezone.utc)
    report_dir = Path(report_dir)
    report_dir.mkdir(parents=True, exist_ok=True)

    path = report_dir / report_filename(patient_name, study_type, when)
    path.write_text(
        render_report(patient_name, study_type, report, studies_analyzed, date_range, when, title),
        encoding="utf-8",
    )

    logger.info(f"[REPORT STORE] Report saved to: {path}")
    return path
