"""
Request models for the report-generation service.

Requests are parsed leniently: a study type the service has no dedicated
prompt for still gets the generic prompt, and unknown keys (such as
sourceUrl on aggregated studies) are ignored.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..schemas import UNKNOWN_HINT, DateRange, ImagePayload, PatientInfo

DATE_FORMATS = ("%m/%d/%Y", "%m-%d-%Y", "%m/%d/%y", "%m-%d-%y")


class ReportRequest(BaseModel):
    """Body of POST /generate-report, also one entry of a history request."""
    model_config = ConfigDict(populate_by_name=True)

    study_type: str = Field("unknown", alias="studyType")
    patient_info: PatientInfo = Field(default_factory=PatientInfo, alias="patientInfo")
    measurements: List[str] = Field(default_factory=list)
    conclusion: str = ""
    images: List[ImagePayload] = Field(default_factory=list, alias="imageData")


class HistoryRequest(BaseModel):
    """Body of POST /analyze-patient-history(-extension)."""
    model_config = ConfigDict(populate_by_name=True)

    study_type: str = Field("unknown", alias="studyType")
    patient_name: str = Field("Patient", alias="patientName")
    studies: List[ReportRequest] = Field(default_factory=list)


def parse_study_date(value: str) -> Optional[datetime]:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


def compute_date_range(dates: Iterable[str]) -> DateRange:
    """Earliest and latest of the parseable dates, as originally written."""
    parsed = []
    for value in dates:
        when = parse_study_date(value or "")
        if when is not None:
            parsed.append((when, value.strip()))

    if not parsed:
        return DateRange(earliest=UNKNOWN_HINT, latest=UNKNOWN_HINT)

    parsed.sort(key=lambda item: item[0])
    return DateRange(earliest=parsed[0][1], latest=parsed[-1][1])
