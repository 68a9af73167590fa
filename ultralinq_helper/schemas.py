"""
Pydantic schemas for the normalized study data.

Python attribute names are snake_case; the JSON wire format is the camelCase
shape the report-generation service expects (studyType, patientInfo,
imageData, ...). All scraped models are frozen: a StudyRecord is built once
per page visit and only ever copied afterwards.
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# Rendered for any patient field the resolver could not find
NOT_AVAILABLE = "N/A"

# Hint value for study-list rows without a date or type
UNKNOWN_HINT = "Unknown"

# Joins multiple conclusion sections found on one page
CONCLUSION_SEPARATOR = "\n\n---\n\n"


class StudyType(str, Enum):
    """Study type inferred from the page title. Declaration order is match order."""
    CAROTID = "carotid"
    AORTA = "aorta"
    LOWER_ARTERIAL = "lower_arterial"
    VENOUS = "venous"
    UNKNOWN = "unknown"


class AnalysisType(str, Enum):
    """Study type the operator selects for a whole longitudinal batch."""
    CAROTID = "carotid"
    AORTA = "aorta"
    LEFT_LEG = "left_leg"
    RIGHT_LEG = "right_leg"

    @property
    def label(self) -> str:
        return {
            "carotid": "Carotid",
            "aorta": "Aorta",
            "left_leg": "Left Leg Arterial",
            "right_leg": "Right Leg Arterial",
        }[self.value]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        """JSON-ready dict using the service's camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class PatientInfo(_WireModel):
    name: str = NOT_AVAILABLE
    date_of_birth: str = Field(
        NOT_AVAILABLE,
        alias="dateOfBirth",
        validation_alias=AliasChoices("dateOfBirth", "dob", "date_of_birth"),
    )
    study_date: str = Field(NOT_AVAILABLE, alias="studyDate")


class ImagePayload(_WireModel):
    """One clip image as base64 text plus its media type."""
    encoded_data: str = Field(..., alias="data")
    media_type: str = Field("image/jpeg", alias="mimeType")


class StudyRecord(_WireModel):
    """Normalized data scraped from one study page."""
    study_type: StudyType = Field(StudyType.UNKNOWN, alias="studyType")
    patient_info: PatientInfo = Field(default_factory=PatientInfo, alias="patientInfo")
    measurements: Tuple[str, ...] = ()
    conclusion: str = ""
    images: Tuple[ImagePayload, ...] = Field((), alias="imageData")
    source_url: str = Field("", alias="sourceUrl")

    def report_request(self) -> dict:
        """Body for POST /generate-report."""
        body = self.to_wire()
        body.pop("sourceUrl", None)
        return body


class StudyReference(_WireModel):
    """A study link found on a study-list page."""
    url: str
    date_hint: str = Field(UNKNOWN_HINT, alias="dateHint")
    type_hint: str = Field(UNKNOWN_HINT, alias="typeHint")


class PatientHistory(_WireModel):
    """Successfully scraped studies for one patient, in traversal order."""
    patient_name: str = Field(..., alias="patientName")
    study_type: AnalysisType = Field(..., alias="studyType")
    studies: Tuple[StudyRecord, ...] = ()

    def history_request(self) -> dict:
        """Body for POST /analyze-patient-history-extension."""
        return self.to_wire()


class DateRange(_WireModel):
    earliest: str = UNKNOWN_HINT
    latest: str = UNKNOWN_HINT


class HistoryReport(_WireModel):
    """Successful response of the longitudinal analysis endpoint."""
    report: str
    studies_analyzed: int = Field(0, alias="studiesAnalyzed")
    date_range: DateRange = Field(default_factory=DateRange, alias="dateRange")
    patient_info: Optional[PatientInfo] = Field(None, alias="patientInfo")
