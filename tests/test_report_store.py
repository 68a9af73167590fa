"""Tests for the report audit files."""

from datetime import datetime, timezone

from ultralinq_helper.report_store import report_filename, save_report
from ultralinq_helper.schemas import DateRange

WHEN = datetime(2024, 3, 4, 12, 0, 0, tzinfo=timezone.utc)
EPOCH_MS = int(WHEN.timestamp() * 1000)


def test_filename_replaces_whitespace():
    assert report_filename("Jane  Q Doe", "left_leg", WHEN) == f"report_Jane_Q_Doe_left_leg_{EPOCH_MS}.txt"


def test_filename_strips_path_separators():
    name = report_filename("../etc/passwd", "carotid", WHEN)
    assert "/" not in name
    assert name.startswith("report_.._etc_passwd_carotid_")


def test_save_report_contents(tmp_path):
    path = save_report(
        tmp_path / "reports",
        patient_name="Jane Q Doe",
        study_type="left_leg",
        report="SUMMARY: stable.",
        studies_analyzed=3,
        date_range=DateRange(earliest="01/01/2022", latest="03/04/2024"),
        now=WHEN,
    )

    assert path.parent == tmp_path / "reports"
    assert path.name == f"report_Jane_Q_Doe_left_leg_{EPOCH_MS}.txt"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines == [
        "ULTRALINQ LONGITUDINAL ANALYSIS REPORT",
        "Patient: Jane Q Doe",
        "Study Type: left_leg",
        f"Analysis Date: {WHEN.isoformat()}",
        "Studies Analyzed: 3",
        "Date Range: 01/01/2022 to 03/04/2024",
        "",
        "SUMMARY: stable.",
    ]


def test_custom_title(tmp_path):
    path = save_report(
        tmp_path, "P", "carotid", "R", 1, DateRange(earliest="N/A", latest="N/A"), now=WHEN, title="ULTRALINQ STUDY REPORT"
    )
    assert path.read_text(encoding="utf-8").startswith("ULTRALINQ STUDY REPORT\n")
