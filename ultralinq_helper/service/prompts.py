"""
Prompt templates for report generation.

One template per study type plus a generic fallback, and one longitudinal
template for the trend synthesis across a patient's studies.
"""

import json
from typing import Iterable, Sequence

from ..schemas import NOT_AVAILABLE

NOT_PROVIDED = "Not provided."

_DATA_BLOCK = """DATA:
- Study Date: {study_date}
- Measurements: {measurements}
- Physician's Conclusion: {conclusion}
- Images: {images}"""

_STUDY_TASKS = {
    "carotid": (
        "a Carotid Duplex Ultrasound report",
        '- FINDINGS: Create a narrative summary. For each vessel (CCA, ICA, ECA, Vertebral), '
        'state velocities and compare them to normal ranges. If images are provided, describe any visible plaque.\n'
        '- IMPRESSION: Numbered summary of diagnostic takeaways (e.g., stenosis %, plaque presence).'
    ),
    "aorta": (
        "an Aortic Ultrasound report",
        '- FINDINGS: Describe the visualized aortic segments (proximal, mid, distal) and the maximum diameter. '
        'Note any plaque, thrombus, or aneurysm.\n'
        '- IMPRESSION: Numbered list of key findings, including any aneurysm and its size.'
    ),
    "lower_arterial": (
        "a Lower Extremity Arterial Duplex report",
        '- FINDINGS: For each segment (CFA, PFA, SFA, popliteal, tibial vessels), describe waveforms, '
        'velocities and any stenosis or occlusion. Include ankle-brachial indices when provided.\n'
        '- IMPRESSION: Numbered list of hemodynamically significant findings by side and level.'
    ),
    "left_leg": (
        "a Left Lower Extremity Arterial Duplex report",
        '- FINDINGS: For each left-sided segment (CFA, PFA, SFA, popliteal, tibial vessels), describe waveforms, '
        'velocities and any stenosis or occlusion.\n'
        '- IMPRESSION: Numbered list of hemodynamically significant findings by level.'
    ),
    "right_leg": (
        "a Right Lower Extremity Arterial Duplex report",
        '- FINDINGS: For each right-sided segment (CFA, PFA, SFA, popliteal, tibial vessels), describe waveforms, '
        'velocities and any stenosis or occlusion.\n'
        '- IMPRESSION: Numbered list of hemodynamically significant findings by level.'
    ),
    "venous": (
        "a Venous Duplex Ultrasound report",
        '- FINDINGS: For each vein examined, state compressibility, flow, and any thrombus or reflux '
        '(with reflux times when provided).\n'
        '- IMPRESSION: Numbered list stating whether DVT or venous insufficiency is present and where.'
    ),
}

_GENERIC_TASK = '- Summarize all provided data in a clear, structured format.'


def _or_not_provided(value: str) -> str:
    if not value or value == NOT_AVAILABLE:
        return NOT_PROVIDED
    return value


def study_prompt(
    study_type: str,
    study_date: str,
    measurements: Sequence[str],
    conclusion: str,
    has_images: bool
) -> str:
    """Prompt for a single-study report."""
    key = (study_type or "").lower()
    data = _DATA_BLOCK.format(
        study_date=_or_not_provided(study_date),
        measurements=json.dumps(list(measurements)) if measurements else NOT_PROVIDED,
        conclusion=_or_not_provided(conclusion),
        images="Attached for analysis." if has_images else NOT_PROVIDED,
    )

    if key in _STUDY_TASKS:
        report_kind, task = _STUDY_TASKS[key]
        header = f"You are an expert clinical assistant drafting {report_kind}."
    else:
        task = _GENERIC_TASK
        header = "You are an expert clinical assistant drafting a medical imaging report."
        data = f"- Study Type: {study_type or 'Unknown'}\n{data}"

    return f"""
{header}
{data}

TASK:
Generate a report with "FINDINGS" and "IMPRESSION" sections.
{task}
"""


def longitudinal_prompt(
    patient_name: str,
    study_label: str,
    studies: Iterable[dict],
    earliest: str,
    latest: str,
    has_images: bool
) -> str:
    """
    Prompt for the trend synthesis across studies.

    Each study dict carries studyDate, measurements and conclusion.
    """
    sections = []
    for index, study in enumerate(studies, start=1):
        measurements = study.get("measurements") or []
        sections.append(
            f"STUDY {index} ({_or_not_provided(study.get('studyDate', ''))}):\n"
            f"- Measurements: {json.dumps(list(measurements)) if measurements else NOT_PROVIDED}\n"
            f"- Physician's Conclusion: {_or_not_provided(study.get('conclusion', ''))}"
        )

    return f"""
You are an expert vascular clinical assistant performing a longitudinal review.
PATIENT: {patient_name}
STUDY TYPE: {study_label}
DATE RANGE: {earliest} to {latest}
IMAGES: {"Attached from the most recent study." if has_images else NOT_PROVIDED}

{chr(10).join(sections)}

TASK:
Write a longitudinal analysis report with these sections:
- SUMMARY: One paragraph describing the overall course.
- TRENDS: For each key measurement, describe how it changed over time, with dates.
- CURRENT STATUS: Findings of the most recent study.
- IMPRESSION: Numbered list of clinically relevant conclusions and any progression.
"""
