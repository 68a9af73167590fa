"""
Selector Registry: Every UltraLinq DOM Cue in One Place

UltraLinq renders the same clinical facts differently in its Report,
Worksheet and Clips & Stills views, and the markup drifts between releases.
Each logical field therefore maps to an ordered list of lookup strategies;
the FieldResolver tries them in order and the first non-empty value wins.

This module is pure data. Bump REGISTRY_VERSION whenever a selector changes
so scraped records can be traced back to the cue set that produced them.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple
import re

from ..schemas import StudyType

REGISTRY_VERSION = "ultralinq-cues/3"


@dataclass(frozen=True)
class SelectorStrategy:
    """
    One way of locating a field.

    Attributes:
        element: CSS selector for candidate elements (searched inside scope)
        scope: CSS selector for the scope element; None means the document root
        label: If set, the candidate whose text starts with this label is the
               label cell and the value is read from its next sibling element
    """
    element: str
    scope: Optional[str] = None
    label: Optional[str] = None


@dataclass(frozen=True)
class SelectorRule:
    """Ordered strategies for one logical field."""
    field: str
    strategies: Tuple[SelectorStrategy, ...]

    def __post_init__(self):
        if not self.strategies:
            raise ValueError(f"Selector rule '{self.field}' needs at least one strategy")


class SelectorRegistry(Mapping[str, SelectorRule]):
    """Read-only lookup of SelectorRules by field name. Unknown names raise KeyError."""

    def __init__(self, version: str, rules: Iterable[SelectorRule]):
        table: Dict[str, SelectorRule] = {}
        for rule in rules:
            if rule.field in table:
                raise ValueError(f"Duplicate selector rule: {rule.field}")
            table[rule.field] = rule
        self.version = version
        self._rules = MappingProxyType(table)

    def __getitem__(self, field: str) -> SelectorRule:
        return self._rules[field]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def strategies(self, field: str) -> Tuple[SelectorStrategy, ...]:
        return self[field].strategies

    def __repr__(self) -> str:
        return f"SelectorRegistry(version='{self.version}', fields={len(self)})"


def _rule(field: str, *strategies: SelectorStrategy) -> SelectorRule:
    return SelectorRule(field=field, strategies=tuple(strategies))


S = SelectorStrategy

# ==============================================================================
# FIELD NAMES
# ==============================================================================

SELECTED_TAB = "view.selected_tab"
VIEW_MARKERS = "view.markers"

STUDY_TITLE = "study.title"

HEADER_NAME = "patient.header.name"
HEADER_DOB = "patient.header.dob"
HEADER_STUDY_DATE = "patient.header.study_date"
REPORT_NAME = "patient.report.name"
REPORT_DOB = "patient.report.dob"
REPORT_STUDY_DATE = "patient.report.study_date"

MEASUREMENT_ROW = "measurement.row"
MEASUREMENT_LABEL = "measurement.label_cell"
MEASUREMENT_VALUE = "measurement.value_input"
REPORT_TABLE_ROW = "measurement.report_row"

FINDINGS_TEXTAREA = "conclusion.findings_textarea"
CONCLUSION_FIELDSET = "conclusion.fieldset"
REPORT_CONCLUSION_PARAGRAPH = "conclusion.report_paragraph"
SUMMARY_FINDINGS = "conclusion.summary_findings"

CLIPS_FRAME = "images.frame"

STUDY_LINK = "study_list.link"

# ==============================================================================
# ULTRALINQ CUES
# ==============================================================================

ULTRALINQ_SELECTORS = SelectorRegistry(REGISTRY_VERSION, [
    # --- Which view is active ---
    _rule(SELECTED_TAB,
          S("#studytabs .yui-nav .selected"),
          S(".yui-nav li.selected")),
    # Any of these means we are on a study page at all
    _rule(VIEW_MARKERS,
          S("#studytabs"),
          S("#studyinfo"),
          S("#worksheet2content"),
          S("#Echo_WorksheetSave"),
          S("#report2table"),
          S("#report2"),
          S("#html5-embed")),

    # --- Study title (drives study type inference) ---
    _rule(STUDY_TITLE,
          S("#report2 .h0"),
          S("#studyTypeLink"),
          S(".study-title")),

    # --- Patient info bar (Worksheet and Clips & Stills) ---
    _rule(HEADER_NAME,
          S("h1", scope="#studyinfo"),
          S(".patient-name")),
    _rule(HEADER_DOB,
          S("td.lab", scope="#studyinfo", label="DOB:"),
          S(".info-label", label="DOB:")),
    _rule(HEADER_STUDY_DATE,
          S("td.lab", scope="#studyinfo", label="Study Date:"),
          S(".info-label", label="Study Date:")),

    # --- Report view label cells ---
    _rule(REPORT_NAME,
          S("td.k", scope="#report2table", label="Patient Name:")),
    _rule(REPORT_DOB,
          S("td.k", scope="#report2table", label="DOB:")),
    _rule(REPORT_STUDY_DATE,
          S("td.k", scope="#report2table", label="Date of Service:"),
          S("td.k", scope="#report2table", label="Study Date:")),

    # --- Worksheet measurements ---
    _rule(MEASUREMENT_ROW,
          S("tr", scope="#worksheet2content"),
          S("#Echo_WorksheetSave tr"),
          S("tr")),
    _rule(MEASUREMENT_LABEL,
          S("td.k")),
    _rule(MEASUREMENT_VALUE,
          S("td.val input[type='text']"),
          S("td.val input:not([type])")),

    # --- Report view measurement tables (no structured cells) ---
    _rule(REPORT_TABLE_ROW,
          S("table.includeauto tr", scope="#report2table"),
          S("#report2 table.includeauto tr")),

    # --- Conclusions ---
    _rule(FINDINGS_TEXTAREA,
          S("textarea.findingta"),
          S("textarea[name*='conclusion']"),
          S("textarea[name*='impression']")),
    _rule(CONCLUSION_FIELDSET,
          S("fieldset")),
    _rule(REPORT_CONCLUSION_PARAGRAPH,
          S("td.conclusionsv p.rp", scope="#report2table"),
          S("td.conclusionsv p.rp")),
    _rule(SUMMARY_FINDINGS,
          S("td.k", scope="#report2table", label="Summary Findings:")),

    # --- Clips & Stills viewer frame ---
    _rule(CLIPS_FRAME,
          S("#html5-embed"),
          S("iframe")),

    # --- Study list ---
    # Candidates only; destinations are filtered with STUDY_URL_PATTERN
    _rule(STUDY_LINK,
          S("a[href]")),
])

# ==============================================================================
# STRING LITERALS & PATTERNS
# ==============================================================================

TAB_LABELS = MappingProxyType({
    "report": "Report",
    "worksheet": "Worksheet",
    "clips_and_stills": "Clips & Stills",
})

# Worksheet fieldset legends that hold the conclusion, in priority order
CONCLUSION_LEGENDS: Tuple[str, ...] = ("Conclusions", "Summary")

# Lower-cased title substrings per study type, in StudyType declaration order
STUDY_TYPE_KEYWORDS: Tuple[Tuple[StudyType, Tuple[str, ...]], ...] = (
    (StudyType.CAROTID, ("carotid",)),
    (StudyType.AORTA, ("aorta",)),
    (StudyType.LOWER_ARTERIAL, ("arterial lower", "lower extremity")),
    (StudyType.VENOUS, ("venous",)),
)

# Clip entries carry either a remote URL or an inline base64 payload
CLIP_URL_KEY = "furl"
CLIP_BASE64_KEY = "b64"
CLIP_MIME_KEY = "mime"

# Study-list scanning
STUDY_URL_PATTERN = re.compile(r"/study/|studyid=|/report/", re.IGNORECASE)
DATE_PATTERN = re.compile(r"\d{1,2}[/\-]\d{1,2}[/\-](?:\d{4}|\d{2})(?!\d)")
STUDY_LIST_TYPE_KEYWORDS: Tuple[str, ...] = ("Carotid", "Aorta", "Arterial", "Venous")
STUDY_ROW_CONTAINERS: Tuple[str, ...] = ("tr", ".study-row", ".row")
STUDY_ROW_CELLS = "td, span, div, .cell"
