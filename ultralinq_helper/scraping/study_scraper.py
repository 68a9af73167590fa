"""
Study Scraper: One Page In, One StudyRecord Out

Pipeline for the currently loaded study page:
1. Snapshot the page (and, if images are wanted, poll for the clip
   collection at the same time)
2. Refuse pages without any study view container (NotAStudyPage)
3. Classify the view and infer the study type from the title
4. Patient info, preferring the active view's labels
5. Measurements: structured worksheet rows, else raw report-table rows
6. Conclusion: findings textareas, legend fieldsets, report paragraphs
7. Images via the ImageHandshake

A missing field never aborts the scrape; it only leaves a sentinel or an
empty value in the record.
"""

from __future__ import annotations

from typing import List, Optional, Tuple
import asyncio
import logging

from bs4 import Tag

from ..config import Settings
from ..errors import NotAStudyPage
from ..sandbox.base import ExecutionSandbox
from ..schemas import CONCLUSION_SEPARATOR, PatientInfo, StudyRecord, StudyType
from .images import ImageHandshake
from .resolver import FieldResolver, element_text, element_value, parse_html
from .selectors import (
    CONCLUSION_FIELDSET,
    CONCLUSION_LEGENDS,
    FINDINGS_TEXTAREA,
    HEADER_DOB,
    HEADER_NAME,
    HEADER_STUDY_DATE,
    MEASUREMENT_LABEL,
    MEASUREMENT_ROW,
    MEASUREMENT_VALUE,
    REPORT_CONCLUSION_PARAGRAPH,
    REPORT_DOB,
    REPORT_NAME,
    REPORT_STUDY_DATE,
    REPORT_TABLE_ROW,
    STUDY_TITLE,
    STUDY_TYPE_KEYWORDS,
    SUMMARY_FINDINGS,
)
from .views import ViewKind, detect_view, has_study_markers

logger = logging.getLogger(__name__)

UNITS_CLASS = "units"

_HEADER_FIELDS = (HEADER_NAME, HEADER_DOB, HEADER_STUDY_DATE)
_REPORT_FIELDS = (REPORT_NAME, REPORT_DOB, REPORT_STUDY_DATE)


def infer_study_type(title: Optional[str]) -> StudyType:
    """Case-insensitive keyword match; first StudyType in declaration order wins."""
    if not title:
        return StudyType.UNKNOWN
    lowered = title.lower()
    for study_type, keywords in STUDY_TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return study_type
    return StudyType.UNKNOWN


class StudyScraper:
    """
    Builds a StudyRecord from whatever study page the sandbox is showing.

    Usage:
        scraper = StudyScraper(sandbox, settings=Settings.from_env())
        record = await scraper.scrape_current_page(include_images=True)
    """

    def __init__(
        self,
        sandbox: ExecutionSandbox,
        resolver: Optional[FieldResolver] = None,
        settings: Optional[Settings] = None,
        handshake: Optional[ImageHandshake] = None
    ):
        self.sandbox = sandbox
        self.resolver = resolver or FieldResolver()
        self.settings = settings or Settings()
        self.handshake = handshake or ImageHandshake(
            sandbox,
            self.resolver,
            poll_interval_s=self.settings.poll_interval_s,
            fetch_timeout_s=self.settings.image_fetch_timeout_s,
        )

    # ------------------------------------------------------------------
    # Patient info
    # ------------------------------------------------------------------

    def _patient_info(self, root: Tag, view: ViewKind) -> PatientInfo:
        if view is ViewKind.REPORT:
            preferred, fallback = _REPORT_FIELDS, _HEADER_FIELDS
        else:
            preferred, fallback = _HEADER_FIELDS, _REPORT_FIELDS

        name, dob, study_date = (
            self.resolver.resolve_or_default((first, second), root)
            for first, second in zip(preferred, fallback)
        )
        return PatientInfo(name=name, date_of_birth=dob, study_date=study_date)

    # ------------------------------------------------------------------
    # Measurements
    # ------------------------------------------------------------------

    def _first(self, field: str, root: Tag) -> Optional[Tag]:
        found = self.resolver.elements(field, root)
        return found[0] if found else None

    def _is_measurement_row(self, row: Tag) -> bool:
        return self._first(MEASUREMENT_LABEL, row) is not None and self._first(MEASUREMENT_VALUE, row) is not None

    def _measurement_line(self, row: Tag) -> Optional[str]:
        label_cell = self._first(MEASUREMENT_LABEL, row)
        value_input = self._first(MEASUREMENT_VALUE, row)

        value = element_value(value_input)
        if not value:
            return None

        label = element_text(label_cell).replace(":", "", 1).strip()

        units = ""
        units_el = value_input.find_next_sibling()
        if units_el is not None and UNITS_CLASS in (units_el.get("class") or []):
            units_text = element_text(units_el)
            if units_text:
                units = f" {units_text}"

        return f"{label}: {value}{units}"

    def _report_table_lines(self, root: Tag) -> List[str]:
        lines = []
        for row in self.resolver.elements(REPORT_TABLE_ROW, root):
            cells = row.find_all("td")
            if len(cells) > 1 and "k" in (cells[0].get("class") or []):
                lines.append("\t".join(element_text(cell) for cell in cells))
        return lines

    def _measurements(self, root: Tag) -> Tuple[str, ...]:
        rows = self.resolver.elements(MEASUREMENT_ROW, root, predicate=self._is_measurement_row)
        lines = [line for line in (self._measurement_line(row) for row in rows) if line]
        if lines:
            return tuple(lines)

        report_lines = self._report_table_lines(root)
        if report_lines:
            logger.info(f"[SCRAPER] No worksheet measurements, using {len(report_lines)} report table rows")
        return tuple(report_lines)

    # ------------------------------------------------------------------
    # Conclusion
    # ------------------------------------------------------------------

    def _legend_sections(self, root: Tag, legend_text: str) -> List[str]:
        sections = []
        for fieldset in self.resolver.elements(CONCLUSION_FIELDSET, root):
            legend = fieldset.find("legend")
            if legend is None or element_text(legend) != legend_text:
                continue
            for textarea in fieldset.find_all("textarea"):
                value = element_value(textarea)
                if value:
                    sections.append(value)
        return sections

    def _conclusion(self, root: Tag) -> str:
        # Empty textareas of one strategy must not hide filled ones of the next
        findings = [
            element_value(t)
            for t in self.resolver.elements(FINDINGS_TEXTAREA, root, predicate=lambda t: bool(element_value(t)))
        ]
        if findings:
            return CONCLUSION_SEPARATOR.join(findings)

        for legend_text in CONCLUSION_LEGENDS:
            sections = self._legend_sections(root, legend_text)
            if sections:
                return CONCLUSION_SEPARATOR.join(sections)

        paragraphs = [
            element_text(p)
            for p in self.resolver.elements(REPORT_CONCLUSION_PARAGRAPH, root, predicate=lambda p: bool(element_text(p)))
        ]
        if paragraphs:
            return "\n".join(paragraphs)

        return self.resolver.resolve(SUMMARY_FINDINGS, root) or ""

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def scrape_current_page(
        self,
        include_images: bool = False,
        image_cap: Optional[int] = None,
        poll_timeout_s: Optional[float] = None
    ) -> StudyRecord:
        """
        Scrape the page the sandbox is currently showing.

        Args:
            include_images: Run the image handshake
            image_cap: Max images (defaults to the single-study cap)
            poll_timeout_s: Clip poll budget (defaults to the single-study timeout)

        Returns:
            A frozen StudyRecord

        Raises:
            NotAStudyPage: No study view container on the page
            SandboxError: The browser could not be read
        """
        cap = self.settings.single_image_cap if image_cap is None else image_cap
        timeout_s = self.settings.single_poll_timeout_s if poll_timeout_s is None else poll_timeout_s

        if include_images:
            # The clip poll settles before a snapshot failure propagates
            html, clips = await asyncio.gather(
                self.sandbox.page_source(),
                self.handshake.collect_clips(timeout_s),
                return_exceptions=True,
            )
            for result in (html, clips):
                if isinstance(result, BaseException):
                    raise result
        else:
            html, clips = await self.sandbox.page_source(), {}
        url = await self.sandbox.current_url()

        root = parse_html(html)
        if not has_study_markers(root, self.resolver):
            logger.warning(f"[SCRAPER] Not a study page: {url}")
            raise NotAStudyPage(url)

        view = detect_view(root, self.resolver)
        study_type = infer_study_type(self.resolver.resolve(STUDY_TITLE, root))
        patient_info = self._patient_info(root, view)
        measurements = self._measurements(root)
        conclusion = self._conclusion(root)

        images = ()
        if include_images:
            images = await self.handshake.images_from_clips(clips, url, cap)

        record = StudyRecord(
            study_type=study_type,
            patient_info=patient_info,
            measurements=measurements,
            conclusion=conclusion,
            images=images,
            source_url=url,
        )

        logger.info(
            f"[SCRAPER] {view.value} view | type={study_type.value} | date={patient_info.study_date} | "
            f"{len(measurements)} measurements | {len(images)} images"
        )
        return record
