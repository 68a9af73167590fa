"""
Longitudinal Orchestrator: One Patient, Many Studies, One Trend Report

State machine:

    IDLE -> LISTING -> CONFIRMING -> TYPE_SELECTION -> SCRAPING
         -> AGGREGATING -> SUBMITTING -> DONE

Any state before DONE may end in ABORTED with a reason:
- "no studies found"        the list page had no study links
- "user cancelled"          the operator declined the confirmation
- "no study type selected"  the operator gave no valid study type
- "no studies scraped"      every study failed
- the service's own message when report generation fails

A failing study is logged and skipped; it never stops the batch. Images are
only collected for the first study in list order (the most recent one on
UltraLinq's list), with the longitudinal cap and poll timeout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple
import asyncio
import logging

from .clients.report_client import ReportClient
from .config import Settings
from .errors import SandboxError, ScrapeFailure, ServiceError
from .sandbox.base import ExecutionSandbox
from .schemas import (
    NOT_AVAILABLE,
    UNKNOWN_HINT,
    AnalysisType,
    HistoryReport,
    PatientHistory,
    StudyRecord,
    StudyReference,
)
from .scraping.study_list import StudyListExtractor
from .scraping.study_scraper import StudyScraper

logger = logging.getLogger(__name__)

DEFAULT_PATIENT_NAME = "Patient"

ABORT_NO_STUDIES = "no studies found"
ABORT_CANCELLED = "user cancelled"
ABORT_NO_TYPE = "no study type selected"
ABORT_NOTHING_SCRAPED = "no studies scraped"


class RunState(str, Enum):
    IDLE = "idle"
    LISTING = "listing"
    CONFIRMING = "confirming"
    TYPE_SELECTION = "type_selection"
    SCRAPING = "scraping"
    AGGREGATING = "aggregating"
    SUBMITTING = "submitting"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class LongitudinalOutcome:
    """Terminal result of a run."""
    state: RunState
    reason: Optional[str] = None
    report: Optional[str] = None
    history: Optional[PatientHistory] = None
    history_report: Optional[HistoryReport] = None
    references: List[StudyReference] = field(default_factory=list)
    transitions: List[RunState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.DONE


class DecisionProvider(Protocol):
    """The two operator decisions a run needs."""

    def confirm(self, study_count: int) -> bool:
        ...

    def select_study_type(self, options: Sequence[AnalysisType]) -> Optional[AnalysisType]:
        ...


class ConsoleDecisions:
    """Asks the operator on stdin."""

    def __init__(self, input_fn: Callable[[str], str] = input):
        self._input = input_fn

    def confirm(self, study_count: int) -> bool:
        answer = self._input(
            f"\nFound {study_count} studies.\n"
            f"This will visit each study page, scrape measurements and conclusions,\n"
            f"collect images from the most recent study and request a longitudinal analysis.\n"
            f"This may take several minutes. Continue? [y/N] "
        )
        return answer.strip().lower() in ("y", "yes")

    def select_study_type(self, options: Sequence[AnalysisType]) -> Optional[AnalysisType]:
        menu = "\n".join(f"  {i}. {option.label}" for i, option in enumerate(options, start=1))
        answer = self._input(f"\nSelect study type for analysis:\n{menu}\nEnter number (1-{len(options)}): ")
        try:
            index = int(answer.strip())
        except ValueError:
            return None
        if 1 <= index <= len(options):
            return options[index - 1]
        return None


def aggregate(scraped: Sequence[Tuple[StudyReference, StudyRecord]]) -> List[StudyRecord]:
    """
    Copy scraped records for submission.

    A record whose study date could not be scraped takes the date hint from
    the study list row, when there is one.
    """
    records = []
    for reference, record in scraped:
        if record.patient_info.study_date == NOT_AVAILABLE and reference.date_hint != UNKNOWN_HINT:
            patient_info = record.patient_info.model_copy(update={"study_date": reference.date_hint})
            record = record.model_copy(update={"patient_info": patient_info})
        records.append(record)
    return records


def patient_name_for(records: Sequence[StudyRecord]) -> str:
    name = records[0].patient_info.name if records else NOT_AVAILABLE
    return DEFAULT_PATIENT_NAME if name == NOT_AVAILABLE else name


class LongitudinalOrchestrator:
    """
    Drives a longitudinal run from the patient's study list page.

    Usage:
        orchestrator = LongitudinalOrchestrator(sandbox, scraper, extractor, client,
                                                ConsoleDecisions(), settings)
        outcome = await orchestrator.run()
    """

    def __init__(
        self,
        sandbox: ExecutionSandbox,
        scraper: StudyScraper,
        extractor: StudyListExtractor,
        client: ReportClient,
        decisions: DecisionProvider,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.sandbox = sandbox
        self.scraper = scraper
        self.extractor = extractor
        self.client = client
        self.decisions = decisions
        self.settings = settings or Settings()
        self._sleep = sleep
        self._outcome = LongitudinalOutcome(state=RunState.IDLE, transitions=[RunState.IDLE])

    def _enter(self, state: RunState) -> None:
        logger.info(f"[LONGITUDINAL] {self._outcome.state.value} -> {state.value}")
        self._outcome.state = state
        self._outcome.transitions.append(state)

    def _abort(self, reason: str) -> LongitudinalOutcome:
        logger.warning(f"[LONGITUDINAL] Aborted: {reason}")
        self._enter(RunState.ABORTED)
        self._outcome.reason = reason
        return self._outcome

    async def _list_studies(self) -> List[StudyReference]:
        html = await self.sandbox.page_source()
        base_url = await self.sandbox.current_url()
        return self.extractor.extract(html, base_url)

    async def _scrape_one(self, index: int, reference: StudyReference) -> StudyRecord:
        await self.sandbox.navigate(reference.url)
        await self._sleep(self.settings.settle_delay_s)
        return await self.scraper.scrape_current_page(
            include_images=(index == 0),
            image_cap=self.settings.longitudinal_image_cap,
            poll_timeout_s=self.settings.longitudinal_poll_timeout_s,
        )

    async def _scrape_all(self, references: Sequence[StudyReference]) -> List[Tuple[StudyReference, StudyRecord]]:
        scraped = []
        total = len(references)
        for index, reference in enumerate(references):
            logger.info(f"[LONGITUDINAL] Scraping study {index + 1}/{total}: {reference.url}")
            try:
                record = await self._scrape_one(index, reference)
            except (ScrapeFailure, SandboxError) as e:
                logger.error(f"[LONGITUDINAL] Study {index + 1}/{total} failed: {e}")
                continue
            except Exception as e:
                # One bad study page never aborts the batch
                logger.error(f"[LONGITUDINAL] Study {index + 1}/{total} failed unexpectedly: {e}", exc_info=True)
                continue
            scraped.append((reference, record))
            logger.info(f"[LONGITUDINAL] Study {index + 1}/{total} scraped")

        logger.info(f"[LONGITUDINAL] Scraped {len(scraped)}/{total} studies")
        return scraped

    async def run(self) -> LongitudinalOutcome:
        """Run the whole batch. Never raises for operator or service outcomes."""
        self._outcome = LongitudinalOutcome(state=RunState.IDLE, transitions=[RunState.IDLE])

        self._enter(RunState.LISTING)
        references = await self._list_studies()
        self._outcome.references = list(references)
        if not references:
            return self._abort(ABORT_NO_STUDIES)

        self._enter(RunState.CONFIRMING)
        if not self.decisions.confirm(len(references)):
            return self._abort(ABORT_CANCELLED)

        self._enter(RunState.TYPE_SELECTION)
        study_type = self.decisions.select_study_type(tuple(AnalysisType))
        if study_type is None:
            return self._abort(ABORT_NO_TYPE)
        study_type = AnalysisType(study_type)

        self._enter(RunState.SCRAPING)
        scraped = await self._scrape_all(references)
        if not scraped:
            return self._abort(ABORT_NOTHING_SCRAPED)

        self._enter(RunState.AGGREGATING)
        # The page's own study date is read from the study itself; the list
        # row's date is a display hint and only fills in a missing date
        records = aggregate(scraped)
        history = PatientHistory(
            patient_name=patient_name_for(records),
            study_type=study_type,
            studies=tuple(records),
        )
        self._outcome.history = history

        self._enter(RunState.SUBMITTING)
        try:
            history_report = await self.client.analyze_history(history)
        except ServiceError as e:
            return self._abort(str(e))

        self._outcome.history_report = history_report
        self._outcome.report = history_report.report
        self._enter(RunState.DONE)
        logger.info(f"[LONGITUDINAL] Analysis complete: {len(records)} studies for {history.patient_name}")
        return self._outcome
