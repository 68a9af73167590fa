"""
View Classifier: Which UltraLinq Layout Is Showing

UltraLinq renders a study in one of three mutually exclusive tabs. The
selected tab's label decides which selectors the scraper prefers. An
unrecognized label is a normal outcome: the scraper then runs a best-effort
extraction over every known layout instead of failing.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional
import logging

from bs4 import Tag

from ..errors import FieldNotFound
from .resolver import FieldResolver
from .selectors import SELECTED_TAB, TAB_LABELS, VIEW_MARKERS

logger = logging.getLogger(__name__)


class ViewKind(str, Enum):
    REPORT = "report"
    WORKSHEET = "worksheet"
    CLIPS_AND_STILLS = "clips_and_stills"
    UNRECOGNIZED = "unrecognized"


def classify(tab_label: Optional[str]) -> ViewKind:
    """Map the selected tab's label to a view. Pure string match."""
    if not tab_label or not tab_label.strip():
        return ViewKind.UNRECOGNIZED

    if TAB_LABELS["report"] in tab_label:
        return ViewKind.REPORT
    if TAB_LABELS["worksheet"] in tab_label:
        return ViewKind.WORKSHEET
    if TAB_LABELS["clips_and_stills"] in tab_label:
        return ViewKind.CLIPS_AND_STILLS
    return ViewKind.UNRECOGNIZED


def detect_view(root: Tag, resolver: FieldResolver) -> ViewKind:
    """Classify the view of a parsed page from its selected tab."""
    try:
        label = resolver.require(SELECTED_TAB, root)
    except FieldNotFound:
        logger.info("[VIEW] No selected tab found, using generic extraction")
        return ViewKind.UNRECOGNIZED

    view = classify(label)
    if view is ViewKind.UNRECOGNIZED:
        logger.info(f"[VIEW] Unrecognized tab label '{label}', using generic extraction")
    else:
        logger.debug(f"[VIEW] Active view: {view.value}")
    return view


def has_study_markers(root: Tag, resolver: FieldResolver) -> bool:
    """True when any study view container is present on the page."""
    return resolver.exists(VIEW_MARKERS, root)
