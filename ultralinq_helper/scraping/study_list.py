"""
Study-List Extractor

Scans a patient's study list for links to individual studies and attaches
whatever date and type hints sit in the same row. Hints are best effort;
the scraped study page is authoritative.
"""

from __future__ import annotations

from typing import Dict, List, Optional
from urllib.parse import urljoin
import logging

from bs4 import Tag

from ..schemas import UNKNOWN_HINT, StudyReference
from .resolver import FieldResolver, element_text, parse_html
from .selectors import (
    DATE_PATTERN,
    STUDY_LINK,
    STUDY_LIST_TYPE_KEYWORDS,
    STUDY_ROW_CELLS,
    STUDY_ROW_CONTAINERS,
    STUDY_URL_PATTERN,
)

logger = logging.getLogger(__name__)


def _matches_container(el: Tag) -> bool:
    for selector in STUDY_ROW_CONTAINERS:
        if selector.startswith("."):
            if selector[1:] in (el.get("class") or []):
                return True
        elif el.name == selector:
            return True
    return False


def _row_container(link: Tag) -> Optional[Tag]:
    """Closest enclosing study row, else the link's parent."""
    for ancestor in link.parents:
        if isinstance(ancestor, Tag) and _matches_container(ancestor):
            return ancestor
    return link.parent


def _row_hints(container: Optional[Tag]):
    date_hint = UNKNOWN_HINT
    type_hint = UNKNOWN_HINT
    if container is None:
        return date_hint, type_hint

    for cell in container.select(STUDY_ROW_CELLS):
        text = element_text(cell)
        if not text:
            continue
        dates = DATE_PATTERN.findall(text)
        if dates:
            date_hint = dates[-1]
        if any(keyword in text for keyword in STUDY_LIST_TYPE_KEYWORDS):
            type_hint = text
    return date_hint, type_hint


class StudyListExtractor:
    """
    Usage:
        refs = StudyListExtractor().extract(html, base_url=current_url)
    """

    def __init__(self, resolver: Optional[FieldResolver] = None):
        self.resolver = resolver or FieldResolver()

    def extract(self, html: str, base_url: str) -> List[StudyReference]:
        """
        Find study links on a list page.

        Returns:
            References in first-seen order, one per distinct URL. When a URL
            appears more than once, the hints of its last occurrence win.
        """
        root = parse_html(html)
        found: Dict[str, StudyReference] = {}

        for link in self.resolver.elements(STUDY_LINK, root):
            url = urljoin(base_url, link.get("href", ""))
            if not STUDY_URL_PATTERN.search(url):
                continue

            date_hint, type_hint = _row_hints(_row_container(link))
            # Re-assigning an existing key keeps its original position
            found[url] = StudyReference(url=url, date_hint=date_hint, type_hint=type_hint)

        refs = list(found.values())
        logger.info(f"[STUDY LIST] Found {len(refs)} studies")
        return refs
