"""
Scraping Module: From Rendered UltraLinq Pages to StudyRecords

Components:
- SelectorRegistry: every DOM cue, with ordered fallback strategies
- FieldResolver: resolves logical fields over a page snapshot
- detect_view: which of Report / Worksheet / Clips & Stills is showing
- ImageHandshake: waits for the viewer's clips and downloads them
- StudyScraper: one page in, one StudyRecord out
- StudyListExtractor: study links plus row hints from a study list
"""

from .selectors import ULTRALINQ_SELECTORS, SelectorRegistry, SelectorRule, SelectorStrategy
from .resolver import FieldResolver, parse_html
from .views import ViewKind, classify, detect_view
from .images import ImageHandshake
from .study_scraper import StudyScraper, infer_study_type
from .study_list import StudyListExtractor

__all__ = [
    "ULTRALINQ_SELECTORS",
    "SelectorRegistry",
    "SelectorRule",
    "SelectorStrategy",
    "FieldResolver",
    "parse_html",
    "ViewKind",
    "classify",
    "detect_view",
    "ImageHandshake",
    "StudyScraper",
    "infer_study_type",
    "StudyListExtractor",
]
