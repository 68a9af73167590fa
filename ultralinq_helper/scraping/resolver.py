"""
Field Resolver: Ordered Fallback Lookups over a Page Snapshot

Given the SelectorRegistry and a parsed page, resolves a logical field to a
string by trying its strategies in declared order. The first non-empty value
wins; when every strategy comes up empty the field is absent (None) and the
caller renders the NOT_AVAILABLE sentinel. Nothing in here raises for a
missing element except `require()`, which is opt-in.

Pages are BeautifulSoup trees built from the sandbox snapshot. The snapshot
copies live form values into a `data-live-value` attribute, which takes
precedence over the server-rendered `value` attribute.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional
import logging

from bs4 import BeautifulSoup, Tag

from ..errors import FieldNotFound
from ..schemas import NOT_AVAILABLE
from .selectors import ULTRALINQ_SELECTORS, SelectorRegistry, SelectorStrategy

logger = logging.getLogger(__name__)

LIVE_VALUE_ATTR = "data-live-value"


def parse_html(html: str) -> BeautifulSoup:
    """Parse a page snapshot."""
    return BeautifulSoup(html or "", "html.parser")


def element_text(el: Optional[Tag]) -> str:
    """Visible text of an element, whitespace collapsed per line."""
    if el is None:
        return ""
    lines = (" ".join(line.split()) for line in el.get_text().splitlines())
    return "\n".join(line for line in lines if line)


def element_value(el: Optional[Tag]) -> str:
    """
    The value a user would see in an element.

    Form controls report their value; everything else reports its text.
    """
    if el is None:
        return ""

    live = el.get(LIVE_VALUE_ATTR)
    if live is not None:
        return str(live).strip()

    if el.name == "input":
        return str(el.get("value") or "").strip()
    if el.name == "textarea":
        return el.get_text().strip()
    if el.name == "select":
        option = el.select_one("option[selected]") or el.select_one("option")
        return element_text(option)
    return element_text(el)


class FieldResolver:
    """
    Resolves logical fields against a page using the registry's strategies.

    Usage:
        resolver = FieldResolver()
        root = parse_html(html)
        dob = resolver.resolve_or_default("patient.header.dob", root)
    """

    def __init__(self, registry: SelectorRegistry = ULTRALINQ_SELECTORS):
        self.registry = registry

    def _scope(self, strategy: SelectorStrategy, root: Tag) -> Optional[Tag]:
        if strategy.scope is None:
            return root
        return root.select_one(strategy.scope)

    def _apply(self, strategy: SelectorStrategy, root: Tag) -> Optional[str]:
        scope = self._scope(strategy, root)
        if scope is None:
            return None

        candidates = scope.select(strategy.element)
        if not candidates:
            return None

        if strategy.label is None:
            return element_value(candidates[0]) or None

        for candidate in candidates:
            if element_text(candidate).startswith(strategy.label):
                value = element_value(candidate.find_next_sibling())
                if value:
                    return value
        return None

    def resolve(self, field: str, root: Tag) -> Optional[str]:
        """
        Resolve a field to its first non-empty value.

        Args:
            field: Logical field name (unknown names raise KeyError)
            root: Parsed page

        Returns:
            The value, or None when every strategy failed
        """
        for index, strategy in enumerate(self.registry.strategies(field)):
            value = self._apply(strategy, root)
            if value:
                if index > 0:
                    logger.debug(f"[RESOLVER] {field}: fallback strategy #{index + 1} matched")
                return value
        logger.debug(f"[RESOLVER] {field}: no strategy matched")
        return None

    def resolve_any(self, fields: Iterable[str], root: Tag) -> Optional[str]:
        """Resolve several fields in order and return the first hit."""
        for field in fields:
            value = self.resolve(field, root)
            if value:
                return value
        return None

    def resolve_or_default(self, fields, root: Tag, default: str = NOT_AVAILABLE) -> str:
        if isinstance(fields, str):
            fields = (fields,)
        return self.resolve_any(fields, root) or default

    def require(self, field: str, root: Tag) -> str:
        """Like resolve(), but raises FieldNotFound when absent."""
        value = self.resolve(field, root)
        if value is None:
            raise FieldNotFound(field)
        return value

    def elements(
        self,
        field: str,
        root: Tag,
        predicate: Optional[Callable[[Tag], bool]] = None
    ) -> List[Tag]:
        """
        All candidates of the first strategy that matches anything.

        With a predicate, a strategy only counts as matching when at least one
        of its candidates passes the predicate, and only those are returned.
        """
        for strategy in self.registry.strategies(field):
            scope = self._scope(strategy, root)
            if scope is None:
                continue
            found = scope.select(strategy.element)
            if predicate is not None:
                found = [el for el in found if predicate(el)]
            if found:
                return found
        return []

    def exists(self, field: str, root: Tag) -> bool:
        return bool(self.elements(field, root))
