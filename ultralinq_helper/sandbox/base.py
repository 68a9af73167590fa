"""
The execution sandbox boundary.

Everything the scraper needs from a browser fits in five calls: read the
rendered page, read its URL, navigate, run a snippet (optionally inside an
embedded frame) and download a binary with the page's credentials. Any
driver that can do these is an acceptable sandbox; SeleniumSandbox is the
one shipped here.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from .http_fetcher import HttpFetchResult


class ExecutionSandbox(Protocol):

    async def page_source(self) -> str:
        """HTML of the top document, with live form values captured."""
        ...

    async def current_url(self) -> str:
        ...

    async def navigate(self, url: str) -> None:
        """Load a URL and return once the document has loaded."""
        ...

    async def evaluate(self, script: str, frame_selector: Optional[str] = None) -> Any:
        """
        Run a script body (which must `return` its result) in the top window
        or inside the first frame matching `frame_selector`.

        Raises SandboxError when the frame does not exist or the script fails.
        """
        ...

    async def fetch_binary(self, url: str, timeout_s: float) -> HttpFetchResult:
        """Download a resource with the page's cookies. Never raises."""
        ...
