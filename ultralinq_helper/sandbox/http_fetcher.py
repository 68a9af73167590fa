"""
HTTP Fetcher: Clip Downloads Using the Browser's Session

UltraLinq serves clip stills only to the logged-in session, so each download
carries the cookies, Referer and User-Agent copied from the automated
browser. Nothing here raises: a refused, timed-out or non-2xx download comes
back as an HttpFetchResult with ok=False and the ImageHandshake drops it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional
import logging

import requests
from requests.structures import CaseInsensitiveDict

from .session_context import SessionContext

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "image/jpeg"
ACCEPT_IMAGES = "image/avif,image/webp,image/png,image/jpeg,image/*;q=0.8"


@dataclass(frozen=True)
class HttpFetchResult:
    """
    Outcome of one clip download.

    Attributes:
        ok: 2xx response with the body read
        status: HTTP status (0 when no response arrived)
        headers: Response headers
        content: Body bytes (empty on failure)
        error: Why the download failed
    """
    ok: bool
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    content: bytes = b""
    error: Optional[str] = None

    @property
    def content_type(self) -> Optional[str]:
        return CaseInsensitiveDict(self.headers).get("Content-Type")

    @property
    def media_type(self) -> str:
        """Content-Type without parameters, defaulting to JPEG."""
        raw = (self.content_type or "").split(";")[0].strip().lower()
        return raw or DEFAULT_MEDIA_TYPE

    @property
    def content_length(self) -> int:
        return len(self.content)

    @staticmethod
    def failure(error: str, status: int = 0) -> "HttpFetchResult":
        return HttpFetchResult(ok=False, status=status, error=error)

    @staticmethod
    def from_response(response: requests.Response) -> "HttpFetchResult":
        ok = bool(response.ok)
        return HttpFetchResult(
            ok=ok,
            status=int(response.status_code),
            headers=dict(response.headers.items()),
            content=(response.content or b"") if ok else b"",
            error=None if ok else f"HTTP {response.status_code}",
        )


def session_headers(ctx: SessionContext) -> CaseInsensitiveDict:
    """Request headers for a download made on behalf of the browser session."""
    headers = CaseInsensitiveDict(ctx.headers or {})
    headers.setdefault("Accept", ACCEPT_IMAGES)
    if ctx.user_agent:
        headers.setdefault("User-Agent", ctx.user_agent)
    # Also sent through the jar, which drops cookies whose domain it cannot
    # match against the clip host
    if ctx.cookies:
        headers.setdefault("Cookie", ctx.cookie_header())
    return headers


def fetch_bytes(
    ctx: SessionContext,
    url: str,
    timeout_s: float = 10.0,
    allow_redirects: bool = True
) -> HttpFetchResult:
    """
    Download one resource with the browser's credentials.

    Args:
        ctx: Cookies and headers captured from the WebDriver
        url: Absolute clip URL
        timeout_s: Hard timeout for connect and read
        allow_redirects: Follow redirects

    Returns:
        HttpFetchResult; never raises
    """
    logger.debug(f"[HTTP] Fetching clip: {url} ({len(ctx.cookies)} cookies)")

    try:
        response = requests.get(
            url,
            headers=session_headers(ctx),
            cookies=ctx.cookies,
            timeout=timeout_s,
            allow_redirects=allow_redirects,
        )
    except requests.exceptions.Timeout:
        logger.warning(f"[HTTP] Timeout after {timeout_s}s: {url}")
        return HttpFetchResult.failure(f"Timeout after {timeout_s}s")
    except requests.exceptions.RequestException as e:
        logger.warning(f"[HTTP] Request failed for {url}: {e}")
        return HttpFetchResult.failure(f"Request failed: {e}")

    result = HttpFetchResult.from_response(response)
    if result.ok:
        logger.debug(f"[HTTP] {result.status}: {result.content_length} bytes, {result.media_type}")
    else:
        logger.warning(f"[HTTP] Clip download refused ({result.status}): {url}")
    return result
