"""
Session Context: The Logged-In Browser's Credentials, Borrowed

Clip stills are only served to the operator's UltraLinq session. Instead of
steering the browser to each image, the WebDriver's cookies and User-Agent
are copied into a SessionContext and the download goes over plain HTTP.

A context lives for a single clip download and is never written anywhere;
its repr shows counts, not cookie values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional


@dataclass(frozen=True)
class SessionContext:
    """
    Attributes:
        base_url: Page the cookies were read on (sent as Referer)
        cookies: name -> value
        headers: Extra request headers
        user_agent: The driver's navigator.userAgent
    """
    base_url: str
    cookies: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    user_agent: Optional[str] = None

    def cookie_header(self) -> str:
        """Cookie header value, e.g. "sid=abc; lang=en"."""
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items() if value is not None)

    @classmethod
    def from_webdriver(
        cls,
        base_url: str,
        cookies: Iterable[Dict[str, Any]],
        user_agent: Optional[str] = None
    ) -> "SessionContext":
        """
        Build a context from `driver.get_cookies()`.

        Selenium returns {"name", "value", "domain", ...} dicts; only the name
        and value are kept. Entries without a name are skipped.
        """
        jar = {cookie["name"]: cookie.get("value", "") for cookie in cookies if cookie.get("name")}
        return cls(
            base_url=base_url,
            cookies=jar,
            headers={"Referer": base_url} if base_url else {},
            user_agent=user_agent,
        )

    def is_valid(self) -> bool:
        """A page URL and at least one cookie."""
        return bool(self.base_url and self.cookies)

    def __repr__(self) -> str:
        return f"SessionContext(base_url={self.base_url!r}, cookies={len(self.cookies)}, headers={len(self.headers)})"
