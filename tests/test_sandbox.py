"""Tests for the browser sandbox: session capture, HTTP fetch, Selenium wrapper."""

import asyncio
from types import SimpleNamespace

import pytest
import requests
from selenium.common.exceptions import WebDriverException

from ultralinq_helper.errors import SandboxError
from ultralinq_helper.sandbox import http_fetcher
from ultralinq_helper.sandbox.http_fetcher import HttpFetchResult, fetch_bytes
from ultralinq_helper.sandbox.selenium_sandbox import SNAPSHOT_SCRIPT, SeleniumSandbox
from ultralinq_helper.sandbox.session_context import SessionContext


# ============================================================
# SessionContext
# ============================================================

class TestSessionContext:
    def test_from_webdriver_cookies(self):
        ctx = SessionContext.from_webdriver(
            "https://app.ultralinq.net/study/1",
            [{"name": "sid", "value": "abc", "domain": ".ultralinq.net"}, {"value": "orphan"}],
            user_agent="Chrome/120",
        )
        assert ctx.cookies == {"sid": "abc"}
        assert ctx.headers == {"Referer": "https://app.ultralinq.net/study/1"}
        assert ctx.is_valid()

    def test_cookie_header(self):
        ctx = SessionContext("https://x", cookies={"a": "1", "b": "2"})
        assert ctx.cookie_header() == "a=1; b=2"

    def test_repr_hides_cookie_values(self):
        ctx = SessionContext("https://x", cookies={"sid": "secret-token"})
        assert "secret-token" not in repr(ctx)

    def test_invalid_without_cookies(self):
        assert not SessionContext("https://x").is_valid()


# ============================================================
# fetch_bytes
# ============================================================

class _Response:
    def __init__(self, status=200, content=b"img", headers=None, url="https://x/clip.jpg"):
        self.status_code = status
        self.ok = 200 <= status < 400
        self.content = content
        self.headers = headers or {"Content-Type": "image/png; charset=binary"}
        self.url = url


class TestFetchBytes:
    def test_sends_cookies_and_user_agent(self, monkeypatch):
        seen = {}

        def fake_get(url, **kwargs):
            seen.update(kwargs)
            return _Response()

        monkeypatch.setattr(http_fetcher.requests, "get", fake_get)
        ctx = SessionContext("https://x", cookies={"sid": "abc"}, user_agent="Chrome/120")

        result = fetch_bytes(ctx, "https://x/clip.jpg", timeout_s=3.0)

        assert result.ok
        assert result.content == b"img"
        assert result.media_type == "image/png"
        assert seen["headers"]["User-Agent"] == "Chrome/120"
        assert seen["headers"]["Cookie"] == "sid=abc"
        assert seen["timeout"] == 3.0

    def test_http_error_status(self, monkeypatch):
        monkeypatch.setattr(http_fetcher.requests, "get", lambda url, **kw: _Response(status=403))
        result = fetch_bytes(SessionContext("https://x"), "https://x/clip.jpg")
        assert not result.ok
        assert result.error == "HTTP 403"

    def test_timeout_never_raises(self, monkeypatch):
        def fake_get(url, **kwargs):
            raise requests.exceptions.Timeout()

        monkeypatch.setattr(http_fetcher.requests, "get", fake_get)
        result = fetch_bytes(SessionContext("https://x"), "https://x/clip.jpg", timeout_s=0.5)
        assert not result.ok
        assert result.status == 0
        assert "Timeout" in result.error

    def test_media_type_default(self):
        result = HttpFetchResult(ok=True, status=200, headers={}, content=b"x")
        assert result.media_type == "image/jpeg"


# ============================================================
# SeleniumSandbox
# ============================================================

class FakeDriver:
    def __init__(self, frames=("frame-el",), fail_get=False, cookies=({"name": "sid", "value": "abc"},)):
        self.frames = list(frames)
        self.cookies = list(cookies)
        self.fail_get = fail_get
        self.current_url = "https://app.ultralinq.net/study/1"
        self.scripts = []
        self.switched = []
        self.quit_called = False
        self.switch_to = SimpleNamespace(
            frame=lambda el: self.switched.append(el),
            default_content=lambda: self.switched.append("default"),
        )

    def execute_script(self, script):
        self.scripts.append(script)
        if script == SNAPSHOT_SCRIPT:
            return "<html></html>"
        if "navigator.userAgent" in script:
            return "Chrome/120"
        return {"clip": {"furl": "/c.jpg"}}

    def find_elements(self, by, selector):
        return self.frames

    def get(self, url):
        if self.fail_get:
            raise WebDriverException("net::ERR_NAME_NOT_RESOLVED")
        self.current_url = url

    def get_cookies(self):
        return self.cookies

    def quit(self):
        self.quit_called = True


class TestSeleniumSandbox:
    def test_page_source_uses_snapshot_script(self):
        driver = FakeDriver()
        sandbox = SeleniumSandbox(driver)
        assert asyncio.run(sandbox.page_source()) == "<html></html>"
        assert driver.scripts == [SNAPSHOT_SCRIPT]
        sandbox.close()

    def test_evaluate_in_frame_switches_back(self):
        driver = FakeDriver()
        sandbox = SeleniumSandbox(driver)
        result = asyncio.run(sandbox.evaluate("return window.clips;", "#html5-embed"))
        assert result == {"clip": {"furl": "/c.jpg"}}
        assert driver.switched == ["frame-el", "default"]
        sandbox.close()

    def test_missing_frame(self):
        sandbox = SeleniumSandbox(FakeDriver(frames=()))
        with pytest.raises(SandboxError):
            asyncio.run(sandbox.evaluate("return 1;", "iframe"))
        sandbox.close()

    def test_webdriver_error_wrapped(self):
        sandbox = SeleniumSandbox(FakeDriver(fail_get=True))
        with pytest.raises(SandboxError, match="ERR_NAME_NOT_RESOLVED"):
            asyncio.run(sandbox.navigate("https://nowhere.invalid"))
        sandbox.close()

    def test_fetch_binary_uses_browser_session(self, monkeypatch):
        seen = {}

        def fake_fetch(ctx, url, timeout_s):
            seen["ctx"] = ctx
            return HttpFetchResult(ok=True, status=200, headers={}, content=b"x")

        monkeypatch.setattr("ultralinq_helper.sandbox.selenium_sandbox.fetch_bytes", fake_fetch)
        sandbox = SeleniumSandbox(FakeDriver())

        result = asyncio.run(sandbox.fetch_binary("https://app.ultralinq.net/c.jpg", 2.0))

        assert result.ok
        assert seen["ctx"].cookies == {"sid": "abc"}
        assert seen["ctx"].user_agent == "Chrome/120"
        sandbox.close()

    def test_fetch_binary_without_session_cookies(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "ultralinq_helper.sandbox.selenium_sandbox.fetch_bytes",
            lambda ctx, url, timeout_s: calls.append(url),
        )
        sandbox = SeleniumSandbox(FakeDriver(cookies=()))

        result = asyncio.run(sandbox.fetch_binary("https://app.ultralinq.net/c.jpg", 2.0))

        assert not result.ok
        assert result.error == "No browser session cookies"
        assert calls == []
        sandbox.close()

    def test_close_quits_driver(self):
        driver = FakeDriver()
        SeleniumSandbox(driver).close()
        assert driver.quit_called
