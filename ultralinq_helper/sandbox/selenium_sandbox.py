"""
Selenium Sandbox: The Automated Browser the Operator Logs Into

DESIGN GOALS:
- The operator logs in by hand in a visible Chrome window; we never touch
  credentials
- All WebDriver calls run on one dedicated worker thread so a frame switch
  can never interleave with a page snapshot
- Clip images are downloaded over plain HTTP with the browser's cookies,
  never by navigating the browser away from the study

USAGE:
    driver = make_driver(headless=False)
    sandbox = SeleniumSandbox(driver)
    html = await sandbox.page_source()
    ...
    sandbox.close()
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Optional
import asyncio
import logging

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By

from ..errors import SandboxError
from .http_fetcher import HttpFetchResult, fetch_bytes
from .session_context import SessionContext

logger = logging.getLogger(__name__)

# Copies what the user sees in form controls into an attribute, so the HTML
# snapshot carries typed-in worksheet values and findings text.
SNAPSHOT_SCRIPT = """
document.querySelectorAll('input, textarea, select').forEach(function (el) {
    el.setAttribute('data-live-value', el.value == null ? '' : String(el.value));
});
return document.documentElement.outerHTML;
"""


def make_driver(headless: bool = False, page_load_timeout_s: int = 30) -> webdriver.Chrome:
    """
    Create a Chrome WebDriver for the study viewer.

    Args:
        headless: Run without a window (only useful with an existing session)
        page_load_timeout_s: Timeout for driver.get()

    Returns:
        Configured Chrome WebDriver instance
    """
    opts = Options()
    if headless:
        opts.add_argument("--headless=new")
    opts.add_argument("--no-sandbox")
    opts.add_argument("--disable-dev-shm-usage")
    opts.add_argument("--window-size=1920,1080")

    driver = webdriver.Chrome(options=opts)
    driver.set_page_load_timeout(page_load_timeout_s)
    return driver


class SeleniumSandbox:
    """ExecutionSandbox backed by a Selenium WebDriver."""

    def __init__(self, driver: webdriver.Remote):
        self.driver = driver
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="webdriver")

    async def _run(self, fn: Callable[..., Any], *args) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, partial(fn, *args))
        except WebDriverException as e:
            raise SandboxError(f"WebDriver error: {e.msg or e}") from e

    async def page_source(self) -> str:
        return await self._run(self.driver.execute_script, SNAPSHOT_SCRIPT)

    async def current_url(self) -> str:
        return await self._run(lambda: self.driver.current_url)

    async def navigate(self, url: str) -> None:
        logger.info(f"[SELENIUM] Navigating to: {url}")
        await self._run(self.driver.get, url)

    def _evaluate_sync(self, script: str, frame_selector: Optional[str]) -> Any:
        if frame_selector is None:
            return self.driver.execute_script(script)

        frames = self.driver.find_elements(By.CSS_SELECTOR, frame_selector)
        if not frames:
            raise SandboxError(f"Frame not found: {frame_selector}")

        self.driver.switch_to.frame(frames[0])
        try:
            return self.driver.execute_script(script)
        finally:
            self.driver.switch_to.default_content()

    async def evaluate(self, script: str, frame_selector: Optional[str] = None) -> Any:
        return await self._run(self._evaluate_sync, script, frame_selector)

    def _session_context(self) -> SessionContext:
        user_agent = self.driver.execute_script("return navigator.userAgent;")
        return SessionContext.from_webdriver(
            base_url=self.driver.current_url,
            cookies=self.driver.get_cookies(),
            user_agent=user_agent,
        )

    async def fetch_binary(self, url: str, timeout_s: float) -> HttpFetchResult:
        try:
            ctx = await self._run(self._session_context)
        except SandboxError as e:
            return HttpFetchResult.failure(str(e))
        if not ctx.is_valid():
            logger.warning(f"[SELENIUM] No session cookies on {ctx.base_url}, skipping {url}")
            return HttpFetchResult.failure("No browser session cookies")

        # Plain HTTP runs on the default pool, leaving the driver thread free
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fetch_bytes, ctx, url, timeout_s))

    def close(self) -> None:
        """Quit the browser and stop the driver thread."""
        try:
            self.driver.quit()
        except WebDriverException as e:
            logger.warning(f"[SELENIUM] Error while quitting driver: {e}")
        finally:
            self._executor.shutdown(wait=False)
            logger.info("[SELENIUM] Browser closed")
