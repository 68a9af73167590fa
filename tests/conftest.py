"""Shared fakes and page fixtures."""

import json
from typing import Dict, List, Optional

import pytest

from ultralinq_helper.config import Settings
from ultralinq_helper.errors import SandboxError
from ultralinq_helper.sandbox.http_fetcher import HttpFetchResult
from ultralinq_helper.schemas import AnalysisType

BASE = "https://app.ultralinq.net"

CAROTID_WORKSHEET = """
<html><body>
<div id="studytabs">
  <ul class="yui-nav">
    <li><a href="#r">Report</a></li>
    <li class="selected"><a href="#w"><em>Worksheet</em></a></li>
    <li><a href="#c">Clips &amp; Stills</a></li>
  </ul>
</div>
<div id="studyinfo">
  <h1>DOE, JANE</h1>
  <table><tr>
    <td class="lab">DOB:</td><td>01/02/1950</td>
    <td class="lab">Study Date:</td><td>03/04/2024</td>
  </tr></table>
</div>
<a id="studyTypeLink">Carotid Duplex Bilateral</a>
<div id="worksheet2content">
  <table>
    <tr><td class="k">R ICA PSV:</td><td class="val"><input type="text" value="80" data-live-value="85"><span class="units">cm/s</span></td></tr>
    <tr><td class="k">R ICA EDV:</td><td class="val"><input type="text" value="" data-live-value=""><span class="units">cm/s</span></td></tr>
    <tr><td class="k">L ICA PSV:</td><td class="val"><input type="text" value="120"><span class="units">cm/s</span></td></tr>
    <tr><td class="k">Plaque:</td><td class="val"><input value="Mild"></td></tr>
    <tr><td>Notes</td><td>no input here</td></tr>
  </table>
  <fieldset>
    <legend>Conclusions</legend>
    <textarea class="findingta" data-live-value="Mild right ICA stenosis.">stale text</textarea>
  </fieldset>
</div>
</body></html>
"""

AORTA_REPORT = """
<html><body>
<div id="studytabs">
  <ul class="yui-nav"><li class="selected"><a>Report</a></li><li><a>Worksheet</a></li></ul>
</div>
<div id="studyinfo"><h1>HEADER NAME</h1></div>
<div id="report2">
  <div class="h0">Aorta Ultrasound</div>
  <table id="report2table">
    <tr><td class="k">Patient Name:</td><td>SMITH, JOHN</td></tr>
    <tr><td class="k">DOB:</td><td>05/06/1945</td></tr>
    <tr><td class="k">Date of Service:</td><td>07/08/2023</td></tr>
    <tr><td colspan="2">
      <table class="includeauto">
        <tr><td class="k">Prox Aorta</td><td>2.1</td><td>cm</td></tr>
        <tr><td class="k">Mid Aorta</td><td>3.4</td><td>cm</td></tr>
        <tr><td>Note</td><td>ignored</td></tr>
      </table>
    </td></tr>
    <tr><td class="conclusionsv"><p class="rp">Aneurysmal mid aorta.</p><p class="rp">Follow-up in 6 months.</p></td></tr>
  </table>
</div>
</body></html>
"""

# Study info bar without a study date, no tabs
VENOUS_NO_DATE = """
<html><body>
<div id="studyinfo"><h1>DOE, JANE</h1></div>
<span class="study-title">Venous Duplex Left</span>
<div id="worksheet2content">
  <table>
    <tr><td class="k">CFV:</td><td class="val"><input type="text" value="Compressible"></td></tr>
  </table>
  <fieldset><legend>Summary</legend><textarea>No DVT.</textarea></fieldset>
</div>
</body></html>
"""

LOGIN_PAGE = "<html><body><form><input name='user'></form></body></html>"

STUDY_LIST = """
<html><body>
<table>
  <tr><td>01/15/2024</td><td>Carotid Duplex</td><td><a href="/study/100">Open</a></td></tr>
  <tr><td>06/20/2023</td><td>Aorta Screening</td><td><a href="/study/200">Open</a></td></tr>
  <tr><td>02/01/2024</td><td>Venous Reflux</td><td><a href="/study/100">Open again</a></td></tr>
  <tr><td><a href="/help">Help</a></td></tr>
</table>
</body></html>
"""


class FakeSandbox:
    """
    In-memory ExecutionSandbox.

    pages maps URL -> HTML (unknown URLs render an empty document). The
    clips collection appears in `clip_frame` once `clips_after_polls`
    evaluations have happened; frames not listed in `frames` raise.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        url: str = f"{BASE}/study/1",
        clips: Optional[dict] = None,
        clip_frame: Optional[str] = "#html5-embed",
        clips_after_polls: int = 0,
        frames=("#html5-embed",),
        binaries: Optional[Dict[str, HttpFetchResult]] = None,
        broken_urls=(),
    ):
        self.pages = dict(pages or {})
        self.url = url
        self.clips = clips or {}
        self.clip_frame = clip_frame
        self.clips_after_polls = clips_after_polls
        self.frames = set(frames)
        self.binaries = dict(binaries or {})
        self.broken_urls = set(broken_urls)
        self.navigated: List[str] = []
        self.fetched: List[str] = []
        self.polls = 0

    async def page_source(self) -> str:
        if self.url in self.broken_urls:
            raise SandboxError(f"Page crashed: {self.url}")
        return self.pages.get(self.url, "<html><body></body></html>")

    async def current_url(self) -> str:
        return self.url

    async def navigate(self, url: str) -> None:
        self.navigated.append(url)
        self.url = url

    async def evaluate(self, script: str, frame_selector: Optional[str] = None):
        if frame_selector is not None and frame_selector not in self.frames:
            raise SandboxError(f"Frame not found: {frame_selector}")
        if frame_selector == self.clip_frame:
            self.polls += 1
            if self.clips and self.polls > self.clips_after_polls:
                return json.dumps(self.clips)
        return None

    async def fetch_binary(self, url: str, timeout_s: float) -> HttpFetchResult:
        self.fetched.append(url)
        return self.binaries.get(url) or HttpFetchResult.failure("HTTP 404", status=404)


class ScriptedDecisions:
    """DecisionProvider with fixed answers that records what it was asked."""

    def __init__(self, confirm: bool = True, study_type: Optional[AnalysisType] = AnalysisType.CAROTID):
        self._confirm = confirm
        self._study_type = study_type
        self.confirm_calls: List[int] = []
        self.type_options = None

    def confirm(self, study_count: int) -> bool:
        self.confirm_calls.append(study_count)
        return self._confirm

    def select_study_type(self, options):
        self.type_options = tuple(options)
        return self._study_type


def image_result(content: bytes = b"\xff\xd8jpeg", content_type: str = "image/jpeg") -> HttpFetchResult:
    return HttpFetchResult(ok=True, status=200, headers={"Content-Type": content_type}, content=content)


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with short timeouts so polling tests finish quickly."""
    return Settings(
        single_poll_timeout_s=0.3,
        longitudinal_poll_timeout_s=0.3,
        poll_interval_s=0.01,
        image_fetch_timeout_s=1.0,
        settle_delay_s=0.0,
    )
