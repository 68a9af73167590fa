"""
Image Handshake: Getting Clip Binaries out of the Clips & Stills Viewer

The viewer lives in a cross-origin frame and fills a global `clips` object
(clip id -> {furl | b64, ...}) whenever its scripts get around to it. There
is no event to wait on, so we poll every `poll_interval_s` until the object is
non-empty, inside an overall `asyncio.wait_for` budget. Running out of budget
is a soft deadline: the scrape continues with no images.

Once clips are known, each one becomes an ImagePayload. Inline base64 clips
are used as-is; URL clips are downloaded with the page's cookies. A failed
download drops that one image and is never retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin
import asyncio
import base64
import json
import logging

from ..errors import ImageFetchFailure, SandboxError
from ..sandbox.base import ExecutionSandbox
from ..sandbox.http_fetcher import DEFAULT_MEDIA_TYPE
from ..schemas import ImagePayload
from .resolver import FieldResolver
from .selectors import CLIP_BASE64_KEY, CLIP_MIME_KEY, CLIP_URL_KEY, CLIPS_FRAME

logger = logging.getLogger(__name__)

# Script body run in the top window and in each viewer frame
CLIPS_SCRIPT = """
var clips = window.clips;
if (!clips || typeof clips !== 'object' || Object.keys(clips).length === 0) {
    return null;
}
return JSON.stringify(clips);
"""


@dataclass(frozen=True)
class ClipSource:
    """One clip as discovered: either a URL to fetch or inline base64 data."""
    clip_id: str
    url: Optional[str] = None
    encoded_data: Optional[str] = None
    media_type: Optional[str] = None


def _decode_clips(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"[IMAGES] Could not parse clips collection: {e}")
            return {}
    if isinstance(raw, dict):
        return raw
    return {}


def _strip_data_url(data: str) -> Tuple[str, Optional[str]]:
    """Split 'data:image/png;base64,AAAA' into ('AAAA', 'image/png')."""
    if data.startswith("data:") and "," in data:
        header, payload = data.split(",", 1)
        media_type = header[5:].split(";")[0] or None
        return payload, media_type
    return data, None


def clip_sources(clips: Dict[str, Any], base_url: str) -> List[ClipSource]:
    """
    Turn the raw clips collection into ClipSources, in discovery order.

    URLs are made absolute against the page URL and deduplicated.
    """
    sources: List[ClipSource] = []
    seen_urls = set()

    for clip_id, clip in clips.items():
        if not isinstance(clip, dict):
            continue

        mime = clip.get(CLIP_MIME_KEY)
        mime = mime.strip() if isinstance(mime, str) and mime.strip() else None

        inline = clip.get(CLIP_BASE64_KEY)
        if isinstance(inline, str) and inline:
            payload, media_type = _strip_data_url(inline)
            sources.append(ClipSource(
                clip_id=str(clip_id),
                encoded_data=payload,
                media_type=mime or media_type,
            ))
            continue

        furl = clip.get(CLIP_URL_KEY)
        if isinstance(furl, str) and furl:
            url = urljoin(base_url, furl)
            if url in seen_urls:
                continue
            seen_urls.add(url)
            sources.append(ClipSource(clip_id=str(clip_id), url=url, media_type=mime))

    return sources


class ImageHandshake:
    """
    Polls for the clips collection and converts clips into ImagePayloads.

    Usage:
        handshake = ImageHandshake(sandbox)
        clips = await handshake.collect_clips(timeout_s=7.0)
        images = await handshake.images_from_clips(clips, page_url, cap=60)
    """

    def __init__(
        self,
        sandbox: ExecutionSandbox,
        resolver: Optional[FieldResolver] = None,
        poll_interval_s: float = 0.3,
        fetch_timeout_s: float = 10.0
    ):
        self.sandbox = sandbox
        self.resolver = resolver or FieldResolver()
        self.poll_interval_s = poll_interval_s
        self.fetch_timeout_s = fetch_timeout_s

    def _frame_selectors(self) -> List[Optional[str]]:
        frames = [s.element for s in self.resolver.registry.strategies(CLIPS_FRAME)]
        return [None] + frames

    async def _read_clips_once(self) -> Dict[str, Any]:
        for frame in self._frame_selectors():
            try:
                raw = await self.sandbox.evaluate(CLIPS_SCRIPT, frame)
            except SandboxError as e:
                logger.debug(f"[IMAGES] Clip read failed in {frame or 'top window'}: {e}")
                continue
            clips = _decode_clips(raw)
            if clips:
                logger.debug(f"[IMAGES] Found {len(clips)} clips in {frame or 'top window'}")
                return clips
        return {}

    async def _poll(self) -> Dict[str, Any]:
        attempts = 0
        while True:
            attempts += 1
            clips = await self._read_clips_once()
            if clips:
                logger.info(f"[IMAGES] Clips collection ready after {attempts} poll(s): {len(clips)} clips")
                return clips
            await asyncio.sleep(self.poll_interval_s)

    async def collect_clips(self, timeout_s: float) -> Dict[str, Any]:
        """
        Wait for the viewer's clips collection.

        Returns:
            The collection, or {} if it did not populate within timeout_s
        """
        try:
            return await asyncio.wait_for(self._poll(), timeout=timeout_s)
        except asyncio.TimeoutError:
            logger.warning(f"[IMAGES] Clips collection not populated after {timeout_s}s, continuing without images")
            return {}

    async def _materialize(self, source: ClipSource) -> ImagePayload:
        if source.encoded_data is not None:
            return ImagePayload(
                encoded_data=source.encoded_data,
                media_type=source.media_type or DEFAULT_MEDIA_TYPE,
            )

        try:
            result = await asyncio.wait_for(
                self.sandbox.fetch_binary(source.url, self.fetch_timeout_s),
                timeout=self.fetch_timeout_s,
            )
        except asyncio.TimeoutError:
            raise ImageFetchFailure(source.url, f"timed out after {self.fetch_timeout_s}s")

        if not result.ok:
            raise ImageFetchFailure(source.url, result.error or f"HTTP {result.status}")
        if not result.content:
            raise ImageFetchFailure(source.url, "empty response body")

        return ImagePayload(
            encoded_data=base64.b64encode(result.content).decode("ascii"),
            media_type=source.media_type or result.media_type,
        )

    async def fetch_images(self, sources: List[ClipSource], cap: int) -> Tuple[ImagePayload, ...]:
        """
        Materialize at most `cap` clips, sequentially, in discovery order.
        Failed clips are dropped.
        """
        selected = sources[:max(cap, 0)]
        images: List[ImagePayload] = []

        for source in selected:
            try:
                images.append(await self._materialize(source))
            except ImageFetchFailure as e:
                logger.warning(f"[IMAGES] Dropped clip {source.clip_id}: {e}")

        logger.info(f"[IMAGES] Converted {len(images)}/{len(selected)} clips "
                    f"({len(sources)} discovered, cap {cap})")
        return tuple(images)

    async def images_from_clips(self, clips: Dict[str, Any], base_url: str, cap: int) -> Tuple[ImagePayload, ...]:
        return await self.fetch_images(clip_sources(clips, base_url), cap)
