"""
Report Engine: Drafting Reports with Gemini

1. PROMPT: pick the study-type template and fill it with the scraped data
2. ATTACH: clip images go along as inline parts (multimodal)
3. GENERATE: the pro model when images are attached, flash otherwise

The google-genai client is synchronous, so calls run in the default executor
under an overall timeout.
"""

from typing import List, Optional, Sequence
import asyncio
import base64
import binascii
import logging

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..config import Settings
from ..errors import ReportGenerationError
from ..schemas import AnalysisType, DateRange, ImagePayload
from .models import HistoryRequest, ReportRequest
from .prompts import longitudinal_prompt, study_prompt

logger = logging.getLogger(__name__)


def _history_label(study_type: str) -> str:
    try:
        return AnalysisType(study_type).label
    except ValueError:
        return study_type or "Unknown"


class ReportEngine:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        if self.settings.gemini_api_key:
            self.client = genai.Client(api_key=self.settings.gemini_api_key)
        else:
            self.client = None
            logger.warning("[REPORT ENGINE] GEMINI_API_KEY is not set. Report generation will fail.")

    def model_for(self, has_images: bool) -> str:
        return self.settings.pro_model if has_images else self.settings.flash_model

    @staticmethod
    def _contents(prompt: str, images: Sequence[ImagePayload]) -> List:
        contents: List = [prompt]
        for image in images:
            try:
                data = base64.b64decode(image.encoded_data, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ReportGenerationError(f"Invalid image data: {e}") from e
            contents.append(types.Part.from_bytes(data=data, mime_type=image.media_type))
        return contents

    async def _generate(self, prompt: str, images: Sequence[ImagePayload]) -> str:
        if self.client is None:
            raise ReportGenerationError("GEMINI_API_KEY is not configured")

        model = self.model_for(bool(images))
        contents = self._contents(prompt, images)
        timeout_s = self.settings.generation_timeout_s
        logger.info(f"[REPORT ENGINE] Generating with {model} ({len(images)} images)")

        loop = asyncio.get_running_loop()
        try:
            response = await asyncio.wait_for(
                loop.run_in_executor(None, lambda: self.client.models.generate_content(
                    model=model,
                    contents=contents,
                    config=types.GenerateContentConfig(temperature=0.2)
                )),
                timeout=timeout_s
            )
        except asyncio.TimeoutError:
            logger.error(f"[REPORT ENGINE] Gemini call timed out after {timeout_s} seconds")
            raise ReportGenerationError(f"Gemini call timed out after {timeout_s} seconds")
        except genai_errors.APIError as e:
            logger.error(f"[REPORT ENGINE] Gemini error: {e}")
            raise ReportGenerationError(e.message or str(e)) from e

        text = (response.text or "").strip()
        if not text:
            raise ReportGenerationError("No text returned from Gemini model.")

        logger.info(f"[REPORT ENGINE] Generated {len(text)} chars")
        return text

    async def draft_study_report(self, request: ReportRequest) -> str:
        prompt = study_prompt(
            study_type=request.study_type,
            study_date=request.patient_info.study_date,
            measurements=request.measurements,
            conclusion=request.conclusion,
            has_images=bool(request.images),
        )
        return await self._generate(prompt, request.images)

    async def draft_history_report(self, request: HistoryRequest, date_range: DateRange) -> str:
        images = [image for study in request.studies for image in study.images]
        prompt = longitudinal_prompt(
            patient_name=request.patient_name,
            study_label=_history_label(request.study_type),
            studies=[
                {
                    "studyDate": study.patient_info.study_date,
                    "measurements": study.measurements,
                    "conclusion": study.conclusion,
                }
                for study in request.studies
            ],
            earliest=date_range.earliest,
            latest=date_range.latest,
            has_images=bool(images),
        )
        return await self._generate(prompt, images)
