"""
Configuration for the scraper, the orchestrator and the report service.

Values come from environment variables. A `.env` file in the project root is
loaded first so local setups only need to edit that file.

Single-study and longitudinal runs keep their own image caps and poll
timeouts (60 / 7s and 15 / 5s).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent.parent


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings.

    Attributes:
        service_url: Base URL of the report-generation service
        service_timeout_s: Timeout for report-generation requests (Gemini is slow)
        port: Port the report service listens on
        gemini_api_key: API key for Google GenAI (service side only)
        flash_model: Model used when no images are attached
        pro_model: Model used for multimodal requests
        generation_timeout_s: Timeout for a single Gemini call
        single_image_cap: Max images for a single-study run
        longitudinal_image_cap: Max images for the most recent study of a batch
        single_poll_timeout_s: Clip-collection poll budget, single-study run
        longitudinal_poll_timeout_s: Clip-collection poll budget, batch run
        poll_interval_s: Delay between clip-collection polls
        image_fetch_timeout_s: Hard timeout per image download
        settle_delay_s: Wait after each navigation before scraping
        report_dir: Where audit reports are written
        log_dir: Where log files are written
    """
    service_url: str = "http://localhost:3000"
    service_timeout_s: float = 180.0
    port: int = 3000

    gemini_api_key: Optional[str] = None
    flash_model: str = "gemini-2.5-flash"
    pro_model: str = "gemini-2.5-pro"
    generation_timeout_s: float = 120.0

    single_image_cap: int = 60
    longitudinal_image_cap: int = 15
    single_poll_timeout_s: float = 7.0
    longitudinal_poll_timeout_s: float = 5.0
    poll_interval_s: float = 0.3
    image_fetch_timeout_s: float = 10.0
    settle_delay_s: float = 4.0

    report_dir: Path = Path(".")
    log_dir: Path = Path(".")

    @staticmethod
    def from_env(env_file: Optional[Path] = None) -> "Settings":
        """Load `.env` (if present) and build Settings from the environment."""
        load_dotenv(env_file or PROJECT_ROOT / ".env", override=False)
        defaults = Settings()
        return Settings(
            service_url=os.getenv("ULTRALINQ_SERVICE_URL", defaults.service_url).rstrip("/"),
            service_timeout_s=_env_float("ULTRALINQ_SERVICE_TIMEOUT", defaults.service_timeout_s),
            port=_env_int("PORT", defaults.port),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            flash_model=os.getenv("GEMINI_FLASH_MODEL", defaults.flash_model),
            pro_model=os.getenv("GEMINI_PRO_MODEL", defaults.pro_model),
            generation_timeout_s=_env_float("GEMINI_TIMEOUT", defaults.generation_timeout_s),
            single_image_cap=_env_int("SINGLE_IMAGE_CAP", defaults.single_image_cap),
            longitudinal_image_cap=_env_int("LONGITUDINAL_IMAGE_CAP", defaults.longitudinal_image_cap),
            single_poll_timeout_s=_env_float("SINGLE_POLL_TIMEOUT", defaults.single_poll_timeout_s),
            longitudinal_poll_timeout_s=_env_float(
                "LONGITUDINAL_POLL_TIMEOUT", defaults.longitudinal_poll_timeout_s
            ),
            poll_interval_s=_env_float("CLIP_POLL_INTERVAL", defaults.poll_interval_s),
            image_fetch_timeout_s=_env_float("IMAGE_FETCH_TIMEOUT", defaults.image_fetch_timeout_s),
            settle_delay_s=_env_float("SETTLE_DELAY", defaults.settle_delay_s),
            report_dir=Path(os.getenv("REPORT_DIR", str(defaults.report_dir))),
            log_dir=Path(os.getenv("LOG_DIR", str(defaults.log_dir))),
        )
