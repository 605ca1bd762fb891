"""
Runtime configuration.

Values come from the environment, with a project-level .env file loaded first
if present. Numeric knobs are clamped to sane ranges so a typo in the
environment cannot produce a runaway page size or a zero-length timeout.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent

DEFAULT_PLATFORM_BASE_URL = "https://api.elevenlabs.io/v1"
DEFAULT_INFERENCE_HOST = "http://localhost:11434"
DEFAULT_INFERENCE_MODEL = "callAnalyser"

# Platform list endpoint caps page_size at 100
MAX_PAGE_SIZE = 100


def load_env_file(path: Optional[Path] = None) -> bool:
    """Load a .env file into the process environment without overriding it."""
    env_path = path or PROJECT_ROOT / ".env"
    if env_path.exists():
        return load_dotenv(env_path, override=False)
    return False


def _env_int(name: str, default: int, low: int, high: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default
    return max(low, min(high, value))


def _env_float(name: str, default: float, low: float, high: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default
    return max(low, min(high, value))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Resolved configuration for one process."""

    # Call platform
    platform_api_key: Optional[str] = None
    platform_agent_id: Optional[str] = None
    platform_base_url: str = DEFAULT_PLATFORM_BASE_URL
    platform_timeout: int = 30
    platform_max_retries: int = 3
    page_size: int = MAX_PAGE_SIZE
    enrich_transcripts: bool = True
    transcript_concurrency: int = 5
    platform_timezone: str = "UTC"

    # Inference service
    inference_host: str = DEFAULT_INFERENCE_HOST
    inference_model: str = DEFAULT_INFERENCE_MODEL
    inference_timeout: float = 30.0
    temperature: float = 0.3
    top_p: float = 0.9
    generative_enabled: bool = True

    # Batch orchestration
    batch_size: int = 5
    batch_pause: float = 1.0

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @property
    def inference_base_url(self) -> str:
        """OpenAI-compatible endpoint exposed by the inference host."""
        return self.inference_host.rstrip("/") + "/v1"

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        if load_dotenv_file:
            load_env_file()

        return cls(
            platform_api_key=os.getenv("ELEVENLABS_API_KEY"),
            platform_agent_id=os.getenv("ELEVENLABS_AGENT_ID"),
            platform_base_url=os.getenv("ELEVENLABS_BASE_URL", DEFAULT_PLATFORM_BASE_URL),
            platform_timeout=_env_int("ELEVENLABS_TIMEOUT", 30, 1, 300),
            platform_max_retries=_env_int("ELEVENLABS_MAX_RETRIES", 3, 0, 10),
            page_size=_env_int("ELEVENLABS_PAGE_SIZE", MAX_PAGE_SIZE, 1, MAX_PAGE_SIZE),
            enrich_transcripts=_env_bool("ELEVENLABS_ENRICH_TRANSCRIPTS", True),
            transcript_concurrency=_env_int("ELEVENLABS_TRANSCRIPT_CONCURRENCY", 5, 1, 50),
            platform_timezone=os.getenv("PLATFORM_TIMEZONE", "UTC"),
            inference_host=os.getenv("OLLAMA_HOST", DEFAULT_INFERENCE_HOST),
            inference_model=os.getenv("OLLAMA_MODEL", DEFAULT_INFERENCE_MODEL),
            inference_timeout=_env_float("ANALYSIS_TIMEOUT", 30.0, 1.0, 600.0),
            temperature=_env_float("ANALYSIS_TEMPERATURE", 0.3, 0.0, 2.0),
            generative_enabled=_env_bool("GENERATIVE_ENABLED", True),
            batch_size=_env_int("ANALYSIS_BATCH_SIZE", 5, 1, 50),
            batch_pause=_env_float("ANALYSIS_BATCH_PAUSE", 1.0, 0.0, 60.0),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_dir=os.getenv("LOGS_DIRECTORY") or None,
        )
