"""Environment-driven settings for the studio backend."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

DEFAULT_TEXT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_VIDEO_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TEXT_MODEL = "gemini-2.5-pro"
DEFAULT_VIDEO_MODEL = "veo-3.1-fast-generate-preview"
DEFAULT_POLL_INTERVAL_SECONDS = 10.0

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_FALLBACK_KEY_PREFIX = "GEMINI_API_KEY_FALLBACK_"

# Ensure local `.env` values are available when running via Streamlit/CLI.
load_dotenv(Path(__file__).resolve().parents[2] / ".env", override=False)


@dataclass(frozen=True)
class StudioSettings:
    """Resolved configuration; built once at start-up and passed down."""

    api_key: Optional[str]
    base_url: str = DEFAULT_TEXT_BASE_URL
    text_model: str = DEFAULT_TEXT_MODEL
    fallback_configs: Tuple[Dict[str, Optional[str]], ...] = field(default_factory=tuple)
    video_model: str = DEFAULT_VIDEO_MODEL
    video_base_url: str = DEFAULT_VIDEO_BASE_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    video_max_wait: Optional[float] = None
    log_level: str = "INFO"


def _read_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _read_float(name: str, default: float | None) -> float | None:
    raw = _read_env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring non-numeric %s=%r", name, raw)
        return default
    if value <= 0:
        logging.getLogger(__name__).warning("Ignoring non-positive %s=%r", name, raw)
        return default
    return value


def _fallback_chain(primary_key: str | None) -> List[Dict[str, Optional[str]]]:
    """Collect GEMINI_API_KEY_FALLBACK_1, _2, ... in numeric order."""
    providers: list[dict[str, str | None]] = []
    seen: set[tuple[str, str | None, str | None]] = set()
    if primary_key:
        seen.add((primary_key, None, None))

    indexed_names = sorted(
        (
            name
            for name in os.environ
            if name.startswith(_FALLBACK_KEY_PREFIX) and name[len(_FALLBACK_KEY_PREFIX) :].isdigit()
        ),
        key=lambda name: int(name[len(_FALLBACK_KEY_PREFIX) :]),
    )
    for name in indexed_names:
        idx = name[len(_FALLBACK_KEY_PREFIX) :]
        api_key = _read_env(name)
        if not api_key:
            continue
        provider = {
            "api_key": api_key,
            "base_url": _read_env(f"GEMINI_BASE_URL_FALLBACK_{idx}"),
            "chat_model_override": _read_env(f"GEMINI_MODEL_FALLBACK_{idx}"),
        }
        marker = (api_key, provider["base_url"], provider["chat_model_override"])
        if marker in seen:
            continue
        providers.append(provider)
        seen.add(marker)
    return providers


def load_settings() -> StudioSettings:
    """Build settings from the process environment."""
    api_key = _read_env("GEMINI_API_KEY") or _read_env("API_KEY")
    return StudioSettings(
        api_key=api_key,
        base_url=_read_env("GEMINI_BASE_URL") or DEFAULT_TEXT_BASE_URL,
        text_model=_read_env("GEMINI_TEXT_MODEL") or DEFAULT_TEXT_MODEL,
        fallback_configs=tuple(_fallback_chain(api_key)),
        video_model=_read_env("VEO_MODEL") or DEFAULT_VIDEO_MODEL,
        video_base_url=_read_env("VEO_BASE_URL") or DEFAULT_VIDEO_BASE_URL,
        poll_interval=_read_float("VIDEO_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS),
        video_max_wait=_read_float("VIDEO_MAX_WAIT_SECONDS", None),
        log_level=(_read_env("STUDIO_LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
