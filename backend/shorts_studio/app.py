"""Backend application factory.

Returns a lightweight "service container" dictionary so the Streamlit page
and tests share the same wiring without a module-level client singleton.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .ai.openai_client import OpenAIClient
from .ai.veo_client import VeoClient
from .config import StudioSettings, configure_logging, load_settings
from .orchestrator import GenerationOrchestrator

logger = logging.getLogger(__name__)


def create_app(settings: Optional[StudioSettings] = None) -> Dict[str, Any]:
    """Create the backend dependency container.

    Raises `ConfigError` when no API credential is configured.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    ai_client = OpenAIClient(
        api_key=settings.api_key,
        base_url=settings.base_url,
        fallback_configs=settings.fallback_configs,
        default_chat_model=settings.text_model,
    )
    video_client = VeoClient(
        api_key=settings.api_key,
        base_url=settings.video_base_url,
        model=settings.video_model,
    )
    orchestrator = GenerationOrchestrator(
        settings,
        text_client=ai_client,
        video_client=video_client,
    )
    logger.info(
        "Studio ready: text model %s (%d provider(s)), video model %s",
        ai_client.default_chat_model,
        ai_client.provider_count,
        settings.video_model,
    )
    return {
        "settings": settings,
        "ai_client": ai_client,
        "video_client": video_client,
        "orchestrator": orchestrator,
    }
