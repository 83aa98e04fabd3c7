"""Generation operations against the text and video endpoints.

Every public method checks the credential first, then wraps transport
failures in `ServiceError` after logging them.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable, Iterator, List, Optional

from . import prompts
from .ai.openai_client import OpenAIClient
from .ai.veo_client import VeoClient, video_uri
from .config import StudioSettings, load_settings
from .errors import (
    ConfigError,
    FormatError,
    ServiceError,
    StudioError,
    VideoCancelledError,
    VideoTimeoutError,
)
from .models import Conversation, Duration, GeneratedVideo, Genre, Idea, SeoContent
from .parsing import parse_seo_content, parse_trending_topics, strip_json_fence

logger = logging.getLogger(__name__)


def _coerce_enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"Unsupported {label} {value!r}; expected one of: {allowed}") from exc


class GenerationOrchestrator:
    """Idea, trend, script, SEO and video generation for the studio UI."""

    def __init__(
        self,
        settings: StudioSettings,
        text_client: Optional[OpenAIClient] = None,
        video_client: Optional[VeoClient] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not (settings.api_key or "").strip():
            raise ConfigError("GEMINI_API_KEY environment variable is not set.")
        self.settings = settings
        self.text_client = text_client or OpenAIClient(
            api_key=settings.api_key,
            base_url=settings.base_url,
            fallback_configs=settings.fallback_configs,
            default_chat_model=settings.text_model,
        )
        self.video_client = video_client or VeoClient(
            api_key=settings.api_key,
            base_url=settings.video_base_url,
            model=settings.video_model,
        )
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_env(cls) -> "GenerationOrchestrator":
        return cls(load_settings())

    def _require_credential(self) -> None:
        if not (self.settings.api_key or "").strip():
            raise ConfigError("GEMINI_API_KEY environment variable is not set.")

    def _complete(self, system_prompt: str, user_prompt: str, failure: str, **kwargs) -> str:
        self._require_credential()
        try:
            return self.text_client.chat_text(
                [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                **kwargs,
            )
        except StudioError:
            raise
        except Exception as exc:
            logger.exception("%s", failure)
            raise ServiceError(failure) from exc

    def list_ideas(self, genre: Genre | str, duration: Duration | str) -> str:
        """Free-text listing of 10 ideas for the genre and duration."""
        self._require_credential()
        genre = _coerce_enum(Genre, genre, "genre")
        duration = _coerce_enum(Duration, duration, "duration")
        logger.info("Listing ideas for %s / %s", genre.value, duration.value)
        return self._complete(
            prompts.IDEAS_SYSTEM_PROMPT,
            prompts.ideas_prompt(genre, duration),
            "Failed to generate ideas.",
        )

    def list_trending_topics(self, genres: Iterable[Genre | str]) -> List[str]:
        self._require_credential()
        chosen = [_coerce_enum(Genre, genre, "genre") for genre in genres]
        if not chosen:
            raise ValueError("At least one genre is required to analyse trends.")
        text = self._complete(
            prompts.TRENDING_TOPICS_SYSTEM_PROMPT,
            prompts.trending_topics_prompt(chosen),
            "Failed to get trending topics.",
        )
        return parse_trending_topics(text)

    def open_script_conversation(self) -> Conversation:
        self._require_credential()
        return Conversation(system_instruction=prompts.SCRIPT_SYSTEM_PROMPT)

    def _stream_turn(self, conversation: Conversation, request: str, failure: str) -> Iterator[str]:
        """Yield response fragments; the turn is recorded once the stream completes."""
        parts: list[str] = []
        try:
            for fragment in self.text_client.chat_stream(conversation.messages(request)):
                parts.append(fragment)
                yield fragment
        except StudioError:
            raise
        except Exception as exc:
            logger.exception("%s", failure)
            raise ServiceError(failure) from exc
        conversation.append(request, "".join(parts))

    def draft_script(
        self,
        conversation: Conversation,
        idea: Idea,
        scene_duration: str,
        suppress_narration: bool,
        language: str,
    ) -> Iterator[str]:
        self._require_credential()
        request = prompts.draft_script_prompt(idea, scene_duration, suppress_narration, language)
        logger.info("Drafting script for %r", idea.title)
        return self._stream_turn(conversation, request, "Failed to generate initial script.")

    def revise_script(
        self,
        conversation: Conversation,
        scene_duration: str,
        suppress_narration: bool,
        language: str,
        suggestion: str,
        narration_style: Optional[str] = None,
    ) -> Iterator[str]:
        self._require_credential()
        request = prompts.revise_script_prompt(
            scene_duration, suppress_narration, language, suggestion, narration_style
        )
        logger.info("Revising script (turn %d)", len(conversation.turns) + 1)
        return self._stream_turn(conversation, request, "Failed to regenerate script.")

    def finalize_script(
        self,
        script: str,
        max_scene_duration: str | int | float,
        scene_count: Optional[int] = None,
    ) -> str:
        """Scene-array JSON text, fence-stripped but not validated."""
        self._require_credential()
        text = self._complete(
            prompts.finalize_system_prompt(str(max_scene_duration), scene_count),
            prompts.finalize_user_prompt(script),
            "Failed to finalize script as JSON.",
        )
        return strip_json_fence(text)

    def generate_seo(self, final_script_json: str, idea: Idea) -> SeoContent:
        self._require_credential()
        text = self._complete(
            prompts.SEO_SYSTEM_PROMPT,
            prompts.seo_prompt(final_script_json, idea),
            "Failed to generate SEO content.",
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "seo_content", "schema": prompts.SEO_RESPONSE_SCHEMA},
            },
        )
        try:
            return parse_seo_content(text)
        except FormatError:
            logger.exception("SEO response did not match the schema")
            raise

    def _wait(self, cancel: Optional[threading.Event]) -> None:
        interval = self.settings.poll_interval
        if cancel is None:
            self._sleep(interval)
        elif cancel.wait(interval):
            raise VideoCancelledError("Video generation was cancelled.")

    def generate_video(
        self,
        idea: Idea,
        visual_style: str,
        music_mood: str,
        cancel: Optional[threading.Event] = None,
    ) -> GeneratedVideo:
        """Submit a video job, poll until done, download the file into memory.

        Polling is unbounded unless ``video_max_wait`` is configured. Cancelling
        stops the wait only; the remote job keeps running.
        """
        self._require_credential()
        prompt = prompts.video_prompt(idea, visual_style, music_mood)
        deadline = (
            self._clock() + self.settings.video_max_wait
            if self.settings.video_max_wait is not None
            else None
        )
        try:
            operation = self.video_client.submit(prompt)
            while not operation.get("done"):
                if cancel is not None and cancel.is_set():
                    raise VideoCancelledError("Video generation was cancelled.")
                if deadline is not None and self._clock() >= deadline:
                    raise VideoTimeoutError(
                        f"Video generation did not finish within {self.settings.video_max_wait:g} seconds."
                    )
                self._wait(cancel)
                operation = self.video_client.get_operation(operation["name"])
                logger.debug("Video job %s done=%s", operation.get("name"), operation.get("done"))

            if operation.get("error"):
                message = (operation["error"] or {}).get("message") or "unknown error"
                raise ServiceError(f"Video generation failed: {message}")

            uri = video_uri(operation)
            if not uri:
                raise FormatError("Video generation succeeded but no download link was found.")

            data = self.video_client.download(uri)
        except StudioError:
            logger.exception("Video generation for %r failed", idea.title)
            raise
        except Exception as exc:
            logger.exception("Video generation for %r failed", idea.title)
            raise ServiceError("Failed to generate video.") from exc

        logger.info("Downloaded %d bytes of video for %r", len(data), idea.title)
        return GeneratedVideo(data=data, source_uri=uri)
