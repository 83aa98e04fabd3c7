"""REST client for long-running Veo video jobs on the Generative Language API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from ..config import DEFAULT_VIDEO_BASE_URL, DEFAULT_VIDEO_MODEL
from ..errors import ConfigError, ServiceError

logger = logging.getLogger(__name__)


class VeoClient:
    """Submit a video job, read its operation, download the result."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        model: str | None = None,
        session: Optional[requests.Session] = None,
        timeout: float = 60.0,
    ):
        if not (api_key or "").strip():
            raise ConfigError("GEMINI_API_KEY environment variable is not set.")
        self.api_key = api_key.strip()
        self.base_url = (base_url or DEFAULT_VIDEO_BASE_URL).rstrip("/")
        self.model = model or DEFAULT_VIDEO_MODEL
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def _headers(self) -> Dict[str, str]:
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    def submit(
        self,
        prompt: str,
        *,
        aspect_ratio: str = "9:16",
        resolution: str = "720p",
        number_of_videos: int = 1,
    ) -> Dict[str, Any]:
        """Start a job; returns the operation payload (``name``, maybe ``done``)."""
        url = f"{self.base_url}/models/{self.model}:predictLongRunning"
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "aspectRatio": aspect_ratio,
                "resolution": resolution,
                "sampleCount": number_of_videos,
            },
        }
        response = self._session.post(url, headers=self._headers, json=body, timeout=self.timeout)
        response.raise_for_status()
        operation = response.json()
        logger.info("Submitted video job %s", operation.get("name"))
        return operation

    def get_operation(self, name: str) -> Dict[str, Any]:
        url = f"{self.base_url}/{name.lstrip('/')}"
        response = self._session.get(url, headers=self._headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def download(self, uri: str) -> bytes:
        response = self._session.get(
            uri,
            headers={"x-goog-api-key": self.api_key},
            timeout=self.timeout,
            allow_redirects=True,
        )
        if not response.ok:
            raise ServiceError(f"Failed to download video: {response.reason}")
        return response.content


def video_uri(operation: Dict[str, Any]) -> str | None:
    """First generated video URI of a finished operation, if any."""
    result = operation.get("response") or {}
    container = result.get("generateVideoResponse") or result
    samples = container.get("generatedSamples") or container.get("generatedVideos") or []
    if not samples:
        return None
    video = samples[0].get("video") or {}
    return video.get("uri")
