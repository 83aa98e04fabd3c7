"""Central OpenAI-compatible chat client with ordered key fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Sequence

from openai import OpenAI

from ..config import DEFAULT_TEXT_BASE_URL, DEFAULT_TEXT_MODEL
from ..errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Provider:
    """Provider configuration for a single OpenAI-compatible endpoint."""

    api_key: str
    base_url: str | None = None
    chat_model_override: str | None = None


def _normalize(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict):
                text_value = item.get("text") or item.get("content")
            else:
                text_value = getattr(item, "text", None) or getattr(item, "content", None)
            if isinstance(text_value, str):
                parts.append(text_value)
        return "".join(parts)
    return str(content)


def extract_content(resp: Any) -> str:
    """Handle both dict responses and SDK objects."""
    if isinstance(resp, dict):
        choices = resp.get("choices") or []
        if not choices:
            return ""
        return _normalize((choices[0].get("message") or {}).get("content"))

    choices = getattr(resp, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return _normalize(getattr(message, "content", None))


def extract_delta(chunk: Any) -> str:
    """Text carried by one streamed chunk; empty for role/usage-only chunks."""
    if isinstance(chunk, dict):
        choices = chunk.get("choices") or []
        if not choices:
            return ""
        return _normalize((choices[0].get("delta") or {}).get("content"))

    choices = getattr(chunk, "choices", None) or []
    if not choices:
        return ""
    delta = getattr(choices[0], "delta", None)
    return _normalize(getattr(delta, "content", None))


class OpenAIClient:
    """Thin wrapper around OpenAI-compatible providers.

    The first provider is the primary credential; the rest are tried in order
    when a call fails, and the one that succeeds is promoted to the front.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        fallback_configs: Sequence[Dict[str, str | None]] | None = None,
        default_chat_model: str | None = None,
    ):
        self._providers = self._build_providers(api_key, base_url, fallback_configs)
        if not self._providers:
            raise ConfigError("GEMINI_API_KEY environment variable is not set.")
        self.api_key = self._providers[0].api_key
        self.base_url = self._providers[0].base_url
        self.default_chat_model = self._clean(default_chat_model) or DEFAULT_TEXT_MODEL
        self._clients: Dict[tuple[str, str | None], OpenAI] = {}

    @staticmethod
    def _clean(value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    def _build_providers(
        self,
        api_key: str | None,
        base_url: str | None,
        fallback_configs: Sequence[Dict[str, str | None]] | None,
    ) -> List[_Provider]:
        providers: list[_Provider] = []
        seen: set[tuple[str, str | None, str | None]] = set()

        primary_key = self._clean(api_key)
        if primary_key:
            primary_base = self._clean(base_url) or DEFAULT_TEXT_BASE_URL
            provider = _Provider(api_key=primary_key, base_url=primary_base)
            providers.append(provider)
            seen.add((provider.api_key, provider.base_url, provider.chat_model_override))

        for cfg in fallback_configs or []:
            fallback_key = self._clean(cfg.get("api_key"))
            if not fallback_key:
                continue
            fallback_base = self._clean(cfg.get("base_url")) or DEFAULT_TEXT_BASE_URL
            fallback_model = self._clean(cfg.get("chat_model_override"))
            provider = _Provider(
                api_key=fallback_key,
                base_url=fallback_base,
                chat_model_override=fallback_model,
            )
            marker = (provider.api_key, provider.base_url, provider.chat_model_override)
            if marker in seen:
                continue
            providers.append(provider)
            seen.add(marker)

        return providers

    def _get_live_client(self, provider: _Provider) -> OpenAI:
        client_key = (provider.api_key, provider.base_url)
        client = self._clients.get(client_key)
        if not client:
            client = OpenAI(api_key=provider.api_key, base_url=provider.base_url)
            self._clients[client_key] = client
        return client

    def _promote_provider(self, idx: int) -> None:
        if idx <= 0:
            return
        provider = self._providers.pop(idx)
        self._providers.insert(0, provider)
        self.api_key = self._providers[0].api_key
        self.base_url = self._providers[0].base_url

    def _call_with_fallback(self, call: Callable[[Any, _Provider], Any]) -> Any:
        last_error: Exception | None = None
        for idx, provider in enumerate(list(self._providers)):
            try:
                client = self._get_live_client(provider)
                response = call(client, provider)
                self._promote_provider(idx)
                return response
            except Exception as exc:
                logger.warning("Provider %d failed (%s); trying next", idx, exc)
                last_error = exc
                continue

        if last_error is None:
            raise RuntimeError("No chat provider is configured.")
        raise last_error

    @property
    def provider_count(self) -> int:
        return len(self._providers)

    def chat(self, messages: List[Dict[str, str]], model: str | None = None, **kwargs) -> Any:
        """Call provider chat endpoint with ordered API-key fallback."""

        def _chat_call(client: Any, provider: _Provider) -> Any:
            chosen_model = provider.chat_model_override or model or self.default_chat_model
            return client.chat.completions.create(messages=messages, model=chosen_model, **kwargs)

        return self._call_with_fallback(_chat_call)

    def chat_text(self, messages: List[Dict[str, str]], model: str | None = None, **kwargs) -> str:
        return extract_content(self.chat(messages, model=model, **kwargs))

    def chat_stream(
        self, messages: List[Dict[str, str]], model: str | None = None, **kwargs
    ) -> Iterator[str]:
        """Open a streamed completion and yield its text fragments.

        Fallback only covers opening the stream; a failure mid-stream
        propagates to the consumer.
        """
        stream = self.chat(messages, model=model, stream=True, **kwargs)
        for chunk in stream:
            text = extract_delta(chunk)
            if text:
                yield text


# EOF end of file
