"""Async client for an OpenAI-compatible chat completion service."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import openai
from openai import AsyncOpenAI

from eventfinder.config import Settings
from eventfinder.errors import CompletionError
from eventfinder.utils.llm_parsing import extract_structured_json

logger = logging.getLogger(__name__)


class CompletionClient:
    """Requests JSON-mode completions and hands back the parsed object.

    Malformed content is logged and returned as an empty dict. Transport and
    status failures raise :class:`CompletionError`; callers decide whether
    that is fatal.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: Optional[str] = None,
        model: str = "openai/gpt-oss-20b",
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.model = model
        self._owns_client = client is None
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=1)

    @classmethod
    def from_settings(cls, settings: Settings, *, model: Optional[str] = None) -> "CompletionClient":
        return cls(
            settings.credentials.llm_api_key,
            base_url=settings.llm_base_url,
            model=model or settings.intent_model,
            timeout=settings.llm_timeout,
        )

    async def complete_json(
        self,
        system: str,
        user: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": model or self.model,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        if temperature is not None:
            params["temperature"] = temperature
        try:
            response = await self._client.chat.completions.create(**params)
        except openai.OpenAIError as exc:
            raise CompletionError(f"completion request failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            return {}
        try:
            return extract_structured_json(content)
        except ValueError:
            logger.warning("Completion returned non-JSON content (%d chars)", len(content))
            return {}

    async def aclose(self) -> None:
        """Release the HTTP pool of a client this instance created."""
        if self._owns_client:
            await self._client.close()
