from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from eventfinder.domain.models import Intent, TimeWindow
from eventfinder.errors import CompletionError, IntentExtractionError

logger = logging.getLogger(__name__)

MAX_KEYWORD_LENGTH = 100
FALLBACK_TOKENS = 3

INTENT_SYSTEM_PROMPT = "Return ONLY valid JSON for the user's event intent."
INTENT_USER_TEMPLATE = """Prompt: {prompt}

Return JSON with keys:
- topic_keywords: string[] (keywords to search, lowercased)
- time_window: "today" | "tonight" | "tomorrow" | "weekend" | "any"
- city: optional
- country: optional (2-letter)
If unknown, omit city/country."""


class JsonCompleter(Protocol):
    async def complete_json(self, system: str, user: str, **kwargs: Any) -> Dict[str, Any]:
        ...


def fallback_keywords(prompt: str) -> List[str]:
    return prompt.lower().split()[:FALLBACK_TOKENS]


def derive_keyword(intent: Intent, prompt: str) -> str:
    """Single provider search string, capped at ``MAX_KEYWORD_LENGTH``."""
    keyword = " ".join(intent.topic_keywords).strip() or prompt.strip()
    return keyword[:MAX_KEYWORD_LENGTH]


def _clean_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _clean_keywords(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip().lower() for item in value if isinstance(item, str) and item.strip()]


class IntentExtractor:
    def __init__(self, completer: JsonCompleter, *, model: Optional[str] = None) -> None:
        self._completer = completer
        self._model = model

    async def extract_intent(
        self,
        prompt: str,
        fallback_city: Optional[str] = None,
        fallback_country: Optional[str] = None,
    ) -> Intent:
        kwargs: Dict[str, Any] = {"model": self._model} if self._model else {}
        try:
            raw = await self._completer.complete_json(
                INTENT_SYSTEM_PROMPT, INTENT_USER_TEMPLATE.format(prompt=prompt), **kwargs
            )
        except CompletionError as exc:
            raise IntentExtractionError(str(exc)) from exc
        if not isinstance(raw, dict):
            raw = {}

        keywords = _clean_keywords(raw.get("topic_keywords"))
        if not keywords:
            keywords = fallback_keywords(prompt)
        intent = Intent(
            topic_keywords=keywords,
            time_window=TimeWindow.parse(raw.get("time_window")),
            city=_clean_text(raw.get("city")) or _clean_text(fallback_city),
            country=_clean_text(raw.get("country")) or _clean_text(fallback_country),
        )
        logger.info(
            "Extracted intent keywords=%s window=%s city=%s country=%s",
            intent.topic_keywords,
            intent.time_window.value,
            intent.city,
            intent.country,
        )
        return intent
