from __future__ import annotations

import logging
from typing import Any, List, Optional

from eventfinder.domain.models import ExtractedPageEvent
from eventfinder.errors import CompletionError
from eventfinder.services.intent import JsonCompleter

logger = logging.getLogger(__name__)

MAX_MARKUP_CHARS = 16_000

EXTRACTION_SYSTEM_PROMPT = (
    "You are an extraction API. From HTML, extract a list of real-world event objects. "
    "Return strict JSON with key `events`: [{title, startsAt, venue, address, url}]. "
    "Use ISO8601 for startsAt when possible; otherwise omit it. Address may be partial. "
    'If nothing, return {"events":[]}. Do not invent data.'
)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class PageEventExtractor:
    """Asks the completion service for the events listed on one page."""

    def __init__(
        self,
        completer: JsonCompleter,
        *,
        model: Optional[str] = None,
        max_chars: int = MAX_MARKUP_CHARS,
    ) -> None:
        self._completer = completer
        self._model = model
        self.max_chars = max_chars

    async def extract(
        self, markup: str, page_url: str, city_hint: Optional[str] = None
    ) -> List[ExtractedPageEvent]:
        user = f"URL: {page_url}\nCity hint: {city_hint or ''}\nHTML (truncated):\n{markup[: self.max_chars]}"
        kwargs: dict = {"temperature": 0.1}
        if self._model:
            kwargs["model"] = self._model
        try:
            parsed = await self._completer.complete_json(EXTRACTION_SYSTEM_PROMPT, user, **kwargs)
        except CompletionError as exc:
            logger.warning("Page extraction failed for %s: %s", page_url, exc)
            return []

        items = parsed.get("events") if isinstance(parsed, dict) else None
        if not isinstance(items, list):
            return []
        extracted: List[ExtractedPageEvent] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            event = ExtractedPageEvent(
                title=_text(item.get("title")),
                starts_at=_text(item.get("startsAt")),
                venue=_text(item.get("venue")),
                address=_text(item.get("address")),
                url=_text(item.get("url")),
            )
            if event.title is None and event.url is None:
                continue
            extracted.append(event)
        return extracted
