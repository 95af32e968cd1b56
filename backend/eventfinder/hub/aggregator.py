from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from eventfinder.config import Settings
from eventfinder.domain.dedupe import dedupe, sort_by_start
from eventfinder.domain.models import Intent, NormalizedEvent
from eventfinder.domain.plans import PlanLimits, PlanPolicy
from eventfinder.domain.time_window import TimeWindowResolver
from eventfinder.infra.llm.completion_client import CompletionClient
from eventfinder.providers.events.base import ProviderQuery
from eventfinder.services.intent import IntentExtractor, derive_keyword

from .provider_registry import ProviderRegistry, build_registry

logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    intent: Intent
    events: List[NormalizedEvent]
    limits: PlanLimits
    total_events: int
    errors: List[Tuple[str, Exception]] = field(default_factory=list)
    provider_stats: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.to_dict(),
            "events": [event.to_dict() for event in self.events],
            "plan": self.limits.to_dict(),
            "totalEvents": self.total_events,
        }


class EventAggregator:
    """Runs one search request end to end.

    Intent extraction and configuration errors propagate; a provider that
    fails or times out only contributes nothing.
    """

    def __init__(
        self,
        settings: Settings,
        registry: ProviderRegistry,
        intent_extractor: IntentExtractor,
        *,
        policy: Optional[PlanPolicy] = None,
        resolver: Optional[TimeWindowResolver] = None,
        clock: Optional[Callable[[], datetime]] = None,
        completion_client: Optional[CompletionClient] = None,
    ) -> None:
        self._settings = settings
        self._registry = registry
        self._intent_extractor = intent_extractor
        self._policy = policy or PlanPolicy()
        self._resolver = resolver or TimeWindowResolver(settings.timezone)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._completion_client = completion_client

    async def aggregate(
        self,
        prompt: str,
        city: Optional[str] = None,
        country: Optional[str] = None,
        plan: Optional[str] = None,
    ) -> AggregationResult:
        self._settings.validate()

        intent = await self._intent_extractor.extract_intent(prompt, city, country)
        keyword = derive_keyword(intent, prompt)
        time_range = self._resolver.resolve(intent.time_window, self._clock())
        query = ProviderQuery(
            keyword=keyword,
            city=intent.city or city,
            country_code=intent.country or country,
            time_window=intent.time_window,
            time_range=time_range,
            time_hint=self._resolver.text_hint(intent.time_window),
            limit=self._settings.page_size,
            max_pages=self._settings.max_pages,
        )
        logger.info("Searching keyword=%r city=%s country=%s", keyword, query.city, query.country_code)

        merged, errors, stats = await self._fan_out(query)
        candidates = sort_by_start(dedupe(merged))
        limits = self._policy.limits_for(plan)
        events = self._policy.apply(candidates, limits, query.city)
        logger.info(
            "Merged %d events (%d unique), returning %d for plan %s",
            len(merged),
            len(candidates),
            len(events),
            limits.plan.value,
        )
        return AggregationResult(
            intent=intent,
            events=events,
            limits=limits,
            total_events=len(candidates),
            errors=errors,
            provider_stats=stats,
        )

    async def _fan_out(
        self, query: ProviderQuery
    ) -> Tuple[List[NormalizedEvent], List[Tuple[str, Exception]], List[Dict[str, Any]]]:
        names = self._registry.list()
        outcomes = await asyncio.gather(
            *(self._fetch_one(name, query) for name in names),
            return_exceptions=True,
        )
        merged: List[NormalizedEvent] = []
        errors: List[Tuple[str, Exception]] = []
        stats: List[Dict[str, Any]] = []
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Provider %s failed: %r", name, outcome)
                errors.append((name, outcome))
                stats.append({"provider": name, "fetched": 0, "error": str(outcome) or type(outcome).__name__})
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            merged.extend(outcome)
            stats.append({"provider": name, "fetched": len(outcome)})
        return merged, errors, stats

    async def _fetch_one(self, name: str, query: ProviderQuery) -> List[NormalizedEvent]:
        provider = self._registry.get(name)
        return await asyncio.wait_for(provider.fetch_events(query), timeout=self._settings.provider_timeout)

    async def aclose(self) -> None:
        if self._completion_client is not None:
            await self._completion_client.aclose()


def build_aggregator(settings: Settings, **registry_kwargs: Any) -> EventAggregator:
    """Wire the aggregator for ``settings``; credentials are checked first."""
    settings.validate()
    completer = CompletionClient.from_settings(settings)
    registry = build_registry(settings, completer=completer, **registry_kwargs)
    return EventAggregator(
        settings,
        registry,
        IntentExtractor(completer, model=settings.intent_model),
        completion_client=completer,
    )
