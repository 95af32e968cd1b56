from __future__ import annotations

import logging
from typing import Dict, List, Optional

import httpx

from eventfinder.config import Settings
from eventfinder.infra.llm.completion_client import CompletionClient
from eventfinder.providers.events.base import EventsProvider
from eventfinder.providers.events.eventbrite import EventbriteEventsProvider
from eventfinder.providers.events.serpapi import SerpApiEventsProvider
from eventfinder.providers.events.ticketmaster import TicketmasterEventsProvider
from eventfinder.providers.geocoding.mapbox import MapboxGeocoder
from eventfinder.services.page_extraction import PageEventExtractor

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Ordered in-memory registry for event providers.

    Registration order is the order providers are invoked in, and therefore
    the priority used when duplicates are collapsed.
    """

    def __init__(self) -> None:
        self._providers: Dict[str, EventsProvider] = {}

    def register(self, name: str, provider: EventsProvider) -> None:
        if name in self._providers:
            raise ValueError(f"Provider '{name}' already registered")
        self._providers[name] = provider

    def get(self, name: str) -> EventsProvider:
        try:
            return self._providers[name]
        except KeyError as exc:
            raise KeyError(f"Provider '{name}' is not registered") from exc

    def list(self) -> List[str]:
        return list(self._providers.keys())

    def __len__(self) -> int:
        return len(self._providers)


def build_registry(
    settings: Settings,
    *,
    completer: Optional[CompletionClient] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProviderRegistry:
    """Instantiate the enabled providers in configured order.

    Enabled providers without credentials are skipped; ``Settings.validate``
    is what rejects a missing credential for a required provider.
    """
    credentials = settings.credentials
    geocoder = MapboxGeocoder(credentials.mapbox_token, settings.http_timeout, transport=transport)
    registry = ProviderRegistry()
    for name in settings.enabled_providers:
        if not credentials.for_provider(name):
            logger.warning("Provider %s enabled but has no credentials; skipping", name)
            continue
        if name == "ticketmaster":
            provider: EventsProvider = TicketmasterEventsProvider(
                credentials.ticketmaster_api_key,
                settings.http_timeout,
                geocoder=geocoder,
                transport=transport,
            )
        elif name == "serpapi":
            extraction_client = completer or CompletionClient.from_settings(
                settings, model=settings.extraction_model
            )
            provider = SerpApiEventsProvider(
                credentials.serpapi_api_key,
                settings.http_timeout,
                page_extractor=PageEventExtractor(extraction_client, model=settings.extraction_model),
                geocoder=geocoder,
                transport=transport,
            )
        else:
            provider = EventbriteEventsProvider(
                credentials.eventbrite_token,
                credentials.eventbrite_org_id,
                settings.http_timeout,
                mode=settings.eventbrite_mode,
                within=settings.eventbrite_within,
                geocoder=geocoder,
                transport=transport,
            )
        registry.register(name, provider)
    return registry
