from __future__ import annotations

import pytest

from eventfinder.config import ProviderCredentials, Settings
from eventfinder.hub.provider_registry import ProviderRegistry, build_registry
from eventfinder.providers.events.eventbrite import EventbriteEventsProvider
from eventfinder.providers.events.serpapi import SerpApiEventsProvider
from eventfinder.providers.events.ticketmaster import TicketmasterEventsProvider


class _DummyProvider:
    def __init__(self, name: str) -> None:
        self.name = name

    async def fetch_events(self, query):
        return []


class _DummyCompleter:
    async def complete_json(self, system, user, **kwargs):
        return {}


def test_registry_register_and_get() -> None:
    registry = ProviderRegistry()
    provider = _DummyProvider("demo")
    registry.register("demo", provider)

    assert registry.get("demo") is provider
    assert registry.list() == ["demo"]
    assert len(registry) == 1


def test_registry_duplicate_registration_fails() -> None:
    registry = ProviderRegistry()
    registry.register("demo", _DummyProvider("demo"))

    with pytest.raises(ValueError):
        registry.register("demo", _DummyProvider("demo"))


def test_registry_unknown_provider() -> None:
    with pytest.raises(KeyError):
        ProviderRegistry().get("missing")


def test_registry_preserves_registration_order() -> None:
    registry = ProviderRegistry()
    for name in ("b", "a", "c"):
        registry.register(name, _DummyProvider(name))
    assert registry.list() == ["b", "a", "c"]


def test_build_registry_follows_configured_order() -> None:
    settings = Settings(
        credentials=ProviderCredentials(
            llm_api_key="llm",
            ticketmaster_api_key="tm",
            serpapi_api_key="serp",
            eventbrite_token="eb",
            eventbrite_org_id="org",
        ),
        enabled_providers=("serpapi", "ticketmaster", "eventbrite"),
    )
    registry = build_registry(settings, completer=_DummyCompleter())
    assert registry.list() == ["serpapi", "ticketmaster", "eventbrite"]
    assert isinstance(registry.get("serpapi"), SerpApiEventsProvider)
    assert isinstance(registry.get("ticketmaster"), TicketmasterEventsProvider)
    eventbrite = registry.get("eventbrite")
    assert isinstance(eventbrite, EventbriteEventsProvider)
    assert eventbrite.org_id == "org"
    assert eventbrite.mode == "organization"


def test_build_registry_passes_eventbrite_search_mode() -> None:
    settings = Settings(
        credentials=ProviderCredentials(llm_api_key="llm", ticketmaster_api_key="tm", eventbrite_token="eb"),
        enabled_providers=("eventbrite",),
        eventbrite_mode="search",
        eventbrite_within="10mi",
    )
    eventbrite = build_registry(settings, completer=_DummyCompleter()).get("eventbrite")
    assert eventbrite.mode == "search"
    assert eventbrite.within == "10mi"


def test_build_registry_skips_providers_without_credentials() -> None:
    settings = Settings(credentials=ProviderCredentials(llm_api_key="llm", ticketmaster_api_key="tm"))
    registry = build_registry(settings, completer=_DummyCompleter())
    assert registry.list() == ["ticketmaster"]
