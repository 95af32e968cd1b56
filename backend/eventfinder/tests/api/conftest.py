from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from eventfinder.api.deps import get_aggregator
from eventfinder.api.main import create_app
from eventfinder.config import ProviderCredentials, Settings
from eventfinder.domain.models import NormalizedEvent
from eventfinder.errors import CompletionError
from eventfinder.hub.aggregator import EventAggregator
from eventfinder.hub.provider_registry import ProviderRegistry
from eventfinder.services.intent import IntentExtractor

FULL_CREDENTIALS = ProviderCredentials(llm_api_key="llm", ticketmaster_api_key="tm", serpapi_api_key="serp")


class StaticProvider:
    def __init__(self, name: str, events: list[NormalizedEvent], fail: bool = False) -> None:
        self.name = name
        self.events = events
        self.fail = fail

    async def fetch_events(self, query):
        if self.fail:
            raise RuntimeError(f"{self.name} is down")
        return list(self.events)


class FakeCompleter:
    def __init__(self, payload=None, error: Exception | None = None) -> None:
        self.payload = payload or {}
        self.error = error

    async def complete_json(self, system, user, **kwargs):
        if self.error is not None:
            raise self.error
        return self.payload


def _jazz_night(source: str, url: str) -> NormalizedEvent:
    return NormalizedEvent(
        id=f"{source}-1",
        source=source,
        title="Jazz Night",
        starts_at="2024-07-15T23:00:00.000Z",
        venue="Blue Note",
        url=url,
    )


def _build_client(settings: Settings, *, providers=None, completer=None, raise_server_exceptions=True):
    app = create_app(settings=settings)
    if providers is not None:
        registry = ProviderRegistry()
        for provider in providers:
            registry.register(provider.name, provider)
        aggregator = EventAggregator(
            settings,
            registry,
            IntentExtractor(completer or FakeCompleter({"topic_keywords": ["jazz"], "time_window": "tonight"})),
            clock=lambda: datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc),
        )
        app.dependency_overrides[get_aggregator] = lambda: aggregator
    with TestClient(app, raise_server_exceptions=raise_server_exceptions) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture()
def api_client():
    providers = [
        StaticProvider("ticketmaster", [_jazz_night("ticketmaster", "")]),
        StaticProvider("serpapi", [_jazz_night("serpapi", "https://www.google.com/events/jazz-night")]),
    ]
    yield from _build_client(Settings(credentials=FULL_CREDENTIALS), providers=providers)


@pytest.fixture()
def api_client_partial_failure():
    providers = [
        StaticProvider("ticketmaster", [], fail=True),
        StaticProvider("serpapi", [_jazz_night("serpapi", "https://serpapi.test/e")]),
    ]
    yield from _build_client(Settings(credentials=FULL_CREDENTIALS), providers=providers)


@pytest.fixture()
def api_client_intent_down():
    providers = [StaticProvider("ticketmaster", [_jazz_night("ticketmaster", "")])]
    completer = FakeCompleter(error=CompletionError("Groq error 500"))
    yield from _build_client(Settings(credentials=FULL_CREDENTIALS), providers=providers, completer=completer)


@pytest.fixture()
def api_client_unconfigured():
    yield from _build_client(Settings(credentials=ProviderCredentials(llm_api_key="llm")))
