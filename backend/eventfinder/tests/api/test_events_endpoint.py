from __future__ import annotations

from fastapi.testclient import TestClient

from eventfinder.api import deps
from eventfinder.api.deps import get_aggregator
from eventfinder.api.main import create_app
from eventfinder.config import ProviderCredentials, Settings
from eventfinder.domain.models import Intent
from eventfinder.domain.plans import PLAN_LIMITS, Plan
from eventfinder.hub.aggregator import AggregationResult, EventAggregator


def test_events_endpoint_returns_deduped_events(api_client):
    response = api_client.post(
        "/api/events",
        json={"prompt": "jazz tonight", "city": "Brooklyn", "country": "US", "plan": "free"},
    )
    assert response.status_code == 200
    data = response.json()
    assert len(data["events"]) == 1
    assert data["intent"]["time_window"] == "tonight"
    assert data["plan"]["maxEvents"] == 50
    assert data["totalEvents"] == 1
    first = data["events"][0]
    assert {"id", "source", "title", "startsAt", "venue", "url"}.issubset(first.keys())
    assert first["source"] == "ticketmaster"


def test_plan_defaults_to_free(api_client):
    response = api_client.post("/api/events", json={"prompt": "jazz"})
    assert response.status_code == 200
    assert response.json()["plan"]["plan"] == "free"


def test_partial_provider_failure_is_still_success(api_client_partial_failure):
    response = api_client_partial_failure.post("/api/events", json={"prompt": "jazz tonight"})
    assert response.status_code == 200
    events = response.json()["events"]
    assert [event["source"] for event in events] == ["serpapi"]


def test_intent_failure_is_500(api_client_intent_down):
    response = api_client_intent_down.post("/api/events", json={"prompt": "jazz tonight"})
    assert 500 <= response.status_code < 600
    body = response.json()
    assert body["error"] == "Failed to extract intent"
    assert "Groq error 500" in body["details"]
    assert "events" not in body


def test_missing_credential_is_named(api_client_unconfigured):
    response = api_client_unconfigured.post("/api/events", json={"prompt": "jazz"})
    assert response.status_code == 500
    assert response.json() == {"error": "API configuration error: TICKETMASTER_API_KEY not set"}


def test_blank_prompt_is_rejected(api_client):
    assert api_client.post("/api/events", json={"prompt": "   "}).status_code == 422
    assert api_client.post("/api/events", json={}).status_code == 422


def test_unknown_plan_falls_back_to_free(api_client):
    response = api_client.post("/api/events", json={"prompt": "jazz", "plan": "platinum"})
    assert response.status_code == 200
    assert response.json()["plan"]["plan"] == "free"


class _ExplodingAggregator(EventAggregator):
    def __init__(self) -> None:
        pass

    async def aggregate(self, *args, **kwargs):
        raise RuntimeError("kaboom")


def _exploding_client(environment: str) -> TestClient:
    settings = Settings(credentials=ProviderCredentials(llm_api_key="llm", ticketmaster_api_key="tm"), environment=environment)
    app = create_app(settings=settings)
    app.dependency_overrides[get_aggregator] = _ExplodingAggregator
    return TestClient(app, raise_server_exceptions=False)


def test_unexpected_error_includes_details_outside_production():
    response = _exploding_client("development").post("/api/events", json={"prompt": "jazz"})
    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to fetch events"
    assert body["details"] == "kaboom"
    assert "RuntimeError" in body["stack"]


def test_unexpected_error_hides_details_in_production():
    response = _exploding_client("production").post("/api/events", json={"prompt": "jazz"})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch events"}


def test_health(api_client):
    assert api_client.get("/api/health").json() == {"status": "ok"}


class _TrackingAggregator:
    def __init__(self, result) -> None:
        self.result = result
        self.closed = False

    async def aggregate(self, *args, **kwargs):
        return self.result

    async def aclose(self) -> None:
        self.closed = True


def test_aggregator_is_closed_after_request(monkeypatch):
    built: list[_TrackingAggregator] = []
    empty = AggregationResult(
        intent=Intent(topic_keywords=["jazz"]),
        events=[],
        limits=PLAN_LIMITS[Plan.FREE],
        total_events=0,
    )

    def _build(settings):
        built.append(_TrackingAggregator(empty))
        return built[-1]

    monkeypatch.setattr(deps, "build_aggregator", _build)
    app = create_app(settings=Settings(credentials=ProviderCredentials(llm_api_key="llm", ticketmaster_api_key="tm")))
    with TestClient(app) as client:
        assert client.post("/api/events", json={"prompt": "jazz"}).status_code == 200
        assert client.post("/api/events", json={"prompt": "jazz"}).status_code == 200

    assert len(built) == 2
    assert all(aggregator.closed for aggregator in built)
