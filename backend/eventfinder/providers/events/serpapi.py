from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TypedDict, Union

import httpx

from eventfinder.domain.dedupe import sort_by_start
from eventfinder.domain.models import NormalizedEvent, event_id
from eventfinder.domain.relevance import CitySubstringRelevance, LocatedCandidate, RelevanceStrategy
from eventfinder.domain.timestamps import combine_date_time, to_iso
from eventfinder.errors import UpstreamUnavailable
from eventfinder.providers.geocoding.mapbox import MapboxGeocoder
from eventfinder.services.page_extraction import MAX_MARKUP_CHARS, PageEventExtractor

from .base import EventsProvider, ProviderQuery, fill_coordinates, to_float

logger = logging.getLogger(__name__)


class SerpEventDate(TypedDict, total=False):
    start_date: str
    start_time: str
    when: str


class SerpEventResult(TypedDict, total=False):
    event_id: str
    id: str
    title: str
    link: str
    event_site: str
    description: str
    organizer: str
    date: SerpEventDate
    address: Union[str, List[str]]
    venue: Dict[str, Any]
    gps_coordinates: Dict[str, Any]


class SerpOrganicResult(TypedDict, total=False):
    title: str
    link: str


class SerpApiEventsProvider(EventsProvider):
    """Search-engine events, with an LLM crawl of organic results as fallback."""

    BASE_URL = "https://serpapi.com/search.json"
    ENGINE = "google_events"
    DEFAULT_LIMIT = 100
    MAX_LIMIT = 150
    MAX_CRAWLED_PAGES = 10
    name = "serpapi"

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        *,
        page_extractor: Optional[PageEventExtractor] = None,
        geocoder: Optional[MapboxGeocoder] = None,
        relevance: Optional[RelevanceStrategy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        reference: Optional[datetime] = None,
    ):
        if not api_key:
            raise ValueError("api_key is required for SerpApiEventsProvider")
        self.api_key = api_key
        self.timeout = timeout
        self.page_extractor = page_extractor
        self.geocoder = geocoder
        self.relevance = relevance or CitySubstringRelevance()
        self._transport = transport
        self._reference = reference

    async def fetch_events(self, query: ProviderQuery) -> List[NormalizedEvent]:
        limit = max(1, min(query.limit or self.DEFAULT_LIMIT, self.MAX_LIMIT))
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport, follow_redirects=True
        ) as client:
            try:
                data = await self._search(client, query)
            except UpstreamUnavailable as exc:
                logger.warning("SerpAPI search skipped: %s", exc)
                return []
            results = data.get("events_results")
            if isinstance(results, list) and results:
                events = await self._map_structured(results[:limit], query.city)
            else:
                events = await self._crawl_organic(client, data.get("organic_results"), query.city, limit)
        return sort_by_start(events)

    async def _search(self, client: httpx.AsyncClient, query: ProviderQuery) -> dict:
        q = " ".join(part for part in (query.keyword, query.time_hint) if part)
        params: Dict[str, Any] = {"engine": self.ENGINE, "q": q, "api_key": self.api_key, "hl": "en"}
        location = query.city or query.country_code
        if location:
            params["location"] = location
        try:
            resp = await client.get(self.BASE_URL, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(self.name, reason=str(exc)) from exc
        if resp.status_code >= 400:
            raise UpstreamUnavailable(self.name, status_code=resp.status_code)
        try:
            data = resp.json()
        except ValueError:
            logger.warning("SerpAPI returned a non-JSON body")
            return {}
        return data if isinstance(data, dict) else {}

    async def _map_structured(
        self, results: List[SerpEventResult], city: Optional[str]
    ) -> List[NormalizedEvent]:
        mapped: List[NormalizedEvent] = []
        for item in results:
            if not isinstance(item, dict):
                continue
            address = self._join_address(item.get("address"))
            venue_name = (item.get("venue") or {}).get("name")
            if not self.relevance.is_relevant(LocatedCandidate(address=address, venue=venue_name), city):
                continue
            event = self._map_event(item, address, city)
            await fill_coordinates(event, address, self.geocoder)
            mapped.append(event)
        return mapped

    def _map_event(
        self, payload: SerpEventResult, address: Optional[str], city: Optional[str]
    ) -> NormalizedEvent:
        date_info = payload.get("date") or {}
        gps = payload.get("gps_coordinates") or {}
        venue_name = (payload.get("venue") or {}).get("name")
        title = payload.get("title") or ""
        link = payload.get("link") or payload.get("event_site") or ""
        return NormalizedEvent(
            id=event_id(payload.get("event_id") or payload.get("id"), link, title),
            source=self.name,
            title=title,
            starts_at=combine_date_time(
                date_info.get("start_date"), date_info.get("start_time"), reference=self._now()
            ),
            venue=venue_name or address or payload.get("organizer"),
            # city is only implied for listings without a named venue
            city=None if venue_name else city,
            lat=to_float(gps.get("latitude")),
            lng=to_float(gps.get("longitude")),
            url=link,
            description=payload.get("description"),
        )

    async def _crawl_organic(
        self,
        client: httpx.AsyncClient,
        organic: Any,
        city: Optional[str],
        limit: int,
    ) -> List[NormalizedEvent]:
        if self.page_extractor is None or not isinstance(organic, list):
            return []
        candidates: List[SerpOrganicResult] = [
            item for item in organic if isinstance(item, dict) and isinstance(item.get("link"), str)
        ][: self.MAX_CRAWLED_PAGES]

        out: List[NormalizedEvent] = []
        for result in candidates:
            page_url = result["link"]
            markup = await self._fetch_markup(client, page_url)
            if markup is None:
                continue
            for extracted in await self.page_extractor.extract(markup, page_url, city):
                if not self.relevance.is_relevant(
                    LocatedCandidate(address=extracted.address, venue=extracted.venue), city
                ):
                    continue
                url = extracted.url or ""
                event = NormalizedEvent(
                    id=event_id(None, url, extracted.title),
                    source=self.name,
                    title=extracted.title or "",
                    starts_at=to_iso(extracted.starts_at),
                    venue=extracted.venue,
                    city=city,
                    url=url,
                )
                await fill_coordinates(event, extracted.address, self.geocoder)
                out.append(event)
                if len(out) >= limit:
                    return out
        return out

    async def _fetch_markup(self, client: httpx.AsyncClient, page_url: str) -> Optional[str]:
        try:
            resp = await client.get(page_url)
        except httpx.HTTPError as exc:
            logger.debug("Skipping %s: %s", page_url, exc)
            return None
        if resp.status_code >= 400:
            logger.debug("Skipping %s: status %d", page_url, resp.status_code)
            return None
        return resp.text[:MAX_MARKUP_CHARS]

    @staticmethod
    def _join_address(value: Any) -> Optional[str]:
        if isinstance(value, str):
            return value or None
        if isinstance(value, list):
            joined = ", ".join(str(part) for part in value if part)
            return joined or None
        return None

    def _now(self) -> datetime:
        return self._reference or datetime.now(timezone.utc)
