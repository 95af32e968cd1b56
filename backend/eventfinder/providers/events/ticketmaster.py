from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, TypedDict

import httpx

from eventfinder.domain.dedupe import sort_by_start
from eventfinder.domain.models import NormalizedEvent, event_id
from eventfinder.domain.timestamps import to_iso
from eventfinder.errors import UpstreamUnavailable
from eventfinder.providers.geocoding.mapbox import MapboxGeocoder

from .base import EventsProvider, ProviderQuery, as_dict, fill_coordinates, to_float

logger = logging.getLogger(__name__)


class TicketmasterVenue(TypedDict, total=False):
    name: str
    city: Dict[str, str]
    state: Dict[str, str]
    country: Dict[str, str]
    address: Dict[str, str]
    location: Dict[str, str]


class TicketmasterEvent(TypedDict, total=False):
    id: str
    name: str
    url: str
    info: str
    dates: Dict[str, Any]
    _embedded: Dict[str, List[TicketmasterVenue]]


class TicketmasterEventsProvider(EventsProvider):
    BASE_URL = "https://app.ticketmaster.com/discovery/v2/events.json"
    MAX_PAGE_SIZE = 200
    name = "ticketmaster"

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        *,
        geocoder: Optional[MapboxGeocoder] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("api_key is required for TicketmasterEventsProvider")
        self.api_key = api_key
        self.timeout = timeout
        self.geocoder = geocoder
        self._transport = transport

    async def fetch_events(self, query: ProviderQuery) -> List[NormalizedEvent]:
        params: Dict[str, Any] = {
            "apikey": self.api_key,
            "size": max(1, min(self.MAX_PAGE_SIZE, query.limit)),
            "sort": "date,asc",
        }
        if query.keyword:
            params["keyword"] = query.keyword
        if query.city:
            params["city"] = query.city
        if query.country_code:
            params["countryCode"] = query.country_code
        if query.time_range.bounded:
            params["startDateTime"] = self._format_ts(query.time_range.start)
            params["endDateTime"] = self._format_ts(query.time_range.end)

        mapped: List[NormalizedEvent] = []
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for page in range(max(0, query.max_pages)):
                try:
                    data = await self._get_page(client, {**params, "page": page})
                except UpstreamUnavailable as exc:
                    logger.warning("Ticketmaster page %d skipped: %s", page, exc)
                    break
                embedded = data.get("_embedded")
                items = embedded.get("events") if isinstance(embedded, dict) else None
                for item in items if isinstance(items, list) else []:
                    if not isinstance(item, dict):
                        continue
                    event, address = self._map_event(item)
                    await fill_coordinates(event, address, self.geocoder)
                    mapped.append(event)
                if self._is_last_page(data.get("page")):
                    break
        return sort_by_start(mapped)

    async def _get_page(self, client: httpx.AsyncClient, params: dict) -> dict:
        try:
            resp = await client.get(self.BASE_URL, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(self.name, reason=str(exc)) from exc
        if resp.status_code >= 400:
            raise UpstreamUnavailable(self.name, status_code=resp.status_code)
        try:
            data = resp.json()
        except ValueError:
            logger.warning("Ticketmaster returned a non-JSON body")
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _is_last_page(page: Optional[dict]) -> bool:
        if not isinstance(page, dict):
            return True
        try:
            number = int(page.get("number", 0))
            total = int(page.get("totalPages", 1))
        except (TypeError, ValueError):
            return True
        return number >= total - 1

    def _map_event(self, payload: TicketmasterEvent) -> Tuple[NormalizedEvent, Optional[str]]:
        start = as_dict(as_dict(payload.get("dates")).get("start"))
        venues = as_dict(payload.get("_embedded")).get("venues")
        venue: TicketmasterVenue = as_dict(venues[0]) if isinstance(venues, list) and venues else {}
        location = as_dict(venue.get("location"))
        city = as_dict(venue.get("city")).get("name")
        url = payload.get("url") or ""
        title = payload.get("name") or ""
        event = NormalizedEvent(
            id=event_id(payload.get("id"), url, title),
            source=self.name,
            title=title,
            starts_at=to_iso(start.get("dateTime")) or to_iso(start.get("localDate")),
            venue=venue.get("name"),
            city=city,
            lat=to_float(location.get("latitude")),
            lng=to_float(location.get("longitude")),
            url=url,
            description=payload.get("info"),
        )
        return event, self._venue_address(venue)

    @staticmethod
    def _venue_address(venue: TicketmasterVenue) -> Optional[str]:
        parts = [
            as_dict(venue.get("address")).get("line1"),
            as_dict(venue.get("city")).get("name"),
            as_dict(venue.get("state")).get("stateCode"),
            as_dict(venue.get("country")).get("countryCode"),
        ]
        joined = ", ".join(part for part in parts if part)
        return joined or None

    @staticmethod
    def _format_ts(value: datetime) -> str:
        value = value.astimezone(timezone.utc).replace(microsecond=0)
        return value.strftime("%Y-%m-%dT%H:%M:%SZ")
