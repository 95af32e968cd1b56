from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, TypedDict

import httpx

from eventfinder.domain.dedupe import sort_by_start
from eventfinder.domain.models import NormalizedEvent, event_id
from eventfinder.domain.time_window import TimeRange
from eventfinder.domain.timestamps import parse_datetime, to_iso
from eventfinder.errors import UpstreamUnavailable
from eventfinder.providers.geocoding.mapbox import MapboxGeocoder

from .base import EventsProvider, ProviderQuery, as_dict, fill_coordinates, to_float

logger = logging.getLogger(__name__)

ORGANIZATION_MODE = "organization"
SEARCH_MODE = "search"


class EventbriteAddress(TypedDict, total=False):
    address_1: str
    city: str
    country: str
    latitude: str
    longitude: str
    localized_address_display: str


class EventbriteVenue(TypedDict, total=False):
    name: str
    address: EventbriteAddress
    latitude: str
    longitude: str


class EventbriteEvent(TypedDict, total=False):
    id: str
    url: str
    name: Dict[str, str]
    description: Dict[str, str]
    start: Dict[str, str]
    venue: EventbriteVenue


class EventbriteEventsProvider(EventsProvider):
    """Eventbrite events, either from organization calendars or from search.

    ``organization`` mode lists the events of ``org_id``, or of every
    organization the token belongs to when no id is configured. That listing
    cannot filter by text, so the keyword is not sent upstream.

    ``search`` mode queries public events by keyword, location and date
    range. Search is unreliable for some accounts, so an empty search falls
    back to the organization listing.

    In both modes the resolved time range is also applied locally.
    """

    BASE_URL = "https://www.eventbriteapi.com/v3"
    MODES = (ORGANIZATION_MODE, SEARCH_MODE)
    name = "eventbrite"

    def __init__(
        self,
        token: str,
        org_id: Optional[str] = None,
        timeout: float = 10.0,
        *,
        mode: str = ORGANIZATION_MODE,
        within: str = "30mi",
        status: str = "live",
        geocoder: Optional[MapboxGeocoder] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            raise ValueError("token is required for EventbriteEventsProvider")
        if mode not in self.MODES:
            raise ValueError(f"Unknown Eventbrite mode: {mode}")
        self.token = token
        self.org_id = org_id
        self.timeout = timeout
        self.mode = mode
        self.within = within
        self.status = status
        self.geocoder = geocoder
        self._transport = transport

    async def fetch_events(self, query: ProviderQuery) -> List[NormalizedEvent]:
        headers = {"Authorization": f"Bearer {self.token}"}
        mapped: List[NormalizedEvent] = []
        async with httpx.AsyncClient(
            base_url=self.BASE_URL, headers=headers, timeout=self.timeout, transport=self._transport
        ) as client:
            if self.mode == SEARCH_MODE:
                mapped = await self.search(client, query)
                if not mapped:
                    logger.info("Eventbrite search returned nothing; listing organization events")
            if not mapped:
                org_ids = [self.org_id] if self.org_id else await self.discover_organizations(client)
                for org_id in org_ids:
                    mapped.extend(await self._fetch_org(client, org_id, query))
        return sort_by_start([event for event in mapped if self._in_range(event, query.time_range)])

    async def search(self, client: httpx.AsyncClient, query: ProviderQuery) -> List[NormalizedEvent]:
        params: Dict[str, Any] = {"sort_by": "date", "expand": "venue"}
        if query.keyword:
            params["q"] = query.keyword
        address = ", ".join(part for part in (query.city, query.country_code) if part)
        if address:
            params["location.address"] = address
            params["location.within"] = self.within
        if query.time_range.start is not None:
            params["start_date.range_start"] = self._format_ts(query.time_range.start)
        if query.time_range.end is not None:
            params["start_date.range_end"] = self._format_ts(query.time_range.end)
        return await self._paginate(client, "/events/search/", params, query.max_pages)

    async def discover_organizations(self, client: httpx.AsyncClient) -> List[str]:
        org_ids: List[str] = []
        params: Dict[str, Any] = {}
        while True:
            try:
                data = await self._get(client, "/users/me/organizations/", params)
            except UpstreamUnavailable as exc:
                logger.warning("Eventbrite organization discovery failed: %s", exc)
                break
            organizations = data.get("organizations")
            for org in organizations if isinstance(organizations, list) else []:
                if isinstance(org, dict) and org.get("id"):
                    org_ids.append(str(org["id"]))
            pagination = as_dict(data.get("pagination"))
            continuation = pagination.get("continuation")
            if not pagination.get("has_more_items") or not continuation:
                break
            params = {"continuation": continuation}
        logger.info("Discovered %d Eventbrite organizations", len(org_ids))
        return org_ids

    async def _fetch_org(
        self, client: httpx.AsyncClient, org_id: str, query: ProviderQuery
    ) -> List[NormalizedEvent]:
        params = {"status": self.status, "order_by": "start_asc", "expand": "venue"}
        return await self._paginate(client, f"/organizations/{org_id}/events/", params, query.max_pages)

    async def _paginate(
        self, client: httpx.AsyncClient, path: str, params: Dict[str, Any], max_pages: int
    ) -> List[NormalizedEvent]:
        mapped: List[NormalizedEvent] = []
        page = 1
        for _ in range(max(0, max_pages)):
            try:
                data = await self._get(client, path, {**params, "page": page})
            except UpstreamUnavailable as exc:
                logger.warning("Eventbrite %s page %d skipped: %s", path, page, exc)
                break
            events = data.get("events")
            for item in events if isinstance(events, list) else []:
                if not isinstance(item, dict):
                    continue
                event, address = self._map_event(item)
                await fill_coordinates(event, address, self.geocoder)
                mapped.append(event)
            pagination = as_dict(data.get("pagination"))
            if not pagination.get("has_more_items"):
                break
            page = self._next_page(pagination, page)
        return mapped

    async def _get(self, client: httpx.AsyncClient, path: str, params: dict) -> dict:
        try:
            resp = await client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(self.name, reason=str(exc)) from exc
        if resp.status_code >= 400:
            raise UpstreamUnavailable(self.name, status_code=resp.status_code)
        try:
            data = resp.json()
        except ValueError:
            logger.warning("Eventbrite returned a non-JSON body for %s", path)
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _next_page(pagination: Dict[str, Any], page: int) -> int:
        try:
            return int(pagination.get("page_number") or page) + 1
        except (TypeError, ValueError):
            return page + 1

    def _map_event(self, payload: EventbriteEvent) -> Tuple[NormalizedEvent, Optional[str]]:
        venue: EventbriteVenue = as_dict(payload.get("venue"))
        address: EventbriteAddress = as_dict(venue.get("address"))
        start = as_dict(payload.get("start"))
        title = as_dict(payload.get("name")).get("text") or ""
        url = payload.get("url") or ""
        event = NormalizedEvent(
            id=event_id(payload.get("id"), url, title),
            source=self.name,
            title=title,
            starts_at=to_iso(start.get("utc")) or to_iso(start.get("local")),
            venue=venue.get("name"),
            city=address.get("city"),
            lat=to_float(address.get("latitude") or venue.get("latitude")),
            lng=to_float(address.get("longitude") or venue.get("longitude")),
            url=url,
            description=as_dict(payload.get("description")).get("text"),
        )
        display = address.get("localized_address_display")
        if not display:
            display = ", ".join(part for part in (address.get("address_1"), address.get("city")) if part)
        return event, display or None

    @staticmethod
    def _format_ts(value: datetime) -> str:
        value = value.astimezone(timezone.utc).replace(microsecond=0)
        return value.strftime("%Y-%m-%dT%H:%M:%SZ")

    @staticmethod
    def _in_range(event: NormalizedEvent, time_range: TimeRange) -> bool:
        if not time_range.bounded:
            return True
        start = parse_datetime(event.starts_at)
        if start is None:
            return True
        return time_range.contains(start)
