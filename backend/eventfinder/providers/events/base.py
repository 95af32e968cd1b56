from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol

from eventfinder.domain.models import NormalizedEvent, TimeWindow
from eventfinder.domain.time_window import TimeRange
from eventfinder.providers.geocoding.mapbox import MapboxGeocoder


@dataclass(frozen=True)
class ProviderQuery:
    keyword: str
    city: Optional[str] = None
    country_code: Optional[str] = None
    time_window: TimeWindow = TimeWindow.ANY
    time_range: TimeRange = field(default_factory=TimeRange)
    time_hint: Optional[str] = None
    limit: int = 100
    max_pages: int = 2


class EventsProvider(Protocol):
    """Contract for external event providers.

    Implementations map their upstream payloads into ``NormalizedEvent``,
    return them sorted by ``starts_at`` and never raise for upstream
    non-success responses: those count as zero results.
    """

    name: str

    async def fetch_events(self, query: ProviderQuery) -> List[NormalizedEvent]:
        raise NotImplementedError


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


async def fill_coordinates(
    event: NormalizedEvent, address: Optional[str], geocoder: Optional[MapboxGeocoder]
) -> None:
    """Geocode ``address`` into ``event`` when the provider gave no coordinates."""
    if event.lat is not None and event.lng is not None:
        return
    if geocoder is None or not address:
        return
    coords = await geocoder.geocode(address)
    if coords is not None:
        event.lat, event.lng = coords.lat, coords.lng
