from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


class MapboxGeocoder:
    """Best-effort forward geocoding; every failure yields ``None``."""

    BASE_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"

    def __init__(
        self,
        token: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.timeout = timeout
        self._transport = transport

    async def geocode(self, address: Optional[str]) -> Optional[Coordinates]:
        if not self.token or not address or not address.strip():
            return None
        params = {"access_token": self.token, "limit": 1, "language": "en"}
        url = f"{self.BASE_URL}/{quote(address.strip(), safe='')}.json"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Geocoding failed for %r: %s", address, exc)
            return None
        return self._parse_center(data)

    @staticmethod
    def _parse_center(data: dict) -> Optional[Coordinates]:
        features = data.get("features") if isinstance(data, dict) else None
        if not features:
            return None
        if not isinstance(features, list) or not isinstance(features[0], dict):
            return None
        center = features[0].get("center")
        if not isinstance(center, list) or len(center) != 2:
            return None
        try:
            return Coordinates(lat=float(center[1]), lng=float(center[0]))
        except (TypeError, ValueError):
            return None
