from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

UNTITLED = "Untitled"


class TimeWindow(str, Enum):
    TODAY = "today"
    TONIGHT = "tonight"
    TOMORROW = "tomorrow"
    WEEKEND = "weekend"
    ANY = "any"

    @classmethod
    def parse(cls, value: Any) -> "TimeWindow":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.ANY
        return cls.ANY


@dataclass
class Intent:
    topic_keywords: List[str]
    time_window: TimeWindow = TimeWindow.ANY
    city: Optional[str] = None
    country: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "topic_keywords": list(self.topic_keywords),
            "time_window": self.time_window.value,
        }
        if self.city:
            payload["city"] = self.city
        if self.country:
            payload["country"] = self.country
        return payload


@dataclass
class NormalizedEvent:
    id: str
    source: str
    title: str
    url: str = ""
    starts_at: Optional[str] = None
    venue: Optional[str] = None
    city: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    description: Optional[str] = None

    def __post_init__(self):
        if not self.source:
            raise ValueError("source is required")
        if not self.title or not self.title.strip():
            self.title = UNTITLED
        if self.url is None:
            self.url = ""
        if not self.id:
            self.id = event_id(None, self.url, self.title)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "title": self.title,
            "url": self.url,
        }
        optional = {
            "startsAt": self.starts_at,
            "venue": self.venue,
            "city": self.city,
            "lat": self.lat,
            "lng": self.lng,
            "description": self.description,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload


def event_id(provider_id: Optional[str], url: Optional[str], title: Optional[str]) -> str:
    """Provider id, then canonical url, then title."""
    for candidate in (provider_id, url, title):
        if candidate:
            return str(candidate)
    return UNTITLED


@dataclass
class ExtractedPageEvent:
    """One record pulled out of a crawled page by the completion service."""

    title: Optional[str] = None
    starts_at: Optional[str] = None
    venue: Optional[str] = None
    address: Optional[str] = None
    url: Optional[str] = None
