from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Tuple

# Neighbourhood -> containing metro names also accepted for it.
DEFAULT_ADJACENCY: Mapping[str, Tuple[str, ...]] = {
    "brooklyn": ("new york",),
}


@dataclass(frozen=True)
class LocatedCandidate:
    """The location text a provider has for a candidate before normalisation."""

    address: Optional[str] = None
    venue: Optional[str] = None


class RelevanceStrategy(Protocol):
    def is_relevant(self, candidate: LocatedCandidate, query_city: Optional[str]) -> bool:
        ...


class CitySubstringRelevance:
    """Best-effort city match on free-text address and venue labels.

    A candidate is relevant when no city was requested, when its address or
    venue contains the city name, or when its address contains a metro name
    the city is listed as adjacent to.
    """

    def __init__(self, adjacency: Optional[Mapping[str, Tuple[str, ...]]] = None) -> None:
        source = DEFAULT_ADJACENCY if adjacency is None else adjacency
        self.adjacency = {key.lower(): tuple(v.lower() for v in values) for key, values in source.items()}

    def is_relevant(self, candidate: LocatedCandidate, query_city: Optional[str]) -> bool:
        if not query_city or not query_city.strip():
            return True
        city = query_city.strip().lower()
        address = (candidate.address or "").lower()
        venue = (candidate.venue or "").lower()
        if city in address or city in venue:
            return True
        return any(metro in address for metro in self.adjacency.get(city, ()))
