from __future__ import annotations

from eventfinder.domain.relevance import CitySubstringRelevance, LocatedCandidate


def test_no_city_accepts_everything():
    strategy = CitySubstringRelevance()
    assert strategy.is_relevant(LocatedCandidate(address="Paris, France"), None)
    assert strategy.is_relevant(LocatedCandidate(), "  ")


def test_address_or_venue_must_mention_city():
    strategy = CitySubstringRelevance()
    assert strategy.is_relevant(LocatedCandidate(address="123 Main St, Boston, MA"), "boston")
    assert strategy.is_relevant(LocatedCandidate(venue="Boston Symphony Hall"), "Boston")
    assert not strategy.is_relevant(LocatedCandidate(address="Cambridge, MA", venue="The Sinclair"), "Boston")


def test_brooklyn_accepts_new_york_addresses():
    strategy = CitySubstringRelevance()
    candidate = LocatedCandidate(address="131 W 3rd St, New York, NY")
    assert strategy.is_relevant(candidate, "Brooklyn")
    assert not strategy.is_relevant(candidate, "Queens")


def test_adjacency_is_swappable():
    strategy = CitySubstringRelevance(adjacency={"Oakland": ("San Francisco",)})
    assert strategy.is_relevant(LocatedCandidate(address="SF Jazz, San Francisco, CA"), "oakland")
    assert not strategy.is_relevant(LocatedCandidate(address="131 W 3rd St, New York, NY"), "Brooklyn")
