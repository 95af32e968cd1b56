from __future__ import annotations

from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from .models import NormalizedEvent

Fingerprint = Tuple[str, str, str, str]


def url_host(url: Optional[str]) -> str:
    if not url:
        return ""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def fingerprint(event: NormalizedEvent) -> Fingerprint:
    return (
        (event.title or "").lower(),
        event.starts_at or "",
        (event.venue or "").lower(),
        url_host(event.url),
    )


def _hosts_match(left: str, right: str) -> bool:
    # an event without a url host matches any host
    return not left or not right or left == right


def same_event(a: NormalizedEvent, b: NormalizedEvent) -> bool:
    fa, fb = fingerprint(a), fingerprint(b)
    return fa[:3] == fb[:3] and _hosts_match(fa[3], fb[3])


def dedupe(events: Iterable[NormalizedEvent]) -> List[NormalizedEvent]:
    """Keep the first event seen per fingerprint, preserving input order.

    Title, start and venue must be equal. Url hosts must be equal too, unless
    either side has none.
    """
    kept_hosts: dict[Tuple[str, str, str], List[str]] = {}
    out: List[NormalizedEvent] = []
    for event in events:
        key = fingerprint(event)
        hosts = kept_hosts.setdefault(key[:3], [])
        if any(_hosts_match(host, key[3]) for host in hosts):
            continue
        hosts.append(key[3])
        out.append(event)
    return out


def sort_by_start(events: Iterable[NormalizedEvent]) -> List[NormalizedEvent]:
    return sorted(events, key=lambda event: event.starts_at or "")
