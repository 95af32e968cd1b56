from __future__ import annotations

from typing import AsyncIterator

from fastapi import Request

from eventfinder.config import Settings
from eventfinder.hub.aggregator import EventAggregator, build_aggregator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_aggregator(request: Request) -> AsyncIterator[EventAggregator]:
    # one aggregator per request; its completion client is closed afterwards
    aggregator = build_aggregator(get_settings(request))
    try:
        yield aggregator
    finally:
        await aggregator.aclose()
