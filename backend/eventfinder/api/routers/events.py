from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from eventfinder.api.deps import get_aggregator
from eventfinder.hub.aggregator import EventAggregator

router = APIRouter(tags=["events"])


class EventSearchRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=1000)
    city: Optional[str] = None
    country: Optional[str] = None
    plan: Optional[str] = None

    @field_validator("prompt")
    @classmethod
    def _strip_prompt(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("prompt must not be blank")
        return value

    @field_validator("city", "country")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


@router.post("/events")
async def search_events(
    body: EventSearchRequest,
    aggregator: EventAggregator = Depends(get_aggregator),
):
    result = await aggregator.aggregate(body.prompt, body.city, body.country, body.plan)
    return result.to_dict()
