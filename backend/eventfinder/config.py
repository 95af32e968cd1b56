"""Runtime configuration for the event aggregation service.

Environment variables are loaded once (``.env`` included) and grouped into a
:class:`Settings` object that is passed explicitly to the aggregator and the
provider clients. Nothing below the entry points reads the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

from eventfinder.errors import ConfigurationError

load_dotenv()

DEFAULT_LLM_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_INTENT_MODEL = "openai/gpt-oss-20b"
DEFAULT_EXTRACTION_MODEL = "llama-3.3-70b-versatile"
DEFAULT_PROVIDERS = ("ticketmaster", "serpapi", "eventbrite")
DEFAULT_REQUIRED_PROVIDERS = ("ticketmaster",)

# provider name -> (credential attribute, environment variable)
PROVIDER_CREDENTIALS: Dict[str, Tuple[str, str]] = {
    "ticketmaster": ("ticketmaster_api_key", "TICKETMASTER_API_KEY"),
    "serpapi": ("serpapi_api_key", "SERPAPI_API_KEY"),
    "eventbrite": ("eventbrite_token", "EVENTBRITE_TOKEN"),
}


@dataclass(frozen=True)
class ProviderCredentials:
    llm_api_key: Optional[str] = None
    ticketmaster_api_key: Optional[str] = None
    serpapi_api_key: Optional[str] = None
    mapbox_token: Optional[str] = None
    eventbrite_token: Optional[str] = None
    eventbrite_org_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ProviderCredentials":
        return cls(
            llm_api_key=os.getenv("GROQ_API_KEY") or os.getenv("OPENAI_API_KEY"),
            ticketmaster_api_key=os.getenv("TICKETMASTER_API_KEY"),
            serpapi_api_key=os.getenv("SERPAPI_API_KEY"),
            mapbox_token=os.getenv("MAPBOX_TOKEN") or os.getenv("NEXT_PUBLIC_MAPBOX_TOKEN"),
            eventbrite_token=os.getenv("EVENTBRITE_TOKEN"),
            eventbrite_org_id=os.getenv("EVENTBRITE_ORG_ID"),
        )

    def for_provider(self, provider: str) -> Optional[str]:
        attribute, _ = PROVIDER_CREDENTIALS[provider]
        return getattr(self, attribute)


def _split_names(value: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    names = tuple(name.strip().lower() for name in value.split(",") if name.strip())
    unknown = [name for name in names if name not in PROVIDER_CREDENTIALS]
    if unknown:
        raise ValueError(f"Unknown event providers: {', '.join(unknown)}")
    return names


@dataclass(frozen=True)
class Settings:
    credentials: ProviderCredentials = field(default_factory=ProviderCredentials)
    enabled_providers: Tuple[str, ...] = DEFAULT_PROVIDERS
    required_providers: Tuple[str, ...] = DEFAULT_REQUIRED_PROVIDERS
    llm_base_url: str = DEFAULT_LLM_BASE_URL
    intent_model: str = DEFAULT_INTENT_MODEL
    extraction_model: str = DEFAULT_EXTRACTION_MODEL
    http_timeout: float = 10.0
    llm_timeout: float = 30.0
    provider_timeout: float = 45.0
    max_pages: int = 2
    page_size: int = 100
    timezone: str = "UTC"
    eventbrite_mode: str = "organization"
    eventbrite_within: str = "30mi"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            credentials=ProviderCredentials.from_env(),
            enabled_providers=_split_names(os.getenv("EVENTS_PROVIDERS"), DEFAULT_PROVIDERS),
            required_providers=_split_names(
                os.getenv("EVENTS_REQUIRED_PROVIDERS"), DEFAULT_REQUIRED_PROVIDERS
            ),
            llm_base_url=os.getenv("LLM_BASE_URL", DEFAULT_LLM_BASE_URL),
            intent_model=os.getenv("INTENT_MODEL", DEFAULT_INTENT_MODEL),
            extraction_model=os.getenv("EXTRACTION_MODEL", DEFAULT_EXTRACTION_MODEL),
            http_timeout=float(os.getenv("EVENTS_HTTP_TIMEOUT", "10")),
            llm_timeout=float(os.getenv("LLM_TIMEOUT", "30")),
            provider_timeout=float(os.getenv("EVENTS_PROVIDER_TIMEOUT", "45")),
            max_pages=int(os.getenv("EVENTS_MAX_PAGES", "2")),
            page_size=int(os.getenv("EVENTS_PAGE_SIZE", "100")),
            timezone=os.getenv("EVENTS_TIMEZONE", "UTC"),
            eventbrite_mode=os.getenv("EVENTBRITE_MODE", "organization").strip().lower(),
            eventbrite_within=os.getenv("EVENTBRITE_WITHIN", "30mi"),
            environment=os.getenv("APP_ENV", "development"),
        )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def validate(self) -> None:
        """Fail fast when a mandatory credential is missing."""
        if not self.credentials.llm_api_key:
            raise ConfigurationError("GROQ_API_KEY")
        for provider in self.required_providers:
            if provider not in self.enabled_providers:
                continue
            if not self.credentials.for_provider(provider):
                raise ConfigurationError(PROVIDER_CREDENTIALS[provider][1])


__all__ = [
    "PROVIDER_CREDENTIALS",
    "ProviderCredentials",
    "Settings",
]
