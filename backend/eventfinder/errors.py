from __future__ import annotations

from typing import Optional


class EventFinderError(Exception):
    """Base class for errors raised by the aggregation pipeline."""


class ConfigurationError(EventFinderError):
    """A credential required by the enabled configuration is missing."""

    def __init__(self, name: str, message: Optional[str] = None) -> None:
        self.name = name
        super().__init__(message or f"{name} not set")


class CompletionError(EventFinderError):
    """The completion service could not be reached or answered with an error."""


class IntentExtractionError(EventFinderError):
    """Intent extraction failed; the whole request cannot proceed."""


class UpstreamUnavailable(EventFinderError):
    """An event provider returned a non-success status or could not be reached.

    Provider clients raise this internally and recover at their own boundary;
    it never escapes a provider's ``fetch_events``.
    """

    def __init__(self, provider: str, status_code: Optional[int] = None, reason: str = "") -> None:
        self.provider = provider
        self.status_code = status_code
        detail = f"status={status_code}" if status_code is not None else reason
        super().__init__(f"{provider} unavailable ({detail})")
