"""Custom exception types for cityscraper."""

from __future__ import annotations

from typing import Optional


class ScraperError(Exception):
    """Base class for scraper failures carrying locality context."""

    default_message = "Scraper failure."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        locality: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.locality = locality
        self.url = url
        super().__init__(self.message)

    def __str__(self) -> str:
        context_parts: list[str] = []
        if self.locality:
            context_parts.append(f"locality={self.locality}")
        if self.url:
            context_parts.append(f"url={self.url}")
        context = ", ".join(context_parts)
        return f"{self.message} ({context})" if context else self.message


class ConfigError(ScraperError):
    """Raised when the configuration cannot be used to start a run."""

    default_message = "Invalid configuration."


class ExtractionFailure(ScraperError):
    """Raised when a single result element cannot be read."""

    default_message = "Failed to extract listing."


class PersistenceFailure(ScraperError):
    """Raised when an accepted record cannot be written to the store."""

    default_message = "Failed to persist establishment."


class LocalityFailure(ScraperError):
    """Base class for failures that abort the current locality attempt."""

    default_message = "Locality attempt failed."


class NavigationFailure(LocalityFailure):
    """Raised when the search view for a locality fails to load."""

    default_message = "Failed to load search results."


class LoopFailure(LocalityFailure):
    """Raised when querying or scrolling the result list fails."""

    default_message = "Result list interaction failed."
