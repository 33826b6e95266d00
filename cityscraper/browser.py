"""Browser automation port used by the scraping engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence
from urllib.parse import quote

from cityscraper.models import ExtractedListing

LOCALITY_PLACEHOLDER = "{locality}"

# Characters left untouched by JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def build_search_url(url_template: str, locality: str) -> str:
    """Insert the percent-encoded *locality* into *url_template*.

    Templates without a ``{locality}`` placeholder get the name appended.
    """

    encoded = quote(locality, safe=_URI_COMPONENT_SAFE)
    if LOCALITY_PLACEHOLDER in url_template:
        return url_template.replace(LOCALITY_PLACEHOLDER, encoded)
    return f"{url_template}{encoded}"


class BrowserAdapter(ABC):
    """Page mechanics for one search site.

    Implementations raise NavigationFailure from ``navigate``, ExtractionFailure
    from ``extract`` and any exception from the remaining calls when the
    session is unusable.
    """

    async def start(self) -> None:
        """Open the browser session."""

    async def close(self) -> None:
        """Release the browser session."""

    @abstractmethod
    async def navigate(self, url_template: str, locality: str, timeout: float) -> None:
        """Load the search view for *locality*, waiting at most *timeout* seconds."""

    @abstractmethod
    async def dismiss_consent(self, timeout: float) -> bool:
        """Dismiss the consent dialog; return False when none appeared in time."""

    @abstractmethod
    async def query_candidates(self) -> Sequence[Any]:
        """Return the currently rendered result elements, in page order."""

    @abstractmethod
    async def extract(self, element: Any) -> ExtractedListing | None:
        """Open *element*, read its fields and return to the list."""

    @abstractmethod
    async def trigger_more_results(self) -> None:
        """Ask the page to render further results."""

    @abstractmethod
    async def reinitialize_session(self) -> None:
        """Throw away the current session and start a fresh one."""


__all__ = ["BrowserAdapter", "LOCALITY_PLACEHOLDER", "build_search_url"]
