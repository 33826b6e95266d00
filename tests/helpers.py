"""Fakes shared by the engine tests."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Sequence

from cityscraper.browser import BrowserAdapter
from cityscraper.config import ScrapeSettings
from cityscraper.engine import Scraper
from cityscraper.errors import NavigationFailure
from cityscraper.models import Establishment, ExtractedListing
from cityscraper.storage.repo import EstablishmentStore


def listing(name: str, address: str, phone: str = "") -> ExtractedListing:
    return ExtractedListing(name=name, phone=phone, address=address)


def unique_listings(count: int, prefix: str = "Shop") -> list[ExtractedListing]:
    return [listing(f"{prefix} {i}", f"{i} Rue de la Paix 69001 Lyon") for i in range(count)]


class MemoryStore(EstablishmentStore):
    def __init__(self, records: Sequence[Establishment] = (), fail_names: set[str] | None = None) -> None:
        self.records = list(records)
        self.fail_names = fail_names or set()

    def load_all(self) -> list[Establishment]:
        return list(self.records)

    def append(self, record: Establishment) -> None:
        if record.name in self.fail_names:
            raise OSError("disk full")
        self.records.append(record)


class FakeBrowser(BrowserAdapter):
    """Scripted adapter.

    ``batches`` maps a locality to the candidate lists returned by successive
    queries; the last list repeats. A candidate that is an exception instance
    is raised from ``extract``.
    """

    def __init__(
        self,
        batches: dict[str, list[list[Any]]] | None = None,
        *,
        nav_failures: dict[str, int] | None = None,
        consent: bool = True,
        on_extract: Callable[[Any], None] | None = None,
        query_error: Exception | None = None,
        on_restart: Callable[[], None] | None = None,
    ) -> None:
        self.batches = batches or {}
        self.nav_failures = dict(nav_failures or {})
        self.consent = consent
        self.on_extract = on_extract
        self.query_error = query_error
        self.on_restart = on_restart
        self.locality: str | None = None
        self.query_index = 0
        self.navigations: list[str] = []
        self.queries = 0
        self.extracted = 0
        self.scrolls = 0
        self.restarts = 0
        self.started = False
        self.closed = False
        self.first_query = asyncio.Event()

    async def start(self) -> None:
        await asyncio.sleep(0)
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def navigate(self, url_template: str, locality: str, timeout: float) -> None:
        await asyncio.sleep(0)
        self.navigations.append(locality)
        remaining = self.nav_failures.get(locality, 0)
        if remaining:
            self.nav_failures[locality] = remaining - 1
            raise NavigationFailure("timeout", locality=locality)
        self.locality = locality
        self.query_index = 0

    async def dismiss_consent(self, timeout: float) -> bool:
        return self.consent

    async def query_candidates(self) -> list[Any]:
        self.queries += 1
        self.first_query.set()
        await asyncio.sleep(0)
        if self.query_error is not None:
            raise self.query_error
        scripted = self.batches.get(self.locality or "", [[]])
        batch = scripted[min(self.query_index, len(scripted) - 1)]
        self.query_index += 1
        return list(batch)

    async def extract(self, element: Any) -> ExtractedListing | None:
        self.extracted += 1
        await asyncio.sleep(0)
        if self.on_extract is not None:
            self.on_extract(element)
        if isinstance(element, Exception):
            raise element
        return element

    async def trigger_more_results(self) -> None:
        self.scrolls += 1

    async def reinitialize_session(self) -> None:
        self.restarts += 1
        await asyncio.sleep(0)
        if self.on_restart is not None:
            self.on_restart()


class FakeClock:
    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        await asyncio.sleep(0)


def make_scraper(
    localities: list[str],
    browser: FakeBrowser,
    store: EstablishmentStore | None = None,
    **overrides: Any,
) -> tuple[Scraper, FakeClock, list[str]]:
    settings = ScrapeSettings(url_template="https://maps.example/search/{locality}", **overrides)
    clock = FakeClock()
    output: list[str] = []
    scraper = Scraper(
        settings,
        localities,
        browser,
        store if store is not None else MemoryStore(),
        sleep=clock.sleep,
        echo=output.append,
    )
    return scraper, clock, output
