"""Scrape orchestration: locality loop, convergence detection and recovery."""

from __future__ import annotations

import asyncio
import random
from contextlib import suppress
from enum import Enum
from typing import Any, AsyncIterable, Callable

from cityscraper.browser import BrowserAdapter
from cityscraper.config import ScrapeSettings
from cityscraper.control import ControlPlane
from cityscraper.dedup import DedupStore
from cityscraper.dom_utils import SleepFn
from cityscraper.errors import (
    ExtractionFailure,
    LocalityFailure,
    LoopFailure,
    NavigationFailure,
    PersistenceFailure,
)
from cityscraper.logging_config import get_logger
from cityscraper.models import Establishment
from cityscraper.state import CityQueue, RunState
from cityscraper.stats import Stats, format_stats
from cityscraper.storage.repo import EstablishmentStore

LOGGER = get_logger(__name__)


class LocalityOutcome(str, Enum):
    """Why processing of a locality stopped."""

    PLATEAU = "plateau"
    SATURATED = "saturated"
    SKIPPED = "skipped"
    HALTED = "halted"
    FAILED = "failed"


class Scraper:
    """Owns the run state and drives localities through the browser adapter."""

    def __init__(
        self,
        settings: ScrapeSettings,
        localities: list[str],
        browser: BrowserAdapter,
        store: EstablishmentStore,
        *,
        sleep: SleepFn = asyncio.sleep,
        rng: random.Random | None = None,
        echo: Callable[[str], None] = print,
    ) -> None:
        self.settings = settings
        self.browser = browser
        self.store = store
        self.state = RunState.from_localities(localities)
        self.stats = Stats()
        self.queue = CityQueue(self.state, self.stats)
        self.dedup = DedupStore(store, self.stats)
        self.control = ControlPlane(self.state, self.queue, self.stats, echo=echo)
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._echo = echo

    # ------------------------------------------------------------------
    # Convergence loop
    # ------------------------------------------------------------------
    def _is_current(self, ticket: int) -> bool:
        return self.state.advance_count == ticket

    def _saturated(self) -> bool:
        return self.stats.duplicates_this_locality >= self.settings.max_duplicates

    def _should_continue(self, ticket: int) -> bool:
        return self.state.running and self._is_current(ticket) and not self._saturated()

    async def _throttle(self) -> None:
        low, high = self.settings.batch_delay
        await self._sleep(self._rng.uniform(low, high))

    async def _process_candidate(self, element: Any, locality: str, ticket: int) -> bool:
        """Extract and submit one element; True when a new record was saved.

        A result read after its locality was retired is dropped so it cannot
        count against the next locality.
        """

        try:
            listing = await self.browser.extract(element)
        except ExtractionFailure as exc:
            self.stats.record_error()
            LOGGER.debug("Extraction failed: %s", exc, extra={"locality": locality})
            return False

        if not self._is_current(ticket):
            LOGGER.debug("Dropping result read after %s was retired", locality)
            return False
        if listing is None or not listing.is_complete:
            return False

        record = Establishment.from_listing(listing, locality)
        try:
            saved = self.dedup.accept(record)
        except PersistenceFailure as exc:
            self.stats.record_error()
            LOGGER.error("%s", exc, extra={"locality": locality})
            return False

        if saved:
            LOGGER.debug(
                "Saved %s | %s",
                record.name,
                record.address,
                extra={"locality": locality},
            )
            self._echo(f"Establishments saved: {self.stats.newly_saved} ({locality})")
        return saved

    async def scrape_locality(self, locality: str, ticket: int | None = None) -> LocalityOutcome:
        """Enumerate the result list for *locality* until it stops growing.

        *ticket* is the queue advance count observed when *locality* became
        current; the loop stops as soon as the queue has moved past it.
        """

        if ticket is None:
            ticket = self.state.advance_count
        if not self._is_current(ticket):
            return LocalityOutcome.SKIPPED
        try:
            await self.browser.navigate(
                self.settings.url_template, locality, self.settings.navigation_timeout
            )
        except NavigationFailure:
            raise
        except Exception as exc:
            raise NavigationFailure(str(exc), locality=locality) from exc

        try:
            dismissed = await self.browser.dismiss_consent(self.settings.consent_timeout)
        except Exception as exc:
            raise NavigationFailure(f"Consent handling failed: {exc}", locality=locality) from exc
        if not dismissed:
            LOGGER.info("No consent dialog for %s", locality, extra={"locality": locality})

        last_count = 0
        stale = 0
        while self._should_continue(ticket) and stale < self.settings.stale_iterations:
            saved = 0
            try:
                candidates = list(await self.browser.query_candidates())
                if len(candidates) == last_count:
                    stale += 1
                else:
                    stale = 0
                    last_count = len(candidates)

                for element in candidates:
                    if not self._should_continue(ticket):
                        break
                    if await self._process_candidate(element, locality, ticket):
                        saved += 1

                await self.browser.trigger_more_results()
            except LocalityFailure:
                raise
            except Exception as exc:
                raise LoopFailure(str(exc), locality=locality) from exc

            LOGGER.info(
                "locality=%s candidates=%d saved=%d duplicates=%d stale=%d",
                locality,
                last_count,
                saved,
                self.stats.duplicates_this_locality,
                stale,
                extra={"locality": locality},
            )
            await self._throttle()

        if not self._is_current(ticket):
            return LocalityOutcome.SKIPPED
        if self._saturated():
            LOGGER.info(
                "%d duplicates reached for %s",
                self.settings.max_duplicates,
                locality,
                extra={"locality": locality},
            )
            self._retire(LocalityOutcome.SATURATED)
            return LocalityOutcome.SATURATED
        if stale >= self.settings.stale_iterations:
            LOGGER.info(
                "Result list for %s stopped growing at %d entries",
                locality,
                last_count,
                extra={"locality": locality},
            )
            self._retire(LocalityOutcome.PLATEAU)
            return LocalityOutcome.PLATEAU
        return LocalityOutcome.HALTED

    def _retire(self, outcome: LocalityOutcome) -> None:
        if outcome is LocalityOutcome.FAILED:
            self.stats.localities_failed += 1
        else:
            self.stats.localities_done += 1
        self.queue.advance()

    # ------------------------------------------------------------------
    # Retry / recovery
    # ------------------------------------------------------------------
    async def _recover_session(self, locality: str) -> None:
        try:
            await self.browser.reinitialize_session()
        except Exception as exc:
            raise NavigationFailure(f"Browser restart failed: {exc}", locality=locality) from exc
        if self.settings.restart_delay > 0:
            await self._sleep(self.settings.restart_delay)

    async def process_locality(self, locality: str) -> LocalityOutcome:
        """Run the convergence loop for *locality* with bounded recovery."""

        ticket = self.state.advance_count
        max_attempts = self.settings.max_attempts
        attempt = 0
        while True:
            attempt += 1
            LOGGER.info(
                "Processing %s (attempt %d/%d)",
                locality,
                attempt,
                max_attempts,
                extra={"locality": locality},
            )
            try:
                if attempt > 1:
                    await self._recover_session(locality)
                    if not self._is_current(ticket):
                        LOGGER.info(
                            "%s was skipped during recovery",
                            locality,
                            extra={"locality": locality},
                        )
                        return LocalityOutcome.SKIPPED
                return await self.scrape_locality(locality, ticket)
            except LocalityFailure as exc:
                self.stats.record_error()
                LOGGER.warning(
                    "Attempt %d/%d for %s failed: %s",
                    attempt,
                    max_attempts,
                    locality,
                    exc,
                    extra={"locality": locality},
                )

            if not self._is_current(ticket):
                return LocalityOutcome.SKIPPED
            if attempt >= max_attempts:
                LOGGER.error(
                    "Giving up on %s after %d attempts",
                    locality,
                    max_attempts,
                    extra={"locality": locality},
                )
                self._retire(LocalityOutcome.FAILED)
                return LocalityOutcome.FAILED
            if self.state.stop_requested:
                return LocalityOutcome.HALTED
            self.stats.record_retry()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    async def _pause_between_localities(self) -> None:
        low, high = self.settings.city_delay
        if high <= 0:
            return
        await self._sleep(self._rng.uniform(low, high))

    async def _drain_queue(self) -> None:
        while self.queue and not self.state.stop_requested:
            if not self.state.running:
                await self._sleep(self.settings.pause_poll)
                continue

            locality = self.queue.current()
            if locality is None:
                break
            self.state.current_locality = locality
            outcome = await self.process_locality(locality)
            LOGGER.info(
                "Finished %s: %s | saved=%d",
                locality,
                outcome.value,
                self.stats.saved_by_locality[locality],
                extra={"locality": locality},
            )
            if self.queue and self.state.running and outcome is not LocalityOutcome.HALTED:
                await self._pause_between_localities()

    async def run(self, commands: AsyncIterable[str] | None = None) -> Stats:
        """Process every queued locality; returns the final counters."""

        self.control.show_banner()
        control_task: asyncio.Task[None] | None = None
        if commands is not None:
            control_task = asyncio.create_task(self.control.consume(commands))

        try:
            self.dedup.load(self.store.load_all())
            await self.browser.start()
            await self._drain_queue()
        finally:
            if control_task is not None:
                control_task.cancel()
                with suppress(asyncio.CancelledError):
                    await control_task
            try:
                await self.browser.close()
            except Exception as exc:
                LOGGER.warning("Failed to close browser: %s", exc)
            self._echo(format_stats(self.stats, self.state))

        LOGGER.info("Scraping finished")
        return self.stats


__all__ = ["LocalityOutcome", "Scraper"]
