"""Google Maps search-results scraping interface."""

from __future__ import annotations

import asyncio
import random
from typing import Any, Sequence

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    async_playwright,
)

import cityscraper.selectors as selectors
from cityscraper.browser import BrowserAdapter, build_search_url
from cityscraper.dom_utils import SleepFn, human_wait, inner_text_safe
from cityscraper.errors import ExtractionFailure, NavigationFailure
from cityscraper.logging_config import get_logger
from cityscraper.models import ExtractedListing
from cityscraper.normalizers import classify_info_lines, clean_text
from cityscraper.playwright_env import (
    BLOCKED_RESOURCE_TYPES,
    apply_stealth,
    close_browser,
    context_kwargs,
    launch_browser,
    resource_blocking_enabled,
)

LOGGER = get_logger(__name__)
ELEMENT_ACTION_TIMEOUT_MS = 5000


class GoogleMapsBrowser(BrowserAdapter):
    """Drives one Chromium page over the Google Maps result feed."""

    def __init__(
        self,
        *,
        sleep: SleepFn = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._sleep = sleep
        self._rng = rng
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._page_crashed = False
        self._crash_reason = "page closed unexpectedly"

    async def start(self) -> None:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
            apply_stealth(self._playwright)

        self._browser = await launch_browser(self._playwright)
        self._context = await self._browser.new_context(**context_kwargs())
        page = await self._context.new_page()
        self._page_crashed = False
        page.on("crash", lambda _: self._mark_crash("crash"))
        page.on("close", lambda _: self._mark_crash("page_close"))
        if resource_blocking_enabled():
            await page.route("**/*", self._filter_request)
        self._page = page
        LOGGER.info("Browser session started")

    async def close(self) -> None:
        await self._close_session()
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                LOGGER.warning("Failed to stop Playwright: %s", exc)
            self._playwright = None

    async def reinitialize_session(self) -> None:
        reason = self._crash_reason if self._page_crashed else "recovery"
        LOGGER.warning("Restarting browser session (%s)", reason)
        await self._close_session()
        await self.start()

    async def _close_session(self) -> None:
        context, browser = self._context, self._browser
        self._page = self._context = self._browser = None
        if context is not None:
            try:
                await context.close()
            except Exception as exc:
                LOGGER.warning("Failed to close context: %s", exc)
        await close_browser(browser)

    def _mark_crash(self, reason: str) -> None:
        if self._page is None or self._page_crashed:
            return
        self._crash_reason = reason
        self._page_crashed = True
        LOGGER.error("Playwright page event=%s", reason)

    def _active_page(self) -> Page:
        if self._page is None:
            raise PlaywrightError("browser session not started")
        if self._page_crashed:
            raise PlaywrightError(f"browser page inactive ({self._crash_reason})")
        return self._page

    @staticmethod
    async def _filter_request(route: Route) -> None:
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    async def navigate(self, url_template: str, locality: str, timeout: float) -> None:
        url = build_search_url(url_template, locality)
        try:
            page = self._active_page()
            await page.goto(url, wait_until="networkidle", timeout=timeout * 1000)
        except PlaywrightError as exc:
            raise NavigationFailure(str(exc), locality=locality, url=url) from exc

    async def dismiss_consent(self, timeout: float) -> bool:
        try:
            page = self._active_page()
            await page.wait_for_selector(selectors.CONSENT_FORM, timeout=timeout * 1000)
            await page.click(selectors.CONSENT_REJECT_BUTTON)
        except PlaywrightError as exc:
            LOGGER.debug("Consent dialog not handled: %s", exc)
            return False
        await human_wait(900, 1100, sleep=self._sleep, rng=self._rng)
        return True

    async def query_candidates(self) -> Sequence[Any]:
        page = self._active_page()
        return await page.query_selector_all(selectors.RESULT_CARD)

    async def extract(self, element: Any) -> ExtractedListing | None:
        try:
            page = self._active_page()
            await element.scroll_into_view_if_needed(timeout=ELEMENT_ACTION_TIMEOUT_MS)
            await human_wait(250, 350, obey_policy=False, sleep=self._sleep, rng=self._rng)
            await element.click(timeout=ELEMENT_ACTION_TIMEOUT_MS)
            await human_wait(450, 600, obey_policy=False, sleep=self._sleep, rng=self._rng)

            name = await inner_text_safe(page.locator(selectors.DETAIL_NAME).first)
            lines = await page.locator(selectors.DETAIL_INFO_LINES).all_text_contents()

            back = page.locator(selectors.BACK_BUTTON).first
            if await back.count():
                await back.click(timeout=ELEMENT_ACTION_TIMEOUT_MS)
        except PlaywrightError as exc:
            raise ExtractionFailure(str(exc)) from exc

        phone, address = classify_info_lines(lines)
        name = clean_text(name)
        if not (name or phone or address):
            return None
        return ExtractedListing(name=name, phone=phone, address=address)

    async def trigger_more_results(self) -> None:
        page = self._active_page()
        found = await page.evaluate(selectors.SCROLL_RESULTS_SCRIPT)
        if not found:
            LOGGER.debug("Results panel not found while scrolling")


__all__ = ["GoogleMapsBrowser"]
