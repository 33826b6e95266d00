from __future__ import annotations

import asyncio

import pytest

pytest.importorskip("playwright")

from playwright.async_api import Error as PlaywrightError

import cityscraper.selectors as selectors
from cityscraper.errors import ExtractionFailure, NavigationFailure
from cityscraper.sites.google_maps import GoogleMapsBrowser


class DummyLocator:
    def __init__(self, texts, clicks):
        self._texts = list(texts)
        self._clicks = clicks

    @property
    def first(self):
        return DummyLocator(self._texts[:1], self._clicks)

    async def text_content(self, timeout=None):
        if not self._texts:
            raise PlaywrightError("timeout")
        return self._texts[0]

    async def all_text_contents(self):
        return list(self._texts)

    async def count(self):
        return len(self._texts)

    async def click(self, timeout=None):
        self._clicks.append("back")


class DummyPage:
    def __init__(self, fields, *, goto_error=None):
        self.fields = fields
        self.clicks = []
        self.goto_error = goto_error
        self.visited = []

    def locator(self, selector):
        return DummyLocator(self.fields.get(selector, []), self.clicks)

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append((url, wait_until, timeout))
        if self.goto_error is not None:
            raise self.goto_error


class DummyElement:
    def __init__(self, fail=False):
        self.fail = fail
        self.actions = []

    async def scroll_into_view_if_needed(self, timeout=None):
        self.actions.append("scroll")

    async def click(self, timeout=None):
        if self.fail:
            raise PlaywrightError("element is detached")
        self.actions.append("click")


async def _no_sleep(_seconds):
    return None


def _browser(page) -> GoogleMapsBrowser:
    browser = GoogleMapsBrowser(sleep=_no_sleep)
    browser._page = page
    return browser


def test_extract_reads_detail_pane_and_goes_back() -> None:
    page = DummyPage(
        {
            selectors.DETAIL_NAME: ["  Le Bouchon des Filles "],
            selectors.DETAIL_INFO_LINES: ["20 Rue Sergent Blandan, 69001 Lyon", "04 78 30 40 44"],
            selectors.BACK_BUTTON: ["Back"],
        }
    )
    element = DummyElement()

    listing = asyncio.run(_browser(page).extract(element))

    assert listing is not None
    assert listing.name == "Le Bouchon des Filles"
    assert listing.phone == "04 78 30 40 44"
    assert listing.address == "20 Rue Sergent Blandan, 69001 Lyon"
    assert element.actions == ["scroll", "click"]
    assert page.clicks == ["back"]


def test_extract_returns_none_for_empty_pane() -> None:
    listing = asyncio.run(_browser(DummyPage({})).extract(DummyElement()))

    assert listing is None


def test_extract_wraps_playwright_errors() -> None:
    with pytest.raises(ExtractionFailure):
        asyncio.run(_browser(DummyPage({})).extract(DummyElement(fail=True)))


def test_navigate_builds_url_and_wraps_errors() -> None:
    page = DummyPage({}, goto_error=PlaywrightError("Timeout 90000ms exceeded"))

    with pytest.raises(NavigationFailure) as excinfo:
        asyncio.run(_browser(page).navigate("https://maps.example/search/{locality}", "Le Mans", 90))

    assert page.visited == [("https://maps.example/search/Le%20Mans", "networkidle", 90000)]
    assert excinfo.value.locality == "Le Mans"


def test_navigate_without_session_is_a_navigation_failure() -> None:
    with pytest.raises(NavigationFailure):
        asyncio.run(GoogleMapsBrowser(sleep=_no_sleep).navigate("https://x/{locality}", "Lyon", 1))
