"""Centralised helpers for Playwright launch + anti-bot configuration."""

from __future__ import annotations

import os
import shlex
from functools import lru_cache
from typing import Any
from urllib.parse import urlparse

from playwright.async_api import Browser, Playwright

from cityscraper.logging_config import get_logger

LOGGER = get_logger(__name__)

_FALSE_VALUES = {"0", "false", "no", "off"}

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1920, "height": 1080}
BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font"})


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def headless_enabled() -> bool:
    """Return True if Playwright should run in headless mode."""

    return _as_bool(os.getenv("CITYSCRAPER_HEADLESS"), True)


def stealth_enabled() -> bool:
    """Return True when stealth evasion scripts should be applied."""

    return _as_bool(os.getenv("CITYSCRAPER_STEALTH"), True)


def resource_blocking_enabled() -> bool:
    return _as_bool(os.getenv("CITYSCRAPER_BLOCK_RESOURCES"), True)


def user_agent() -> str:
    return (os.getenv("CITYSCRAPER_USER_AGENT") or os.getenv("USER_AGENT") or DEFAULT_USER_AGENT).strip()


@lru_cache(maxsize=1)
def _stealth_instance():
    if not stealth_enabled():
        return None
    from playwright_stealth import Stealth

    lang_env = os.getenv("CITYSCRAPER_LANGS") or "fr-FR,fr"
    langs = tuple(
        entry.strip()
        for entry in lang_env.split(",")
        if entry.strip()
    ) or ("fr-FR", "fr")

    return Stealth(
        navigator_languages_override=langs[:2],
        navigator_platform_override=os.getenv("CITYSCRAPER_PLATFORM", "Win32"),
        navigator_user_agent_override=user_agent(),
        navigator_vendor_override=os.getenv("CITYSCRAPER_VENDOR", "Google Inc."),
    )


def apply_stealth(playwright: Playwright) -> None:
    """Hook the provided Playwright object with stealth evasions when enabled."""

    instance = _stealth_instance()
    if instance is None:
        return
    try:
        instance.hook_playwright_context(playwright)
    except Exception as exc:
        LOGGER.warning("Unable to apply stealth evasions: %s", exc)


def _proxy_config() -> dict[str, str] | None:
    raw = os.getenv("CITYSCRAPER_PROXY")
    if not raw:
        return None
    parsed = urlparse(raw)
    if not parsed.scheme:
        return {"server": f"http://{raw}"}
    return {"server": raw}


def slow_mo_ms() -> int | None:
    value = _env_int("CITYSCRAPER_SLOW_MO_MS", 0)
    return value if value > 0 else None


def launch_kwargs() -> dict[str, Any]:
    """Return kwargs passed to chromium.launch."""

    args = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-accelerated-2d-canvas",
        "--disable-gpu",
        "--disable-blink-features=AutomationControlled",
        f"--window-size={VIEWPORT['width']},{VIEWPORT['height']}",
    ]
    extra_args = os.getenv("CITYSCRAPER_CHROMIUM_ARGS")
    if extra_args:
        args.extend(shlex.split(extra_args))

    kwargs: dict[str, Any] = {
        "headless": headless_enabled(),
        "args": args,
    }

    channel = os.getenv("CITYSCRAPER_BROWSER_CHANNEL")
    if channel:
        kwargs["channel"] = channel

    proxy = _proxy_config()
    if proxy:
        kwargs["proxy"] = proxy

    slow_mo = slow_mo_ms()
    if slow_mo:
        kwargs["slow_mo"] = slow_mo

    return kwargs


def context_kwargs() -> dict[str, Any]:
    """Return kwargs passed to browser.new_context."""

    return {
        "viewport": dict(VIEWPORT),
        "user_agent": user_agent(),
        "locale": os.getenv("CITYSCRAPER_LOCALE", "fr-FR"),
    }


async def launch_browser(playwright: Playwright) -> Browser:
    """Launch Chromium according to env overrides."""

    return await playwright.chromium.launch(**launch_kwargs())


async def close_browser(browser: Browser | None) -> None:
    """Close the provided browser without raising."""

    if browser is None:
        return
    try:
        await browser.close()
    except Exception as exc:
        LOGGER.debug("Ignoring error while closing browser: %s", exc)


def apply_wait_policy(min_ms: int, max_ms: int) -> tuple[int, int]:
    """Apply the global wait multiplier for human_wait() calls."""

    multiplier = max(_env_float("CITYSCRAPER_WAIT_MULTIPLIER", 1.0), 0.1)

    scaled_min = int(min_ms * multiplier)
    scaled_max = int(max_ms * multiplier)
    if scaled_max < scaled_min:
        scaled_max = scaled_min
    return scaled_min, scaled_max
