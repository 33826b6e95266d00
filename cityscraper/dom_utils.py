"""Helper utilities for safely interacting with page content."""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable

from playwright.async_api import Error as PlaywrightError

from cityscraper.playwright_env import apply_wait_policy

SleepFn = Callable[[float], Awaitable[Any]]


async def human_wait(
    min_ms: int = 350,
    max_ms: int = 900,
    *,
    obey_policy: bool = True,
    sleep: SleepFn = asyncio.sleep,
    rng: random.Random | None = None,
) -> float:
    """Sleep for a random, human-like interval between the provided bounds."""

    if min_ms < 0:
        min_ms = 0
    if max_ms < min_ms:
        max_ms = min_ms

    if obey_policy:
        min_ms, max_ms = apply_wait_policy(min_ms, max_ms)

    delay = (rng or random).uniform(min_ms / 1000, max_ms / 1000)
    await sleep(delay)
    return delay


async def inner_text_safe(locator: Any, timeout: int = 3000) -> str | None:
    """Return the stripped text content for *locator* while ignoring DOM failures."""

    if locator is None:
        return None

    try:
        result = await locator.text_content(timeout=timeout)
    except PlaywrightError:
        return None

    if result is None:
        return None

    return result.strip()
