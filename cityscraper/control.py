"""Interactive operator commands applied to a running scrape."""

from __future__ import annotations

import asyncio
import json
import sys
import threading
from enum import Enum
from typing import AsyncIterable, AsyncIterator, Callable, TextIO

from cityscraper.logging_config import get_logger
from cityscraper.state import CityQueue, RunState
from cityscraper.stats import Stats, format_stats

LOGGER = get_logger(__name__)

BANNER = """
+----------------------------------------------------+
|              CITYSCRAPER - Google Maps              |
+----------------------------------------------------+
| Commands:                                          |
|  q: quit       p: pause       r: resume            |
|  s: stats      n: next city   d: debug dump        |
|  h: help                                           |
+----------------------------------------------------+
"""


class Command(str, Enum):
    """Operator commands understood by the control plane."""

    QUIT = "quit"
    PAUSE = "pause"
    RESUME = "resume"
    STATS = "stats"
    SKIP = "skip"
    DEBUG = "debug"
    HELP = "help"


_ALIASES: dict[str, Command] = {
    "q": Command.QUIT,
    "p": Command.PAUSE,
    "r": Command.RESUME,
    "s": Command.STATS,
    "n": Command.SKIP,
    "next": Command.SKIP,
    "d": Command.DEBUG,
    "h": Command.HELP,
    "?": Command.HELP,
}


def parse_command(token: str) -> Command | None:
    """Map a console token to a Command; None when it is not recognised."""

    key = token.strip().lower()
    if not key:
        return None
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return Command(key)
    except ValueError:
        return None


class ControlPlane:
    """Applies operator commands to the shared run state.

    Every handler is a plain synchronous flag or queue write, so a command
    only lands while the scraping coroutine is suspended.
    """

    def __init__(
        self,
        state: RunState,
        queue: CityQueue,
        stats: Stats,
        *,
        echo: Callable[[str], None] = print,
    ) -> None:
        self._state = state
        self._queue = queue
        self._stats = stats
        self._echo = echo

    def show_banner(self) -> None:
        self._echo(BANNER)

    def handle_token(self, token: str) -> Command | None:
        command = parse_command(token)
        if command is None:
            if token.strip():
                LOGGER.warning("Unknown command %r", token.strip())
                self.show_banner()
            return None
        self.handle(command)
        return command

    def handle(self, command: Command) -> None:
        state = self._state
        if command is Command.QUIT:
            LOGGER.info("Stop requested by operator")
            state.running = False
            state.stop_requested = True
        elif command is Command.PAUSE:
            state.running = False
            LOGGER.info("Paused")
        elif command is Command.RESUME:
            if state.stop_requested:
                LOGGER.warning("Run is stopping; resume ignored")
                return
            if not self._queue:
                LOGGER.warning("No localities left; resume ignored")
                return
            state.running = True
            LOGGER.info("Resumed")
        elif command is Command.STATS:
            self._echo(format_stats(self._stats, state))
        elif command is Command.SKIP:
            LOGGER.info("Skipping locality %s", state.current_locality)
            self._queue.advance()
        elif command is Command.DEBUG:
            payload = {**state.as_dict(), **self._stats.snapshot()}
            self._echo(json.dumps(payload, ensure_ascii=False, indent=2))
        elif command is Command.HELP:
            self.show_banner()

    async def consume(self, source: AsyncIterable[str]) -> None:
        """Apply commands from *source* until it is exhausted."""

        async for token in source:
            self.handle_token(token)

        LOGGER.debug("Command input closed")
        if not self._state.running and not self._state.stop_requested:
            LOGGER.info("Command input closed while paused; stopping")
            self._state.stop_requested = True


class StdinCommandSource:
    """Yields stripped console lines read by a daemon thread."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._tokens: asyncio.Queue[str | None] | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        tokens: asyncio.Queue[str | None] = asyncio.Queue()
        self._tokens = tokens

        def _publish(token: str | None) -> bool:
            try:
                loop.call_soon_threadsafe(tokens.put_nowait, token)
            except RuntimeError:
                return False
            return True

        def _read_lines() -> None:
            for line in self._stream:
                token = line.strip()
                if token and not _publish(token):
                    return
            _publish(None)

        self._thread = threading.Thread(
            target=_read_lines,
            name="cityscraper-stdin",
            daemon=True,
        )
        self._thread.start()

    async def __aiter__(self) -> AsyncIterator[str]:
        if self._tokens is None:
            self.start()
        assert self._tokens is not None
        while True:
            token = await self._tokens.get()
            if token is None:
                return
            yield token


__all__ = [
    "BANNER",
    "Command",
    "ControlPlane",
    "StdinCommandSource",
    "parse_command",
]
