"""Run state shared between the scraping loop and the control plane."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Iterable

from cityscraper.logging_config import get_logger
from cityscraper.stats import Stats

LOGGER = get_logger(__name__)


@dataclass
class RunState:
    """Mutable run flags plus the ordered list of localities left to process.

    ``running`` is cleared by pause and quit; only quit sets ``stop_requested``.
    ``advance_count`` lets a worker notice that its locality was retired.
    """

    queue: deque[str] = field(default_factory=deque)
    running: bool = True
    stop_requested: bool = False
    current_locality: str | None = None
    advance_count: int = 0

    @classmethod
    def from_localities(cls, localities: Iterable[str]) -> "RunState":
        queue = deque(name for name in localities if name)
        return cls(queue=queue, current_locality=queue[0] if queue else None)

    def as_dict(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "stop_requested": self.stop_requested,
            "current_locality": self.current_locality,
            "remaining": list(self.queue),
        }


class CityQueue:
    """Ordered locality work list; advancing is the only way to retire one."""

    def __init__(self, state: RunState, stats: Stats) -> None:
        self._state = state
        self._stats = stats

    def current(self) -> str | None:
        return self._state.queue[0] if self._state.queue else None

    def __len__(self) -> int:
        return len(self._state.queue)

    def __bool__(self) -> bool:
        return bool(self._state.queue)

    def advance(self) -> str | None:
        """Retire the front locality and return the next one, if any."""

        state = self._state
        state.advance_count += 1
        if state.queue:
            retired = state.queue.popleft()
            LOGGER.debug("Retired locality %s", retired, extra={"locality": retired})
        self._stats.duplicates_this_locality = 0

        if state.queue:
            state.current_locality = state.queue[0]
            LOGGER.info("Moving on to locality %s", state.current_locality)
            return state.current_locality

        state.current_locality = None
        state.running = False
        LOGGER.info("All localities have been processed")
        return None


__all__ = ["CityQueue", "RunState"]
