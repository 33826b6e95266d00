"""Run counters and their operator-facing rendering."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from cityscraper.state import RunState


@dataclass
class Stats:
    """Counters for one process lifetime.

    ``total_known`` and ``newly_saved`` only grow; ``duplicates_this_locality``
    is reset by the queue whenever it advances.
    """

    total_known: int = 0
    newly_saved: int = 0
    duplicates_this_locality: int = 0
    errors: int = 0
    retries: int = 0
    preloaded: int = 0
    localities_done: int = 0
    localities_failed: int = 0
    saved_by_locality: Counter[str] = field(default_factory=Counter)

    def record_saved(self, locality: str) -> None:
        self.newly_saved += 1
        self.total_known += 1
        self.saved_by_locality[locality] += 1

    def record_duplicate(self) -> None:
        self.duplicates_this_locality += 1

    def record_error(self) -> None:
        self.errors += 1

    def record_retry(self) -> None:
        self.retries += 1

    def snapshot(self) -> Mapping[str, Any]:
        """Return a read-only copy of the counters."""

        return MappingProxyType(
            {
                "total_known": self.total_known,
                "newly_saved": self.newly_saved,
                "duplicates_this_locality": self.duplicates_this_locality,
                "errors": self.errors,
                "retries": self.retries,
                "preloaded": self.preloaded,
                "localities_done": self.localities_done,
                "localities_failed": self.localities_failed,
                "saved_by_locality": dict(self.saved_by_locality),
            }
        )


def format_stats(stats: Stats, state: "RunState | None" = None) -> str:
    lines = [
        "Statistics:",
        f"  Total establishments:   {stats.total_known}",
        f"  Newly saved:            {stats.newly_saved}",
        f"  Duplicates (locality):  {stats.duplicates_this_locality}",
        f"  Errors:                 {stats.errors}",
        f"  Recovery attempts:      {stats.retries}",
        f"  Localities done/failed: {stats.localities_done}/{stats.localities_failed}",
    ]
    if state is not None:
        lines.append(f"  Current locality:       {state.current_locality or '-'}")
        lines.append(f"  Localities remaining:   {len(state.queue)}")
    return "\n".join(lines)


__all__ = ["Stats", "format_stats"]
