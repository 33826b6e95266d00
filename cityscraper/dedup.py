"""Identity-keyed set of captured establishments."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from cityscraper.errors import PersistenceFailure
from cityscraper.logging_config import get_logger
from cityscraper.models import Establishment, Identity
from cityscraper.stats import Stats

if TYPE_CHECKING:
    from cityscraper.storage.repo import EstablishmentStore

LOGGER = get_logger(__name__)


class DedupStore:
    """Source of truth for which establishments were already captured.

    Entries are only ever added. A record becomes known once the persistent
    store acknowledged the append, so a failed write never marks it as saved.
    Only the scraping coroutine calls into this class.
    """

    def __init__(self, store: "EstablishmentStore", stats: Stats) -> None:
        self._store = store
        self._stats = stats
        self._known: dict[Identity, Establishment] = {}

    def __contains__(self, identity: object) -> bool:
        return identity in self._known

    def __len__(self) -> int:
        return len(self._known)

    def load(self, records: Iterable[Establishment]) -> int:
        """Seed the mapping from persisted records; returns the loaded count."""

        for record in records:
            self._known.setdefault(record.identity, record)
        self._stats.preloaded = len(self._known)
        self._stats.total_known = self._stats.preloaded + self._stats.newly_saved
        LOGGER.info("Loaded %d known establishments", len(self._known))
        return len(self._known)

    def accept(self, candidate: Establishment) -> bool:
        """Persist *candidate* unless its identity is already known.

        Returns False for duplicates. Raises PersistenceFailure when the store
        rejects the append; nothing is recorded in that case.
        """

        if candidate.identity in self._known:
            self._stats.record_duplicate()
            return False

        try:
            self._store.append(candidate)
        except Exception as exc:
            raise PersistenceFailure(
                f"Failed to save {candidate.name!r}: {exc}",
                locality=candidate.locality,
            ) from exc

        self._known[candidate.identity] = candidate
        self._stats.record_saved(candidate.locality)
        return True


__all__ = ["DedupStore"]
