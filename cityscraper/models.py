"""Plain record types shared by the engine and the adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


Identity = tuple[str, str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ExtractedListing:
    """Fields read from one result card; any of them may be empty."""

    name: str = ""
    phone: str = ""
    address: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.name) and bool(self.address)


@dataclass(frozen=True)
class Establishment:
    """A captured business listing."""

    name: str
    address: str
    phone: str = ""
    locality: str = ""
    captured_at: datetime = field(default_factory=utc_now)

    @property
    def identity(self) -> Identity:
        """Uniqueness key, compared exactly as extracted."""

        return (self.name, self.address)

    @classmethod
    def from_listing(
        cls,
        listing: ExtractedListing,
        locality: str,
        *,
        captured_at: datetime | None = None,
    ) -> "Establishment":
        return cls(
            name=listing.name,
            address=listing.address,
            phone=listing.phone,
            locality=locality,
            captured_at=captured_at or utc_now(),
        )


__all__ = ["Establishment", "ExtractedListing", "Identity", "utc_now"]
