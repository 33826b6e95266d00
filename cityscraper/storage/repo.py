"""Persistent store adapters for captured establishments."""

from __future__ import annotations

import csv
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cityscraper.logging_config import get_logger
from cityscraper.models import Establishment, utc_now

from .models_sql import EstablishmentRow

LOGGER = get_logger(__name__)

# Column names of the establishments.csv export format.
CSV_HEADER = ["name", "phone", "address", "city", "scrapedAt"]


class EstablishmentStore(ABC):
    """Durable append-only record store."""

    @abstractmethod
    def load_all(self) -> list[Establishment]:
        """Return every persisted establishment, oldest first."""

    @abstractmethod
    def append(self, record: Establishment) -> None:
        """Durably write *record*; raise on failure."""


def _format_ts(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row_to_values(record: Establishment) -> list[str]:
    return [
        record.name,
        record.phone or "",
        record.address,
        record.locality or "",
        _format_ts(record.captured_at),
    ]


def _values_to_record(row: dict[str, str]) -> Establishment | None:
    name = row.get("name") or ""
    address = row.get("address") or ""
    if not name and not address:
        return None
    return Establishment(
        name=name,
        address=address,
        phone=row.get("phone") or "",
        locality=row.get("city") or "",
        captured_at=_parse_ts(row.get("scrapedAt")) or utc_now(),
    )


class CsvEstablishmentStore(EstablishmentStore):
    """Append-only CSV file using the ``name,phone,address,city,scrapedAt`` layout."""

    def __init__(self, csv_path: str | Path) -> None:
        self.path = Path(csv_path)

    def _ensure_file(self) -> None:
        # An empty file would make the first appended record the header.
        if self.path.exists() and self.path.stat().st_size > 0:
            return
        os.makedirs(self.path.parent, exist_ok=True)
        with self.path.open("w", newline="", encoding="utf-8") as handle:
            csv.writer(handle).writerow(CSV_HEADER)
        LOGGER.info("Created %s", self.path)

    def load_all(self) -> list[Establishment]:
        self._ensure_file()
        records: list[Establishment] = []
        with self.path.open("r", newline="", encoding="utf-8") as handle:
            for row in csv.DictReader(handle):
                record = _values_to_record(row)
                if record is not None:
                    records.append(record)
        return records

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def append(self, record: Establishment) -> None:
        self._ensure_file()
        with self.path.open("a", newline="", encoding="utf-8") as handle:
            csv.writer(handle).writerow(_row_to_values(record))
            handle.flush()
            os.fsync(handle.fileno())


class SqlEstablishmentStore(EstablishmentStore):
    """SQLite-backed store, one commit per accepted establishment."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def load_all(self) -> list[Establishment]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(EstablishmentRow).order_by(EstablishmentRow.id)
            ).all()
            return [
                Establishment(
                    name=row.name,
                    address=row.address,
                    phone=row.phone or "",
                    locality=row.locality or "",
                    captured_at=row.captured_at,
                )
                for row in rows
            ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type(OperationalError),
        reraise=True,
    )
    def append(self, record: Establishment) -> None:
        with self._session_factory() as session:
            session.add(
                EstablishmentRow(
                    name=record.name,
                    phone=record.phone or None,
                    address=record.address,
                    locality=record.locality or None,
                    captured_at=record.captured_at,
                )
            )
            session.commit()


def export_csv(records: Iterable[Establishment], csv_path: str | Path) -> int:
    """Write *records* to *csv_path* atomically; returns the row count."""

    path = Path(csv_path)
    os.makedirs(path.parent, exist_ok=True)

    count = 0
    with NamedTemporaryFile(
        mode="w", newline="", encoding="utf-8", dir=str(path.parent), delete=False
    ) as handle:
        writer = csv.writer(handle)
        writer.writerow(CSV_HEADER)
        for record in records:
            writer.writerow(_row_to_values(record))
            count += 1
        handle.flush()
        os.fsync(handle.fileno())
        tmp_name = handle.name

    os.replace(tmp_name, path)
    return count


__all__ = [
    "CSV_HEADER",
    "CsvEstablishmentStore",
    "EstablishmentStore",
    "SqlEstablishmentStore",
    "export_csv",
]
