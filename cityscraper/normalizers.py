"""Utility helpers for normalising scraped listing text."""

from __future__ import annotations

import re
from typing import Iterable

_PHONE_RE = re.compile(r"^(?:\+33|0[1-9])")
_POSTCODE_RE = re.compile(r"\d{5}")


def clean_text(value: str | None) -> str:
    """Trim surrounding whitespace; None becomes ''."""

    if not value:
        return ""
    return value.strip()


def is_phone(value: str) -> bool:
    return bool(_PHONE_RE.match(value))


def is_address(value: str) -> bool:
    return "France" in value or bool(_POSTCODE_RE.search(value))


def classify_info_lines(lines: Iterable[str | None]) -> tuple[str, str]:
    """Pick the phone number and the postal address out of detail-pane lines.

    Phone numbers win over addresses when a line matches both; later lines
    overwrite earlier ones.
    """

    phone = ""
    address = ""
    for raw in lines:
        text = clean_text(raw)
        if not text:
            continue
        if is_phone(text):
            phone = text
        elif is_address(text):
            address = text
    return phone, address


__all__ = ["classify_info_lines", "clean_text", "is_address", "is_phone"]
