"""Utility helpers for the Lumiere service."""

from __future__ import annotations

from datetime import date
from typing import Iterable


def parse_optional_int(value: object) -> int | None:
    """Return ``value`` as an integer, treating blanks as missing."""

    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("Value must be an integer")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError as exc:
        raise ValueError("Value must be an integer") from exc


def parse_id_list(value: object) -> list[int]:
    """Parse identifiers supplied as a comma separated string or iterable."""

    if value is None or value == "":
        return []
    if isinstance(value, str):
        raw_values: Iterable[object] = value.split(",")
    elif isinstance(value, Iterable):
        raw_values = value
    else:
        raise ValueError("Identifiers must be a string or iterable of integers")

    cleaned: list[int] = []
    for entry in raw_values:
        parsed = parse_optional_int(entry)
        if parsed is not None:
            cleaned.append(parsed)
    return cleaned


def parse_tmdb_date(value: object) -> date | None:
    """TMDB reports unknown dates as empty strings."""

    if value is None or isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def year_start(year: int) -> str:
    return f"{year:04d}-01-01"


def year_end(year: int) -> str:
    return f"{year:04d}-12-31"


def build_image_url(path: str | None, base_url: str, size: str) -> str | None:
    """Return an absolute TMDB image URL for a relative image path."""

    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"{base_url.rstrip('/')}/{size}/{path.lstrip('/')}"
