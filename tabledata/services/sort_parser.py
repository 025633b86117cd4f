from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

Direction = Literal["asc", "desc"]


@dataclass(frozen=True)
class SortItem:
    field: str
    direction: Direction = "asc"


def _iter_raw_entries(raw: str | Iterable[str] | None) -> Iterable[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    entries: list[str] = []
    for item in raw:
        if not isinstance(item, str):
            continue
        entries.extend(item.split(","))
    return entries


def parse_sort(raw: str | Iterable[str] | None) -> list[SortItem]:
    """Turn ``"-Name"``, ``"Name,-Year"`` or ``["-Name", "Year"]`` into sort items.

    Entries that are blank after removing the direction prefix are dropped
    without error; whether a field exists is checked later, against the table.
    """
    items: list[SortItem] = []
    for entry in _iter_raw_entries(raw):
        text = entry.strip()
        direction: Direction = "asc"
        if text.startswith("-"):
            direction = "desc"
            text = text[1:].strip()
        elif text.startswith("+"):
            text = text[1:].strip()
        if not text:
            continue
        items.append(SortItem(field=text, direction=direction))
    return items
