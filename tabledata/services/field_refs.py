"""Resolve-or-omit lookup of field references against a table's columns.

Filters, sorts and projections all refer to columns by free text coming from
the request or from persisted view rows. A reference matches a column by id,
then by title, then by physical column name. References that match nothing, or
that match a virtual column without physical storage, are omitted.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from tabledata.models.column import MetaColumn

_LOG = logging.getLogger("tabledata.query")

VIRTUAL_UIDTS = frozenset({"LinkToAnotherRecord", "Links", "Lookup", "Rollup", "Formula"})


def is_virtual(column: MetaColumn) -> bool:
    return column.uidt in VIRTUAL_UIDTS or not str(column.column_name or "").strip()


def ordered_columns(columns: Iterable[MetaColumn]) -> list[MetaColumn]:
    return sorted(columns, key=lambda c: (c.sort_order or 0, str(c.title)))


class ColumnResolver:
    def __init__(self, columns: Sequence[MetaColumn]):
        self.columns = [c for c in ordered_columns(columns) if not is_virtual(c)]
        self._by_id = {str(c.id): c for c in self.columns}
        self._by_title = {c.title: c for c in self.columns}
        self._by_name = {c.column_name: c for c in self.columns}

    def resolve(self, ref, *, purpose: str = "field") -> MetaColumn | None:
        key = str(ref or "").strip()
        if not key:
            return None
        column = self._by_id.get(key) or self._by_title.get(key) or self._by_name.get(key)
        if column is None:
            _LOG.debug("dropping unresolved %s reference %r", purpose, key)
        return column

    def resolve_all(self, refs: Iterable, *, purpose: str = "field") -> list[MetaColumn]:
        resolved: list[MetaColumn] = []
        for ref in refs:
            column = self.resolve(ref, purpose=purpose)
            if column is not None:
                resolved.append(column)
        return resolved

    @property
    def primary_key(self) -> MetaColumn | None:
        for column in self.columns:
            if column.primary_key:
                return column
        return None
