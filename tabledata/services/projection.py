from __future__ import annotations

from typing import Iterable

from tabledata.models.column import MetaColumn
from tabledata.services.field_refs import ColumnResolver


def split_field_list(raw: str | Iterable[str] | None) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    fields: list[str] = []
    for item in raw:
        fields.extend(part.strip() for part in str(item).split(",") if part.strip())
    return fields


def resolve_projection(
    resolver: ColumnResolver,
    fields: Iterable[str] | None,
    hidden_column_ids: Iterable[str] = (),
) -> list[MetaColumn]:
    """Columns to return, always in table order.

    Hidden columns are never returned. When no field list is given, or none of
    its entries resolves to a visible column, every visible column is returned.
    """
    hidden = {str(column_id) for column_id in hidden_column_ids}
    visible = [column for column in resolver.columns if str(column.id) not in hidden]
    requested = split_field_list(fields)
    if not requested:
        return visible
    wanted = {str(column.id) for column in resolver.resolve_all(requested, purpose="projection")}
    selected = [column for column in visible if str(column.id) in wanted]
    return selected or visible
