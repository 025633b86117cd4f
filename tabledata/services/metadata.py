from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.orm import Session

from tabledata.core.errors import NotFound, ViewTableMismatch
from tabledata.models.base import MetaBase
from tabledata.models.column import MetaColumn
from tabledata.models.table import MetaTable
from tabledata.models.view import MetaView


def _parse_uuid(value: Any) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def get_table(db: Session, table_id: Any) -> MetaTable:
    parsed = _parse_uuid(table_id)
    table = db.get(MetaTable, parsed) if parsed is not None else None
    if table is None:
        raise NotFound("Table not found")
    return table


def get_view(db: Session, view_id: Any) -> MetaView:
    parsed = _parse_uuid(view_id)
    view = db.get(MetaView, parsed) if parsed is not None else None
    if view is None:
        raise NotFound("View not found")
    return view


def get_base(db: Session, table: MetaTable) -> MetaBase | None:
    return db.get(MetaBase, table.base_id)


def get_columns(db: Session, table: MetaTable) -> list[MetaColumn]:
    return (
        db.query(MetaColumn)
        .filter(MetaColumn.table_id == table.id)
        .order_by(MetaColumn.sort_order.asc(), MetaColumn.title.asc())
        .all()
    )


def get_table_and_view(db: Session, table_id: Any, view_id: Any = None) -> tuple[MetaTable, MetaView | None]:
    """Load a table and, when given, a view that must belong to it."""
    table = get_table(db, table_id)
    if view_id is None or not str(view_id).strip():
        return table, None
    view = get_view(db, view_id)
    if view.table_id is not None and view.table_id != table.id:
        raise ViewTableMismatch(f'View "{view.title}" does not belong to table "{table.title}"')
    return table, view
