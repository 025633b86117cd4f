from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tabledata.core.errors import MalformedFilterSyntax, NotFound, RecordNotFound, integrity_error
from tabledata.db.connections import get_connection
from tabledata.models.base import MetaBase
from tabledata.models.table import MetaTable
from tabledata.models.view import MetaView
from tabledata.schemas.data import DataQueryParams
from tabledata.services.filter_parser import FilterNode, parse_where
from tabledata.services.metadata import get_base, get_columns, get_table_and_view
from tabledata.services.pagination import ensure_offset_in_range, normalize_window, page_info
from tabledata.services.projection import resolve_projection
from tabledata.services.query_plan import QueryPlanBuilder, row_to_dict
from tabledata.services.sort_parser import parse_sort
from tabledata.services.view_overlay import EffectiveQuery, apply_view_overlay, load_view_rules

_LOG = logging.getLogger("tabledata.data")


@dataclass(frozen=True)
class TableContext:
    table: MetaTable
    view: MetaView | None
    base: MetaBase | None
    builder: QueryPlanBuilder


def _load_context(db: Session, table_id: str, view_id: str | None = None) -> TableContext:
    table, view = get_table_and_view(db, table_id, view_id)
    return TableContext(
        table=table,
        view=view,
        base=get_base(db, table),
        builder=QueryPlanBuilder(table, get_columns(db, table)),
    )


def _parse_request_filter(where: str | None) -> FilterNode | None:
    try:
        return parse_where(where)
    except MalformedFilterSyntax as exc:
        _LOG.warning("ignoring malformed where clause %r: %s", exc.expression, exc.reason)
        return None


def _effective_query(db: Session, ctx: TableContext, params: DataQueryParams) -> EffectiveQuery:
    return apply_view_overlay(
        load_view_rules(db, ctx.view),
        fields=params.fields,
        sort=parse_sort(params.sort),
        where=_parse_request_filter(params.where),
    )


def data_list_service(table_id: str, params: DataQueryParams, db: Session, user: dict) -> dict[str, Any]:
    ctx = _load_context(db, table_id, params.view_id)
    query = _effective_query(db, ctx, params)
    projection = resolve_projection(ctx.builder.resolver, query.fields.requested, query.fields.hidden_column_ids)
    plan = ctx.builder.plan_list(projection, query.filter, query.sort)
    window = normalize_window(params.offset, params.limit)

    with get_connection(db, ctx.base) as conn:
        total = int(conn.execute(plan.count).scalar_one())
        ensure_offset_in_range(window, total)
        rows = conn.execute(plan.page(window)).all()

    _LOG.debug("listed %d of %d rows from %r for %s", len(rows), total, ctx.table.title, user.get("sub"))
    return {
        "list": [row_to_dict(plan.projection, row) for row in rows],
        "pageInfo": page_info(window, total).model_dump(),
    }


def data_count_service(table_id: str, params: DataQueryParams, db: Session, user: dict) -> dict[str, int]:
    ctx = _load_context(db, table_id, params.view_id)
    query = _effective_query(db, ctx, params)
    with get_connection(db, ctx.base) as conn:
        total = int(conn.execute(ctx.builder.count_statement(query.filter)).scalar_one())
    return {"count": total}


def data_read_service(
    table_id: str,
    row_id: str,
    db: Session,
    user: dict,
    *,
    view_id: str | None = None,
    fields: Iterable[str] | None = None,
) -> dict[str, Any]:
    """Read one row by primary key.

    The view's filter does not apply to a read by key; its hidden columns do.
    """
    ctx = _load_context(db, table_id, view_id)
    builder = ctx.builder
    builder.require_primary_key()
    try:
        pk_value = builder.coerce_pk(row_id)
    except ValueError:
        raise NotFound("Row not found")

    rules = load_view_rules(db, ctx.view)
    projection = resolve_projection(builder.resolver, fields, rules.hidden_column_ids)
    with get_connection(db, ctx.base) as conn:
        row = conn.execute(builder.select_by_pk(projection, pk_value)).first()
    if row is None:
        raise NotFound("Row not found")
    return row_to_dict(projection, row)


def _as_batch(payload: Any) -> tuple[list[Any], bool]:
    if isinstance(payload, list):
        return list(payload), True
    return [payload], False


def _run_batch(ctx: TableContext, db: Session, execute: Callable[[Any], list[Any]]) -> list[Any]:
    try:
        with get_connection(db, ctx.base, write=True) as conn:
            return execute(conn)
    except IntegrityError as exc:
        _LOG.warning("constraint violation writing to %r: %s", ctx.table.title, exc.orig)
        raise integrity_error()


def data_insert_service(table_id: str, payload: Any, db: Session, user: dict, *, view_id: str | None = None) -> Any:
    ctx = _load_context(db, table_id, view_id)
    builder = ctx.builder
    records, is_batch = _as_batch(payload)
    prepared = [builder.prepare_insert(record, index if is_batch else None) for index, record in enumerate(records)]
    pk = builder.primary_key

    def execute(conn) -> list[Any]:
        echoes: list[Any] = []
        for values in prepared:
            result = conn.execute(builder.insert_statement(values))
            if pk is None:
                echoes.append({})
                continue
            inserted = result.inserted_primary_key
            pk_value = inserted[0] if inserted else values.get(pk.column_name)
            echoes.append({pk.title: pk_value})
        return echoes

    echoes = _run_batch(ctx, db, execute) if prepared else []
    _LOG.info("inserted %d rows into %r by %s", len(echoes), ctx.table.title, user.get("sub"))
    return echoes if is_batch else echoes[0]


def data_update_service(table_id: str, payload: Any, db: Session, user: dict, *, view_id: str | None = None) -> Any:
    ctx = _load_context(db, table_id, view_id)
    builder = ctx.builder
    pk = builder.require_primary_key()
    records, is_batch = _as_batch(payload)
    prepared = [builder.prepare_update(record, index if is_batch else None) for index, record in enumerate(records)]

    def execute(conn) -> list[Any]:
        for index, mutation in enumerate(prepared):
            if mutation.values:
                matched = conn.execute(builder.update_statement(mutation)).rowcount
            else:
                matched = 1 if conn.execute(builder.exists_by_pk(mutation.pk_value)).first() else 0
            if not matched:
                raise RecordNotFound(mutation.echo, index=index if is_batch else None)
        return [{pk.title: mutation.echo} for mutation in prepared]

    echoes = _run_batch(ctx, db, execute) if prepared else []
    _LOG.info("updated %d rows in %r by %s", len(echoes), ctx.table.title, user.get("sub"))
    return echoes if is_batch else echoes[0]


def data_delete_service(table_id: str, payload: Any, db: Session, user: dict, *, view_id: str | None = None) -> Any:
    ctx = _load_context(db, table_id, view_id)
    builder = ctx.builder
    pk = builder.require_primary_key()
    records, is_batch = _as_batch(payload)
    prepared = [builder.prepare_delete(record, index if is_batch else None) for index, record in enumerate(records)]

    def execute(conn) -> list[Any]:
        for index, mutation in enumerate(prepared):
            if not conn.execute(builder.delete_statement(mutation)).rowcount:
                raise RecordNotFound(mutation.echo, index=index if is_batch else None)
        return [{pk.title: mutation.echo} for mutation in prepared]

    echoes = _run_batch(ctx, db, execute) if prepared else []
    _LOG.info("deleted %d rows from %r by %s", len(echoes), ctx.table.title, user.get("sub"))
    return echoes if is_batch else echoes[0]

