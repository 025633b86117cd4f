"""
Translation of resolved request parameters into SQLAlchemy Core statements.

The physical table is described per request from column metadata; SQLAlchemy
then takes care of identifier quoting, ``LIMIT``/``OFFSET`` and ``LIKE``
escaping for whatever dialect the base runs on. Filter literals and payload
values only ever reach the database as bound parameters.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Sequence

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement

from tabledata.core.errors import InvalidRecord, MissingPrimaryKey, bad_filter_value
from tabledata.models.column import MetaColumn
from tabledata.models.table import MetaTable
from tabledata.services import coercion
from tabledata.services.field_refs import ColumnResolver
from tabledata.services.filter_parser import NULL_CHECK_OPERATORS, And, Comparison, FilterNode, Not, Or
from tabledata.services.pagination import PaginationWindow
from tabledata.services.sort_parser import SortItem

_LOG = logging.getLogger("tabledata.query")

UIDT_KINDS = {
    "SingleLineText": "text",
    "LongText": "text",
    "Email": "text",
    "URL": "text",
    "PhoneNumber": "text",
    "SingleSelect": "select",
    "MultiSelect": "multiselect",
    "ID": "number",
    "AutoNumber": "number",
    "Number": "number",
    "Rating": "number",
    "Duration": "number",
    "Decimal": "decimal",
    "Currency": "decimal",
    "Percent": "decimal",
    "Checkbox": "boolean",
    "Date": "date",
    "DateTime": "datetime",
    "CreatedTime": "datetime",
    "LastModifiedTime": "datetime",
    "JSON": "json",
    "Attachment": "json",
}

_TEXT_OPS = {"eq", "neq", "gt", "gte", "lt", "lte", "like", "nlike", "in", "null", "notnull", "blank", "notblank", "empty", "notempty"}
_ORDERED_OPS = {"eq", "neq", "gt", "gte", "lt", "lte", "null", "notnull", "blank", "notblank"}

OPERATORS_BY_KIND: dict[str, set[str]] = {
    "text": _TEXT_OPS,
    "select": _TEXT_OPS | {"anyof", "nanyof"},
    "multiselect": {"eq", "neq", "like", "nlike", "anyof", "nanyof", "allof", "nallof", "null", "notnull", "blank", "notblank", "empty", "notempty"},
    "number": _ORDERED_OPS | {"in"},
    "decimal": _ORDERED_OPS | {"in"},
    "boolean": {"eq", "neq", "checked", "notchecked", "null", "notnull", "blank", "notblank"},
    "date": set(_ORDERED_OPS),
    "datetime": set(_ORDERED_OPS),
    "json": {"null", "notnull", "blank", "notblank"},
}

_STRING_KINDS = {"text", "select", "multiselect"}

_IS_NEGATION = {
    "null": "notnull",
    "notnull": "null",
    "blank": "notblank",
    "notblank": "blank",
    "empty": "notempty",
    "notempty": "empty",
    "checked": "notchecked",
    "notchecked": "checked",
}


def column_kind(column: MetaColumn) -> str:
    return UIDT_KINDS.get(column.uidt, "text")


def sa_type_for(column: MetaColumn):
    kind = column_kind(column)
    if kind == "number":
        return sa.Integer() if column.primary_key else sa.BigInteger()
    if kind == "decimal":
        return sa.Numeric(asdecimal=True)
    if kind == "boolean":
        return sa.Boolean()
    if kind == "date":
        return sa.Date()
    if kind == "datetime":
        return sa.DateTime(timezone=True)
    if kind == "json":
        return sa.JSON()
    return sa.Text()


def serialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: serialize_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return value


def row_to_dict(projection: Sequence[MetaColumn], row: Sequence[Any]) -> dict[str, Any]:
    return {column.title: serialize_value(value) for column, value in zip(projection, row)}


def _split_values(raw: str | None) -> list[str]:
    return [part.strip() for part in str(raw or "").split(",") if part.strip()]


def _expand_is(op: str, value: str | None) -> str:
    if op not in {"is", "isnot"}:
        return op
    keyword = str(value or "").strip().lower()
    if keyword not in _IS_NEGATION:
        return op
    return keyword if op == "is" else _IS_NEGATION[keyword]


@dataclass(frozen=True)
class ListQueryPlan:
    projection: tuple[MetaColumn, ...]
    select: sa.Select
    count: sa.Select

    def page(self, window: PaginationWindow) -> sa.Select:
        return self.select.limit(window.limit).offset(window.offset)


@dataclass(frozen=True)
class PreparedMutation:
    """One validated record of an update or delete batch."""

    echo: Any
    pk_value: Any
    values: dict[str, Any]


class QueryPlanBuilder:
    def __init__(self, table: MetaTable, columns: Sequence[MetaColumn]):
        self.table = table
        self.resolver = ColumnResolver(columns)
        self.sa_table = sa.Table(
            table.table_name,
            sa.MetaData(),
            *[
                sa.Column(
                    column.column_name,
                    sa_type_for(column),
                    primary_key=bool(column.primary_key),
                    autoincrement=bool(column.auto_increment) if column.primary_key else False,
                    nullable=bool(column.nullable) and not column.primary_key,
                )
                for column in self.resolver.columns
            ],
        )

    @property
    def primary_key(self) -> MetaColumn | None:
        return self.resolver.primary_key

    def require_primary_key(self) -> MetaColumn:
        pk = self.primary_key
        if pk is None:
            raise InvalidRecord(f'Table "{self.table.title}" has no primary key')
        return pk

    def sa_column(self, column: MetaColumn) -> sa.Column:
        return self.sa_table.c[column.column_name]

    # -- filter -----------------------------------------------------------

    def where_clause(self, node: FilterNode | None) -> ColumnElement | None:
        if node is None:
            return None
        if isinstance(node, Comparison):
            return self._comparison_clause(node)
        if isinstance(node, Not):
            inner = self.where_clause(node.term)
            return sa.not_(inner) if inner is not None else None
        left = self.where_clause(node.left)
        right = self.where_clause(node.right)
        if left is None or right is None:
            return left if right is None else right
        if isinstance(node, And):
            return sa.and_(left, right)
        if isinstance(node, Or):
            return sa.or_(left, right)
        raise TypeError(f"unsupported filter node {type(node).__name__}")

    def _filter_value(self, column: MetaColumn, raw: Any) -> Any:
        col = self.sa_column(column)
        kind = column_kind(column)
        try:
            return coercion.coerce_for_kind(kind, col.type.python_type, raw)
        except ValueError:
            raise bad_filter_value(column.title, kind)

    def _comparison_clause(self, node: Comparison) -> ColumnElement | None:
        column = self.resolver.resolve(node.field, purpose="filter")
        if column is None:
            return None
        kind = column_kind(column)
        op = _expand_is(node.op, node.value)
        if kind == "select" and op == "anyof":
            op = "in"
        if op not in OPERATORS_BY_KIND[kind]:
            _LOG.warning("dropping filter on %r: operator %r is not valid for %s columns", column.title, node.op, kind)
            return None
        col = self.sa_column(column)
        if op in NULL_CHECK_OPERATORS:
            return self._null_check(col, kind, op)
        if node.value is None:
            _LOG.warning("dropping filter on %r: operator %r needs a value", column.title, op)
            return None

        if op in {"like", "nlike"}:
            clause = self._like(col, node.value)
            return clause if op == "like" else sa.or_(sa.not_(clause), col.is_(None))
        if op in {"in", "nanyof"} and kind != "multiselect":
            values = [self._filter_value(column, item) for item in _split_values(node.value)]
            if not values:
                return None
            if op == "in":
                return col.in_(values)
            return sa.or_(col.not_in(values), col.is_(None))
        if op in {"anyof", "nanyof", "allof", "nallof"}:
            return self._multiselect(col, op, _split_values(node.value))

        if kind == "datetime" and op in {"eq", "neq"} and coercion.is_date_only_literal(node.value):
            day_start = self._filter_value(column, node.value)
            day_expr = sa.and_(col >= day_start, col < day_start + timedelta(days=1))
            return day_expr if op == "eq" else sa.or_(sa.not_(day_expr), col.is_(None))

        value = self._filter_value(column, node.value)
        if op == "eq":
            return col == value
        if op == "neq":
            return sa.or_(col != value, col.is_(None))
        if op == "gt":
            return col > value
        if op == "gte":
            return col >= value
        if op == "lt":
            return col < value
        if op == "lte":
            return col <= value
        return None

    @staticmethod
    def _null_check(col: sa.Column, kind: str, op: str) -> ColumnElement:
        if op == "null":
            return col.is_(None)
        if op == "notnull":
            return col.is_not(None)
        if op == "checked":
            return col == sa.true()
        if op == "notchecked":
            return sa.or_(col.is_(None), col == sa.false())
        if op == "empty":
            return col == ""
        if op == "notempty":
            return sa.or_(col != "", col.is_(None))
        if kind in _STRING_KINDS:
            if op == "blank":
                return sa.or_(col.is_(None), col == "")
            return sa.and_(col.is_not(None), col != "")
        return col.is_(None) if op == "blank" else col.is_not(None)

    @staticmethod
    def _like(col: sa.Column, raw: str) -> ColumnElement:
        # A leading or trailing % anchors the match at the other end.
        leading = raw.startswith("%")
        trailing = raw.endswith("%") and len(raw) > 1
        needle = raw[1 if leading else 0 : len(raw) - 1 if trailing else len(raw)]
        if trailing and not leading:
            return col.istartswith(needle, autoescape=True)
        if leading and not trailing:
            return col.iendswith(needle, autoescape=True)
        return col.icontains(needle, autoescape=True)

    @staticmethod
    def _multiselect(col: sa.Column, op: str, options: list[str]) -> ColumnElement | None:
        if not options:
            return None
        members = [
            sa.or_(
                col == option,
                col.startswith(option + ",", autoescape=True),
                col.endswith("," + option, autoescape=True),
                col.contains("," + option + ",", autoescape=True),
            )
            for option in options
        ]
        if op in {"anyof", "nanyof"}:
            clause = sa.or_(*members)
        else:
            clause = sa.and_(*members)
        if op.startswith("n"):
            return sa.or_(sa.not_(clause), col.is_(None))
        return clause

    # -- sort / projection --------------------------------------------------

    def order_by(self, sort: Sequence[SortItem]) -> list[ColumnElement]:
        """ORDER BY terms; the primary key is always the final tie-breaker."""
        clauses: list[ColumnElement] = []
        seen: set[str] = set()
        for item in sort:
            column = self.resolver.resolve(item.field, purpose="sort")
            if column is None or column.column_name in seen:
                continue
            seen.add(column.column_name)
            col = self.sa_column(column)
            clauses.append(col.desc() if item.direction == "desc" else col.asc())
        pk = self.primary_key
        if pk is not None and pk.column_name not in seen:
            clauses.append(self.sa_column(pk).asc())
        return clauses

    def _select(self, projection: Sequence[MetaColumn]) -> sa.Select:
        return sa.select(*[self.sa_column(column) for column in projection]).select_from(self.sa_table)

    def _count(self, clause: ColumnElement | None) -> sa.Select:
        stmt = sa.select(sa.func.count()).select_from(self.sa_table)
        return stmt if clause is None else stmt.where(clause)

    def count_statement(self, node: FilterNode | None) -> sa.Select:
        return self._count(self.where_clause(node))

    def plan_list(
        self,
        projection: Sequence[MetaColumn],
        node: FilterNode | None,
        sort: Sequence[SortItem],
    ) -> ListQueryPlan:
        clause = self.where_clause(node)
        select = self._select(projection)
        if clause is not None:
            select = select.where(clause)
        return ListQueryPlan(
            projection=tuple(projection),
            select=select.order_by(*self.order_by(sort)),
            count=self._count(clause),
        )

    # -- primary key ------------------------------------------------------

    def coerce_pk(self, raw: Any) -> Any:
        pk = self.require_primary_key()
        python_type = self.sa_column(pk).type.python_type
        return coercion.coerce_for_kind(column_kind(pk), python_type, raw)

    def select_by_pk(self, projection: Sequence[MetaColumn], pk_value: Any) -> sa.Select:
        pk = self.require_primary_key()
        return self._select(projection).where(self.sa_column(pk) == pk_value).limit(1)

    def exists_by_pk(self, pk_value: Any) -> sa.Select:
        pk = self.require_primary_key()
        return sa.select(self.sa_column(pk)).where(self.sa_column(pk) == pk_value).limit(1)

    # -- mutations ----------------------------------------------------------

    def _payload_value(self, column: MetaColumn, raw: Any, index: int | None) -> Any:
        if raw is None:
            if not column.nullable:
                raise InvalidRecord(f'Field "{column.title}" cannot be null', index=index)
            return None
        try:
            return coercion.coerce_for_kind(column_kind(column), self.sa_column(column).type.python_type, raw)
        except ValueError:
            raise InvalidRecord(f'Invalid value for field "{column.title}"', index=index)

    def _payload_columns(self, record: Any, index: int | None) -> list[tuple[MetaColumn, Any]]:
        if not isinstance(record, dict):
            raise InvalidRecord("Record must be a JSON object", index=index)
        pairs: list[tuple[MetaColumn, Any]] = []
        unknown: list[str] = []
        for key, raw in record.items():
            column = self.resolver.resolve(key, purpose="payload")
            if column is None:
                unknown.append(str(key))
                continue
            pairs.append((column, raw))
        if unknown:
            raise InvalidRecord("Unknown fields: " + ", ".join(sorted(unknown)), index=index)
        return pairs

    def prepare_insert(self, record: Any, index: int | None = None) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for column, raw in self._payload_columns(record, index):
            if column.primary_key and column.auto_increment:
                raise InvalidRecord(f'Field "{column.title}" is generated and cannot be set', index=index)
            values[column.column_name] = self._payload_value(column, raw, index)

        missing: list[str] = []
        for column in self.resolver.columns:
            if column.column_name in values or column.auto_increment:
                continue
            if column.default_value is not None:
                values[column.column_name] = self._payload_value(column, column.default_value, index)
            elif not column.nullable or column.primary_key:
                missing.append(column.title)
        if missing:
            raise InvalidRecord("Missing required fields: " + ", ".join(sorted(missing)), index=index)
        return values

    def _prepare_targeted(self, record: Any, index: int | None, *, with_values: bool) -> PreparedMutation:
        pk = self.require_primary_key()
        echo: Any = None
        has_pk = False
        values: dict[str, Any] = {}
        for column, raw in self._payload_columns(record, index):
            if column.primary_key:
                echo, has_pk = raw, raw is not None and str(raw).strip() != ""
                continue
            if with_values:
                values[column.column_name] = self._payload_value(column, raw, index)
        if not has_pk:
            raise MissingPrimaryKey(pk.title, index=index)
        try:
            pk_value = self.coerce_pk(echo)
        except ValueError:
            raise InvalidRecord(f'Invalid primary key value {echo!r}', index=index)
        return PreparedMutation(echo=echo, pk_value=pk_value, values=values)

    def prepare_update(self, record: Any, index: int | None = None) -> PreparedMutation:
        return self._prepare_targeted(record, index, with_values=True)

    def prepare_delete(self, record: Any, index: int | None = None) -> PreparedMutation:
        return self._prepare_targeted(record, index, with_values=False)

    def insert_statement(self, values: dict[str, Any]) -> sa.Insert:
        return sa.insert(self.sa_table).values(**values)

    def update_statement(self, mutation: PreparedMutation) -> sa.Update:
        pk = self.require_primary_key()
        return sa.update(self.sa_table).where(self.sa_column(pk) == mutation.pk_value).values(**mutation.values)

    def delete_statement(self, mutation: PreparedMutation) -> sa.Delete:
        pk = self.require_primary_key()
        return sa.delete(self.sa_table).where(self.sa_column(pk) == mutation.pk_value)
