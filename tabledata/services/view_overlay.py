"""
Overlay of a saved view's rules on request parameters.

A view may narrow what a request sees, never widen it:

- fields: the view's hidden columns are removed from whatever was requested;
- filter: the view filter and the request filter must both hold;
- sort: the view sort comes first, the request sort only breaks its ties.

Each rule is a separate merge function so it can be reasoned about and tested
on its own; ``apply_view_overlay`` composes them.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from sqlalchemy.orm import Session

from tabledata.models.view import MetaView, ViewColumn, ViewFilter, ViewSort
from tabledata.services.filter_parser import And, Comparison, FilterNode, combine_with_precedence, normalize_operator
from tabledata.services.projection import split_field_list
from tabledata.services.sort_parser import SortItem


@dataclass(frozen=True)
class ViewRules:
    filter: FilterNode | None = None
    sort: tuple[SortItem, ...] = ()
    hidden_column_ids: frozenset[str] = frozenset()


NO_VIEW = ViewRules()


@dataclass(frozen=True)
class FieldSelection:
    requested: tuple[str, ...] | None
    hidden_column_ids: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class EffectiveQuery:
    fields: FieldSelection
    filter: FilterNode | None
    sort: tuple[SortItem, ...]


def merge_fields(requested: Iterable[str] | str | None, hidden_column_ids: Iterable[str]) -> FieldSelection:
    names = split_field_list(requested)
    return FieldSelection(
        requested=tuple(names) if names else None,
        hidden_column_ids=frozenset(str(column_id) for column_id in hidden_column_ids),
    )


def merge_filters(view_filter: FilterNode | None, request_filter: FilterNode | None) -> FilterNode | None:
    if view_filter is None:
        return request_filter
    if request_filter is None:
        return view_filter
    return And(left=view_filter, right=request_filter)


def merge_sorts(view_sort: Sequence[SortItem], request_sort: Sequence[SortItem]) -> tuple[SortItem, ...]:
    return tuple(view_sort) + tuple(request_sort)


def apply_view_overlay(
    rules: ViewRules,
    *,
    fields: Iterable[str] | str | None = None,
    sort: Sequence[SortItem] = (),
    where: FilterNode | None = None,
) -> EffectiveQuery:
    return EffectiveQuery(
        fields=merge_fields(fields, rules.hidden_column_ids),
        filter=merge_filters(rules.filter, where),
        sort=merge_sorts(rules.sort, sort),
    )


def _filter_tree(parent_id: uuid.UUID | None, children: dict) -> FilterNode | None:
    items: list[tuple[str, FilterNode]] = []
    for row in children.get(parent_id, []):
        if row.is_group:
            node = _filter_tree(row.id, children)
        elif row.column_id is not None and str(row.comparison_op or "").strip():
            node = Comparison(field=str(row.column_id), op=normalize_operator(row.comparison_op), value=row.value)
        else:
            node = None
        if node is not None:
            items.append((row.logical_op, node))
    return combine_with_precedence(items)


def view_filter_tree(rows: Sequence[ViewFilter]) -> FilterNode | None:
    """Build the filter tree of a view from its persisted filter rows.

    Sibling rows are joined by their ``logical_op`` with the same precedence
    as the ``where`` language. Empty groups disappear.
    """
    children: dict[uuid.UUID | None, list[ViewFilter]] = defaultdict(list)
    for row in sorted(rows, key=lambda r: r.sort_order or 0):
        children[row.parent_id].append(row)
    return _filter_tree(None, children)


def load_view_rules(db: Session, view: MetaView | None) -> ViewRules:
    if view is None:
        return NO_VIEW
    filters = db.query(ViewFilter).filter(ViewFilter.view_id == view.id).all()
    sorts = (
        db.query(ViewSort)
        .filter(ViewSort.view_id == view.id)
        .order_by(ViewSort.sort_order.asc())
        .all()
    )
    hidden = db.query(ViewColumn).filter(ViewColumn.view_id == view.id, ViewColumn.show.is_(False)).all()
    return ViewRules(
        filter=view_filter_tree(filters),
        sort=tuple(
            SortItem(field=str(row.column_id), direction="desc" if str(row.direction).lower() == "desc" else "asc")
            for row in sorts
        ),
        hidden_column_ids=frozenset(str(row.column_id) for row in hidden),
    )
