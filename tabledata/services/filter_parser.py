"""
Parser for the ``where`` filter language.

    (Name,eq,Afghanistan)~and((Year,gte,2000)~or(Year,null))

A comparison is ``(field,operator[,value])``; comparisons and parenthesised
groups are joined with ``~and`` / ``~or`` and negated with ``~not``. ``~and``
binds tighter than ``~or`` and chains of the same operator associate left to
right. The value runs up to the closing parenthesis, so it may contain commas
and balanced, non-nested parentheses such as ``(Name,eq,Foo (Bar))``.

Parsing is purely syntactic: field names are not checked against any table and
operator legality per column type is decided later, when the tree is resolved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from lark import Lark, Transformer, exceptions

from tabledata.core.errors import MalformedFilterSyntax

WHERE_GRAMMAR = r"""
    ?start: expr
    ?expr: expr _OR term | term
    ?term: term _AND factor | factor
    ?factor: _NOT factor -> negation
           | atom
    ?atom: comparison
         | _LPAR expr _RPAR
    comparison: _LPAR FIELD _COMMA OP [value_part] _RPAR
    value_part: _COMMA [VALUE]
    _LPAR: /\(\s*/
    _RPAR: /\s*\)/
    _COMMA: ","
    _OR: /\s*~or\s*/i
    _AND: /\s*~and\s*/i
    _NOT: /~not\s*/i
    FIELD: /[^,()~\s][^,()]*/
    OP: /\s*[A-Za-z_]+\s*/
    VALUE: /(?:[^()]|\([^()]*\))+/
"""

OPERATOR_ALIASES = {
    "ne": "neq",
    "not": "neq",
    "ge": "gte",
    "le": "lte",
}

NULL_CHECK_OPERATORS = frozenset(
    {"null", "notnull", "blank", "notblank", "empty", "notempty", "checked", "notchecked"}
)

KNOWN_OPERATORS = frozenset(
    {
        "eq",
        "neq",
        "gt",
        "gte",
        "lt",
        "lte",
        "like",
        "nlike",
        "in",
        "anyof",
        "nanyof",
        "allof",
        "nallof",
        "is",
        "isnot",
    }
    | NULL_CHECK_OPERATORS
)


@dataclass(frozen=True)
class Comparison:
    field: str
    op: str
    value: str | None = None


@dataclass(frozen=True)
class And:
    left: "FilterNode"
    right: "FilterNode"


@dataclass(frozen=True)
class Or:
    left: "FilterNode"
    right: "FilterNode"


@dataclass(frozen=True)
class Not:
    term: "FilterNode"


FilterNode = Union[Comparison, And, Or, Not]


def normalize_operator(raw: str) -> str:
    op = str(raw or "").strip().lower()
    return OPERATOR_ALIASES.get(op, op)


class _WhereTransformer(Transformer):
    def expr(self, children):
        return Or(left=children[0], right=children[1])

    def term(self, children):
        return And(left=children[0], right=children[1])

    def negation(self, children):
        return Not(term=children[0])

    def comparison(self, children):
        field, op, value = children
        return Comparison(field=str(field).strip(), op=normalize_operator(op), value=value)

    def value_part(self, children):
        token = children[0]
        return "" if token is None else str(token)


_PARSER = Lark(WHERE_GRAMMAR, start="start", parser="lalr", maybe_placeholders=True)
_TRANSFORMER = _WhereTransformer()


def parse_where(expression: str | None) -> FilterNode | None:
    """Parse ``expression`` into a filter tree; blank input gives ``None``.

    Raises ``MalformedFilterSyntax`` when the text does not follow the grammar.
    """
    text = str(expression or "").strip()
    if not text:
        return None
    try:
        return _TRANSFORMER.transform(_PARSER.parse(text))
    except exceptions.LarkError as exc:
        raise MalformedFilterSyntax(text, str(exc).splitlines()[0] if str(exc) else type(exc).__name__) from exc


_PRECEDENCE = {Or: 1, And: 2, Not: 3, Comparison: 4}


def _wrap(node: FilterNode, min_precedence: int) -> str:
    text = to_where(node)
    if _PRECEDENCE[type(node)] < min_precedence:
        return f"({text})"
    return text


def to_where(node: FilterNode) -> str:
    """Render a filter tree back to canonical ``where`` text."""
    if isinstance(node, Comparison):
        if node.value is None:
            return f"({node.field},{node.op})"
        return f"({node.field},{node.op},{node.value})"
    if isinstance(node, Not):
        return "~not" + _wrap(node.term, _PRECEDENCE[Not])
    keyword = "~and" if isinstance(node, And) else "~or"
    precedence = _PRECEDENCE[type(node)]
    # A right operand of the same operator is grouped explicitly so the
    # rendered text re-parses to the same shape.
    return f"{_wrap(node.left, precedence)}{keyword}{_wrap(node.right, precedence + 1)}"


def combine_with_precedence(items: Iterable[tuple[str, FilterNode]]) -> FilterNode | None:
    """Fold ``(logical_op, node)`` pairs into one tree, ``and`` binding tighter than ``or``.

    The logical op of the first pair is ignored; it has nothing to join with.
    """
    or_terms: list[FilterNode] = []
    current: FilterNode | None = None
    for logical_op, node in items:
        if current is None:
            current = node
        elif str(logical_op or "").strip().lower() == "or":
            or_terms.append(current)
            current = node
        else:
            current = And(left=current, right=node)
    if current is None:
        return None
    or_terms.append(current)
    result = or_terms[0]
    for term in or_terms[1:]:
        result = Or(left=result, right=term)
    return result
