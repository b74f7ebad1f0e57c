"""Search & scope engine — keyword and scope selections to a composed SELECT."""

from __future__ import annotations

import datetime
import decimal
import enum
from collections.abc import Sequence
from functools import reduce
from typing import TYPE_CHECKING, Any, Union

from sqlalchemy import ColumnElement, Select, false, or_, select

from sqla_adminkit._audit import log_unknown_scope
from sqla_adminkit.exceptions import InvalidArgument, UnknownAttribute
from sqla_adminkit.query._relationship import leaf_column, through_associations
from sqla_adminkit.resource._meta import Meta
from sqla_adminkit.resource._resource import Resource
from sqla_adminkit.resource._scope import Scope

if TYPE_CHECKING:
    from sqla_adminkit._context import RequestContext

__all__ = [
    "ScopeSelection",
    "apply_order",
    "apply_scopes",
    "build_query",
    "keyword_clause",
    "select_scopes",
]

_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})
_TEXT_TYPES = frozenset({"text", "textarea", "rich_editor", "hidden"})

# A scope name, or ``(group, name)`` for ``scope[group]=name`` parameters.
ScopeSelection = Union[str, tuple[str, str]]


def _attribute_clause(
    chain: Sequence[Meta], keyword: str, mode: str
) -> ColumnElement[bool] | None:
    """Predicate matching *keyword* against the leaf of *chain*, or None.

    Text matches case-insensitively by substring (or prefix); numbers,
    dates and booleans match by equality when the keyword converts.
    """
    leaf = chain[-1]
    column = leaf_column(chain)
    py_type = leaf.python_type

    if isinstance(py_type, type) and issubclass(py_type, enum.Enum):
        needle = keyword.lower()
        members = [
            m for m in py_type if needle in m.name.lower() or needle in str(m.value).lower()
        ]
        if not members:
            return None
        return through_associations(chain, column.in_(members))

    if leaf.type == "select_one" or leaf.type in _TEXT_TYPES:
        if py_type not in (None, str):
            return _typed_clause(chain, column, keyword, py_type)
        if mode == "prefix":
            leaf_condition = column.istartswith(keyword, autoescape=True)
        else:
            leaf_condition = column.icontains(keyword, autoescape=True)
        return through_associations(chain, leaf_condition)

    if leaf.type == "checkbox":
        word = keyword.lower()
        if word in _TRUE_WORDS:
            return through_associations(chain, column.is_(True))
        if word in _FALSE_WORDS:
            return through_associations(chain, column.is_(False))
        return None

    if py_type is None:
        return None
    return _typed_clause(chain, column, keyword, py_type)


def _typed_clause(
    chain: Sequence[Meta], column: Any, keyword: str, py_type: type
) -> ColumnElement[bool] | None:
    try:
        if py_type is datetime.datetime:
            value: Any = datetime.datetime.fromisoformat(keyword)
        elif py_type is datetime.date:
            value = datetime.date.fromisoformat(keyword)
        elif py_type is datetime.time:
            value = datetime.time.fromisoformat(keyword)
        elif py_type is decimal.Decimal:
            value = decimal.Decimal(keyword)
        elif py_type in (int, float):
            value = py_type(keyword)
        else:
            return None
    except (ValueError, ArithmeticError):
        return None
    return through_associations(chain, column == value)


def keyword_clause(
    resource: Resource,
    keyword: str,
    *,
    mode: str | None = None,
) -> ColumnElement[bool]:
    """OR together per-attribute matches of *keyword* over the search attributes.

    Returns ``false()`` when no search attribute can accept the keyword.
    """
    search_mode = mode if mode is not None else resource.registry.config.search_mode
    clauses = []
    for path in resource.configured_search_attrs():
        clause = _attribute_clause(resource.resolve_path(path), keyword, search_mode)
        if clause is not None:
            clauses.append(clause)
    if not clauses:
        return false()
    return reduce(lambda a, b: or_(a, b), clauses)


def select_scopes(
    resource: Resource,
    selected: Sequence[ScopeSelection],
    ctx: RequestContext | None = None,
) -> list[Scope]:
    """Resolve the scopes a request selected, in application order.

    Each selection is a scope name, or a ``(group, name)`` pair that
    only matches a scope declared in that group. Within a group only the
    last selected member survives; ungrouped scopes all apply. Default
    scopes fill groups left empty (ungrouped defaults apply when no
    ungrouped scope was selected).
    """
    config = ctx.config if ctx is not None else resource.registry.config
    scopes = resource.scopes
    grouped: dict[str, Scope] = {}
    ungrouped: list[Scope] = []
    for item in selected:
        group, name = item if isinstance(item, tuple) else (None, item)
        scope = scopes.get(name)
        if scope is not None and group is not None and scope.group != group:
            scope = None
        if scope is None:
            where = f" in group {group!r}" if group is not None else ""
            if config.on_unknown_scope == "raise":
                raise InvalidArgument(
                    f"Unknown scope {name!r}{where} on {resource.name!r}",
                    errors={"scope": [f"unknown scope {name!r}{where}"]},
                )
            if config.on_unknown_scope == "warn":
                log_unknown_scope(resource=resource.name, scope=name, group=group)
            continue
        if scope.group is not None:
            grouped[scope.group] = scope
        elif scope not in ungrouped:
            ungrouped.append(scope)

    any_ungrouped = bool(ungrouped)
    for scope in scopes.values():
        if not scope.default:
            continue
        if scope.group is not None:
            grouped.setdefault(scope.group, scope)
        elif not any_ungrouped and scope not in ungrouped:
            ungrouped.append(scope)
    return [*grouped.values(), *ungrouped]


def apply_scopes(
    resource: Resource,
    query: Select[Any],
    selected: Sequence[ScopeSelection],
    ctx: RequestContext | None = None,
) -> Select[Any]:
    """AND the selected scopes onto *query*."""
    for scope in select_scopes(resource, selected, ctx):
        query = scope.apply(query, ctx)
    return query


def build_query(
    resource: Resource,
    keyword: str | None,
    selected_scopes: Sequence[ScopeSelection] = (),
    base_query: Select[Any] | None = None,
    ctx: RequestContext | None = None,
) -> Select[Any]:
    """Compose the list query for a keyword and scope selection.

    A resource-level search handler, when declared, receives the raw
    keyword and replaces built-in keyword matching. Scopes apply either
    way. The statement is only composed, never executed.

    Args:
        resource: The resource being listed.
        keyword: Search text; blank adds no condition.
        selected_scopes: Scope names (or ``(group, name)`` pairs) in
            request order.
        base_query: Starting statement, ``select(resource.model)`` if None.
        ctx: The request context, passed to handlers and scopes.

    Example::

        stmt = build_query(order_resource, "acme", ["paid", "shipped"])
        rows = session.execute(stmt).scalars().all()
    """
    query = base_query if base_query is not None else select(resource.model)
    text = (keyword or "").strip()
    if text:
        handler = resource.custom_search
        if handler is not None:
            query = handler(text, query, ctx)
        else:
            mode = ctx.config.search_mode if ctx is not None else None
            query = query.where(keyword_clause(resource, text, mode=mode))
    return apply_scopes(resource, query, selected_scopes, ctx)


def apply_order(
    resource: Resource,
    query: Select[Any],
    order: str | Sequence[str] | None = None,
) -> Select[Any]:
    """Sort *query* by ``"name"``/``"-name"`` terms over column Metas.

    Falls back to the resource's default order, then its primary key.

    Raises:
        InvalidArgument: A term names no sortable column.
    """
    if isinstance(order, str):
        terms = [t.strip() for t in order.split(",") if t.strip()]
    else:
        terms = list(order or ())
    if not terms:
        terms = list(resource.default_order) or [resource.primary_key_name]

    clauses = []
    for term in terms:
        name = term.lstrip("-")
        try:
            meta = resource.get_meta(name)
        except UnknownAttribute:
            meta = None
        if meta is None or meta.kind != "column" or meta.uselist:
            raise InvalidArgument(
                f"Cannot order {resource.name!r} by {name!r}",
                errors={"order": [f"unknown sort attribute {name!r}"]},
            )
        column = getattr(resource.model, name)
        clauses.append(column.desc() if term.startswith("-") else column.asc())
    return query.order_by(None).order_by(*clauses)
