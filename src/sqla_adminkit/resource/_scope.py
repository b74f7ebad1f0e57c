"""Scope — a named, optionally grouped query filter."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import Select

from sqla_adminkit.resource._meta import humanize

if TYPE_CHECKING:
    from sqla_adminkit._context import RequestContext
    from sqla_adminkit.resource._resource import Resource

__all__ = ["Scope", "ScopeHandler"]

ScopeHandler = Callable[[Select[Any], "RequestContext | None"], Select[Any]]


@dataclass(frozen=True, slots=True)
class Scope:
    """A query-narrowing filter selectable per request.

    Scopes sharing a ``group`` are mutually exclusive. A ``default`` scope
    applies when nothing from its group was selected.

    Attributes:
        name: Identifier used in requests.
        handler: ``(select, ctx) -> select``.
        group: Optional exclusivity group.
        label: Display label.
        default: Apply when the request selects nothing in this group.
        owner: The resource the scope belongs to.
    """

    name: str
    handler: ScopeHandler
    group: str | None = None
    label: str | None = None
    default: bool = False
    owner: Resource | None = None

    @property
    def display_label(self) -> str:
        return self.label if self.label is not None else humanize(self.name)

    def apply(self, query: Select[Any], ctx: RequestContext | None = None) -> Select[Any]:
        return self.handler(query, ctx)
