"""Shared protocols and type aliases for sqla-adminkit."""

from __future__ import annotations

from collections.abc import Collection
from typing import Literal, Protocol, runtime_checkable

__all__ = [
    "ActionMode",
    "MetaKind",
    "MetaType",
    "OnUnknownScope",
    "SearchMode",
    "SubjectLike",
    "Verb",
    "ViewContext",
]

# CRUD verbs understood by permission rule sets.
Verb = Literal["create", "read", "update", "delete"]

# Where an action can be triggered from.
ActionMode = Literal["batch", "edit", "show", "menu_item"]

# Attribute projections a resource keeps.
ViewContext = Literal["index", "new", "edit", "show"]

# UI types a Meta can carry.
MetaType = Literal[
    "text",
    "textarea",
    "rich_editor",
    "password",
    "number",
    "float",
    "decimal",
    "checkbox",
    "date",
    "datetime",
    "time",
    "select_one",
    "select_many",
    "single_edit",
    "collection_edit",
    "json",
    "hidden",
    "readonly",
]

# Where a Meta came from.
MetaKind = Literal["column", "relationship", "field", "virtual"]

# Valid values for AdminConfig.search_mode.
SearchMode = Literal["contains", "prefix"]

# Valid values for AdminConfig.on_unknown_scope.
OnUnknownScope = Literal["ignore", "warn", "raise"]


@runtime_checkable
class SubjectLike(Protocol):
    """Structural type for the current user of the admin.

    Any object with a ``roles`` attribute satisfies this protocol.
    Works with SQLAlchemy models, dataclasses, Pydantic models,
    named tuples — no inheritance required.

    Example::

        @dataclass
        class Staff:
            id: int
            roles: frozenset[str]

        assert isinstance(Staff(id=1, roles=frozenset({"admin"})), SubjectLike)
    """

    @property
    def roles(self) -> Collection[str]: ...
