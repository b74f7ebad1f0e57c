"""ViewModels — transport-agnostic results of admin requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqla_adminkit.exceptions import FieldError
from sqla_adminkit.query._pagination import Pagination

__all__ = [
    "ActionResult",
    "ActionView",
    "DeleteResult",
    "FieldView",
    "ListViewModel",
    "MenuItem",
    "RecordView",
    "RecordViewModel",
    "ResourceDescription",
    "ScopeView",
    "SearchState",
    "SectionView",
]

_JSON_SCALARS = (str, int, float, bool, type(None))


def _plain(value: Any) -> Any:
    if isinstance(value, _JSON_SCALARS):
        return value
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return str(value)


@dataclass(frozen=True, slots=True)
class FieldView:
    """One projected field of a record.

    Attributes:
        name: Meta name (dotted for association paths).
        label: Display label.
        type: Meta UI type.
        value: Serialized value (JSON-compatible).
        writable: Whether the subject may edit the field in this view.
        required: Whether a value is required on create.
        options: ``(value, label)`` choices for select types.
        association: Name of the associated resource, if any.
    """

    name: str
    label: str
    type: str
    value: Any = None
    writable: bool = False
    required: bool = False
    options: tuple[tuple[Any, str], ...] = ()
    association: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "label": self.label,
            "type": self.type,
            "value": self.value,
            "writable": self.writable,
            "required": self.required,
            "options": [[_plain(v), label] for v, label in self.options],
            "association": self.association,
        }


@dataclass(frozen=True, slots=True)
class SectionView:
    """A titled group of field rows."""

    title: str | None
    rows: tuple[tuple[str, ...], ...]

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {"title": self.title, "rows": [list(r) for r in self.rows]}


@dataclass(frozen=True, slots=True)
class RecordView:
    """A record rendered through a projection."""

    id: Any
    fields: tuple[FieldView, ...]

    def values(self) -> dict[str, Any]:
        """Field name to serialized value."""
        return {f.name: f.value for f in self.fields}

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {"id": _plain(self.id), "fields": [f.to_dict() for f in self.fields]}


@dataclass(frozen=True, slots=True)
class ScopeView:
    name: str
    label: str
    group: str | None
    active: bool
    default: bool

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "label": self.label,
            "group": self.group,
            "active": self.active,
            "default": self.default,
        }


@dataclass(frozen=True, slots=True)
class ActionView:
    name: str
    label: str
    modes: tuple[str, ...]
    argument: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "label": self.label,
            "modes": list(self.modes),
            "argument": self.argument,
        }


@dataclass(frozen=True, slots=True)
class SearchState:
    """The search inputs a list view was produced from."""

    keyword: str | None
    scopes: tuple[str, ...]
    order: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "keyword": self.keyword,
            "scopes": list(self.scopes),
            "order": list(self.order),
        }


@dataclass(frozen=True, slots=True)
class ListViewModel:
    """Result of an index request.

    Attributes:
        resource: Resource name.
        label: Resource display label.
        columns: Projected index fields (values unset).
        records: The current page of records.
        pagination: Page position.
        search: The applied keyword, scopes and order.
        scopes: Every declared scope with its active flag.
        actions: Batch actions the subject may run.
        can_create: Whether the subject may create records.
    """

    resource: str
    label: str
    columns: tuple[FieldView, ...]
    records: tuple[RecordView, ...]
    pagination: Pagination
    search: SearchState
    scopes: tuple[ScopeView, ...] = ()
    actions: tuple[ActionView, ...] = ()
    can_create: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "resource": self.resource,
            "label": self.label,
            "columns": [c.to_dict() for c in self.columns],
            "records": [r.to_dict() for r in self.records],
            "pagination": self.pagination.to_dict(),
            "search": self.search.to_dict(),
            "scopes": [s.to_dict() for s in self.scopes],
            "actions": [a.to_dict() for a in self.actions],
            "can_create": self.can_create,
        }


@dataclass(frozen=True, slots=True)
class RecordViewModel:
    """Result of show/new/edit/create/update.

    ``ok`` is False when the payload failed validation; ``errors`` then
    holds the per-field messages and ``record`` reflects the submitted
    state.
    """

    resource: str
    view: str
    record: RecordView
    sections: tuple[SectionView, ...] = ()
    actions: tuple[ActionView, ...] = ()
    errors: tuple[FieldError, ...] = ()
    can_update: bool = False
    can_delete: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors

    def errors_by_field(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {}
        for err in self.errors:
            grouped.setdefault(err.field, []).append(err.message)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "resource": self.resource,
            "view": self.view,
            "ok": self.ok,
            "record": self.record.to_dict(),
            "sections": [s.to_dict() for s in self.sections],
            "actions": [a.to_dict() for a in self.actions],
            "errors": [e.to_dict() for e in self.errors],
            "can_update": self.can_update,
            "can_delete": self.can_delete,
        }


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of a dispatched action.

    Attributes:
        resource: Resource name.
        action: Action name.
        mode: Mode the action was invoked in.
        record_ids: Primary keys of the records handed to the handler.
        skipped: Number of selected records excluded by visibility.
        outcome: Whatever the handler returned.
    """

    resource: str
    action: str
    mode: str
    record_ids: tuple[Any, ...] = ()
    skipped: int = 0
    outcome: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "resource": self.resource,
            "action": self.action,
            "mode": self.mode,
            "ok": True,
            "record_ids": [_plain(i) for i in self.record_ids],
            "skipped": self.skipped,
            "outcome": _plain(self.outcome),
        }


@dataclass(frozen=True, slots=True)
class DeleteResult:
    resource: str
    record_id: Any

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {"resource": self.resource, "id": _plain(self.record_id), "deleted": True}


@dataclass(frozen=True, slots=True)
class ResourceDescription:
    """Metadata of a resource as seen by one subject.

    ``views`` maps each view context to its projected fields; ``verbs``
    lists the resource-level verbs the subject holds.
    """

    name: str
    label: str
    menu: tuple[str, ...]
    invisible: bool
    theme: str | None
    views: dict[str, tuple[FieldView, ...]]
    sections: dict[str, tuple[SectionView, ...]]
    search_attrs: tuple[str, ...]
    scopes: tuple[ScopeView, ...]
    actions: tuple[ActionView, ...]
    verbs: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "label": self.label,
            "menu": list(self.menu),
            "invisible": self.invisible,
            "theme": self.theme,
            "views": {v: [f.to_dict() for f in fs] for v, fs in self.views.items()},
            "sections": {v: [s.to_dict() for s in ss] for v, ss in self.sections.items()},
            "search_attrs": list(self.search_attrs),
            "scopes": [s.to_dict() for s in self.scopes],
            "actions": [a.to_dict() for a in self.actions],
            "verbs": list(self.verbs),
        }


@dataclass(slots=True)
class MenuItem:
    """A navigation entry: a resource link or a group of entries."""

    label: str
    resource: str | None = None
    children: list[MenuItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "label": self.label,
            "resource": self.resource,
            "children": [c.to_dict() for c in self.children],
        }
