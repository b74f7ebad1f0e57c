"""Meta — the descriptor for one field of a resource."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqla_adminkit._types import MetaKind, MetaType
from sqla_adminkit.permission._rules import Permission

if TYPE_CHECKING:
    from sqla_adminkit._context import RequestContext
    from sqla_adminkit.resource._resource import Resource

__all__ = ["META_TYPES", "Meta", "Option", "Setter", "Valuer", "humanize"]

Valuer = Callable[[Any, "RequestContext | None"], Any]
Setter = Callable[[Any, Any, "RequestContext | None"], None]
Option = tuple[Any, str]

META_TYPES: frozenset[str] = frozenset(
    {
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
    }
)

# Field kinds backed by a real attribute on the record.
_ATTRIBUTE_KINDS = frozenset({"column", "relationship", "field"})


def humanize(name: str) -> str:
    """``"released_on"`` -> ``"Released On"``."""
    return " ".join(part.capitalize() for part in name.replace(".", " ").split("_") if part)


@dataclass(frozen=True, slots=True)
class Meta:
    """Metadata and accessors for one field of a resource.

    Metas are produced by reflection at registration time and may be
    re-declared by name. Once the owning registry is finalized they are
    never replaced.

    Attributes:
        name: Field name (dotted for derived, read-only association paths).
        type: The UI type. Exactly one per Meta.
        label: Human readable label. Defaults to the humanized name.
        kind: ``"column"``, ``"relationship"``, ``"field"`` (dataclass) or
            ``"virtual"`` (declared only, needs a valuer).
        valuer: Optional ``(record, ctx) -> value`` replacing attribute access.
        setter: Optional ``(record, value, ctx)`` replacing attribute assignment.
        collection: Options as ``(value, label)`` pairs, or a callable
            ``(ctx) -> pairs`` evaluated per request.
        permission: Field-level rule set; the owner's applies when None.
        required: Whether create/argument payloads must provide a value.
        primary_key: Whether this is the owner's primary key.
        uselist: Whether the field holds a collection.
        explicit_type: The type was declared, not inferred.
        target: Associated model type for association Metas.
        python_type: Python type used for coercion (enum classes, ints, ...).
        chain: For derived dotted Metas, the Metas walked from the owner to
            the leaf. Permission checks apply to every one of them.
        owner: The resource this Meta belongs to.
    """

    name: str
    type: MetaType = "text"
    label: str | None = None
    kind: MetaKind = "virtual"
    valuer: Valuer | None = None
    setter: Setter | None = None
    collection: Sequence[Option] | Callable[[RequestContext | None], Sequence[Option]] | None = (
        None
    )
    permission: Permission | None = None
    required: bool = False
    primary_key: bool = False
    uselist: bool = False
    explicit_type: bool = False
    target: type | None = None
    python_type: type | None = None
    chain: tuple[Meta, ...] = ()
    owner: Resource | None = None

    def __post_init__(self) -> None:
        if self.type not in META_TYPES:
            raise ValueError(f"Meta {self.name!r}: unknown type {self.type!r}")

    @property
    def display_label(self) -> str:
        return self.label if self.label is not None else humanize(self.name)

    @property
    def is_association(self) -> bool:
        return self.target is not None

    @property
    def writable(self) -> bool:
        """Whether values can be assigned through this Meta."""
        if self.type == "readonly":
            return False
        return self.setter is not None or self.kind in _ATTRIBUTE_KINDS

    @property
    def resource(self) -> Resource | None:
        """The nested resource of an association, registered on first access."""
        if self.target is None:
            return None
        if self.owner is None:
            raise RuntimeError(f"Meta {self.name!r} is not attached to a resource")
        return self.owner.registry.ensure(self.target)

    def value(self, record: Any, ctx: RequestContext | None = None) -> Any:
        """Read this field from *record*."""
        if self.valuer is not None:
            return self.valuer(record, ctx)
        if self.kind in _ATTRIBUTE_KINDS:
            return getattr(record, self.name, None)
        return None

    def set_value(self, record: Any, value: Any, ctx: RequestContext | None = None) -> None:
        """Write an already coerced *value* onto *record*."""
        if self.setter is not None:
            self.setter(record, value, ctx)
            return
        if not self.writable:
            raise AttributeError(f"Meta {self.name!r} is read-only")
        setattr(record, self.name, value)

    def options(self, ctx: RequestContext | None = None) -> list[Option]:
        """Resolve the option collection for this request."""
        if self.collection is None:
            return []
        if callable(self.collection):
            return list(self.collection(ctx))
        return list(self.collection)
