"""Resource — a registered, admin-manageable model type."""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Callable, Collection, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy.inspection import inspect as sa_inspect

from sqla_adminkit._types import ActionMode, ViewContext
from sqla_adminkit.exceptions import FieldError, UnknownAttribute, UnsupportedFieldKind
from sqla_adminkit.permission._rules import Permission
from sqla_adminkit.resource._action import DEFAULT_MODES, Action, ActionHandler, VisiblePredicate
from sqla_adminkit.resource._meta import Meta, humanize
from sqla_adminkit.resource._reflect import MetaOverride, merge_meta, reflect_model
from sqla_adminkit.resource._scope import Scope, ScopeHandler
from sqla_adminkit.resource._section import AttrSpec, Section

if TYPE_CHECKING:
    from sqla_adminkit._context import RequestContext
    from sqla_adminkit.registry._registry import AdminRegistry

__all__ = ["Resource", "SearchHandler", "Validator"]

SearchHandler = Callable[[str, Any, "RequestContext | None"], Any]
Validator = Callable[[Any, "RequestContext | None"], "Iterable[FieldError] | None"]

VIEWS: tuple[ViewContext, ...] = ("index", "new", "edit", "show")

# show -> edit -> new; index stands alone.
_FALLBACKS: dict[str, tuple[str, ...]] = {
    "index": ("index",),
    "new": ("new",),
    "edit": ("edit", "new"),
    "show": ("show", "edit", "new"),
}

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def _default_name(model: type) -> str:
    table = getattr(model, "__tablename__", None)
    if isinstance(table, str):
        return table
    return _CAMEL.sub("_", model.__name__).lower()


class Resource:
    """The admin's view of one model type.

    Built by :meth:`AdminRegistry.register`; configured through its own
    methods until the registry is finalized, read-only afterwards.

    Example::

        product = registry.register(Product, menu=("Catalog",))
        product.meta("description", type="rich_editor")
        product.index_attrs("name", "code", "category", "price")
        product.search_attrs("name", "code", "category.name")
        product.scope("cheap", lambda q, ctx: q.where(Product.price < 10))
    """

    def __init__(
        self,
        model: type,
        *,
        registry: AdminRegistry,
        name: str | None = None,
        metas: Mapping[str, MetaOverride] | None = None,
        exclude: Collection[str] = (),
        permission: Permission | None = None,
        menu: Sequence[str] = (),
        invisible: bool = False,
        theme: str | None = None,
        label: str | None = None,
        per_page: int | None = None,
        auto: bool = False,
    ) -> None:
        self.model = model
        self.registry = registry
        self.name = name or _default_name(model)
        self.label = label or humanize(_CAMEL.sub("_", model.__name__).lower())
        self.permission = permission
        self.menu = tuple(menu)
        self.invisible = invisible
        self.theme = theme
        self.per_page = per_page
        self.auto = auto
        self.default_order: tuple[str, ...] = ()

        self._metas: dict[str, Meta] = {}
        for meta in reflect_model(model, overrides=metas, exclude=exclude):
            self._metas[meta.name] = dataclasses.replace(meta, owner=self)
        self._attrs: dict[str, tuple[AttrSpec, ...]] = {}
        self._search_attrs: tuple[str, ...] | None = None
        self._search_handler: SearchHandler | None = None
        self._scopes: dict[str, Scope] = {}
        self._actions: dict[str, Action] = {}
        self._validators: list[Validator] = []
        self._frozen = False

        self._pk_name = self._find_primary_key()

    def __repr__(self) -> str:
        return f"Resource({self.name!r}, model={self.model.__name__})"

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def _find_primary_key(self) -> str | None:
        mapper = sa_inspect(self.model, raiseerr=False)
        if mapper is None:
            return None
        pk = mapper.primary_key
        if len(pk) != 1:
            raise UnsupportedFieldKind(
                model=self.model.__name__, field="<primary key>", kind="composite"
            )
        return mapper.get_property_by_column(pk[0]).key

    @property
    def persisted(self) -> bool:
        """Whether records of this resource live in the database."""
        return self._pk_name is not None

    @property
    def primary_key_name(self) -> str:
        if self._pk_name is None:
            raise TypeError(f"Resource {self.name!r} is not backed by a mapped class")
        return self._pk_name

    @property
    def primary_key_column(self) -> Any:
        return getattr(self.model, self.primary_key_name)

    def primary_key(self, record: Any) -> Any:
        return getattr(record, self.primary_key_name)

    def parse_id(self, raw: Any) -> Any:
        """Convert a request-supplied id to the primary key's Python type.

        Raises:
            ValueError: The value does not convert.
        """
        meta = self._metas.get(self.primary_key_name)
        py_type = meta.python_type if meta is not None else None
        if py_type is None or isinstance(raw, py_type):
            return raw
        if py_type is int and isinstance(raw, str):
            return int(raw.strip())
        return py_type(raw)

    # ------------------------------------------------------------------
    # Metas
    # ------------------------------------------------------------------

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError(f"Resource {self.name!r} is finalized and can no longer change")

    @property
    def metas(self) -> tuple[Meta, ...]:
        return tuple(self._metas.values())

    def meta(self, name: str, **overrides: Any) -> Meta:
        """Declare or re-declare a Meta. The last declaration wins.

        Declaring ``type`` marks it explicit; inference never replaces it.
        Unknown names create virtual Metas (give them a ``valuer``).

        Example::

            user.meta("password", type="password")
            user.meta("full_name", valuer=lambda u, ctx: f"{u.first} {u.last}")
        """
        self._check_mutable()
        overrides.pop("owner", None)
        merged = merge_meta(self._metas.get(name), name, overrides)
        meta = dataclasses.replace(merged, owner=self)
        self._metas[name] = meta
        return meta

    def has_meta(self, name: str) -> bool:
        return name in self._metas

    def get_meta(self, name: str) -> Meta:
        try:
            return self._metas[name]
        except KeyError:
            raise UnknownAttribute(resource=self.name, attribute=name) from None

    def resolve_path(self, path: str) -> tuple[Meta, ...]:
        """Resolve a dotted *path* into the chain of Metas it walks.

        Every element but the last must be an association; lookups into
        associated resources register them on demand.

        Raises:
            UnknownAttribute: Any segment does not resolve.
        """
        parts = path.split(".")
        chain: list[Meta] = []
        current: Resource = self
        for index, part in enumerate(parts):
            try:
                meta = current.get_meta(part)
            except UnknownAttribute:
                raise UnknownAttribute(resource=self.name, attribute=path) from None
            chain.append(meta)
            if index < len(parts) - 1:
                nested = meta.resource
                if nested is None:
                    raise UnknownAttribute(resource=self.name, attribute=path)
                current = nested
        return tuple(chain)

    def resolve_meta(self, path: str) -> Meta:
        """Return the Meta for *path*; dotted paths yield a derived read-only Meta."""
        chain = self.resolve_path(path)
        if len(chain) == 1:
            return chain[0]
        leaf = chain[-1]
        return dataclasses.replace(
            leaf,
            name=path,
            label=leaf.label if leaf.label is not None else humanize(path),
            kind="virtual",
            valuer=_chain_valuer(chain),
            setter=None,
            primary_key=False,
            required=False,
            uselist=any(m.uselist for m in chain),
            chain=chain,
            owner=self,
        )

    # ------------------------------------------------------------------
    # Attribute projections
    # ------------------------------------------------------------------

    def _validate_specs(self, specs: Iterable[AttrSpec]) -> None:
        for spec in specs:
            names = spec.names if isinstance(spec, Section) else (spec,)
            for name in names:
                self.resolve_path(name[1:] if name.startswith("-") else name)

    def _set_attrs(self, view: ViewContext, specs: tuple[AttrSpec, ...]) -> None:
        self._check_mutable()
        for spec in specs:
            if not isinstance(spec, (str, Section)):
                raise TypeError(f"Expected attribute name or Section, got {spec!r}")
        self._validate_specs(specs)
        self._attrs[view] = specs

    def index_attrs(self, *specs: AttrSpec) -> None:
        """Configure the list columns. ``"-name"`` excludes from the default."""
        self._set_attrs("index", specs)

    def new_attrs(self, *specs: AttrSpec) -> None:
        """Configure the create form."""
        self._set_attrs("new", specs)

    def edit_attrs(self, *specs: AttrSpec) -> None:
        """Configure the edit form. Falls back to the create form."""
        self._set_attrs("edit", specs)

    def show_attrs(self, *specs: AttrSpec) -> None:
        """Configure the detail page. Falls back to the edit form."""
        self._set_attrs("show", specs)

    def configured_attrs(self, view: ViewContext) -> tuple[AttrSpec, ...] | None:
        """The explicit specs governing *view* after fallbacks, or None."""
        for candidate in _FALLBACKS[view]:
            if candidate in self._attrs:
                return self._attrs[candidate]
        return None

    def default_attrs(self, view: ViewContext) -> tuple[str, ...]:
        """Names used when nothing is configured for *view*."""
        if view == "index":
            return tuple(
                m.name
                for m in self._metas.values()
                if m.type not in ("hidden", "password") and not m.uselist
            )
        return tuple(
            m.name
            for m in self._metas.values()
            if m.type != "hidden" and not m.primary_key and m.writable
        )

    # ------------------------------------------------------------------
    # Search, scopes, ordering
    # ------------------------------------------------------------------

    def search_attrs(self, *paths: str) -> None:
        """Configure keyword search. Dotted paths search associated resources."""
        self._check_mutable()
        for path in paths:
            leaf = self.resolve_path(path)[-1]
            if leaf.kind != "column":
                raise UnknownAttribute(resource=self.name, attribute=path)
        self._search_attrs = tuple(paths)

    def configured_search_attrs(self) -> tuple[str, ...]:
        if self._search_attrs is not None:
            return self._search_attrs
        return tuple(
            m.name
            for m in self._metas.values()
            if m.kind == "column" and m.type in ("text", "textarea", "rich_editor")
        )

    def search_handler(self, fn: SearchHandler) -> SearchHandler:
        """Replace built-in keyword search with ``fn(keyword, query, ctx)``.

        Usable as a decorator.
        """
        self._check_mutable()
        self._search_handler = fn
        return fn

    @property
    def custom_search(self) -> SearchHandler | None:
        return self._search_handler

    def scope(
        self,
        name: str,
        handler: ScopeHandler,
        *,
        group: str | None = None,
        label: str | None = None,
        default: bool = False,
    ) -> Scope:
        """Register a named scope. Scopes in the same *group* exclude each other."""
        self._check_mutable()
        if default and group is not None:
            for other in self._scopes.values():
                if other.group == group and other.default and other.name != name:
                    raise ValueError(
                        f"Scope group {group!r} on {self.name!r} already has default "
                        f"{other.name!r}"
                    )
        scope = Scope(
            name=name, handler=handler, group=group, label=label, default=default, owner=self
        )
        self._scopes[name] = scope
        return scope

    @property
    def scopes(self) -> Mapping[str, Scope]:
        return dict(self._scopes)

    def order_by(self, *names: str) -> None:
        """Default list ordering, ``"-name"`` for descending."""
        self._check_mutable()
        for name in names:
            meta = self.get_meta(name.lstrip("-"))
            if meta.kind != "column":
                raise UnknownAttribute(resource=self.name, attribute=name)
        self.default_order = tuple(names)

    # ------------------------------------------------------------------
    # Actions and validators
    # ------------------------------------------------------------------

    def action(
        self,
        name: str,
        handler: ActionHandler,
        *,
        modes: Iterable[ActionMode] = DEFAULT_MODES,
        argument: type | None = None,
        visible: VisiblePredicate | None = None,
        permission: Permission | None = None,
        label: str | None = None,
    ) -> Action:
        """Register an action.

        Example::

            order.action(
                "ship",
                ship_orders,
                modes=("batch", "show"),
                argument=ShippingInfo,
                visible=lambda order, ctx: order.state == "paid",
            )
        """
        self._check_mutable()
        action = Action(
            name=name,
            handler=handler,
            modes=frozenset(modes),
            argument=argument,
            visible=visible,
            permission=permission,
            label=label,
            owner=self,
        )
        self._actions[name] = action
        return action

    @property
    def actions(self) -> Mapping[str, Action]:
        return dict(self._actions)

    def get_action(self, name: str) -> Action | None:
        return self._actions.get(name)

    def validator(self, fn: Validator) -> Validator:
        """Register a record validator returning ``FieldError``s. Usable as a decorator."""
        self._check_mutable()
        self._validators.append(fn)
        return fn

    def validate_record(self, record: Any, ctx: RequestContext | None = None) -> list[FieldError]:
        errors: list[FieldError] = []
        for fn in self._validators:
            errors.extend(fn(record, ctx) or ())
        return errors

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def associated_models(self) -> list[type]:
        """Model types this resource links to (associations and arguments)."""
        targets = [m.target for m in self._metas.values() if m.target is not None]
        targets.extend(a.argument for a in self._actions.values() if a.argument is not None)
        return targets

    def validate(self) -> None:
        """Re-check every configured name. Raises ``UnknownAttribute``."""
        for specs in self._attrs.values():
            self._validate_specs(specs)
        for path in self.configured_search_attrs():
            self.resolve_path(path)
        for name in self.default_order:
            self.get_meta(name.lstrip("-"))

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen


def _chain_valuer(chain: Sequence[Meta]) -> Callable[[Any, Any], Any]:
    many = any(m.uselist for m in chain)

    def valuer(record: Any, ctx: Any) -> Any:
        values: list[Any] = [record]
        for meta in chain:
            step: list[Any] = []
            for value in values:
                if value is None:
                    continue
                got = meta.value(value, ctx)
                if meta.uselist:
                    step.extend(got or ())
                else:
                    step.append(got)
            values = step
        if many:
            return values
        return values[0] if values else None

    return valuer
