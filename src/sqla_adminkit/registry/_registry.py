"""AdminRegistry — the table of registered resources."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING

from sqla_adminkit._audit import log_registration
from sqla_adminkit.config._config import AdminConfig, get_global_config
from sqla_adminkit.exceptions import NotRegistered
from sqla_adminkit.permission._resolver import allowed
from sqla_adminkit.permission._rules import Permission
from sqla_adminkit.resource._reflect import MetaOverride
from sqla_adminkit.resource._resource import Resource

if TYPE_CHECKING:
    from sqla_adminkit.views._models import MenuItem

__all__ = ["AdminRegistry"]

logger = logging.getLogger("sqla_adminkit.registry")


class AdminRegistry:
    """Registry that maps model types to their resources.

    Create one per application at startup, register models, then call
    :meth:`finalize` before serving requests. After that the registry and
    every resource in it are read-only and safe to share between threads.
    There is no module-level default: pass the registry explicitly.

    Example::

        registry = AdminRegistry()
        product = registry.register(Product, menu=("Catalog",))
        registry.register(Category, menu=("Catalog",))
        registry.finalize()

        registry.lookup(Product) is product  # True
    """

    def __init__(self, *, config: AdminConfig | None = None) -> None:
        self.config = config if config is not None else get_global_config()
        self._resources: dict[type, Resource] = {}
        self._by_name: dict[str, Resource] = {}
        self._finalized = False

    def __contains__(self, model: object) -> bool:
        return model in self._resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(self.all_resources())

    def __len__(self) -> int:
        return len(self._resources)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def register(
        self,
        model: type,
        *,
        name: str | None = None,
        metas: Mapping[str, MetaOverride] | None = None,
        exclude: Collection[str] = (),
        permission: Permission | None = None,
        menu: Sequence[str] = (),
        invisible: bool = False,
        theme: str | None = None,
        label: str | None = None,
        per_page: int | None = None,
    ) -> Resource:
        """Register *model* and reflect its default Metas.

        Re-registering a model returns the existing resource unchanged.

        Args:
            model: A SQLAlchemy mapped class, or a dataclass for action arguments.
            name: URL segment; defaults to the table name.
            metas: Explicit Meta declarations applied before inference, keyed
                by field name. Required for fields inference cannot handle.
            exclude: Field names to leave out entirely.
            permission: Resource-level rule set (None means open).
            menu: Menu path, e.g. ``("Catalog",)``.
            invisible: Hide from menus.
            theme: Optional theme name passed through to renderers.
            label: Display label.
            per_page: Page size override for the list view.

        Raises:
            UnsupportedFieldKind: A field has no default Meta and no declaration.
            RuntimeError: The registry is already finalized.
        """
        return self._register(
            model,
            name=name,
            metas=metas,
            exclude=exclude,
            permission=permission,
            menu=menu,
            invisible=invisible,
            theme=theme,
            label=label,
            per_page=per_page,
            auto=False,
        )

    def _register(self, model: type, *, auto: bool, **options: object) -> Resource:
        existing = self._resources.get(model)
        if existing is not None:
            logger.debug("%s already registered as %r", model.__name__, existing.name)
            return existing
        if self._finalized:
            raise RuntimeError(
                f"Cannot register {model.__name__}: the registry is finalized"
            )
        resource = Resource(model, registry=self, auto=auto, **options)  # type: ignore[arg-type]
        clash = self._by_name.get(resource.name)
        if clash is not None:
            raise ValueError(
                f"Resource name {resource.name!r} is already used by {clash.model.__name__}"
            )
        self._resources[model] = resource
        self._by_name[resource.name] = resource
        log_registration(
            resource=resource.name, model=model, metas=len(resource.metas), auto=auto
        )
        return resource

    def ensure(self, model: type) -> Resource:
        """Return the resource for *model*, registering it on first use.

        Used by association Metas and action arguments so related models
        need no particular registration order. Auto-registered resources are
        hidden from menus.

        Raises:
            NotRegistered: The registry is finalized and *model* is unknown.
        """
        existing = self._resources.get(model)
        if existing is not None:
            return existing
        if self._finalized:
            raise NotRegistered(model)
        return self._register(model, auto=True, invisible=True)

    def lookup(self, model: type) -> Resource:
        """Return the resource registered for *model*.

        Raises:
            NotRegistered: *model* was never registered.
        """
        try:
            return self._resources[model]
        except KeyError:
            raise NotRegistered(model) from None

    def lookup_name(self, name: str) -> Resource:
        """Return the resource whose URL name is *name*.

        Raises:
            NotRegistered: No resource has that name.
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise NotRegistered(name) from None

    def all_resources(self) -> tuple[Resource, ...]:
        """Every resource, in registration order."""
        return tuple(self._resources.values())

    def finalize(self) -> None:
        """Resolve associations, validate configuration and freeze.

        Walks associations and action arguments until every reachable model
        is registered, re-validates every projection, search path and
        ordering, then freezes all resources. Idempotent.

        Raises:
            UnknownAttribute: A configured name does not resolve.
            UnsupportedFieldKind: An associated model cannot be reflected.
        """
        if self._finalized:
            return
        pending = list(self._resources.values())
        while pending:
            resource = pending.pop()
            for model in resource.associated_models():
                if model not in self._resources:
                    pending.append(self.ensure(model))
        for resource in self._resources.values():
            resource.validate()
        for resource in self._resources.values():
            resource.freeze()
        self._finalized = True
        logger.info("Admin registry finalized with %d resource(s)", len(self._resources))

    def menus(self, roles: Collection[str]) -> list[MenuItem]:
        """Build the navigation tree visible to a subject holding *roles*.

        Hidden resources and resources the subject may not read are left out.
        Top-level resources without a menu path come after grouped ones.
        """
        from sqla_adminkit.views._models import MenuItem

        groups: dict[tuple[str, ...], list[MenuItem]] = {}
        top: list[MenuItem] = []
        for resource in self._resources.values():
            if resource.invisible or not allowed(roles, "read", resource, config=self.config):
                continue
            item = MenuItem(label=resource.label, resource=resource.name)
            if resource.menu:
                groups.setdefault(resource.menu, []).append(item)
            else:
                top.append(item)

        root: list[MenuItem] = []
        for path, items in groups.items():
            siblings = root
            for depth, label in enumerate(path):
                node = next((m for m in siblings if m.label == label and m.resource is None), None)
                if node is None:
                    node = MenuItem(label=label)
                    siblings.append(node)
                siblings = node.children
                if depth == len(path) - 1:
                    siblings.extend(items)
        return root + top

    def clear(self) -> None:
        """Remove every resource and reopen the registry. For tests only."""
        self._resources.clear()
        self._by_name.clear()
        self._finalized = False
