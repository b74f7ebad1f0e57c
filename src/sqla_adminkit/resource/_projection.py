"""Attribute projection — the ordered fields shown for a view context."""

from __future__ import annotations

from collections.abc import Collection
from typing import Union

from sqla_adminkit._types import Verb, ViewContext
from sqla_adminkit.config._config import AdminConfig
from sqla_adminkit.permission._resolver import allowed
from sqla_adminkit.resource._meta import Meta
from sqla_adminkit.resource._resource import Resource
from sqla_adminkit.resource._section import AttrSpec, Section, SectionHeader

__all__ = ["ProjectionItem", "VIEW_VERBS", "project", "project_metas", "project_names"]

ProjectionItem = Union[Meta, SectionHeader]

# The verb a subject needs on a Meta to see it in each view.
VIEW_VERBS: dict[str, Verb] = {
    "index": "read",
    "show": "read",
    "new": "create",
    "edit": "update",
}


def _split_specs(resource: Resource, view: ViewContext) -> list[AttrSpec]:
    configured = resource.configured_attrs(view)
    if configured is None:
        return list(resource.default_attrs(view))
    excluded = {s[1:] for s in configured if isinstance(s, str) and s.startswith("-")}
    positive = [s for s in configured if not (isinstance(s, str) and s.startswith("-"))]
    specs: list[AttrSpec] = positive if positive else list(resource.default_attrs(view))
    if not excluded:
        return specs
    kept: list[AttrSpec] = []
    for spec in specs:
        if isinstance(spec, Section):
            trimmed = spec.without(excluded)
            if trimmed.rows:
                kept.append(trimmed)
        elif spec not in excluded:
            kept.append(spec)
    return kept


def project(
    resource: Resource,
    view: ViewContext,
    roles: Collection[str] | None = None,
    *,
    config: AdminConfig | None = None,
) -> tuple[ProjectionItem, ...]:
    """Compute the ordered fields (and section headers) for *view*.

    Without *roles* the full configured projection is returned. With
    *roles*, Metas the subject may not use in this view are dropped,
    and sections left empty disappear.

    Args:
        resource: The resource to project.
        view: ``"index"``, ``"new"``, ``"edit"`` or ``"show"``.
        roles: The subject's roles, or None to skip permission filtering.
        config: Optional config used for decision logging.

    Returns:
        Metas in display order; each section contributes a
        ``SectionHeader`` followed by its Metas row by row.

    Example::

        for item in project(product, "edit", {"editor"}):
            if isinstance(item, SectionHeader):
                print("==", item.title)
            else:
                print(item.name, item.type)
    """
    verb = VIEW_VERBS[view]

    def permitted(meta: Meta) -> bool:
        return roles is None or allowed(roles, verb, meta, config=config)

    items: list[ProjectionItem] = []
    seen: set[str] = set()
    for spec in _split_specs(resource, view):
        if isinstance(spec, Section):
            rows: list[tuple[str, ...]] = []
            metas: list[Meta] = []
            for row in spec.rows:
                row_metas = [
                    m for m in (resource.resolve_meta(n) for n in row if n not in seen)
                    if permitted(m)
                ]
                if row_metas:
                    rows.append(tuple(m.name for m in row_metas))
                    metas.extend(row_metas)
                    seen.update(m.name for m in row_metas)
            if metas:
                items.append(SectionHeader(title=spec.title, rows=tuple(rows)))
                items.extend(metas)
        elif spec not in seen:
            meta = resource.resolve_meta(spec)
            if permitted(meta):
                items.append(meta)
                seen.add(spec)
    return tuple(items)


def project_metas(
    resource: Resource,
    view: ViewContext,
    roles: Collection[str] | None = None,
    *,
    config: AdminConfig | None = None,
) -> tuple[Meta, ...]:
    """Like :func:`project` without the section headers."""
    return tuple(
        item for item in project(resource, view, roles, config=config) if isinstance(item, Meta)
    )


def project_names(
    resource: Resource,
    view: ViewContext,
    roles: Collection[str] | None = None,
    *,
    config: AdminConfig | None = None,
) -> tuple[str, ...]:
    """The flat list of attribute names for *view*."""
    return tuple(m.name for m in project_metas(resource, view, roles, config=config))
