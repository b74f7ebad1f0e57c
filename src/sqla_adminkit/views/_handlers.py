"""AdminHandlers — transport-agnostic CRUD, action and metadata operations."""

from __future__ import annotations

import datetime
import decimal
import enum
import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from sqla_adminkit._context import RequestContext
from sqla_adminkit.actions._dispatcher import ActionDispatcher, available_actions
from sqla_adminkit.exceptions import InvalidArgument, RecordNotFound, ValidationFailed
from sqla_adminkit.permission._resolver import allowed, authorize
from sqla_adminkit.permission._rules import VERBS
from sqla_adminkit.query._pagination import paginate
from sqla_adminkit.query._search import ScopeSelection, apply_order, build_query, select_scopes
from sqla_adminkit.registry._registry import AdminRegistry
from sqla_adminkit.resource._action import Action
from sqla_adminkit.resource._decode import build_instance, populate
from sqla_adminkit.resource._meta import Meta
from sqla_adminkit.resource._projection import project, project_metas
from sqla_adminkit.resource._resource import VIEWS, Resource
from sqla_adminkit.resource._section import SectionHeader
from sqla_adminkit.views._models import (
    ActionResult,
    ActionView,
    DeleteResult,
    FieldView,
    ListViewModel,
    MenuItem,
    RecordView,
    RecordViewModel,
    ResourceDescription,
    ScopeView,
    SearchState,
    SectionView,
)

__all__ = ["AdminHandlers", "serialize_value"]

_EDITABLE_VIEWS = frozenset({"new", "edit"})


def _scalar(value: Any, registry: AdminRegistry | None) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (decimal.Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): _scalar(v, registry) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_scalar(v, registry) for v in value]
    if registry is not None and type(value) in registry:
        resource = registry.lookup(type(value))
        if resource.persisted:
            return resource.primary_key(value)
    return str(value)


def serialize_value(meta: Meta, value: Any, registry: AdminRegistry | None = None) -> Any:
    """Render a Meta's value as JSON-compatible data.

    Passwords are never rendered. Associations render as primary keys.
    Enums render by member name, dates in ISO format, decimals as strings.
    """
    if meta.type == "password":
        return None
    if meta.is_association and value is not None:
        nested = meta.resource
        if nested is not None and nested.persisted:
            if meta.uselist:
                return [nested.primary_key(v) for v in value]
            return nested.primary_key(value)
    return _scalar(value, registry)


def _action_view(action: Action) -> ActionView:
    arg = action.argument_resource
    return ActionView(
        name=action.name,
        label=action.display_label,
        modes=tuple(sorted(action.modes)),
        argument=arg.name if arg is not None else None,
    )


class AdminHandlers:
    """Admin operations over the resources of one registry.

    Every operation takes a :class:`RequestContext` and returns a
    ViewModel. Nothing here commits: writes are flushed through the
    context's persistence and the caller owns the transaction. When a
    write returns a ViewModel with ``ok == False`` the caller should roll
    back, since validators run after values were assigned.

    Example::

        handlers = AdminHandlers(registry)
        with Session(engine) as session, session.begin():
            ctx = RequestContext(subject=user, persistence=SessionPersistence(session))
            page = handlers.index("products", ctx, keyword="widget", page=1)
            created = handlers.create("products", {"name": "Gadget"}, ctx)
    """

    def __init__(
        self, registry: AdminRegistry, *, dispatcher: ActionDispatcher | None = None
    ) -> None:
        self.registry = registry
        self.dispatcher = dispatcher if dispatcher is not None else ActionDispatcher(registry)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def resource(self, name: str) -> Resource:
        """Look up a resource by URL name. Raises ``NotRegistered``."""
        return self.registry.lookup_name(name)

    def _load(self, resource: Resource, record_id: Any, ctx: RequestContext) -> Any:
        try:
            parsed = resource.parse_id(record_id)
        except (TypeError, ValueError):
            raise RecordNotFound(resource=resource.name, record_id=record_id) from None
        record = ctx.persistence.get(resource, parsed)
        if record is None:
            raise RecordNotFound(resource=resource.name, record_id=record_id)
        return record

    def _field(self, meta: Meta, view: str, record: Any, ctx: RequestContext) -> FieldView:
        value = None
        if record is not None:
            value = serialize_value(meta, meta.value(record, ctx), self.registry)
        nested = meta.resource if meta.is_association else None
        return FieldView(
            name=meta.name,
            label=meta.display_label,
            type=meta.type,
            value=value,
            writable=view in _EDITABLE_VIEWS and meta.writable,
            required=meta.required,
            options=tuple(meta.options(ctx)),
            association=nested.name if nested is not None else None,
        )

    def _render(
        self, resource: Resource, view: str, record: Any, ctx: RequestContext
    ) -> tuple[RecordView, tuple[SectionView, ...]]:
        fields: list[FieldView] = []
        sections: list[SectionView] = []
        for item in project(resource, view, ctx.roles, config=ctx.config):  # type: ignore[arg-type]
            if isinstance(item, SectionHeader):
                sections.append(SectionView(title=item.title, rows=item.rows))
            else:
                fields.append(self._field(item, view, record, ctx))
        record_id = None
        if record is not None and resource.persisted:
            record_id = _scalar(resource.primary_key(record), None)
        return RecordView(id=record_id, fields=tuple(fields)), tuple(sections)

    def _record_model(
        self,
        resource: Resource,
        view: str,
        record: Any,
        ctx: RequestContext,
        *,
        errors: Sequence[Any] = (),
    ) -> RecordViewModel:
        record_view, sections = self._render(resource, view, record, ctx)
        roles = ctx.roles
        actions: tuple[ActionView, ...] = ()
        if view in ("show", "edit") and record is not None:
            actions = tuple(
                _action_view(a) for a in available_actions(resource, view, ctx, record)
            )
        return RecordViewModel(
            resource=resource.name,
            view=view,
            record=record_view,
            sections=sections,
            actions=actions,
            errors=tuple(errors),
            can_update=allowed(roles, "update", resource, config=ctx.config),
            can_delete=allowed(roles, "delete", resource, config=ctx.config),
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def index(
        self,
        name: str,
        ctx: RequestContext,
        *,
        keyword: str | None = None,
        scopes: Sequence[ScopeSelection] = (),
        page: int | str | None = None,
        per_page: int | str | None = None,
        order: str | Sequence[str] | None = None,
    ) -> ListViewModel:
        """List records matching a keyword and scope selection, one page at a time.

        Raises:
            Forbidden: The subject may not read the resource.
            InvalidArgument: Bad paging or ordering parameters.
        """
        res = self.resource(name)
        authorize(ctx.subject, "read", res, config=ctx.config)

        active = select_scopes(res, scopes, ctx)
        stmt = build_query(res, keyword, (), ctx.persistence.query(res), ctx)
        for scope in active:
            stmt = scope.apply(stmt, ctx)
        stmt = apply_order(res, stmt, order)

        total = ctx.persistence.count(stmt)
        paged, pagination = paginate(
            stmt,
            page=page,
            per_page=per_page,
            total=total,
            config=ctx.config,
            default_per_page=res.per_page,
        )
        rows = ctx.persistence.fetch_many(paged)

        metas = project_metas(res, "index", ctx.roles, config=ctx.config)
        columns = tuple(self._field(m, "index", None, ctx) for m in metas)
        records = tuple(
            RecordView(
                id=_scalar(res.primary_key(row), None),
                fields=tuple(self._field(m, "index", row, ctx) for m in metas),
            )
            for row in rows
        )
        active_names = {s.name for s in active}
        order_terms = (
            tuple(t.strip() for t in order.split(",") if t.strip())
            if isinstance(order, str)
            else tuple(order or ())
        )
        return ListViewModel(
            resource=res.name,
            label=res.label,
            columns=columns,
            records=records,
            pagination=pagination,
            search=SearchState(
                keyword=(keyword or "").strip() or None,
                scopes=tuple(s.name for s in active),
                order=order_terms,
            ),
            scopes=tuple(
                ScopeView(
                    name=s.name,
                    label=s.display_label,
                    group=s.group,
                    active=s.name in active_names,
                    default=s.default,
                )
                for s in res.scopes.values()
            ),
            actions=tuple(_action_view(a) for a in available_actions(res, "batch", ctx)),
            can_create=allowed(ctx.roles, "create", res, config=ctx.config),
        )

    def show(self, name: str, record_id: Any, ctx: RequestContext) -> RecordViewModel:
        res = self.resource(name)
        authorize(ctx.subject, "read", res, config=ctx.config)
        return self._record_model(res, "show", self._load(res, record_id, ctx), ctx)

    def edit(self, name: str, record_id: Any, ctx: RequestContext) -> RecordViewModel:
        res = self.resource(name)
        authorize(ctx.subject, "update", res, config=ctx.config)
        return self._record_model(res, "edit", self._load(res, record_id, ctx), ctx)

    def new(self, name: str, ctx: RequestContext) -> RecordViewModel:
        """The blank create form. The record is built but never saved."""
        res = self.resource(name)
        authorize(ctx.subject, "create", res, config=ctx.config)
        record = ctx.persistence.create(res) if res.persisted else None
        return self._record_model(res, "new", record, ctx)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def _payload(self, payload: Any) -> Mapping[str, Any]:
        if payload is None:
            return {}
        if not isinstance(payload, Mapping):
            raise InvalidArgument(
                "Payload must be an object", errors={"payload": ["must be an object"]}
            )
        return payload

    def create(
        self, name: str, payload: Any, ctx: RequestContext, *, strict: bool = False
    ) -> RecordViewModel:
        """Create a record from *payload* decoded through the ``new`` projection.

        Returns the ``show`` ViewModel of the saved record, or the ``new``
        ViewModel with field errors when decoding or validation fails.

        Raises:
            ValidationFailed: With ``strict=True``, instead of returning a
                ViewModel carrying field errors.
        """
        res = self.resource(name)
        authorize(ctx.subject, "create", res, config=ctx.config)
        metas = project_metas(res, "new", ctx.roles, config=ctx.config)
        record, errors = build_instance(res, self._payload(payload), metas, ctx)
        if errors:
            if strict:
                raise ValidationFailed(errors)
            return self._record_model(res, "new", record, ctx, errors=errors)
        ctx.persistence.save(record)
        return self._record_model(res, "show", record, ctx)

    def update(
        self,
        name: str,
        record_id: Any,
        payload: Any,
        ctx: RequestContext,
        *,
        strict: bool = False,
    ) -> RecordViewModel:
        """Apply *payload* through the ``edit`` projection.

        Absent keys are left unchanged, as is a blank password. With
        ``strict=True`` field errors raise ``ValidationFailed``.
        """
        res = self.resource(name)
        authorize(ctx.subject, "update", res, config=ctx.config)
        record = self._load(res, record_id, ctx)
        metas = project_metas(res, "edit", ctx.roles, config=ctx.config)
        errors = populate(res, record, self._payload(payload), metas, ctx, partial=True)
        if errors:
            if strict:
                raise ValidationFailed(errors)
            return self._record_model(res, "edit", record, ctx, errors=errors)
        ctx.persistence.save(record)
        return self._record_model(res, "show", record, ctx)

    def delete(self, name: str, record_id: Any, ctx: RequestContext) -> DeleteResult:
        res = self.resource(name)
        authorize(ctx.subject, "delete", res, config=ctx.config)
        record = self._load(res, record_id, ctx)
        ctx.persistence.delete(record)
        return DeleteResult(resource=res.name, record_id=_scalar(record_id, None))

    # ------------------------------------------------------------------
    # Actions and metadata
    # ------------------------------------------------------------------

    def action(
        self,
        name: str,
        action_name: str,
        ctx: RequestContext,
        *,
        mode: str | None = None,
        record_id: Any = None,
        ids: Sequence[Any] = (),
        argument: Any = None,
    ) -> ActionResult:
        """Dispatch an action.

        Without *mode*, a record id selects ``edit`` (or ``show`` when the
        action is only offered there), ids select ``batch``, and neither
        selects ``menu_item``.
        """
        res = self.resource(name)
        if mode is None:
            if record_id is not None:
                found = res.get_action(action_name)
                offered = found.modes if found is not None else ()
                mode = "show" if "show" in offered and "edit" not in offered else "edit"
            elif ids:
                mode = "batch"
            else:
                mode = "menu_item"
        return self.dispatcher.dispatch(
            res, action_name, mode, ctx, record_id=record_id, ids=ids, argument=argument
        )

    def describe(self, name: str, ctx: RequestContext) -> ResourceDescription:
        """Describe a resource as the current subject sees it."""
        res = self.resource(name)
        authorize(ctx.subject, "read", res, config=ctx.config)
        roles = ctx.roles
        views: dict[str, tuple[FieldView, ...]] = {}
        sections: dict[str, tuple[SectionView, ...]] = {}
        for view in VIEWS:
            record_view, view_sections = self._render(res, view, None, ctx)
            views[view] = record_view.fields
            sections[view] = view_sections
        return ResourceDescription(
            name=res.name,
            label=res.label,
            menu=tuple(res.menu),
            invisible=res.invisible,
            theme=res.theme,
            views=views,
            sections=sections,
            search_attrs=res.configured_search_attrs(),
            scopes=tuple(
                ScopeView(
                    name=s.name,
                    label=s.display_label,
                    group=s.group,
                    active=s.default,
                    default=s.default,
                )
                for s in res.scopes.values()
            ),
            actions=tuple(
                _action_view(a)
                for a in res.actions.values()
                if allowed(roles, "update", a, config=ctx.config)
            ),
            verbs=tuple(v for v in VERBS if allowed(roles, v, res, config=ctx.config)),
        )

    def menus(self, ctx: RequestContext) -> list[MenuItem]:
        return self.registry.menus(ctx.roles)
