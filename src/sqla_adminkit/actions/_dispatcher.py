"""ActionDispatcher — resolve, authorize, decode and run resource actions."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sqla_adminkit._audit import log_action_dispatch
from sqla_adminkit._context import RequestContext
from sqla_adminkit.exceptions import (
    ActionFailed,
    ActionNotFound,
    Forbidden,
    InvalidArgument,
    RecordNotFound,
)
from sqla_adminkit.permission._resolver import allowed
from sqla_adminkit.registry._registry import AdminRegistry
from sqla_adminkit.resource._action import ACTION_MODES, Action, ActionArgument
from sqla_adminkit.resource._decode import build_instance
from sqla_adminkit.resource._projection import project_metas
from sqla_adminkit.resource._resource import Resource

if TYPE_CHECKING:
    from sqla_adminkit.views._models import ActionResult

__all__ = ["ActionDispatcher", "available_actions", "decode_argument", "find_selected_records"]

logger = logging.getLogger("sqla_adminkit.actions")


def _parse_ids(resource: Resource, raw_ids: Sequence[Any]) -> list[Any]:
    parsed = []
    for raw in raw_ids:
        try:
            record_id = resource.parse_id(raw)
        except (TypeError, ValueError):
            raise InvalidArgument(
                f"Invalid id {raw!r} for {resource.name!r}",
                errors={"ids": [f"invalid id {raw!r}"]},
            ) from None
        if record_id not in parsed:
            parsed.append(record_id)
    return parsed


def find_selected_records(
    resource: Resource,
    action: Action,
    mode: str,
    ctx: RequestContext,
    *,
    record_id: Any = None,
    ids: Sequence[Any] = (),
) -> tuple[list[Any], int]:
    """Load the records an invocation targets and apply visibility.

    ``batch`` loads ``ids`` (unknown ids are skipped, repeats count once);
    ``edit`` and ``show`` load ``record_id``; ``menu_item`` takes no records.

    Returns:
        ``(visible records, number of candidates)``.

    Raises:
        InvalidArgument: Missing or superfluous ids for the mode.
        RecordNotFound: The single ``record_id`` does not exist.
    """
    if mode == "menu_item":
        if record_id is not None or ids:
            raise InvalidArgument(
                f"Action {action.name!r} in mode 'menu_item' takes no records",
                errors={"ids": ["not allowed for menu actions"]},
            )
        return [], 0
    if mode == "batch":
        parsed_ids = _parse_ids(resource, ids)
        candidates = ctx.persistence.get_many(resource, parsed_ids)
        selected = len(parsed_ids)
    else:
        if record_id is None:
            raise InvalidArgument(
                f"Action {action.name!r} in mode {mode!r} needs a record id",
                errors={"id": ["is required"]},
            )
        (parsed,) = _parse_ids(resource, [record_id])
        record = ctx.persistence.get(resource, parsed)
        if record is None:
            raise RecordNotFound(resource=resource.name, record_id=record_id)
        candidates = [record]
        selected = 1
    return [r for r in candidates if action.is_visible(r, ctx)], selected


def decode_argument(action: Action, payload: Any, ctx: RequestContext) -> Any:
    """Build the argument object of *action* from *payload*.

    Returns None for actions without an argument type.

    Raises:
        InvalidArgument: The payload is malformed or fails validation.
    """
    arg_resource = action.argument_resource
    if arg_resource is None:
        return None
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise InvalidArgument(
            f"Argument of action {action.name!r} must be an object",
            errors={"argument": ["must be an object"]},
        )
    metas = project_metas(arg_resource, "new", ctx.roles, config=ctx.config)
    instance, errors = build_instance(arg_resource, payload, metas, ctx)
    if errors:
        raise InvalidArgument(f"Invalid argument for action {action.name!r}", errors=errors)
    return instance


def available_actions(
    resource: Resource,
    mode: str,
    ctx: RequestContext,
    record: Any = None,
) -> list[Action]:
    """Actions offered in *mode* that the subject may run.

    With *record*, actions whose visibility predicate rejects it are
    left out.
    """
    roles = ctx.roles
    found = []
    for action in resource.actions.values():
        if mode not in action.modes:
            continue
        if not allowed(roles, "update", action, config=ctx.config):
            continue
        if record is not None and not action.is_visible(record, ctx):
            continue
        found.append(action)
    return found


class ActionDispatcher:
    """Run actions registered on the resources of *registry*.

    Example::

        dispatcher = ActionDispatcher(registry)
        result = dispatcher.dispatch(
            "orders", "ship", "batch", ctx, ids=[1, 2, 3],
            argument={"carrier": "DHL"},
        )
        result.record_ids  # ids that passed visibility
    """

    def __init__(self, registry: AdminRegistry) -> None:
        self.registry = registry

    def _resource(self, resource: Resource | str) -> Resource:
        if isinstance(resource, Resource):
            return resource
        return self.registry.lookup_name(resource)

    def dispatch(
        self,
        resource: Resource | str,
        name: str,
        mode: str,
        ctx: RequestContext,
        *,
        record_id: Any = None,
        ids: Sequence[Any] = (),
        argument: Any = None,
    ) -> ActionResult:
        """Invoke action *name* of *resource* in *mode*.

        The handler runs once with the visible records; it is not retried
        and nothing is rolled back when it fails.

        Raises:
            ActionNotFound: Unknown action, or *mode* is not one of its modes.
            Forbidden: The subject may not ``update`` through the action.
            InvalidArgument: Bad argument payload or record selection.
            RecordNotFound: A single-record mode names a missing record.
            ActionFailed: The handler raised; the original is ``__cause__``.
        """
        from sqla_adminkit.views._models import ActionResult

        res = self._resource(resource)
        action = res.get_action(name)
        if action is None or mode not in ACTION_MODES or mode not in action.modes:
            raise ActionNotFound(resource=res.name, action=name, mode=mode)

        roles = ctx.roles
        if not allowed(roles, "update", action, config=ctx.config):
            logger.warning(
                "Action %s.%s denied for roles %s", res.name, name, sorted(roles)
            )
            raise Forbidden(verb="update", target=f"{res.name}.{name}", roles=sorted(roles))

        decoded = decode_argument(action, argument, ctx)
        records, selected = find_selected_records(
            res, action, mode, ctx, record_id=record_id, ids=ids
        )

        call = ActionArgument(records=records, argument=decoded, context=ctx, resource=res)
        try:
            outcome = action.handler(call)
        except Exception as exc:
            if ctx.config.log_actions:
                log_action_dispatch(
                    resource=res.name,
                    action=name,
                    mode=mode,
                    selected=selected,
                    resolved=len(records),
                    error=exc,
                )
            raise ActionFailed(
                resource=res.name, action=name, reason=exc.__class__.__name__
            ) from exc

        if ctx.config.log_actions:
            log_action_dispatch(
                resource=res.name,
                action=name,
                mode=mode,
                selected=selected,
                resolved=len(records),
            )
        return ActionResult(
            resource=res.name,
            action=name,
            mode=mode,
            record_ids=tuple(res.primary_key(r) for r in records),
            skipped=selected - len(records),
            outcome=outcome,
        )
