"""Audit logging for permission decisions, registrations and action dispatch."""

from __future__ import annotations

import logging
from collections.abc import Collection

__all__ = [
    "log_action_dispatch",
    "log_permission_decision",
    "log_registration",
    "log_unknown_scope",
]

logger = logging.getLogger("sqla_adminkit")


def log_permission_decision(
    *,
    target: str,
    verb: str,
    roles: Collection[str],
    declared: bool,
    result: bool,
) -> None:
    """Log a permission resolution.

    Logging levels:
    - DEBUG: every decision (target, verb, roles, outcome)
    - INFO: denials

    Example::

        log_permission_decision(
            target="Product.price", verb="update", roles={"intern"},
            declared=True, result=False,
        )
    """
    perm_logger = logging.getLogger("sqla_adminkit.permission")
    if not declared:
        perm_logger.debug("%s %s open by default (no rule set)", verb, target)
        return
    if result:
        perm_logger.debug("%s %s allowed for roles %s", verb, target, sorted(roles))
    else:
        perm_logger.info("%s %s denied for roles %s", verb, target, sorted(roles))


def log_registration(*, resource: str, model: type, metas: int, auto: bool) -> None:
    """Log a new resource registration."""
    logging.getLogger("sqla_adminkit.registry").info(
        "Registered resource %r for %s with %d meta(s)%s",
        resource,
        model.__name__,
        metas,
        " (auto)" if auto else "",
    )


def log_unknown_scope(*, resource: str, scope: str, group: str | None = None) -> None:
    """Log a request that selected an undeclared scope."""
    if group is not None:
        logger.warning(
            "Ignoring unknown scope %r in group %r on resource %r", scope, group, resource
        )
        return
    logger.warning("Ignoring unknown scope %r on resource %r", scope, resource)


def log_action_dispatch(
    *,
    resource: str,
    action: str,
    mode: str,
    selected: int,
    resolved: int,
    error: BaseException | None = None,
) -> None:
    """Log the outcome of an action invocation.

    ``selected`` is the number of candidate records, ``resolved`` the number
    that passed visibility and were handed to the handler.
    """
    action_logger = logging.getLogger("sqla_adminkit.actions")
    if error is not None:
        action_logger.warning(
            "Action %s.%s (%s) failed on %d record(s): %s",
            resource,
            action,
            mode,
            resolved,
            error.__class__.__name__,
        )
        return
    action_logger.info(
        "Action %s.%s (%s) executed on %d record(s)",
        resource,
        action,
        mode,
        resolved,
    )
    if resolved != selected and action_logger.isEnabledFor(logging.DEBUG):
        action_logger.debug(
            "Action %s.%s skipped %d invisible record(s)",
            resource,
            action,
            selected - resolved,
        )
