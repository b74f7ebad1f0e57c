"""Permission resolution — nearest rule set wins, open when none is declared."""

from __future__ import annotations

from collections.abc import Collection
from typing import Any

from sqla_adminkit._types import SubjectLike, Verb
from sqla_adminkit.config._config import AdminConfig, get_global_config
from sqla_adminkit.exceptions import Forbidden
from sqla_adminkit.permission._rules import Permission

__all__ = ["allowed", "authorize", "can", "resolve_rule_set", "roles_of"]


def roles_of(subject: SubjectLike | None) -> frozenset[str]:
    """Return the role set of *subject* (empty for anonymous requests)."""
    if subject is None:
        return frozenset()
    return frozenset(subject.roles)


def resolve_rule_set(target: Any) -> Permission | None:
    """Find the rule set that governs *target*.

    A ``Meta`` or ``Action`` uses its own ``permission`` when declared,
    else the owning resource's. A ``Resource`` uses its own. ``None``
    means no rule set anywhere, i.e. open access.
    """
    if target is None:
        return None
    if isinstance(target, Permission):
        return target
    own: Permission | None = getattr(target, "permission", None)
    if own is not None:
        return own
    owner = getattr(target, "owner", None)
    if owner is not None:
        return getattr(owner, "permission", None)
    return None


def _target_name(target: Any) -> str:
    owner = getattr(target, "owner", None)
    name = getattr(target, "name", None)
    if owner is not None and name is not None:
        return f"{owner.name}.{name}"
    if name is not None:
        return str(name)
    return type(target).__name__


def allowed(
    roles: Collection[str],
    verb: Verb,
    target: Any,
    *,
    config: AdminConfig | None = None,
) -> bool:
    """Evaluate *verb* for a subject holding *roles* against *target*.

    Unconfigured targets are open; a declared rule set denies unless a
    role is explicitly allowed, and any deny is sticky. Never cached.
    A derived dotted Meta is allowed only when every Meta along its
    path is, each judged against its own owner.

    Args:
        roles: The subject's roles for this request.
        verb: ``"create"``, ``"read"``, ``"update"`` or ``"delete"``.
        target: A ``Resource``, ``Meta``, ``Action``, ``Permission`` or None.
        config: Optional config controlling decision logging.

    Example::

        allowed({"editor"}, "update", product_resource.get_meta("price"))
    """
    hops = getattr(target, "chain", None) or (target,)
    rule_sets = [resolve_rule_set(hop) for hop in hops]
    result = all(r is None or r.has_permission(verb, roles) for r in rule_sets)

    cfg = config if config is not None else get_global_config()
    if cfg.log_permission_decisions:
        from sqla_adminkit._audit import log_permission_decision

        log_permission_decision(
            target=_target_name(target),
            verb=verb,
            roles=roles,
            declared=any(r is not None for r in rule_sets),
            result=result,
        )
    return result


def can(
    subject: SubjectLike | None,
    verb: Verb,
    target: Any,
    *,
    config: AdminConfig | None = None,
) -> bool:
    """Check whether *subject* may perform *verb* on *target*."""
    return allowed(roles_of(subject), verb, target, config=config)


def authorize(
    subject: SubjectLike | None,
    verb: Verb,
    target: Any,
    *,
    config: AdminConfig | None = None,
    message: str | None = None,
) -> None:
    """Assert that *subject* may perform *verb* on *target*.

    Raises:
        Forbidden: If the permission resolves to deny.
    """
    roles = roles_of(subject)
    if not allowed(roles, verb, target, config=config):
        raise Forbidden(
            verb=verb,
            target=_target_name(target),
            roles=sorted(roles),
            message=message,
        )
