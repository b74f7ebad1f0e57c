"""Permission engine — role-based allow/deny rule sets and their resolution."""

from sqla_adminkit.permission._resolver import (
    allowed,
    authorize,
    can,
    resolve_rule_set,
    roles_of,
)
from sqla_adminkit.permission._rules import ANYONE, CRUD, VERBS, Permission, PermissionRule

__all__ = [
    "ANYONE",
    "CRUD",
    "VERBS",
    "Permission",
    "PermissionRule",
    "allowed",
    "authorize",
    "can",
    "resolve_rule_set",
    "roles_of",
]
