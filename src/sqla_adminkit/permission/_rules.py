"""Permission rule sets — immutable allow/deny grants keyed by (verb, role)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from sqla_adminkit._types import Verb

__all__ = ["ANYONE", "CRUD", "VERBS", "Permission", "PermissionRule"]

# Role that matches every subject, including anonymous ones.
ANYONE = "*"

# Shortcut verb expanding to all four CRUD verbs.
CRUD = "crud"

VERBS: tuple[Verb, ...] = ("create", "read", "update", "delete")

Effect = Literal["allow", "deny"]


@dataclass(frozen=True, slots=True)
class PermissionRule:
    """A single grant: *effect* of *verb* for *role*."""

    effect: Effect
    verb: Verb
    role: str


def _expand(verb: str) -> tuple[Verb, ...]:
    if verb == CRUD:
        return VERBS
    if verb not in VERBS:
        raise ValueError(f"verb must be one of {VERBS!r} or {CRUD!r}, got {verb!r}")
    return (verb,)  # type: ignore[return-value]


@dataclass(frozen=True, slots=True)
class Permission:
    """An ordered, immutable rule set.

    A declared rule set is *closed*: a verb is denied unless some role of
    the subject is explicitly allowed, and a deny for any of the subject's
    roles always wins. Builder methods return new instances.

    Example::

        perm = Permission().allow(CRUD, "admin").allow("read", ANYONE).deny("delete", "intern")
        perm.has_permission("read", {"editor"})      # True
        perm.has_permission("delete", {"admin", "intern"})  # False, deny wins
    """

    rules: tuple[PermissionRule, ...] = ()

    def allow(self, verb: Verb | str, *roles: str) -> Permission:
        """Return a copy with *verb* allowed for *roles*."""
        return self._add("allow", verb, roles)

    def deny(self, verb: Verb | str, *roles: str) -> Permission:
        """Return a copy with *verb* denied for *roles*."""
        return self._add("deny", verb, roles)

    def _add(self, effect: Effect, verb: str, roles: Iterable[str]) -> Permission:
        roles = tuple(roles)
        if not roles:
            raise ValueError(f"{effect}() needs at least one role")
        added = tuple(
            PermissionRule(effect=effect, verb=v, role=role)
            for v in _expand(verb)
            for role in roles
        )
        return Permission(rules=self.rules + added)

    def has_permission(self, verb: Verb, roles: Iterable[str]) -> bool:
        """Resolve *verb* for a subject holding *roles*.

        The subject always holds :data:`ANYONE` in addition to its own roles.
        """
        effective = set(roles)
        effective.add(ANYONE)
        granted = False
        for rule in self.rules:
            if rule.verb != verb or rule.role not in effective:
                continue
            if rule.effect == "deny":
                return False
            granted = True
        return granted

    def verbs_for(self, roles: Iterable[str]) -> dict[str, bool]:
        """Resolve every CRUD verb at once (used in ViewModels)."""
        roles = tuple(roles)
        return {verb: self.has_permission(verb, roles) for verb in VERBS}
