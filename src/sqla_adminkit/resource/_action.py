"""Action — a named operation on one or more records."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqla_adminkit._types import ActionMode
from sqla_adminkit.permission._rules import Permission
from sqla_adminkit.resource._meta import humanize

if TYPE_CHECKING:
    from sqla_adminkit._context import RequestContext
    from sqla_adminkit.resource._resource import Resource

__all__ = ["ACTION_MODES", "DEFAULT_MODES", "Action", "ActionArgument"]

ACTION_MODES: frozenset[str] = frozenset({"batch", "edit", "show", "menu_item"})
DEFAULT_MODES: frozenset[str] = frozenset({"menu_item", "edit"})


@dataclass(frozen=True, slots=True)
class ActionArgument:
    """What an action handler receives.

    Attributes:
        records: The resolved, visible records (possibly empty).
        argument: The decoded argument object, or None when the action
            declares no argument type.
        context: The request context.
        resource: The resource the action is registered on.
    """

    records: Sequence[Any]
    argument: Any
    context: RequestContext | None
    resource: Resource

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self.records)


VisiblePredicate = Callable[[Any, "RequestContext | None"], bool]
ActionHandler = Callable[[ActionArgument], Any]


@dataclass(frozen=True, slots=True)
class Action:
    """A named operation registered on a resource.

    Attributes:
        name: Identifier used in URLs.
        handler: ``(ActionArgument) -> outcome``. Raising fails the action.
        modes: Where the action is offered (``batch``, ``edit``, ``show``,
            ``menu_item``).
        argument: Optional dataclass or mapped class describing user input;
            reflected into its own resource.
        visible: Optional ``(record, ctx) -> bool``; records for which it
            returns False are silently skipped.
        permission: Action-level rule set; the owner's applies when None.
        label: Display label.
        owner: The resource the action belongs to.
    """

    name: str
    handler: ActionHandler
    modes: frozenset[ActionMode] = field(default=DEFAULT_MODES)  # type: ignore[assignment]
    argument: type | None = None
    visible: VisiblePredicate | None = None
    permission: Permission | None = None
    label: str | None = None
    owner: Resource | None = None

    def __post_init__(self) -> None:
        unknown = set(self.modes) - ACTION_MODES
        if unknown:
            raise ValueError(
                f"Action {self.name!r}: unknown mode(s) {sorted(unknown)!r}, "
                f"expected a subset of {sorted(ACTION_MODES)!r}"
            )
        if not self.modes:
            raise ValueError(f"Action {self.name!r} needs at least one mode")

    @property
    def display_label(self) -> str:
        return self.label if self.label is not None else humanize(self.name)

    @property
    def argument_resource(self) -> Resource | None:
        """The resource describing the argument payload, if any."""
        if self.argument is None:
            return None
        if self.owner is None:
            raise RuntimeError(f"Action {self.name!r} is not attached to a resource")
        return self.owner.registry.ensure(self.argument)

    def is_visible(self, record: Any, ctx: RequestContext | None = None) -> bool:
        if self.visible is None:
            return True
        return bool(self.visible(record, ctx))
