"""Framework-neutral HTTP helpers shared by the FastAPI and Flask shells."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from sqla_adminkit.exceptions import (
    ActionFailed,
    ActionNotFound,
    AdminError,
    Forbidden,
    InvalidArgument,
    NotRegistered,
    RecordNotFound,
    ValidationFailed,
)
from sqla_adminkit.query._search import ScopeSelection

__all__ = [
    "Renderer",
    "error_payload",
    "error_status",
    "parse_action_body",
    "parse_scope_params",
    "split_suffix",
    "wants_json",
]

logger = logging.getLogger("sqla_adminkit")

# ``renderer(view_name, view_model)`` -> framework response
Renderer = Callable[[str, Any], Any]

_SCOPE_PARAM = re.compile(r"^scope\[([^\]]+)\]$")

_STATUS: tuple[tuple[type[AdminError], int], ...] = (
    (Forbidden, 403),
    (NotRegistered, 404),
    (ActionNotFound, 404),
    (RecordNotFound, 404),
    (InvalidArgument, 422),
    (ValidationFailed, 422),
    (ActionFailed, 500),
)


def error_status(exc: AdminError) -> int:
    """HTTP status for an admin error (500 for anything unmapped)."""
    for cls, status in _STATUS:
        if isinstance(exc, cls):
            return status
    return 500


def error_payload(exc: AdminError) -> dict[str, Any]:
    """JSON body for an admin error.

    Action failures expose only the action name and the class of the
    underlying exception, never its message.
    """
    body: dict[str, Any] = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, ActionFailed):
        cause = exc.__cause__
        body["detail"] = f"Action {exc.action!r} failed"
        body["action"] = exc.action
        body["cause"] = type(cause).__name__ if cause is not None else None
    elif isinstance(exc, InvalidArgument):
        body["errors"] = exc.errors
    elif isinstance(exc, ValidationFailed):
        body["errors"] = exc.by_field()
    if error_status(exc) >= 500:
        logger.error("Admin request failed: %s", body["detail"])
    return body


def parse_scope_params(items: Iterable[tuple[str, str]]) -> list[ScopeSelection]:
    """Collect scope selections from ``scope[group]=name`` and ``scopes=name`` pairs.

    Grouped parameters yield ``(group, name)`` pairs so a name only
    matches a scope of that group. Request order is kept, so a later
    member of a group wins.

    Example::

        parse_scope_params([("scope[State]", "paid"), ("scopes", "active")])
        # [('State', 'paid'), 'active']
    """
    selected: list[ScopeSelection] = []
    for key, value in items:
        if not value:
            continue
        if key == "scopes":
            selected.extend(v for v in value.split(",") if v)
            continue
        match = _SCOPE_PARAM.match(key)
        if match:
            group = match.group(1)
            selected.extend((group, v) for v in value.split(",") if v)
    return selected


def split_suffix(segment: str, suffix: str) -> tuple[str, bool]:
    """Strip the JSON *suffix* off a path segment. Returns ``(segment, had_suffix)``."""
    if suffix and segment.endswith(suffix) and len(segment) > len(suffix):
        return segment[: -len(suffix)], True
    return segment, False


def wants_json(accept: str | None, *, suffixed: bool, renderer: Renderer | None) -> bool:
    """Whether the response should be JSON rather than rendered."""
    if suffixed or renderer is None:
        return True
    return accept is not None and "application/json" in accept


def parse_action_body(body: Any) -> tuple[str | None, list[Any], Any]:
    """Split an action request body into ``(mode, ids, argument)``.

    Raises:
        InvalidArgument: The body is not an object or ``ids`` is not a list.
    """
    if body is None:
        return None, [], None
    if not isinstance(body, Mapping):
        raise InvalidArgument(
            "Action body must be an object", errors={"body": ["must be an object"]}
        )
    ids = body.get("ids") or []
    if not isinstance(ids, list):
        raise InvalidArgument("ids must be a list", errors={"ids": ["must be a list"]})
    mode = body.get("mode")
    return (str(mode) if mode else None), ids, body.get("argument")
