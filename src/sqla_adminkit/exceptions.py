"""Exception hierarchy for sqla-adminkit."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

__all__ = [
    "ActionFailed",
    "ActionNotFound",
    "AdminError",
    "FieldError",
    "Forbidden",
    "InvalidArgument",
    "NotRegistered",
    "RecordNotFound",
    "UnknownAttribute",
    "UnsupportedFieldKind",
    "ValidationFailed",
]


class AdminError(Exception):
    """Base exception for all sqla-adminkit errors."""


# ---------------------------------------------------------------------------
# Configuration-time errors
# ---------------------------------------------------------------------------


class NotRegistered(AdminError):  # noqa: N818
    """No resource is registered for the requested model or name.

    Attributes:
        key: The model class or resource name that was looked up.
    """

    def __init__(self, key: object) -> None:
        self.key = key
        label = key.__name__ if isinstance(key, type) else repr(key)
        super().__init__(f"No resource registered for {label}")


class UnsupportedFieldKind(AdminError):  # noqa: N818
    """A model field has no sensible default Meta and no override.

    Supply an explicit Meta for the field (``metas={"field": {...}}`` at
    registration) or exclude it.

    Attributes:
        model: Name of the model class.
        field: Name of the offending field.
        kind: Description of the field's storage type.
    """

    def __init__(self, *, model: str, field: str, kind: str) -> None:
        self.model = model
        self.field = field
        self.kind = kind
        super().__init__(
            f"Cannot infer a Meta for {model}.{field} of kind {kind}; "
            f"declare it explicitly or exclude it"
        )


class UnknownAttribute(AdminError):  # noqa: N818
    """A configured attribute name does not resolve to a Meta.

    Attributes:
        resource: Name of the resource being configured.
        attribute: The unresolved (possibly dotted) name.
    """

    def __init__(self, *, resource: str, attribute: str) -> None:
        self.resource = resource
        self.attribute = attribute
        super().__init__(f"Resource {resource!r} has no attribute {attribute!r}")


# ---------------------------------------------------------------------------
# Request-time errors
# ---------------------------------------------------------------------------


class Forbidden(AdminError):  # noqa: N818
    """The subject is not allowed to perform *verb* on *target*.

    Attributes:
        verb: The denied verb (``"read"``, ``"update"``, ...).
        target: Name of the resource, field or action involved.
        roles: The roles that were evaluated.
    """

    def __init__(
        self,
        *,
        verb: str,
        target: str,
        roles: Sequence[str] = (),
        message: str | None = None,
    ) -> None:
        self.verb = verb
        self.target = target
        self.roles = tuple(roles)
        if message is None:
            message = f"Not allowed to {verb} {target}"
        super().__init__(message)


class RecordNotFound(AdminError):  # noqa: N818
    """No record with the given primary key exists (or it is not readable)."""

    def __init__(self, *, resource: str, record_id: object) -> None:
        self.resource = resource
        self.record_id = record_id
        super().__init__(f"{resource} {record_id!r} not found")


class ActionNotFound(AdminError):  # noqa: N818
    """The action does not exist or is not available in the requested mode."""

    def __init__(self, *, resource: str, action: str, mode: str | None = None) -> None:
        self.resource = resource
        self.action = action
        self.mode = mode
        suffix = f" in mode {mode!r}" if mode else ""
        super().__init__(f"Resource {resource!r} has no action {action!r}{suffix}")


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single field-level validation message."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        """Return a JSON-serializable dictionary."""
        return {"field": self.field, "message": self.message}


def _group(errors: Sequence[FieldError]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for err in errors:
        grouped.setdefault(err.field, []).append(err.message)
    return grouped


class ValidationFailed(AdminError):  # noqa: N818
    """One or more fields failed validation.

    Raised by strict writes (``AdminHandlers.create``/``update`` with
    ``strict=True``). The default write path attaches the same errors to
    the ViewModel instead of raising.

    Attributes:
        errors: The individual field errors, in discovery order.
    """

    def __init__(self, errors: Sequence[FieldError]) -> None:
        self.errors = tuple(errors)
        fields = ", ".join(sorted({e.field for e in self.errors}))
        super().__init__(f"Validation failed for: {fields}")

    def by_field(self) -> dict[str, list[str]]:
        """Group messages by field name."""
        return _group(self.errors)


class InvalidArgument(AdminError):  # noqa: N818
    """A request argument could not be decoded or validated.

    Attributes:
        errors: Field name to list of messages.
    """

    def __init__(
        self,
        message: str,
        *,
        errors: Mapping[str, Sequence[str]] | Sequence[FieldError] | None = None,
    ) -> None:
        if errors is None:
            self.errors: dict[str, list[str]] = {}
        elif isinstance(errors, Mapping):
            self.errors = {k: list(v) for k, v in errors.items()}
        else:
            self.errors = _group(errors)
        super().__init__(message)


class ActionFailed(AdminError):  # noqa: N818
    """An action handler raised. The original exception is ``__cause__``.

    Attributes:
        resource: Name of the resource.
        action: Name of the action.
    """

    def __init__(self, *, resource: str, action: str, reason: str | None = None) -> None:
        self.resource = resource
        self.action = action
        self.reason = reason
        message = f"Action {action!r} on {resource!r} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
