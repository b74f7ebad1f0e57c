"""Payload decoding — turn request data into record values through Metas."""

from __future__ import annotations

import dataclasses
import datetime
import decimal
import enum
import json
import uuid
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sqla_adminkit.exceptions import FieldError
from sqla_adminkit.resource._meta import Meta
from sqla_adminkit.resource._projection import project_metas
from sqla_adminkit.resource._resource import Resource

if TYPE_CHECKING:
    from sqla_adminkit._context import RequestContext

__all__ = ["build_instance", "coerce_value", "decode_payload", "populate"]

_TEXT_TYPES = frozenset({"text", "textarea", "rich_editor", "password", "hidden", "readonly"})
_TRUE_WORDS = frozenset({"true", "on", "yes", "1"})
_FALSE_WORDS = frozenset({"false", "off", "no", "0", ""})
_SCALAR_CONVERTERS: dict[type, Any] = {
    int: int,
    float: float,
    decimal.Decimal: lambda raw: decimal.Decimal(str(raw)),
    uuid.UUID: lambda raw: uuid.UUID(str(raw)),
}


def _to_int(raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValueError("must be a whole number")
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValueError("must be a whole number")
        return int(raw)
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValueError("must be a whole number") from None


def _to_number(raw: Any, kind: type) -> Any:
    if isinstance(raw, bool):
        raise ValueError("must be a number")
    try:
        if kind is decimal.Decimal:
            return decimal.Decimal(str(raw).strip())
        return float(raw)
    except (ValueError, decimal.InvalidOperation):
        raise ValueError("must be a number") from None


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    word = str(raw).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError("must be true or false")


def _to_temporal(raw: Any, kind: str) -> Any:
    if kind == "datetime":
        if isinstance(raw, datetime.datetime):
            return raw
        parse: Any = datetime.datetime.fromisoformat
    elif kind == "date":
        if isinstance(raw, datetime.date) and not isinstance(raw, datetime.datetime):
            return raw
        parse = datetime.date.fromisoformat
    else:
        if isinstance(raw, datetime.time):
            return raw
        parse = datetime.time.fromisoformat
    try:
        return parse(str(raw).strip())
    except ValueError:
        raise ValueError(f"must be an ISO {kind}") from None


def _to_choice(meta: Meta, raw: Any, ctx: RequestContext | None) -> Any:
    py_type = meta.python_type
    if isinstance(py_type, type) and issubclass(py_type, enum.Enum):
        if isinstance(raw, py_type):
            return raw
        try:
            return py_type[str(raw)]
        except KeyError:
            pass
        for member in py_type:
            if str(member.value) == str(raw):
                return member
        raise ValueError("is not a valid choice")
    options = meta.options(ctx)
    for value, _label in options:
        if value == raw or str(value) == str(raw):
            return value
    if options:
        raise ValueError("is not a valid choice")
    return raw


def coerce_value(meta: Meta, raw: Any, ctx: RequestContext | None = None) -> Any:
    """Convert a raw request value for a non-association *meta*.

    Raises:
        ValueError: With a user-facing message when *raw* does not fit.
    """
    kind = meta.type
    if raw is None:
        return [] if kind == "select_many" else None
    if kind in _TEXT_TYPES:
        converter = _SCALAR_CONVERTERS.get(meta.python_type)  # type: ignore[arg-type]
        if converter is not None:
            if raw == "":
                return None
            try:
                return _to_int(raw) if meta.python_type is int else converter(raw)
            except (ValueError, decimal.InvalidOperation):
                raise ValueError("has an invalid format") from None
        if isinstance(raw, (Mapping, list, tuple)):
            raise ValueError("must be text")
        return str(raw)
    if raw == "" and kind not in ("checkbox", "json"):
        return None
    if kind == "number":
        return _to_int(raw)
    if kind == "float":
        return _to_number(raw, float)
    if kind == "decimal":
        return _to_number(raw, decimal.Decimal)
    if kind == "checkbox":
        return _to_bool(raw)
    if kind in ("date", "datetime", "time"):
        return _to_temporal(raw, kind)
    if kind == "select_one":
        return _to_choice(meta, raw, ctx)
    if kind == "select_many":
        items = raw if isinstance(raw, (list, tuple, set)) else [raw]
        return [_to_choice(meta, item, ctx) for item in items]
    if kind == "json":
        if isinstance(raw, str):
            try:
                return json.loads(raw) if raw else None
            except ValueError:
                raise ValueError("must be valid JSON") from None
        return raw
    return raw


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


def _decode_association(
    meta: Meta,
    nested: Resource,
    raw: Any,
    ctx: RequestContext | None,
    errors: list[FieldError],
    prefix: str,
) -> Any:
    if meta.uselist:
        if _is_blank(raw):
            return []
        items = raw if isinstance(raw, (list, tuple)) else [raw]
        return [_decode_one(meta, nested, item, ctx, errors, prefix) for item in items]
    if _is_blank(raw):
        return None
    return _decode_one(meta, nested, raw, ctx, errors, prefix)


def _decode_one(
    meta: Meta,
    nested: Resource,
    raw: Any,
    ctx: RequestContext | None,
    errors: list[FieldError],
    prefix: str,
) -> Any:
    field = f"{prefix}{meta.name}"
    if ctx is None:
        errors.append(FieldError(field, "cannot be resolved without a request context"))
        return None
    if isinstance(raw, Mapping):
        return _decode_nested(meta, nested, raw, ctx, errors, prefix)
    try:
        record_id = nested.parse_id(raw)
    except (TypeError, ValueError):
        errors.append(FieldError(field, f"has an invalid id {raw!r}"))
        return None
    record = ctx.persistence.get(nested, record_id)
    if record is None:
        errors.append(FieldError(field, f"has no {nested.label} with id {raw!r}"))
    return record


def _decode_nested(
    meta: Meta,
    nested: Resource,
    raw: Mapping[str, Any],
    ctx: RequestContext,
    errors: list[FieldError],
    prefix: str,
) -> Any:
    nested_prefix = f"{prefix}{meta.name}."
    pk_value = raw.get(nested.primary_key_name) if nested.persisted else None
    if pk_value not in (None, ""):
        record = _decode_one(meta, nested, pk_value, ctx, errors, prefix)
        if record is None:
            return None
        metas = project_metas(nested, "edit", ctx.roles, config=ctx.config)
        errors.extend(
            populate(nested, record, raw, metas, ctx, partial=True, prefix=nested_prefix)
        )
        return record
    metas = project_metas(nested, "new", ctx.roles, config=ctx.config)
    record, nested_errors = build_instance(nested, raw, metas, ctx, prefix=nested_prefix)
    errors.extend(nested_errors)
    return record


def decode_payload(
    resource: Resource,
    payload: Mapping[str, Any],
    metas: Sequence[Meta],
    ctx: RequestContext | None,
    *,
    partial: bool,
    prefix: str = "",
) -> tuple[dict[str, Any], list[FieldError]]:
    """Decode *payload* through *metas*.

    Keys that no writable Meta in *metas* claims are ignored. With
    ``partial`` (updates) absent keys are left alone and a blank password
    keeps the current one; otherwise required Metas must be present.

    Returns:
        ``(values by Meta name, field errors)``.
    """
    values: dict[str, Any] = {}
    errors: list[FieldError] = []
    for meta in metas:
        if not meta.writable:
            continue
        field = f"{prefix}{meta.name}"
        if meta.name not in payload:
            if not partial and meta.required:
                errors.append(FieldError(field, "is required"))
            continue
        raw = payload[meta.name]
        if partial and meta.type == "password" and _is_blank(raw):
            continue
        nested = meta.resource
        if nested is not None:
            before = len(errors)
            value = _decode_association(meta, nested, raw, ctx, errors, prefix)
            if len(errors) != before:
                continue
        else:
            try:
                value = coerce_value(meta, raw, ctx)
            except ValueError as exc:
                errors.append(FieldError(field, str(exc)))
                continue
        if meta.required and _is_blank(value) and meta.type != "checkbox":
            errors.append(FieldError(field, "is required"))
            continue
        values[meta.name] = value
    return values, errors


def populate(
    resource: Resource,
    record: Any,
    payload: Mapping[str, Any],
    metas: Sequence[Meta],
    ctx: RequestContext | None,
    *,
    partial: bool,
    prefix: str = "",
) -> list[FieldError]:
    """Decode *payload* and write it onto *record*, then run validators.

    Nothing is written when decoding fails.
    """
    values, errors = decode_payload(
        resource, payload, metas, ctx, partial=partial, prefix=prefix
    )
    if errors:
        return errors
    by_name = {m.name: m for m in metas}
    for name, value in values.items():
        by_name[name].set_value(record, value, ctx)
    return [
        FieldError(f"{prefix}{e.field}", e.message) for e in resource.validate_record(record, ctx)
    ]


def build_instance(
    resource: Resource,
    payload: Mapping[str, Any],
    metas: Sequence[Meta],
    ctx: RequestContext | None,
    *,
    prefix: str = "",
) -> tuple[Any, list[FieldError]]:
    """Create a new record (or dataclass instance) from *payload*.

    Mapped records are created through the persistence capability but not
    saved. Dataclasses are constructed from the decoded field values.

    Returns:
        ``(instance or None, field errors)``.
    """
    if resource.persisted:
        if ctx is None:
            raise ValueError(f"Creating {resource.name!r} records needs a request context")
        record = ctx.persistence.create(resource)
        errors = populate(resource, record, payload, metas, ctx, partial=False, prefix=prefix)
        return record, errors

    values, errors = decode_payload(resource, payload, metas, ctx, partial=False, prefix=prefix)
    if errors:
        return None, errors
    field_names = {f.name for f in dataclasses.fields(resource.model)}
    by_name = {m.name: m for m in metas}
    instance = resource.model(
        **{
            name: value
            for name, value in values.items()
            if name in field_names and by_name[name].setter is None
        }
    )
    for name, value in values.items():
        if name not in field_names or by_name[name].setter is not None:
            by_name[name].set_value(instance, value, ctx)
    validation = [
        FieldError(f"{prefix}{e.field}", e.message)
        for e in resource.validate_record(instance, ctx)
    ]
    return instance, validation
