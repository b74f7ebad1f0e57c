"""Reflection — derive default Metas from mapped classes and dataclasses."""

from __future__ import annotations

import dataclasses
import datetime
import decimal
import enum
import types
import typing
from collections.abc import Collection, Mapping
from typing import Any, Union

from sqlalchemy import (
    ARRAY,
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    Integer,
    LargeBinary,
    Numeric,
    PickleType,
    String,
    Text,
    Time,
)
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import (
    ColumnProperty,
    Mapper,
    RelationshipDirection,
    RelationshipProperty,
    SynonymProperty,
)
from sqlalchemy.types import TypeDecorator, TypeEngine

from sqla_adminkit._types import MetaType
from sqla_adminkit.exceptions import UnsupportedFieldKind
from sqla_adminkit.resource._meta import Meta, Option

__all__ = [
    "MetaOverride",
    "infer_column_type",
    "infer_python_type",
    "is_mapped",
    "merge_meta",
    "reflect_model",
]

MetaOverride = Union[Meta, Mapping[str, Any]]

# Storage types with no sensible form widget.
_UNSUPPORTED_COLUMN_TYPES: tuple[type[TypeEngine[Any]], ...] = (LargeBinary, PickleType, ARRAY)

# Order matters: Enum and Text subclass String, Float subclasses Numeric.
_COLUMN_PRECEDENCE: tuple[tuple[type[TypeEngine[Any]], MetaType], ...] = (
    (DateTime, "datetime"),
    (Date, "date"),
    (Time, "time"),
    (Boolean, "checkbox"),
    (Enum, "select_one"),
    (Integer, "number"),
    (Float, "float"),
    (Numeric, "decimal"),
    (Text, "textarea"),
    (JSON, "json"),
    (String, "text"),
)

# bool before int, datetime before date: both are subclasses.
_PYTHON_PRECEDENCE: tuple[tuple[type, MetaType], ...] = (
    (bool, "checkbox"),
    (int, "number"),
    (float, "float"),
    (decimal.Decimal, "decimal"),
    (datetime.datetime, "datetime"),
    (datetime.date, "date"),
    (datetime.time, "time"),
    (enum.Enum, "select_one"),
    (str, "text"),
    (dict, "json"),
)


def is_mapped(model: type) -> bool:
    """Whether *model* is a SQLAlchemy mapped class."""
    return sa_inspect(model, raiseerr=False) is not None


def _enum_options(enum_class: type[enum.Enum]) -> tuple[Option, ...]:
    return tuple((member.name, str(member.value)) for member in enum_class)


def infer_column_type(
    sa_type: TypeEngine[Any],
) -> tuple[MetaType, tuple[Option, ...] | None] | None:
    """Map a SQLAlchemy column type to a Meta type and optional options.

    Returns ``None`` for storage types with no sensible default.
    """
    if isinstance(sa_type, TypeDecorator):
        sa_type = sa_type.impl_instance
    if isinstance(sa_type, _UNSUPPORTED_COLUMN_TYPES):
        return None
    for sa_class, meta_type in _COLUMN_PRECEDENCE:
        if not isinstance(sa_type, sa_class):
            continue
        if meta_type == "decimal" and not getattr(sa_type, "asdecimal", True):
            return "float", None
        if meta_type == "select_one":
            enum_class = getattr(sa_type, "enum_class", None)
            if enum_class is not None:
                return meta_type, _enum_options(enum_class)
            values = sa_type.enums  # type: ignore[attr-defined]
            return meta_type, tuple((value, value) for value in values)
        return meta_type, None
    return "text", None


def _column_python_type(sa_type: TypeEngine[Any]) -> type | None:
    enum_class = getattr(sa_type, "enum_class", None)
    if enum_class is not None:
        return enum_class
    try:
        return sa_type.python_type
    except NotImplementedError:
        return None


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    origin = typing.get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return hint, False


def infer_python_type(
    hint: Any,
) -> tuple[MetaType, tuple[Option, ...] | None, type | None, bool] | None:
    """Map a type hint to ``(meta_type, options, target_or_python_type, uselist)``.

    Mapped classes (and lists of them) become associations; ``None`` means
    the hint has no sensible default (``bytes``).
    """
    origin = typing.get_origin(hint)
    if origin in (list, set, frozenset, tuple, Collection):
        args = typing.get_args(hint)
        item = args[0] if args else Any
        if isinstance(item, type) and is_mapped(item):
            return "select_many", None, item, True
        if isinstance(item, type) and issubclass(item, enum.Enum):
            return "select_many", _enum_options(item), item, True
        return "json", None, None, True
    if origin is dict:
        return "json", None, dict, False
    if not isinstance(hint, type):
        return "text", None, None, False
    if issubclass(hint, (bytes, bytearray, memoryview)):
        return None
    if is_mapped(hint):
        return "select_one", None, hint, False
    for py_class, meta_type in _PYTHON_PRECEDENCE:
        if issubclass(hint, py_class):
            options = _enum_options(hint) if meta_type == "select_one" else None
            return meta_type, options, hint, False
    return "text", None, hint, False


# Reflected facts about the underlying attribute. A Meta override only
# replaces them when it sets them to a non-default value.
_STRUCTURAL_FIELDS = frozenset(
    {"kind", "primary_key", "uselist", "target", "python_type", "chain", "owner"}
)


def merge_meta(base: Meta | None, name: str, override: MetaOverride) -> Meta:
    """Merge an explicit declaration onto an inferred Meta (or create one).

    A mapping only replaces the keys it names. A ``Meta`` instance is a
    full declaration: its type, label, accessors, options, permission and
    ``required`` flag all win over inference, defaults included.
    """
    if isinstance(override, Meta):
        fields = {
            f.name: getattr(override, f.name)
            for f in dataclasses.fields(Meta)
            if f.name != "name"
            and (f.name not in _STRUCTURAL_FIELDS or getattr(override, f.name) != f.default)
        }
        explicit = True
    else:
        fields = dict(override)
        explicit = "type" in fields
    if explicit:
        fields["explicit_type"] = True
    if base is None:
        return Meta(name=name, **fields)
    return dataclasses.replace(base, **fields)


def _reflect_mapper(model: type, mapper: Mapper[Any]) -> list[tuple[str, Meta | None, str]]:
    """Yield ``(name, inferred meta or None, kind description)`` per attribute."""
    fk_columns: set[Any] = set()
    for rel in mapper.relationships:
        if rel.direction is RelationshipDirection.MANYTOONE:
            fk_columns.update(rel.local_columns)

    found: list[tuple[str, Meta | None, str]] = []
    for prop in mapper.attrs:
        if isinstance(prop, RelationshipProperty):
            required = (
                prop.direction is RelationshipDirection.MANYTOONE and _relationship_required(prop)
            )
            found.append(
                (
                    prop.key,
                    Meta(
                        name=prop.key,
                        type="select_many" if prop.uselist else "select_one",
                        kind="relationship",
                        uselist=bool(prop.uselist),
                        target=prop.mapper.class_,
                        required=required,
                    ),
                    "relationship",
                )
            )
            continue
        if isinstance(prop, SynonymProperty):
            continue
        if not isinstance(prop, ColumnProperty):
            found.append((prop.key, None, type(prop).__name__))
            continue
        column = prop.columns[0]
        if not isinstance(column, Column):
            # column_property() over an expression: readable only.
            meta = Meta(name=prop.key, type="readonly", kind="column")
            found.append((prop.key, meta, "expression"))
            continue
        inferred = infer_column_type(column.type)
        if inferred is None:
            found.append((prop.key, None, type(column.type).__name__))
            continue
        meta_type, options = inferred
        is_fk = column in fk_columns
        found.append(
            (
                prop.key,
                Meta(
                    name=prop.key,
                    type="hidden" if is_fk else meta_type,
                    kind="column",
                    collection=options,
                    primary_key=bool(column.primary_key),
                    required=_column_required(column) and not is_fk,
                    python_type=_column_python_type(column.type),
                ),
                type(column.type).__name__,
            )
        )
    return found


def _relationship_required(prop: RelationshipProperty[Any]) -> bool:
    """A many-to-one is required when all of its local columns are NOT NULL."""
    return all(not col.nullable for col in prop.local_columns)


def _column_required(column: Column[Any]) -> bool:
    if column.primary_key or column.nullable:
        return False
    return column.default is None and column.server_default is None


def _reflect_dataclass(model: type) -> list[tuple[str, Meta | None, str]]:
    hints = typing.get_type_hints(model)
    found: list[tuple[str, Meta | None, str]] = []
    for field in dataclasses.fields(model):
        hint, optional = _unwrap_optional(hints.get(field.name, Any))
        inferred = infer_python_type(hint)
        if inferred is None:
            found.append((field.name, None, getattr(hint, "__name__", repr(hint))))
            continue
        meta_type, options, py_type, uselist = inferred
        has_default = (
            field.default is not dataclasses.MISSING
            or field.default_factory is not dataclasses.MISSING
        )
        association = py_type is not None and is_mapped(py_type)
        found.append(
            (
                field.name,
                Meta(
                    name=field.name,
                    type=meta_type,
                    kind="field",
                    collection=options,
                    uselist=uselist,
                    required=not optional and not has_default,
                    target=py_type if association else None,
                    python_type=None if association else py_type,
                ),
                getattr(hint, "__name__", repr(hint)),
            )
        )
    return found


def reflect_model(
    model: type,
    *,
    overrides: Mapping[str, MetaOverride] | None = None,
    exclude: Collection[str] = (),
) -> list[Meta]:
    """Build the default, ordered Metas for *model*.

    Explicit *overrides* are merged on top of inference (an explicit
    ``type`` is never replaced); names in *exclude* are skipped.

    Raises:
        UnsupportedFieldKind: A field has no sensible default and no override.
        TypeError: *model* is neither a mapped class nor a dataclass.

    Example::

        metas = reflect_model(User, overrides={"password": {"type": "password"}})
    """
    overrides = dict(overrides or {})
    mapper = sa_inspect(model, raiseerr=False)
    if mapper is not None:
        found = _reflect_mapper(model, mapper)
    elif dataclasses.is_dataclass(model):
        found = _reflect_dataclass(model)
    else:
        raise TypeError(f"{model!r} is neither a mapped class nor a dataclass")

    metas: list[Meta] = []
    for name, inferred, kind in found:
        if name in exclude:
            overrides.pop(name, None)
            continue
        override = overrides.pop(name, None)
        if override is not None:
            metas.append(merge_meta(inferred, name, override))
        elif inferred is None:
            raise UnsupportedFieldKind(model=model.__name__, field=name, kind=kind)
        else:
            metas.append(inferred)
    # Overrides for names the model does not have declare virtual Metas.
    for name, override in overrides.items():
        metas.append(merge_meta(None, name, override))
    return metas
