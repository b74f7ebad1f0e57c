"""Resources — reflected model types with their Metas, projections, scopes and actions."""

from sqla_adminkit.resource._action import ACTION_MODES, Action, ActionArgument
from sqla_adminkit.resource._decode import build_instance, coerce_value, decode_payload, populate
from sqla_adminkit.resource._meta import META_TYPES, Meta, humanize
from sqla_adminkit.resource._projection import (
    VIEW_VERBS,
    project,
    project_metas,
    project_names,
)
from sqla_adminkit.resource._reflect import infer_column_type, infer_python_type, reflect_model
from sqla_adminkit.resource._resource import Resource
from sqla_adminkit.resource._scope import Scope
from sqla_adminkit.resource._section import Section, SectionHeader

__all__ = [
    "ACTION_MODES",
    "META_TYPES",
    "VIEW_VERBS",
    "Action",
    "ActionArgument",
    "Meta",
    "Resource",
    "Scope",
    "Section",
    "SectionHeader",
    "build_instance",
    "coerce_value",
    "decode_payload",
    "humanize",
    "infer_column_type",
    "infer_python_type",
    "populate",
    "project",
    "project_metas",
    "project_names",
    "reflect_model",
]
