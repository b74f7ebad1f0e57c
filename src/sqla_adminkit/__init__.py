"""sqla-adminkit — Admin interfaces generated from SQLAlchemy 2.0 models.

Register mapped classes, tweak the reflected field metadata, and serve
list/search/CRUD/action endpoints without per-model code. Field- and
action-level permissions are resolved against the subject's roles on every
request.

Example::

    from sqla_adminkit import AdminRegistry, Permission

    registry = AdminRegistry()
    product = registry.register(Product, menu=("Catalog",))
    product.meta("price", permission=Permission().allow("crud", "admin").allow("read", "*"))
    product.search_attrs("name", "code", "category.name")
    product.scope("cheap", lambda q, ctx: q.where(Product.price < 10))
    registry.finalize()
"""

from importlib.metadata import PackageNotFoundError, version

from sqla_adminkit._context import RequestContext
from sqla_adminkit._types import SubjectLike
from sqla_adminkit.actions._dispatcher import ActionDispatcher
from sqla_adminkit.config._config import AdminConfig, configure
from sqla_adminkit.exceptions import (
    ActionFailed,
    ActionNotFound,
    AdminError,
    FieldError,
    Forbidden,
    InvalidArgument,
    NotRegistered,
    RecordNotFound,
    UnknownAttribute,
    UnsupportedFieldKind,
    ValidationFailed,
)
from sqla_adminkit.permission._resolver import authorize, can
from sqla_adminkit.permission._rules import ANYONE, CRUD, Permission
from sqla_adminkit.query._persistence import Persistence, SessionPersistence
from sqla_adminkit.query._search import build_query
from sqla_adminkit.registry._registry import AdminRegistry
from sqla_adminkit.resource._action import ActionArgument
from sqla_adminkit.resource._meta import Meta
from sqla_adminkit.resource._projection import project
from sqla_adminkit.resource._resource import Resource
from sqla_adminkit.resource._section import Section
from sqla_adminkit.views._handlers import AdminHandlers

try:
    __version__ = version("sqla-adminkit")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "__version__",
    "ANYONE",
    "CRUD",
    "ActionArgument",
    "ActionDispatcher",
    "ActionFailed",
    "ActionNotFound",
    "AdminConfig",
    "AdminError",
    "AdminHandlers",
    "AdminRegistry",
    "FieldError",
    "Forbidden",
    "InvalidArgument",
    "Meta",
    "NotRegistered",
    "Permission",
    "Persistence",
    "RecordNotFound",
    "RequestContext",
    "Resource",
    "Section",
    "SessionPersistence",
    "SubjectLike",
    "UnknownAttribute",
    "UnsupportedFieldKind",
    "ValidationFailed",
    "authorize",
    "build_query",
    "can",
    "configure",
    "project",
]
