"""Query composition — search, scopes, ordering, pagination and persistence."""

from sqla_adminkit.query._pagination import Pagination, paginate
from sqla_adminkit.query._persistence import Persistence, SessionPersistence
from sqla_adminkit.query._relationship import leaf_column, through_associations
from sqla_adminkit.query._search import (
    apply_order,
    apply_scopes,
    build_query,
    keyword_clause,
    select_scopes,
)

__all__ = [
    "Pagination",
    "Persistence",
    "SessionPersistence",
    "apply_order",
    "apply_scopes",
    "build_query",
    "keyword_clause",
    "leaf_column",
    "paginate",
    "select_scopes",
    "through_associations",
]
