"""Pagination of list queries."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select

from sqla_adminkit.config._config import AdminConfig
from sqla_adminkit.exceptions import InvalidArgument

__all__ = ["Pagination", "paginate"]


@dataclass(frozen=True, slots=True)
class Pagination:
    """Page position of a list view.

    Attributes:
        page: 1-based page number.
        per_page: Records per page.
        total: Number of records matching the query.
    """

    page: int
    per_page: int
    total: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "page": self.page,
            "per_page": self.per_page,
            "total": self.total,
            "pages": self.pages,
        }


def paginate(
    query: Select[Any],
    *,
    page: int | str | None,
    per_page: int | str | None,
    total: int,
    config: AdminConfig,
    default_per_page: int | None = None,
) -> tuple[Select[Any], Pagination]:
    """Apply LIMIT/OFFSET for the requested page.

    ``per_page`` is clamped to ``config.max_per_page``.

    Raises:
        InvalidArgument: ``page`` or ``per_page`` is not a positive integer.
    """
    try:
        page_number = int(page) if page not in (None, "") else 1
        size = int(per_page) if per_page not in (None, "") else None
    except (TypeError, ValueError):
        raise InvalidArgument(
            "page and per_page must be integers",
            errors={"page": ["must be a positive integer"]},
        ) from None
    if page_number < 1 or (size is not None and size < 1):
        raise InvalidArgument(
            "page and per_page must be positive",
            errors={"page": ["must be a positive integer"]},
        )
    if size is None:
        size = default_per_page or config.default_per_page
    size = min(size, config.max_per_page)
    pagination = Pagination(page=page_number, per_page=size, total=total)
    return query.limit(size).offset(pagination.offset), pagination
