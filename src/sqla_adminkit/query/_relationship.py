"""Association traversal — wrap a leaf condition in EXISTS via has()/any()."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnElement
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Mapper, RelationshipDirection, RelationshipProperty

from sqla_adminkit.resource._meta import Meta

__all__ = ["leaf_column", "through_associations"]


def through_associations(
    chain: Sequence[Meta],
    leaf_condition: ColumnElement[bool],
) -> ColumnElement[bool]:
    """Nest *leaf_condition* inside the associations of *chain*.

    *chain* is the Meta path from a resource to a leaf column, as returned
    by ``Resource.resolve_path``; every element but the last is a
    relationship Meta. Many-to-one hops use ``has()``, collections use
    ``any()``, so each hop becomes an EXISTS subquery and matching never
    duplicates parent rows.

    Example::

        chain = product.resolve_path("category.name")
        clause = through_associations(chain, Category.name.ilike("%tool%"))
        # EXISTS (SELECT 1 FROM categories
        #   WHERE categories.id = products.category_id
        #   AND lower(categories.name) LIKE lower(:param))
    """
    hops = chain[:-1]
    if not hops:
        return leaf_condition

    meta = hops[0]
    if meta.owner is None:
        raise RuntimeError(f"Meta {meta.name!r} is not attached to a resource")
    model = meta.owner.model
    mapper: Mapper[Any] = sa_inspect(model)
    prop: RelationshipProperty[Any] = mapper.relationships[meta.name]
    relationship_attr: Any = getattr(model, meta.name)
    inner = through_associations(chain[1:], leaf_condition)

    if prop.direction is RelationshipDirection.MANYTOONE:
        result: ColumnElement[bool] = relationship_attr.has(inner)
    else:
        result = relationship_attr.any(inner)
    return result


def leaf_column(chain: Sequence[Meta]) -> Any:
    """The mapped column attribute at the end of *chain*."""
    leaf = chain[-1]
    if leaf.owner is None:
        raise RuntimeError(f"Meta {leaf.name!r} is not attached to a resource")
    return getattr(leaf.owner.model, leaf.name)
