"""Persistence capability — the only place statements meet a database."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from sqla_adminkit.resource._resource import Resource

__all__ = ["Persistence", "SessionPersistence"]


@runtime_checkable
class Persistence(Protocol):
    """What the admin core needs from a storage backend.

    The core composes ``Select`` statements and hands them over; it never
    commits. Transaction boundaries belong to the caller.
    """

    def query(self, resource: Resource) -> Select[Any]: ...

    def fetch_many(self, stmt: Select[Any]) -> list[Any]: ...

    def fetch_one(self, stmt: Select[Any]) -> Any | None: ...

    def count(self, stmt: Select[Any]) -> int: ...

    def get(self, resource: Resource, record_id: Any) -> Any | None: ...

    def get_many(self, resource: Resource, record_ids: Sequence[Any]) -> list[Any]: ...

    def create(self, resource: Resource) -> Any: ...

    def save(self, record: Any) -> None: ...

    def delete(self, record: Any) -> None: ...


class SessionPersistence:
    """:class:`Persistence` over a SQLAlchemy ``Session``.

    Writes are flushed so generated keys and constraint errors surface
    immediately; committing is left to whoever owns the session.

    Example::

        with Session(engine) as session, session.begin():
            ctx = RequestContext(subject=user, persistence=SessionPersistence(session))
            handlers.create("products", {"name": "Widget"}, ctx)
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def query(self, resource: Resource) -> Select[Any]:
        return select(resource.model)

    def fetch_many(self, stmt: Select[Any]) -> list[Any]:
        return list(self.session.execute(stmt).scalars().unique().all())

    def fetch_one(self, stmt: Select[Any]) -> Any | None:
        return self.session.execute(stmt.limit(1)).scalars().first()

    def count(self, stmt: Select[Any]) -> int:
        counted = select(func.count()).select_from(stmt.order_by(None).subquery())
        return int(self.session.execute(counted).scalar_one())

    def get(self, resource: Resource, record_id: Any) -> Any | None:
        return self.session.get(resource.model, record_id)

    def get_many(self, resource: Resource, record_ids: Sequence[Any]) -> list[Any]:
        record_ids = list(dict.fromkeys(record_ids))
        if not record_ids:
            return []
        stmt = self.query(resource).where(resource.primary_key_column.in_(record_ids))
        found = {resource.primary_key(r): r for r in self.fetch_many(stmt)}
        # Keep the caller's order, each record once.
        return [found[i] for i in record_ids if i in found]

    def create(self, resource: Resource) -> Any:
        return resource.model()

    def save(self, record: Any) -> None:
        self.session.add(record)
        self.session.flush()

    def delete(self, record: Any) -> None:
        self.session.delete(record)
        self.session.flush()
