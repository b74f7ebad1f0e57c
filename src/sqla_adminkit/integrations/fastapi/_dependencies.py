"""Sentinel dependencies resolved by the admin router."""

from __future__ import annotations

from fastapi import Request
from sqlalchemy.orm import Session

from sqla_adminkit._types import SubjectLike

__all__ = ["get_session", "get_subject"]


def get_subject(request: Request) -> SubjectLike | None:
    """Sentinel dependency — override via ``app.dependency_overrides[get_subject]``.

    Return None for anonymous requests. Raises ``NotImplementedError`` if
    not overridden, so a router is never served without a subject provider.

    Example::

        from sqla_adminkit.integrations.fastapi import get_subject

        app.dependency_overrides[get_subject] = current_user
    """
    raise NotImplementedError(
        "Override get_subject via app.dependency_overrides[get_subject]. "
        "See the sqla-adminkit docs for the configuration guide."
    )


def get_session(request: Request) -> Session:
    """Sentinel dependency — override via ``app.dependency_overrides[get_session]``.

    The admin router flushes through this session and, unless created
    with ``commit=False``, commits or rolls it back per request.

    Example::

        from sqla_adminkit.integrations.fastapi import get_session

        app.dependency_overrides[get_session] = get_db_session
    """
    raise NotImplementedError(
        "Override get_session via app.dependency_overrides[get_session]. "
        "See the sqla-adminkit docs for the configuration guide."
    )
