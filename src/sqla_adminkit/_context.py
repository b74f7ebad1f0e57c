"""RequestContext — carries subject, persistence and config through a request."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqla_adminkit._types import SubjectLike
from sqla_adminkit.config._config import AdminConfig, get_global_config
from sqla_adminkit.permission._resolver import roles_of

if TYPE_CHECKING:
    from sqla_adminkit.query._persistence import Persistence

__all__ = ["RequestContext"]


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Request-scoped state handed to handlers, scopes, valuers and actions.

    Roles are read from the subject on every access, never cached across
    requests.

    Attributes:
        subject: The current user satisfying ``SubjectLike``, or None.
        persistence: The persistence capability for this request.
        config: The resolved configuration.
        params: Raw request parameters, for custom scopes and handlers.

    Example::

        ctx = RequestContext(
            subject=current_user,
            persistence=SessionPersistence(session),
        )
    """

    subject: SubjectLike | None
    persistence: Persistence
    config: AdminConfig = field(default_factory=get_global_config)
    params: Mapping[str, Any] = field(default_factory=dict)

    @property
    def roles(self) -> frozenset[str]:
        return roles_of(self.subject)
