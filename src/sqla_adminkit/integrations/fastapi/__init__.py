"""FastAPI integration for sqla-adminkit."""

from __future__ import annotations

try:
    import fastapi as _fastapi_check  # noqa: F401  # pyright: ignore[reportUnusedImport]

    del _fastapi_check
except ImportError as exc:
    raise ImportError(
        "FastAPI integration requires fastapi. Install it with: pip install sqla-adminkit[fastapi]"
    ) from exc

from sqla_adminkit.integrations.fastapi._dependencies import get_session, get_subject
from sqla_adminkit.integrations.fastapi._errors import install_error_handlers
from sqla_adminkit.integrations.fastapi._router import create_admin_router

__all__ = [
    "create_admin_router",
    "get_session",
    "get_subject",
    "install_error_handlers",
]
