"""Flask integration for sqla-adminkit."""

from __future__ import annotations

try:
    import flask as _flask_check  # noqa: F401  # pyright: ignore[reportUnusedImport]

    del _flask_check
except ImportError as exc:
    raise ImportError(
        "Flask integration requires flask. Install it with: pip install sqla-adminkit[flask]"
    ) from exc

from sqla_adminkit.integrations.flask._extension import AdminExtension, get_extension

__all__ = ["AdminExtension", "get_extension"]
