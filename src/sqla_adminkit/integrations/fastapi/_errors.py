"""Exception handlers for FastAPI integration."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from sqla_adminkit.exceptions import AdminError
from sqla_adminkit.integrations._http import error_payload, error_status

__all__ = ["install_error_handlers"]


def install_error_handlers(app: FastAPI) -> None:
    """Install exception handlers for sqla-adminkit errors on a FastAPI app.

    - ``Forbidden`` -> 403
    - ``NotRegistered``, ``ActionNotFound``, ``RecordNotFound`` -> 404
    - ``InvalidArgument``, ``ValidationFailed`` -> 422
    - ``ActionFailed`` -> 500, naming the action and the cause's class only

    Args:
        app: The FastAPI application instance.

    Example::

        app = FastAPI()
        app.include_router(create_admin_router(registry), prefix="/admin")
        install_error_handlers(app)
    """

    @app.exception_handler(AdminError)
    async def admin_error_handler(  # pyright: ignore[reportUnusedFunction]
        request: object, exc: AdminError
    ) -> JSONResponse:
        return JSONResponse(status_code=error_status(exc), content=error_payload(exc))
