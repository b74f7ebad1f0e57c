"""APIRouter exposing the admin REST contract."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from sqlalchemy.orm import Session

from sqla_adminkit._context import RequestContext
from sqla_adminkit.exceptions import ActionFailed
from sqla_adminkit.integrations._http import (
    Renderer,
    parse_action_body,
    parse_scope_params,
    split_suffix,
    wants_json,
)
from sqla_adminkit.integrations.fastapi._dependencies import get_session, get_subject
from sqla_adminkit.query._persistence import SessionPersistence
from sqla_adminkit.registry._registry import AdminRegistry
from sqla_adminkit.views._handlers import AdminHandlers

__all__ = ["create_admin_router"]


def create_admin_router(
    registry: AdminRegistry,
    *,
    renderer: Renderer | None = None,
    commit: bool = True,
    tags: list[str] | None = None,
) -> APIRouter:
    """Build an ``APIRouter`` serving every resource of *registry*.

    Responses are JSON when the path ends with the configured JSON suffix
    (``.json``), when the client accepts ``application/json``, or when no
    *renderer* is given. Otherwise ``renderer(view_name, view_model)``
    produces the response; a non-``Response`` return value is sent as HTML.

    The subject and session come from the :func:`get_subject` and
    :func:`get_session` dependencies. With *commit*, successful writes are
    committed and failed ones rolled back. A failing action is committed
    too, since its handler's effects are not undone.

    Args:
        registry: A registry; finalized here if it is not already.
        renderer: Optional ``(view_name, view_model) -> response`` callable.
        commit: Whether the router owns the transaction of write requests.
        tags: OpenAPI tags, ``["admin"]`` by default.

    Example::

        app = FastAPI()
        app.include_router(create_admin_router(registry), prefix="/admin")
        app.dependency_overrides[get_subject] = current_user
        app.dependency_overrides[get_session] = db_session
        install_error_handlers(app)
    """
    registry.finalize()
    handlers = AdminHandlers(registry)
    suffix = registry.config.json_suffix
    router = APIRouter(tags=list(tags) if tags is not None else ["admin"])

    def context(request: Request, subject: Any, session: Session) -> RequestContext:
        return RequestContext(
            subject=subject,
            persistence=SessionPersistence(session),
            config=registry.config,
            params=dict(request.query_params),
        )

    def respond(
        request: Request, view_name: str, model: Any, *, status_code: int = 200
    ) -> Response:
        suffixed = bool(suffix) and request.url.path.endswith(suffix)
        accept = request.headers.get("accept")
        if renderer is None or wants_json(accept, suffixed=suffixed, renderer=renderer):
            if isinstance(model, list):
                content: Any = [m.to_dict() for m in model]
            else:
                content = model.to_dict()
            return JSONResponse(content, status_code=status_code)
        rendered = renderer(view_name, model)
        if isinstance(rendered, Response):
            return rendered
        return HTMLResponse(str(rendered), status_code=status_code)

    def write(session: Session, operation: Callable[[], Any]) -> Any:
        if not commit:
            return operation()
        try:
            result = operation()
        except ActionFailed:
            session.commit()
            raise
        except Exception:
            session.rollback()
            raise
        if getattr(result, "ok", True):
            session.commit()
        else:
            session.rollback()
        return result

    @router.get("/")
    def admin_menus(
        request: Request,
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        menus = handlers.menus(context(request, subject, session))
        return respond(request, "menus", menus)

    @router.get("/{resource}/new")
    @router.get("/{resource}/new" + suffix)
    def admin_new(
        resource: str,
        request: Request,
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        model = handlers.new(resource, context(request, subject, session))
        return respond(request, "new", model)

    @router.get("/{resource}/meta")
    @router.get("/{resource}/meta" + suffix)
    def admin_describe(
        resource: str,
        request: Request,
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        model = handlers.describe(resource, context(request, subject, session))
        return respond(request, "meta", model)

    @router.get("/{resource}/{record_id}/edit")
    @router.get("/{resource}/{record_id}/edit" + suffix)
    def admin_edit(
        resource: str,
        record_id: str,
        request: Request,
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        model = handlers.edit(resource, record_id, context(request, subject, session))
        return respond(request, "edit", model)

    @router.get("/{resource}/{record_id}")
    def admin_show(
        resource: str,
        record_id: str,
        request: Request,
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        record_id, _ = split_suffix(record_id, suffix)
        model = handlers.show(resource, record_id, context(request, subject, session))
        return respond(request, "show", model)

    @router.get("/{resource}")
    def admin_index(
        resource: str,
        request: Request,
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        resource, _ = split_suffix(resource, suffix)
        params = request.query_params
        model = handlers.index(
            resource,
            context(request, subject, session),
            keyword=params.get("keyword"),
            scopes=parse_scope_params(params.multi_items()),
            page=params.get("page"),
            per_page=params.get("per_page"),
            order=params.get("order"),
        )
        return respond(request, "index", model)

    @router.post("/{resource}")
    def admin_create(
        resource: str,
        request: Request,
        payload: Any = Body(default=None),
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        resource, _ = split_suffix(resource, suffix)
        ctx = context(request, subject, session)
        model = write(session, lambda: handlers.create(resource, payload, ctx))
        status_code = 201 if model.ok else 422
        return respond(request, "show" if model.ok else "new", model, status_code=status_code)

    @router.put("/{resource}/{record_id}")
    def admin_update(
        resource: str,
        record_id: str,
        request: Request,
        payload: Any = Body(default=None),
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        record_id, _ = split_suffix(record_id, suffix)
        ctx = context(request, subject, session)
        model = write(session, lambda: handlers.update(resource, record_id, payload, ctx))
        status_code = 200 if model.ok else 422
        return respond(request, "show" if model.ok else "edit", model, status_code=status_code)

    @router.delete("/{resource}/{record_id}")
    def admin_delete(
        resource: str,
        record_id: str,
        request: Request,
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        record_id, _ = split_suffix(record_id, suffix)
        ctx = context(request, subject, session)
        model = write(session, lambda: handlers.delete(resource, record_id, ctx))
        return respond(request, "delete", model)

    @router.post("/{resource}/actions/{action}")
    def admin_collection_action(
        resource: str,
        action: str,
        request: Request,
        body: Any = Body(default=None),
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        action, _ = split_suffix(action, suffix)
        mode, ids, argument = parse_action_body(body)
        ctx = context(request, subject, session)
        model = write(
            session,
            lambda: handlers.action(resource, action, ctx, mode=mode, ids=ids, argument=argument),
        )
        return respond(request, "action", model)

    @router.post("/{resource}/{record_id}/actions/{action}")
    def admin_record_action(
        resource: str,
        record_id: str,
        action: str,
        request: Request,
        body: Any = Body(default=None),
        subject: Any = Depends(get_subject),
        session: Session = Depends(get_session),
    ) -> Response:
        action, _ = split_suffix(action, suffix)
        mode, _ids, argument = parse_action_body(body)
        ctx = context(request, subject, session)
        model = write(
            session,
            lambda: handlers.action(
                resource, action, ctx, mode=mode, record_id=record_id, argument=argument
            ),
        )
        return respond(request, "action", model)

    return router
