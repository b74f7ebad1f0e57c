"""Flask extension serving the admin REST contract from a Blueprint."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from sqlalchemy.orm import Session

from sqla_adminkit._context import RequestContext
from sqla_adminkit._types import SubjectLike
from sqla_adminkit.exceptions import ActionFailed, AdminError
from sqla_adminkit.integrations._http import (
    Renderer,
    error_payload,
    error_status,
    parse_action_body,
    parse_scope_params,
    split_suffix,
    wants_json,
)
from sqla_adminkit.query._persistence import SessionPersistence
from sqla_adminkit.registry._registry import AdminRegistry
from sqla_adminkit.views._handlers import AdminHandlers

__all__ = ["AdminExtension", "get_extension"]


class AdminExtension:
    """Flask extension that mounts the admin API for a registry.

    Registers a Blueprint with the list, record, form, action and
    metadata routes, and error handlers mapping admin errors to HTTP
    statuses. Supports the app-factory pattern via ``init_app()``.

    Args:
        app: Optional Flask application. If provided, calls ``init_app()``
            immediately.
        registry: The admin registry; finalized on ``init_app()``.
        subject_provider: ``() -> SubjectLike | None`` for the current
            request. Called within request context.
        session_provider: ``() -> Session`` for the current request.
        url_prefix: Where the Blueprint is mounted. Defaults to ``"/admin"``.
        renderer: Optional ``(view_name, view_model) -> response``; JSON is
            returned when it is None, for ``.json`` paths, and for clients
            accepting ``application/json``.
        commit: Whether writes are committed (or rolled back on failure)
            by the extension.

    Example::

        app = Flask(__name__)
        admin = AdminExtension(
            app,
            registry=registry,
            subject_provider=lambda: g.user,
            session_provider=lambda: db.session,
        )
    """

    def __init__(
        self,
        app: Flask | None = None,
        *,
        registry: AdminRegistry,
        subject_provider: Callable[[], SubjectLike | None],
        session_provider: Callable[[], Session],
        url_prefix: str = "/admin",
        renderer: Renderer | None = None,
        commit: bool = True,
    ) -> None:
        self.registry = registry
        self.handlers = AdminHandlers(registry)
        self._subject_provider = subject_provider
        self._session_provider = session_provider
        self._url_prefix = url_prefix
        self._renderer = renderer
        self._commit = commit

        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Initialize the extension with a Flask application.

        Finalizes the registry, stores the extension on
        ``app.extensions["sqla_adminkit"]``, registers the Blueprint and
        the admin error handlers.
        """
        self.registry.finalize()
        app.extensions["sqla_adminkit"] = self
        app.register_blueprint(self._blueprint(), url_prefix=self._url_prefix)

        @app.errorhandler(AdminError)
        def handle_admin_error(exc: AdminError):  # pyright: ignore[reportUnusedFunction]
            return jsonify(error_payload(exc)), error_status(exc)

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    def context(self) -> RequestContext:
        """Build the :class:`RequestContext` of the current Flask request."""
        return RequestContext(
            subject=self._subject_provider(),
            persistence=SessionPersistence(self._session_provider()),
            config=self.registry.config,
            params=request.args.to_dict(),
        )

    def _respond(self, view_name: str, model: Any, status_code: int = 200) -> Any:
        suffix = self.registry.config.json_suffix
        suffixed = bool(suffix) and request.path.endswith(suffix)
        accept = request.headers.get("Accept")
        renderer = self._renderer
        if renderer is None or wants_json(accept, suffixed=suffixed, renderer=renderer):
            if isinstance(model, list):
                content: Any = [m.to_dict() for m in model]
            else:
                content = model.to_dict()
            return jsonify(content), status_code
        rendered = renderer(view_name, model)
        if isinstance(rendered, Response):
            return rendered
        return rendered, status_code

    def _write(self, operation: Callable[[], Any]) -> Any:
        if not self._commit:
            return operation()
        session = self._session_provider()
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

    def _strip(self, segment: str) -> str:
        return split_suffix(segment, self.registry.config.json_suffix)[0]

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _blueprint(self) -> Blueprint:
        bp = Blueprint("sqla_adminkit", __name__)
        suffix = self.registry.config.json_suffix

        def rule(path: str, endpoint: str, view: Callable[..., Any], methods: list[str]) -> None:
            bp.add_url_rule(path, endpoint, view, methods=methods)
            if suffix and not path.endswith(">") and path != "/":
                bp.add_url_rule(path + suffix, endpoint, view, methods=methods)

        rule("/", "menus", self._menus, ["GET"])
        rule("/<resource>/new", "new", self._new, ["GET"])
        rule("/<resource>/meta", "describe", self._describe, ["GET"])
        rule("/<resource>/<record_id>/edit", "edit", self._edit, ["GET"])
        rule("/<resource>/<record_id>", "record", self._record, ["GET", "PUT", "DELETE"])
        rule("/<resource>", "collection", self._collection, ["GET", "POST"])
        rule(
            "/<resource>/actions/<action>",
            "collection_action",
            self._collection_action,
            ["POST"],
        )
        rule(
            "/<resource>/<record_id>/actions/<action>",
            "record_action",
            self._record_action,
            ["POST"],
        )
        return bp

    def _menus(self) -> Any:
        return self._respond("menus", self.handlers.menus(self.context()))

    def _new(self, resource: str) -> Any:
        return self._respond("new", self.handlers.new(resource, self.context()))

    def _describe(self, resource: str) -> Any:
        return self._respond("meta", self.handlers.describe(resource, self.context()))

    def _edit(self, resource: str, record_id: str) -> Any:
        return self._respond("edit", self.handlers.edit(resource, record_id, self.context()))

    def _record(self, resource: str, record_id: str) -> Any:
        record_id = self._strip(record_id)
        ctx = self.context()
        if request.method == "GET":
            return self._respond("show", self.handlers.show(resource, record_id, ctx))
        if request.method == "DELETE":
            result = self._write(lambda: self.handlers.delete(resource, record_id, ctx))
            return self._respond("delete", result)
        payload = request.get_json(silent=True)
        model = self._write(lambda: self.handlers.update(resource, record_id, payload, ctx))
        if model.ok:
            return self._respond("show", model)
        return self._respond("edit", model, 422)

    def _collection(self, resource: str) -> Any:
        resource = self._strip(resource)
        ctx = self.context()
        if request.method == "POST":
            payload = request.get_json(silent=True)
            model = self._write(lambda: self.handlers.create(resource, payload, ctx))
            if model.ok:
                return self._respond("show", model, 201)
            return self._respond("new", model, 422)
        args = request.args
        listing = self.handlers.index(
            resource,
            ctx,
            keyword=args.get("keyword"),
            scopes=parse_scope_params(args.items(multi=True)),
            page=args.get("page"),
            per_page=args.get("per_page"),
            order=args.get("order"),
        )
        return self._respond("index", listing)

    def _collection_action(self, resource: str, action: str) -> Any:
        action = self._strip(action)
        mode, ids, argument = parse_action_body(request.get_json(silent=True))
        ctx = self.context()
        result = self._write(
            lambda: self.handlers.action(
                resource, action, ctx, mode=mode, ids=ids, argument=argument
            )
        )
        return self._respond("action", result)

    def _record_action(self, resource: str, record_id: str, action: str) -> Any:
        action = self._strip(action)
        mode, _ids, argument = parse_action_body(request.get_json(silent=True))
        ctx = self.context()
        result = self._write(
            lambda: self.handlers.action(
                resource, action, ctx, mode=mode, record_id=record_id, argument=argument
            )
        )
        return self._respond("action", result)


def get_extension() -> AdminExtension:
    """The :class:`AdminExtension` bound to the current Flask app."""
    return current_app.extensions["sqla_adminkit"]
