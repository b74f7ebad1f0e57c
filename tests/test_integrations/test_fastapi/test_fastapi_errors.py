"""Tests for FastAPI error handlers."""

from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sqla_adminkit.exceptions import (
    ActionFailed,
    ActionNotFound,
    FieldError,
    Forbidden,
    InvalidArgument,
    NotRegistered,
    RecordNotFound,
    ValidationFailed,
)
from sqla_adminkit.integrations.fastapi._errors import install_error_handlers


def _failed_action() -> ActionFailed:
    failed = ActionFailed(resource="orders", action="notify", reason="ConnectionError")
    failed.__cause__ = ConnectionError("smtp password rejected")
    return failed


@pytest.fixture()
def app() -> FastAPI:
    """Create a minimal FastAPI app with error handlers installed."""
    app = FastAPI()
    install_error_handlers(app)

    errors = {
        "forbidden": Forbidden(verb="delete", target="orders", roles=("viewer",)),
        "not-registered": NotRegistered("widgets"),
        "no-action": ActionNotFound(resource="orders", action="refund"),
        "no-record": RecordNotFound(resource="orders", record_id=9),
        "invalid": InvalidArgument("bad page", errors={"page": ["must be a positive integer"]}),
        "invalid-record": ValidationFailed([FieldError("code", "is required")]),
        "action-failed": _failed_action(),
    }

    @app.get("/raise/{name}")
    async def trigger(name: str) -> None:
        raise errors[name]

    return app


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestStatusMapping:
    @pytest.mark.parametrize(
        ("name", "status", "error"),
        [
            ("forbidden", 403, "Forbidden"),
            ("not-registered", 404, "NotRegistered"),
            ("no-action", 404, "ActionNotFound"),
            ("no-record", 404, "RecordNotFound"),
            ("invalid", 422, "InvalidArgument"),
            ("invalid-record", 422, "ValidationFailed"),
            ("action-failed", 500, "ActionFailed"),
        ],
    )
    def test_status_and_error_name(self, client: TestClient, name, status, error) -> None:
        response = client.get(f"/raise/{name}")
        assert response.status_code == status
        assert response.headers["content-type"] == "application/json"
        assert response.json()["error"] == error


class TestBodies:
    def test_forbidden_has_detail(self, client: TestClient) -> None:
        body = client.get("/raise/forbidden").json()
        assert "delete" in body["detail"]
        assert "errors" not in body

    def test_invalid_argument_lists_errors(self, client: TestClient) -> None:
        body = client.get("/raise/invalid").json()
        assert body["errors"] == {"page": ["must be a positive integer"]}

    def test_validation_failed_groups_errors(self, client: TestClient) -> None:
        body = client.get("/raise/invalid-record").json()
        assert body["errors"] == {"code": ["is required"]}

    def test_action_failure_hides_the_message(self, client: TestClient, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="sqla_adminkit"):
            response = client.get("/raise/action-failed")
        assert response.json() == {
            "error": "ActionFailed",
            "detail": "Action 'notify' failed",
            "action": "notify",
            "cause": "ConnectionError",
        }
        assert "smtp" not in response.text
        assert any("Action 'notify' failed" in r.getMessage() for r in caplog.records)
