"""Tests for action dispatch: permissions, argument decoding, visibility and failures."""

from __future__ import annotations

import logging

import pytest

from sqla_adminkit.actions import (
    ActionDispatcher,
    available_actions,
    decode_argument,
    find_selected_records,
)
from sqla_adminkit.config import AdminConfig
from sqla_adminkit.exceptions import (
    ActionFailed,
    ActionNotFound,
    Forbidden,
    InvalidArgument,
    RecordNotFound,
)
from sqla_adminkit.permission import Permission
from sqla_adminkit.views import ActionResult
from tests.conftest import EDITOR, INTERN, Order, OrderState, ShippingInfo, make_ctx


@pytest.fixture()
def dispatcher(catalog, registry):
    return ActionDispatcher(registry)


class TestDispatch:
    def test_batch_runs_on_visible_records(self, dispatcher, session, sample_data):
        ctx = make_ctx(session)
        result = dispatcher.dispatch(
            "orders", "ship", "batch", ctx, ids=[1, 2, 3, 4], argument={"carrier": "DHL"}
        )
        assert isinstance(result, ActionResult)
        # Only paid orders are visible to "ship".
        assert result.record_ids == (2, 3)
        assert result.skipped == 2
        assert result.outcome == 2
        orders = sample_data["orders"]
        assert orders[1].state is OrderState.SHIPPED
        assert orders[1].carrier == "DHL"
        assert orders[0].state is OrderState.DRAFT

    def test_unknown_ids_are_skipped(self, dispatcher, session, sample_data):
        result = dispatcher.dispatch(
            "orders", "ship", "batch", make_ctx(session), ids=["2", "77"],
            argument={"carrier": "UPS"},
        )
        assert result.record_ids == (2,)
        assert result.skipped == 1

    def test_repeated_ids_run_once(self, registry, session, sample_data):
        seen = []
        order = registry.register(Order)
        order.action("touch", lambda arg: seen.extend(r.id for r in arg.records), modes=("batch",))
        registry.finalize()
        result = ActionDispatcher(registry).dispatch(
            "orders", "touch", "batch", make_ctx(session), ids=[2, 2, "2", 77, "77"]
        )
        assert seen == [2]
        assert result.record_ids == (2,)
        assert result.skipped == 1

    def test_single_record_mode(self, dispatcher, session, sample_data):
        result = dispatcher.dispatch(
            "orders", "ship", "show", make_ctx(session), record_id="3",
            argument={"carrier": "UPS", "note": "fragile"},
        )
        assert result.record_ids == (3,)
        assert result.mode == "show"

    def test_invisible_single_record_is_skipped(self, dispatcher, session, sample_data):
        result = dispatcher.dispatch(
            "orders", "ship", "edit", make_ctx(session), record_id=1, argument={"carrier": "X"}
        )
        assert result.record_ids == ()
        assert result.skipped == 1

    def test_accepts_resource_objects(self, dispatcher, catalog, session, sample_data):
        result = dispatcher.dispatch(
            catalog["order"], "ship", "batch", make_ctx(session), ids=[2],
            argument={"carrier": "DHL"},
        )
        assert result.resource == "orders"

    def test_handler_receives_argument_and_context(self, registry, session, sample_data):
        calls = []
        order = registry.register(Order)
        order.action("note", lambda arg: calls.append(arg), modes=("menu_item",))
        registry.finalize()
        ctx = make_ctx(session)
        ActionDispatcher(registry).dispatch("orders", "note", "menu_item", ctx)
        (arg,) = calls
        assert arg.records == []
        assert arg.argument is None
        assert arg.context is ctx
        assert arg.resource is order
        assert list(arg) == []


class TestDispatchErrors:
    def test_unknown_action(self, dispatcher, session):
        with pytest.raises(ActionNotFound):
            dispatcher.dispatch("orders", "refund", "batch", make_ctx(session))

    def test_mode_not_offered(self, dispatcher, session):
        with pytest.raises(ActionNotFound) as info:
            dispatcher.dispatch("orders", "ship", "menu_item", make_ctx(session))
        assert info.value.mode == "menu_item"

    def test_forbidden(self, registry, session, sample_data, caplog):
        order = registry.register(Order, permission=Permission().allow("crud", "admin"))
        order.action("archive", lambda arg: None, modes=("batch",))
        registry.finalize()
        with caplog.at_level(logging.WARNING, logger="sqla_adminkit.actions"):
            with pytest.raises(Forbidden) as info:
                ActionDispatcher(registry).dispatch(
                    "orders", "archive", "batch", make_ctx(session, EDITOR), ids=[1]
                )
        assert info.value.verb == "update"
        assert info.value.target == "orders.archive"
        assert any("denied" in r.getMessage() for r in caplog.records)

    def test_action_permission_overrides_resource(self, registry, session, sample_data):
        order = registry.register(Order, permission=Permission().allow("crud", "admin"))
        order.action(
            "flag",
            lambda arg: "flagged",
            modes=("batch",),
            permission=Permission().allow("update", "intern"),
        )
        registry.finalize()
        result = ActionDispatcher(registry).dispatch(
            "orders", "flag", "batch", make_ctx(session, INTERN), ids=[1]
        )
        assert result.outcome == "flagged"

    def test_invalid_argument(self, dispatcher, session, sample_data):
        with pytest.raises(InvalidArgument) as info:
            dispatcher.dispatch("orders", "ship", "batch", make_ctx(session), ids=[2])
        assert info.value.errors == {"carrier": ["is required"]}

    def test_argument_must_be_an_object(self, dispatcher, session, sample_data):
        with pytest.raises(InvalidArgument):
            dispatcher.dispatch(
                "orders", "ship", "batch", make_ctx(session), ids=[2], argument=["DHL"]
            )

    def test_missing_record(self, dispatcher, session, sample_data):
        with pytest.raises(RecordNotFound):
            dispatcher.dispatch(
                "orders", "ship", "show", make_ctx(session), record_id=99,
                argument={"carrier": "X"},
            )

    def test_single_mode_needs_record_id(self, dispatcher, session, sample_data):
        with pytest.raises(InvalidArgument):
            dispatcher.dispatch(
                "orders", "ship", "show", make_ctx(session), argument={"carrier": "X"}
            )

    def test_bad_batch_id(self, dispatcher, session, sample_data):
        with pytest.raises(InvalidArgument) as info:
            dispatcher.dispatch(
                "orders", "ship", "batch", make_ctx(session), ids=["two"],
                argument={"carrier": "X"},
            )
        assert "ids" in info.value.errors

    def test_handler_failure_is_wrapped(self, registry, session, sample_data, caplog):
        def explode(arg):
            raise RuntimeError("disk full")

        order = registry.register(Order)
        order.action("export", explode, modes=("batch",))
        registry.finalize()
        with caplog.at_level(logging.WARNING, logger="sqla_adminkit.actions"):
            with pytest.raises(ActionFailed) as info:
                ActionDispatcher(registry).dispatch(
                    "orders", "export", "batch", make_ctx(session), ids=[1]
                )
        assert info.value.action == "export"
        assert info.value.reason == "RuntimeError"
        assert isinstance(info.value.__cause__, RuntimeError)
        assert any("failed" in r.getMessage() for r in caplog.records)

    def test_dispatch_logging_can_be_disabled(self, dispatcher, session, sample_data, caplog):
        ctx = make_ctx(session, config=AdminConfig(log_actions=False))
        with caplog.at_level(logging.INFO, logger="sqla_adminkit.actions"):
            dispatcher.dispatch("orders", "ship", "batch", ctx, ids=[2], argument={"carrier": "X"})
        assert not caplog.records


class TestHelpers:
    def test_find_selected_records_menu_item_rejects_ids(self, catalog, session):
        order = catalog["order"]
        action = order.get_action("ship")
        with pytest.raises(InvalidArgument):
            find_selected_records(order, action, "menu_item", make_ctx(session), ids=[1])

    def test_find_selected_records_batch(self, catalog, session, sample_data):
        order = catalog["order"]
        records, selected = find_selected_records(
            order, order.get_action("ship"), "batch", make_ctx(session), ids=[1, 2]
        )
        assert [r.id for r in records] == [2]
        assert selected == 2

    def test_decode_argument(self, catalog, session):
        action = catalog["order"].get_action("ship")
        decoded = decode_argument(action, {"carrier": "DHL", "ignored": 1}, make_ctx(session))
        assert decoded == ShippingInfo(carrier="DHL")

    def test_decode_argument_without_type(self, registry, session):
        order = registry.register(Order)
        action = order.action("noop", lambda arg: None)
        assert decode_argument(action, {"anything": 1}, make_ctx(session)) is None

    def test_available_actions(self, catalog, session, sample_data):
        order = catalog["order"]
        ctx = make_ctx(session)
        assert [a.name for a in available_actions(order, "batch", ctx)] == ["ship"]
        assert available_actions(order, "menu_item", ctx) == []
        draft, paid = sample_data["orders"][:2]
        assert available_actions(order, "show", ctx, draft) == []
        assert [a.name for a in available_actions(order, "show", ctx, paid)] == ["ship"]

    def test_available_actions_respects_permissions(self, registry, session):
        order = registry.register(Order)
        order.action("ship", lambda arg: None, permission=Permission().allow("update", "admin"))
        registry.finalize()
        assert available_actions(order, "edit", make_ctx(session, EDITOR)) == []
