"""Tests for the permission assertion helpers."""

from __future__ import annotations

import pytest

from sqla_adminkit.permission import Permission
from sqla_adminkit.registry import AdminRegistry
from sqla_adminkit.testing import (
    assert_allowed,
    assert_denied,
    make_admin,
    make_anonymous,
    make_user,
)
from tests.conftest import Order, Product


@pytest.fixture()
def product(admin_registry: AdminRegistry):
    return admin_registry.register(
        Product,
        permission=Permission().allow("read", "*").allow("crud", "admin"),
        metas={"price": {"permission": Permission().allow("crud", "admin")}},
    )


class TestAssertAllowed:
    def test_passes(self, product) -> None:
        assert_allowed(make_admin(), "delete", product)
        assert_allowed(make_user(2), "read", product)

    def test_fails_with_roles_and_rules(self, product) -> None:
        with pytest.raises(AssertionError, match=r"'delete' on 'products' to be allowed") as info:
            assert_allowed(make_user(2, "editor"), "delete", product)
        assert "['editor']" in str(info.value)

    def test_field_rules(self, product) -> None:
        assert_allowed(make_admin(), "update", product.get_meta("price"))
        with pytest.raises(AssertionError):
            assert_allowed(make_user(2), "read", product.get_meta("price"))


class TestAssertDenied:
    def test_passes(self, product) -> None:
        assert_denied(make_anonymous(), "create", product)
        assert_denied(None, "update", product.get_meta("price"))

    def test_fails_when_allowed(self, product) -> None:
        with pytest.raises(AssertionError, match="to be denied"):
            assert_denied(make_admin(), "read", product)

    def test_fails_for_open_targets(self, admin_registry: AdminRegistry) -> None:
        order = admin_registry.register(Order)
        with pytest.raises(AssertionError, match="rules=None"):
            assert_denied(make_anonymous(), "delete", order)

    def test_actions(self, admin_registry: AdminRegistry) -> None:
        order = admin_registry.register(Order)
        refund = order.action(
            "refund", lambda arg: None, permission=Permission().allow("update", "admin")
        )
        assert_denied(make_user(2, "editor"), "update", refund)
        assert_allowed(make_admin(), "update", refund)
