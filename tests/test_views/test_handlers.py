"""Tests for AdminHandlers: listing, record views, writes, actions and metadata."""

from __future__ import annotations

import decimal

import pytest
from sqlalchemy import select

from sqla_adminkit.exceptions import (
    FieldError,
    Forbidden,
    InvalidArgument,
    NotRegistered,
    RecordNotFound,
    ValidationFailed,
)
from sqla_adminkit.permission import ANYONE, Permission
from sqla_adminkit.resource import Section
from sqla_adminkit.views import AdminHandlers, serialize_value
from tests.conftest import EDITOR, INTERN, Category, Order, OrderState, Product, User, make_ctx


@pytest.fixture()
def handlers(catalog, registry):
    return AdminHandlers(registry)


class TestIndex:
    def test_lists_first_page(self, handlers, session, sample_data):
        listing = handlers.index("products", make_ctx(session))
        assert listing.resource == "products"
        assert listing.label == "Product"
        assert listing.pagination.total == 4
        # Default order is by name.
        assert [r.id for r in listing.records] == [4, 1, 2, 3]
        assert listing.can_create is True

    def test_columns_follow_index_projection(self, handlers, session, sample_data):
        listing = handlers.index("products", make_ctx(session))
        assert [c.name for c in listing.columns] == [
            "id",
            "name",
            "code",
            "description",
            "price",
            "active",
            "released_on",
            "category",
        ]
        assert all(c.value is None for c in listing.columns)

    def test_values_are_serialized(self, handlers, session, sample_data):
        listing = handlers.index("products", make_ctx(session), order="id")
        rake = listing.records[0].values()
        assert rake["price"] == "12.50"
        assert rake["category"] == 1
        assert rake["active"] is True

    def test_keyword_and_scopes(self, handlers, session, sample_data):
        listing = handlers.index("orders", make_ctx(session), keyword="bob", scopes=["paid"])
        assert [r.id for r in listing.records] == [3]
        assert listing.search.keyword == "bob"
        assert listing.search.scopes == ("paid",)
        active = {s.name: s.active for s in listing.scopes}
        assert active == {"draft": False, "paid": True, "shipped": False}

    def test_group_exclusivity(self, handlers, session, sample_data):
        listing = handlers.index("orders", make_ctx(session), scopes=["paid", "shipped"])
        assert [r.id for r in listing.records] == [4]
        assert listing.search.scopes == ("shipped",)

    def test_pagination(self, handlers, session, sample_data):
        listing = handlers.index("products", make_ctx(session), page=2, per_page=3)
        assert [r.id for r in listing.records] == [3]
        assert listing.pagination.pages == 2

    def test_order_parameter(self, handlers, session, sample_data):
        listing = handlers.index("products", make_ctx(session), order="-price")
        assert [r.id for r in listing.records] == [2, 4, 1, 3]
        assert listing.search.order == ("-price",)

    def test_batch_actions(self, handlers, session, sample_data):
        listing = handlers.index("orders", make_ctx(session))
        assert [a.name for a in listing.actions] == ["ship"]
        assert listing.actions[0].argument == "shipping_info"

    def test_enum_values_render_by_name(self, handlers, session, sample_data):
        listing = handlers.index("orders", make_ctx(session))
        assert [r.values()["state"] for r in listing.records] == [
            "DRAFT",
            "PAID",
            "PAID",
            "SHIPPED",
        ]

    def test_unknown_resource(self, handlers, session):
        with pytest.raises(NotRegistered):
            handlers.index("widgets", make_ctx(session))

    def test_bad_paging(self, handlers, session):
        with pytest.raises(InvalidArgument):
            handlers.index("products", make_ctx(session), page="zero")

    def test_forbidden(self, registry, session, sample_data):
        registry.register(Product, permission=Permission().allow("read", "admin"))
        registry.finalize()
        with pytest.raises(Forbidden):
            AdminHandlers(registry).index("products", make_ctx(session, EDITOR))

    def test_field_permissions_hide_columns(self, registry, session, sample_data):
        registry.register(
            Product,
            metas={"price": {"permission": Permission().allow("read", "admin")}},
        )
        registry.finalize()
        listing = AdminHandlers(registry).index("products", make_ctx(session, EDITOR))
        assert "price" not in [c.name for c in listing.columns]
        assert all("price" not in r.values() for r in listing.records)

    def test_resource_page_size(self, registry, session, sample_data):
        registry.register(Product, per_page=2)
        registry.finalize()
        listing = AdminHandlers(registry).index("products", make_ctx(session))
        assert len(listing.records) == 2
        assert listing.pagination.per_page == 2


class TestRecordViews:
    def test_show(self, handlers, session, sample_data):
        model = handlers.show("products", "1", make_ctx(session))
        assert model.view == "show"
        assert model.record.id == 1
        assert model.record.values()["name"] == "Rake"
        assert model.ok is True
        assert model.can_update is True
        assert model.can_delete is True

    def test_show_missing(self, handlers, session, sample_data):
        with pytest.raises(RecordNotFound):
            handlers.show("products", 99, make_ctx(session))

    def test_show_unparsable_id(self, handlers, session):
        with pytest.raises(RecordNotFound):
            handlers.show("products", "abc", make_ctx(session))

    def test_show_offers_visible_actions(self, handlers, session, sample_data):
        assert [a.name for a in handlers.show("orders", 2, make_ctx(session)).actions] == ["ship"]
        assert handlers.show("orders", 1, make_ctx(session)).actions == ()

    def test_password_is_never_rendered(self, handlers, session, sample_data):
        model = handlers.edit("users", 1, make_ctx(session))
        assert model.record.values()["password"] is None

    def test_edit_marks_fields_writable(self, handlers, session, sample_data):
        model = handlers.edit("products", 1, make_ctx(session))
        assert all(f.writable for f in model.record.fields)
        show = handlers.show("products", 1, make_ctx(session))
        assert not any(f.writable for f in show.record.fields)

    def test_new_form(self, handlers, session):
        model = handlers.new("products", make_ctx(session))
        assert model.view == "new"
        assert model.record.id is None
        fields = {f.name: f for f in model.record.fields}
        assert fields["name"].required is True
        assert fields["category"].association == "categories"
        assert session.execute(select(Product)).first() is None

    def test_sections_are_reported(self, registry, session, sample_data):
        product = registry.register(Product)
        product.show_attrs(Section("Basics", rows=[["name", "code"]]), "price")
        registry.finalize()
        model = AdminHandlers(registry).show("products", 1, make_ctx(session))
        assert [s.title for s in model.sections] == ["Basics"]
        assert [f.name for f in model.record.fields] == ["name", "code", "price"]

    def test_enum_options(self, handlers, session, sample_data):
        model = handlers.edit("orders", 1, make_ctx(session))
        state = next(f for f in model.record.fields if f.name == "state")
        assert state.type == "select_one"
        assert state.options == (("DRAFT", "draft"), ("PAID", "paid"), ("SHIPPED", "shipped"))
        assert state.value == "DRAFT"

    def test_edit_forbidden(self, registry, session, sample_data):
        registry.register(Product, permission=Permission().allow("read", ANYONE))
        registry.finalize()
        with pytest.raises(Forbidden):
            AdminHandlers(registry).edit("products", 1, make_ctx(session, INTERN))

    def test_denied_association_hides_dotted_values(self, registry, session, sample_data):
        product = registry.register(
            Product, metas={"category": {"permission": Permission().allow("crud", "admin")}}
        )
        product.show_attrs("name", "category", "category.name")
        registry.finalize()
        handlers = AdminHandlers(registry)
        intern = handlers.show("products", 1, make_ctx(session, INTERN)).record.values()
        assert intern == {"name": "Rake"}
        admin = handlers.show("products", 1, make_ctx(session)).record.values()
        assert admin["category.name"] == "Garden Tools"


class TestCreate:
    def test_round_trip(self, handlers, session, sample_data):
        ctx = make_ctx(session)
        form = handlers.new("products", ctx)
        payload = {f.name: f.value for f in form.record.fields if f.value is not None}
        payload.update({"name": "Hoe", "code": "GT-003", "price": "8.25", "category": 1})
        created = handlers.create("products", payload, ctx)
        assert created.ok is True
        assert created.view == "show"
        assert created.record.id is not None
        shown = handlers.show("products", created.record.id, ctx)
        assert shown.record.values()["name"] == "Hoe"
        assert shown.record.values()["price"] == "8.25"
        assert shown.record.values()["category"] == 1

    def test_validation_errors(self, handlers, session, sample_data):
        model = handlers.create("products", {"name": "Hoe", "price": "cheap"}, make_ctx(session))
        assert model.ok is False
        assert model.view == "new"
        assert model.errors_by_field() == {
            "code": ["is required"],
            "price": ["must be a number"],
        }
        count = session.execute(select(Product).where(Product.name == "Hoe")).all()
        assert count == []

    def test_strict_raises_validation_failed(self, handlers, session, sample_data):
        with pytest.raises(ValidationFailed) as info:
            handlers.create(
                "products", {"name": "Hoe", "price": "cheap"}, make_ctx(session), strict=True
            )
        assert info.value.by_field() == {"code": ["is required"], "price": ["must be a number"]}
        assert session.execute(select(Product).where(Product.name == "Hoe")).all() == []

    def test_strict_success_returns_show_model(self, handlers, session, sample_data):
        payload = {"name": "Hoe", "code": "GT-003", "price": "8.25", "category": 1}
        model = handlers.create("products", payload, make_ctx(session), strict=True)
        assert model.ok is True
        assert model.view == "show"

    def test_validator_errors(self, registry, session, sample_data):
        category = registry.register(Category)

        @category.validator
        def unique_name(record, ctx):
            clash = ctx.persistence.fetch_one(
                select(Category).where(Category.name == record.name, Category.id != record.id)
            )
            if clash is not None:
                return [FieldError("name", "is already taken")]
            return None

        registry.finalize()
        model = AdminHandlers(registry).create("categories", {"name": "Toys"}, make_ctx(session))
        assert model.errors_by_field() == {"name": ["is already taken"]}

    def test_payload_must_be_an_object(self, handlers, session):
        with pytest.raises(InvalidArgument):
            handlers.create("products", ["name"], make_ctx(session))

    def test_nested_association_is_created(self, handlers, session, sample_data):
        model = handlers.create(
            "orders",
            {"number": "C-1", "customer": {"name": "Cy", "email": "cy@example.com"}},
            make_ctx(session),
        )
        assert model.ok is True
        order = session.get(Order, model.record.id)
        assert order.customer.name == "Cy"
        assert order.customer.id is not None

    def test_forbidden(self, registry, session):
        registry.register(Category, permission=Permission().allow("read", ANYONE))
        registry.finalize()
        with pytest.raises(Forbidden):
            AdminHandlers(registry).create("categories", {"name": "X"}, make_ctx(session, EDITOR))


class TestUpdate:
    def test_partial_update(self, handlers, session, sample_data):
        model = handlers.update("products", 1, {"price": "13.00"}, make_ctx(session))
        assert model.ok is True
        rake = sample_data["products"][0]
        assert rake.price == decimal.Decimal("13.00")
        assert rake.name == "Rake"

    def test_blank_password_keeps_current(self, handlers, session, sample_data):
        handlers.update("users", 1, {"password": "", "name": "Alicia"}, make_ctx(session))
        alice = sample_data["users"][0]
        assert alice.password == "secret"
        assert alice.name == "Alicia"

    def test_new_password_is_set(self, handlers, session, sample_data):
        handlers.update("users", 1, {"password": "hunter2"}, make_ctx(session))
        assert sample_data["users"][0].password == "hunter2"

    def test_errors_keep_record_unchanged(self, handlers, session, sample_data):
        model = handlers.update(
            "products", 1, {"name": "Big Rake", "price": "?"}, make_ctx(session)
        )
        assert model.ok is False
        assert model.view == "edit"
        assert sample_data["products"][0].name == "Rake"

    def test_strict_update_raises(self, handlers, session, sample_data):
        with pytest.raises(ValidationFailed) as info:
            handlers.update("products", 1, {"price": "?"}, make_ctx(session), strict=True)
        assert [e.field for e in info.value.errors] == ["price"]
        assert sample_data["products"][0].price == decimal.Decimal("12.50")

    def test_field_permissions_protect_values(self, handlers, session, sample_data):
        model = handlers.update(
            "products", 1, {"price": "0.01", "name": "Rake!"}, make_ctx(session, EDITOR)
        )
        assert model.ok is True
        rake = sample_data["products"][0]
        assert rake.price == decimal.Decimal("12.50")
        assert rake.name == "Rake!"

    def test_enum_update(self, handlers, session, sample_data):
        handlers.update("orders", 1, {"state": "paid"}, make_ctx(session))
        assert sample_data["orders"][0].state is OrderState.PAID

    def test_missing_record(self, handlers, session, sample_data):
        with pytest.raises(RecordNotFound):
            handlers.update("products", 99, {"name": "x"}, make_ctx(session))


class TestDelete:
    def test_delete(self, handlers, session, sample_data):
        result = handlers.delete("orders", "4", make_ctx(session))
        assert result.to_dict() == {"resource": "orders", "id": "4", "deleted": True}
        assert session.get(Order, 4) is None

    def test_forbidden(self, registry, session, sample_data):
        registry.register(
            Order, permission=Permission().allow("crud", "admin").deny("delete", "admin")
        )
        registry.finalize()
        with pytest.raises(Forbidden):
            AdminHandlers(registry).delete("orders", 1, make_ctx(session))


class TestActions:
    def test_batch_mode_from_ids(self, handlers, session, sample_data):
        result = handlers.action(
            "orders", "ship", make_ctx(session), ids=[2, 3], argument={"carrier": "DHL"}
        )
        assert result.mode == "batch"
        assert result.record_ids == (2, 3)

    def test_record_mode_from_id(self, handlers, session, sample_data):
        result = handlers.action(
            "orders", "ship", make_ctx(session), record_id=2, argument={"carrier": "DHL"}
        )
        assert result.mode == "edit"

    def test_show_only_action(self, registry, session, sample_data):
        order = registry.register(Order)
        order.action("print", lambda arg: "ok", modes=("show",))
        registry.finalize()
        result = AdminHandlers(registry).action("orders", "print", make_ctx(session), record_id=1)
        assert result.mode == "show"

    def test_menu_item_mode(self, registry, session):
        order = registry.register(Order)
        order.action("recount", lambda arg: 0)
        registry.finalize()
        result = AdminHandlers(registry).action("orders", "recount", make_ctx(session))
        assert result.mode == "menu_item"
        assert result.outcome == 0


class TestDescribe:
    def test_description(self, handlers, session):
        description = handlers.describe("orders", make_ctx(session))
        assert description.name == "orders"
        assert description.menu == ("Sales",)
        assert description.search_attrs == ("number", "customer.name")
        assert [s.name for s in description.scopes] == ["draft", "paid", "shipped"]
        assert [a.name for a in description.actions] == ["ship"]
        assert description.verbs == ("create", "read", "update", "delete")
        assert set(description.views) == {"index", "new", "edit", "show"}

    def test_views_are_filtered_by_roles(self, handlers, session):
        description = handlers.describe("products", make_ctx(session, EDITOR))
        assert "price" not in [f.name for f in description.views["edit"]]
        assert "price" in [f.name for f in description.views["show"]]

    def test_verbs_follow_resource_rules(self, registry, session):
        registry.register(User, permission=Permission().allow("read", ANYONE))
        registry.finalize()
        description = AdminHandlers(registry).describe("users", make_ctx(session, INTERN))
        assert description.verbs == ("read",)

    def test_menus(self, handlers, session):
        assert [m.label for m in handlers.menus(make_ctx(session))] == [
            "Catalog",
            "People",
            "Sales",
        ]


class TestSerializeValue:
    def test_password(self, catalog):
        assert serialize_value(catalog["user"].get_meta("password"), "secret") is None

    def test_association(self, catalog):
        meta = catalog["product"].get_meta("category")
        assert serialize_value(meta, Category(id=3, name="x")) == 3
        assert serialize_value(meta, None) is None

    def test_collection_association(self, catalog):
        meta = catalog["category"].get_meta("products")
        assert serialize_value(meta, [Product(id=1), Product(id=2)]) == [1, 2]

    def test_scalars(self, catalog):
        meta = catalog["product"].get_meta("price")
        assert serialize_value(meta, decimal.Decimal("1.50")) == "1.50"
        assert serialize_value(catalog["order"].get_meta("state"), OrderState.PAID) == "PAID"
