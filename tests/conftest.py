"""Shared test fixtures for sqla-adminkit tests."""

from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass
from decimal import Decimal

import pytest
from sqlalchemy import (
    Boolean,
    Date,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool

from sqla_adminkit._context import RequestContext
from sqla_adminkit.config._config import AdminConfig
from sqla_adminkit.permission._rules import Permission
from sqla_adminkit.query._persistence import SessionPersistence
from sqla_adminkit.registry._registry import AdminRegistry
from sqla_adminkit.resource._resource import Resource
from sqla_adminkit.testing._fixtures import (  # noqa: F401
    admin_config,
    admin_registry,
    isolated_admin_config,
)

# ---------------------------------------------------------------------------
# Test models
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


class OrderState(enum.Enum):
    DRAFT = "draft"
    PAID = "paid"
    SHIPPED = "shipped"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))

    products: Mapped[list[Product]] = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    code: Mapped[str] = mapped_column(String(20))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    released_on: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"), nullable=True)

    category: Mapped[Category | None] = relationship("Category", back_populates="products")


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(200))
    password: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_staff: Mapped[bool] = mapped_column(Boolean, default=False)

    orders: Mapped[list[Order]] = relationship("Order", back_populates="customer")


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    number: Mapped[str] = mapped_column(String(20))
    state: Mapped[OrderState] = mapped_column(Enum(OrderState), default=OrderState.DRAFT)
    carrier: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    customer: Mapped[User | None] = relationship("User", back_populates="orders")


@dataclass
class ShippingInfo:
    """Argument type of the ``ship`` action."""

    carrier: str
    note: str | None = None


# ---------------------------------------------------------------------------
# Subjects
# ---------------------------------------------------------------------------


@dataclass
class Staff:
    """Test subject that satisfies the SubjectLike protocol."""

    id: int
    roles: frozenset[str] = frozenset()


ADMIN = Staff(id=1, roles=frozenset({"admin"}))
EDITOR = Staff(id=2, roles=frozenset({"editor"}))
INTERN = Staff(id=3, roles=frozenset({"intern"}))


def make_ctx(
    session: Session,
    subject: Staff | None = ADMIN,
    config: AdminConfig | None = None,
) -> RequestContext:
    """Build a request context over *session*."""
    return RequestContext(
        subject=subject,
        persistence=SessionPersistence(session),
        config=config if config is not None else AdminConfig(),
    )


def build_catalog(registry: AdminRegistry) -> dict[str, Resource]:
    """Register the catalog used by most view and HTTP tests."""
    category = registry.register(Category, menu=("Catalog",))
    product = registry.register(
        Product,
        menu=("Catalog",),
        metas={"price": {"permission": Permission().allow("crud", "admin").allow("read", "*")}},
    )
    product.search_attrs("name", "code", "category.name")
    product.scope("active", lambda q, ctx: q.where(Product.active.is_(True)), default=False)
    product.order_by("name")

    user = registry.register(User, menu=("People",))
    user.meta("password", type="password")

    order = registry.register(Order, menu=("Sales",))
    order.search_attrs("number", "customer.name")
    order.scope("draft", lambda q, ctx: q.where(Order.state == OrderState.DRAFT), group="State")
    order.scope("paid", lambda q, ctx: q.where(Order.state == OrderState.PAID), group="State")
    order.scope(
        "shipped", lambda q, ctx: q.where(Order.state == OrderState.SHIPPED), group="State"
    )

    def ship(arg):  # type: ignore[no-untyped-def]
        for record in arg.records:
            record.state = OrderState.SHIPPED
            record.carrier = arg.argument.carrier
        return len(arg.records)

    order.action(
        "ship",
        ship,
        modes=("batch", "show", "edit"),
        argument=ShippingInfo,
        visible=lambda record, ctx: record.state == OrderState.PAID,
    )
    return {"category": category, "product": product, "user": user, "order": order}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine():
    """Create an in-memory SQLite engine shared across threads."""
    eng = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture()
def session(engine):
    """Provide a session that is rolled back after each test."""
    factory = sessionmaker(bind=engine)
    sess = factory()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()


@pytest.fixture()
def registry() -> AdminRegistry:
    """A fresh registry with default configuration."""
    return AdminRegistry(config=AdminConfig())


@pytest.fixture()
def catalog(registry: AdminRegistry) -> dict[str, Resource]:
    """The catalog registered and finalized."""
    resources = build_catalog(registry)
    registry.finalize()
    return resources


@pytest.fixture()
def sample_data(session: Session) -> dict[str, list]:
    """Seed the database with catalog, people and orders."""
    tools = Category(id=1, name="Garden Tools")
    toys = Category(id=2, name="Toys")
    session.add_all([tools, toys])

    products = [
        Product(id=1, name="Rake", code="GT-001", price=Decimal("12.50"), category_id=1),
        Product(id=2, name="Shovel", code="GT-002", price=Decimal("20.00"), category_id=1),
        Product(id=3, name="Yo-yo", code="TY-100", price=Decimal("3.99"), category_id=2),
        Product(
            id=4, name="Kite", code="TY-200", price=Decimal("15.00"), active=False, category_id=2
        ),
    ]
    session.add_all(products)

    alice = User(id=1, name="Alice", email="alice@example.com", password="secret", is_staff=True)
    bob = User(id=2, name="Bob", email="bob@example.com")
    session.add_all([alice, bob])

    orders = [
        Order(id=1, number="A-1", state=OrderState.DRAFT, customer_id=1),
        Order(id=2, number="A-2", state=OrderState.PAID, customer_id=1),
        Order(id=3, number="B-1", state=OrderState.PAID, customer_id=2),
        Order(id=4, number="B-2", state=OrderState.SHIPPED, customer_id=2),
    ]
    session.add_all(orders)

    session.flush()
    return {
        "categories": [tools, toys],
        "products": products,
        "users": [alice, bob],
        "orders": orders,
    }
