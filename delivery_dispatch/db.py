"""Relational storage: engine/session factory and ORM models."""

import uuid
from collections.abc import Generator
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal, get_args

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

OrderStatus = Literal[
    "pending",
    "confirmed",
    "preparing",
    "ready",
    "out_for_delivery",
    "completed",
    "cancelled",
]
ORDER_STATUSES = get_args(OrderStatus)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _number(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class Base(DeclarativeBase):
    pass


class Order(Base):
    """Storefront order, plus the Lalamove delivery it was dispatched with.

    ``lalamove_order_id`` is written at most once; its presence means the
    courier order already exists.
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    customer_name: Mapped[str] = mapped_column(String(255))
    contact_number: Mapped[str] = mapped_column(String(64))
    service_type: Mapped[str] = mapped_column(String(16))  # dine-in | pickup | delivery
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    landmark: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pickup_time: Mapped[str | None] = mapped_column(String(64), nullable=True)
    party_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dine_in_time: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(32), default="cash")
    reference_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(32), default="pending", index=True)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    delivery_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    lalamove_quotation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lalamove_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lalamove_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lalamove_tracking_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    order_items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", lazy="selectin"
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "contact_number": self.contact_number,
            "service_type": self.service_type,
            "address": self.address,
            "landmark": self.landmark,
            "pickup_time": self.pickup_time,
            "party_size": self.party_size,
            "dine_in_time": self.dine_in_time,
            "payment_method": self.payment_method,
            "reference_number": self.reference_number,
            "status": self.status,
            "total": _number(self.total),
            "notes": self.notes,
            "customer_ip": self.customer_ip,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "completed_at": _iso(self.completed_at),
            "delivery_fee": _number(self.delivery_fee),
            "lalamove_quotation_id": self.lalamove_quotation_id,
            "lalamove_order_id": self.lalamove_order_id,
            "lalamove_status": self.lalamove_status,
            "lalamove_tracking_url": self.lalamove_tracking_url,
            "order_items": [item.to_dict() for item in self.order_items],
        }


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    menu_item_id: Mapped[str] = mapped_column(String(64))
    menu_item_name: Mapped[str] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    selected_variation: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    selected_add_ons: Mapped[list | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    order: Mapped[Order] = relationship(back_populates="order_items")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "menu_item_id": self.menu_item_id,
            "menu_item_name": self.menu_item_name,
            "quantity": self.quantity,
            "unit_price": _number(self.unit_price),
            "total_price": _number(self.total_price),
            "selected_variation": self.selected_variation,
            "selected_add_ons": self.selected_add_ons,
            "created_at": _iso(self.created_at),
        }


class SiteSetting(Base):
    """Admin-editable key/value setting (store details, Lalamove credentials)."""

    __tablename__ = "site_settings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, default="")


def make_engine(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Yield a session that commits on success and rolls back on error."""
    session = factory()
    try:
        yield session
        if session.in_transaction():
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
