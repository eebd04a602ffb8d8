"""SQLModel table definitions for the ticketing data layer."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class CustomerTable(SQLModel, table=True):
    """Customers that place orders and own tickets."""

    __tablename__ = "customers"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True))


class EventTable(SQLModel, table=True):
    """Events that ticketed products grant access to."""

    __tablename__ = "events"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(sa_column=Column(String(255), nullable=False))
    start: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    end: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class ProductTable(SQLModel, table=True):
    """Sellable products; the scope of ticket code uniqueness."""

    __tablename__ = "products"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(sa_column=Column(String(255), nullable=False))
    event_id: int | None = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("events.id", ondelete="SET NULL"), nullable=True),
    )


class OrderTable(SQLModel, table=True):
    """Orders; `ticket_created` guards one-time ticket issuance."""

    __tablename__ = "orders"

    id: int | None = Field(default=None, primary_key=True)
    owner_id: int = Field(sa_column=Column(Integer, ForeignKey("customers.id"), nullable=False))
    ticket_created: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class OrderProductTable(SQLModel, table=True):
    """Line items of an order."""

    __tablename__ = "order_products"

    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(
        sa_column=Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    )
    product_id: int = Field(sa_column=Column(Integer, ForeignKey("products.id"), nullable=False))
    amount: int = Field(default=1, sa_column=Column(Integer, nullable=False))


class TicketTable(SQLModel, table=True):
    """Issued tickets, one per purchased product unit."""

    __tablename__ = "tickets"
    __table_args__ = (UniqueConstraint("product_id", "unique_code", name="uq_tickets_product_code"),)

    key: str = Field(primary_key=True, max_length=36)
    order_id: int = Field(
        sa_column=Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    owner_id: int = Field(sa_column=Column(Integer, ForeignKey("customers.id"), nullable=False, index=True))
    product_id: int = Field(sa_column=Column(Integer, ForeignKey("products.id"), nullable=False))
    unique_code: str = Field(sa_column=Column(String(64), nullable=False))
    status: str = Field(sa_column=Column(String(50), nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
