from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .state import TicketStatus


@dataclass(slots=True)
class Customer:
    """Person placing orders and owning tickets."""

    id: int
    name: str
    email: str


@dataclass(slots=True)
class Event:
    """Scheduled event a product grants access to."""

    id: int
    title: str
    start: datetime
    end: datetime

    def has_started(self, now: datetime) -> bool:
        return now >= self.start

    def has_ended(self, now: datetime) -> bool:
        return now >= self.end


@dataclass(slots=True)
class Product:
    """Ticketed item; unique codes are scoped to a single product."""

    id: int
    title: str
    event_id: int | None = None


@dataclass(slots=True)
class OrderProduct:
    product: Product
    amount: int


@dataclass(slots=True)
class Order:
    """Finalised order whose line items turn into tickets."""

    id: int
    owner: Customer
    order_products: list[OrderProduct] = field(default_factory=list)
    ticket_created: bool = False


@dataclass(slots=True)
class Ticket:
    """Right of entry for one purchased product unit."""

    order_id: int
    owner_id: int
    product_id: int
    unique_code: str
    status: TicketStatus
    key: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def refresh_from(self, stored: Ticket) -> None:
        """Copy the mutable fields of ``stored`` onto this instance."""

        self.owner_id = stored.owner_id
        self.unique_code = stored.unique_code
        self.status = stored.status
        self.updated_at = stored.updated_at
