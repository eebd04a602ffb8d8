"""Database models and utilities."""

from .models import (
    CustomerTable,
    EventTable,
    OrderProductTable,
    OrderTable,
    ProductTable,
    TicketTable,
)

__all__ = [
    "CustomerTable",
    "EventTable",
    "OrderProductTable",
    "OrderTable",
    "ProductTable",
    "TicketTable",
]
