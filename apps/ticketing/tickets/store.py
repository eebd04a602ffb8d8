"""Collaborator interfaces consumed by the ticket services."""

from __future__ import annotations

from typing import Collection, Protocol, Sequence

from .models import Customer, Event, Ticket
from .state import TicketStatus


class TicketStore(Protocol):
    """Durable, key-addressable storage for tickets.

    ``save`` inserts a new ticket and must reject a ``(product_id,
    unique_code)`` pair already held by another ticket by raising
    :class:`~apps.ticketing.tickets.errors.DuplicateTicketCodeError`. Existing
    tickets are only changed through ``set_status`` and ``reassign``, which
    touch their own columns and only while the stored row still matches the
    expected state; both return ``None`` when it does not. ``claim_issuance``
    must flip an order's issuance flag atomically so that only one caller
    ever sees ``True`` for a given order.
    """

    async def exists_code(self, product_id: int, unique_code: str) -> bool:
        ...

    async def save(self, ticket: Ticket) -> Ticket:
        ...

    async def set_status(
        self, key: str, status: TicketStatus, *, expected: Collection[TicketStatus]
    ) -> Ticket | None:
        ...

    async def reassign(
        self,
        key: str,
        *,
        owner_id: int,
        unique_code: str,
        expected_owner_id: int,
        expected_status: TicketStatus,
    ) -> Ticket | None:
        ...

    async def find_by_product_and_code(self, product_id: int, unique_code: str) -> Ticket | None:
        ...

    async def find_by_key(self, key: str) -> Ticket | None:
        ...

    async def find_all(self) -> Sequence[Ticket]:
        ...

    async def find_all_by_product(self, product_id: int) -> Sequence[Ticket]:
        ...

    async def find_all_by_customer(self, customer_id: int) -> Sequence[Ticket]:
        ...

    async def find_all_by_order(self, order_id: int) -> Sequence[Ticket]:
        ...

    async def find_all_by_product_and_owner(self, product_id: int, owner_id: int) -> Sequence[Ticket]:
        ...

    async def delete_all(self, tickets: Sequence[Ticket]) -> None:
        ...

    async def claim_issuance(self, order_id: int) -> bool:
        ...

    async def release_issuance(self, order_id: int) -> None:
        ...


class EventResolver(Protocol):
    async def get_by_product(self, product_id: int) -> Event:
        """Return the event selling ``product_id`` or raise ``EventNotFoundError``."""
        ...


class Notifier(Protocol):
    async def send_transfer_confirmation(
        self, ticket: Ticket, previous_owner: Customer, new_owner: Customer
    ) -> None:
        ...
