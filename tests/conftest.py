from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from apps.ticketing.tickets.errors import DuplicateTicketCodeError
from apps.ticketing.tickets.models import Customer, Order, OrderProduct, Product, Ticket
from apps.ticketing.tickets.state import TicketStatus
from packages.db import models as db_models  # noqa: F401  registers tables on SQLModel.metadata


class InMemoryTicketStore:
    """Ticket store double with insert-if-absent semantics on (product, code).

    Every coroutine yields to the loop once before touching state so that
    concurrently running issuances actually interleave.
    """

    def __init__(self) -> None:
        self.tickets: dict[str, Ticket] = {}
        self.claimed_orders: set[int] = set()
        self.save_calls = 0
        self.status_writes = 0
        self.reassign_calls = 0
        self.delete_calls = 0
        self.claim_calls = 0

    def _ensure_code_free(self, product_id: int, unique_code: str, key: str | None) -> None:
        for existing_key, existing in self.tickets.items():
            if (
                existing_key != key
                and existing.product_id == product_id
                and existing.unique_code == unique_code
            ):
                raise DuplicateTicketCodeError(f"{unique_code} taken for product {product_id}")

    async def exists_code(self, product_id: int, unique_code: str) -> bool:
        await asyncio.sleep(0)
        return any(
            ticket.product_id == product_id and ticket.unique_code == unique_code
            for ticket in self.tickets.values()
        )

    async def save(self, ticket: Ticket) -> Ticket:
        self.save_calls += 1
        await asyncio.sleep(0)
        self._ensure_code_free(ticket.product_id, ticket.unique_code, ticket.key)
        now = datetime.now(timezone.utc)
        stored = replace(
            ticket,
            key=ticket.key or str(uuid4()),
            created_at=ticket.created_at or now,
            updated_at=now,
        )
        self.tickets[stored.key] = stored
        return replace(stored)

    async def set_status(self, key: str, status: TicketStatus, *, expected) -> Ticket | None:
        self.status_writes += 1
        await asyncio.sleep(0)
        ticket = self.tickets.get(key)
        if ticket is None or ticket.status not in expected:
            return None
        self.tickets[key] = replace(ticket, status=status, updated_at=datetime.now(timezone.utc))
        return replace(self.tickets[key])

    async def reassign(
        self,
        key: str,
        *,
        owner_id: int,
        unique_code: str,
        expected_owner_id: int,
        expected_status: TicketStatus,
    ) -> Ticket | None:
        self.reassign_calls += 1
        await asyncio.sleep(0)
        ticket = self.tickets.get(key)
        if ticket is None or ticket.owner_id != expected_owner_id or ticket.status != expected_status:
            return None
        self._ensure_code_free(ticket.product_id, unique_code, key)
        self.tickets[key] = replace(
            ticket, owner_id=owner_id, unique_code=unique_code, updated_at=datetime.now(timezone.utc)
        )
        return replace(self.tickets[key])

    async def find_by_product_and_code(self, product_id: int, unique_code: str) -> Ticket | None:
        for ticket in self.tickets.values():
            if ticket.product_id == product_id and ticket.unique_code == unique_code:
                return replace(ticket)
        return None

    async def find_by_key(self, key: str) -> Ticket | None:
        ticket = self.tickets.get(key)
        return replace(ticket) if ticket is not None else None

    async def find_all(self) -> list[Ticket]:
        return [replace(ticket) for ticket in self.tickets.values()]

    async def find_all_by_product(self, product_id: int) -> list[Ticket]:
        return [replace(t) for t in self.tickets.values() if t.product_id == product_id]

    async def find_all_by_customer(self, customer_id: int) -> list[Ticket]:
        return [replace(t) for t in self.tickets.values() if t.owner_id == customer_id]

    async def find_all_by_order(self, order_id: int) -> list[Ticket]:
        return [replace(t) for t in self.tickets.values() if t.order_id == order_id]

    async def find_all_by_product_and_owner(self, product_id: int, owner_id: int) -> list[Ticket]:
        return [
            replace(t) for t in self.tickets.values() if t.product_id == product_id and t.owner_id == owner_id
        ]

    async def delete_all(self, tickets) -> None:
        self.delete_calls += 1
        for ticket in tickets:
            self.tickets.pop(ticket.key, None)

    async def claim_issuance(self, order_id: int) -> bool:
        self.claim_calls += 1
        await asyncio.sleep(0)
        if order_id in self.claimed_orders:
            return False
        self.claimed_orders.add(order_id)
        return True

    async def release_issuance(self, order_id: int) -> None:
        self.claimed_orders.discard(order_id)


@pytest.fixture
def store() -> InMemoryTicketStore:
    return InMemoryTicketStore()


@pytest.fixture
def alice() -> Customer:
    return Customer(id=1, name="Alice", email="alice@example.org")


@pytest.fixture
def bob() -> Customer:
    return Customer(id=2, name="Bob", email="bob@example.org")


@pytest.fixture
def product_a() -> Product:
    return Product(id=10, title="Gala dinner", event_id=100)


@pytest.fixture
def product_b() -> Product:
    return Product(id=11, title="Afterparty", event_id=101)


@pytest.fixture
def make_order(alice: Customer):
    def _make(order_id: int, *lines: tuple[Product, int], owner: Customer | None = None) -> Order:
        return Order(
            id=order_id,
            owner=owner or alice,
            order_products=[OrderProduct(product=product, amount=amount) for product, amount in lines],
        )

    return _make


@pytest_asyncio.fixture
async def engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    return async_sessionmaker(engine, expire_on_commit=False)
