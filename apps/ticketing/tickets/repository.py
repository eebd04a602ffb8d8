from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Collection, Sequence

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from packages.db.models import EventTable, OrderTable, ProductTable, TicketTable

from .errors import DuplicateTicketCodeError, EventNotFoundError
from .models import Event, Ticket
from .state import TicketStatus


class SqlTicketRepository:
    """Ticket store backed by the `tickets` and `orders` tables.

    Code uniqueness per product is guaranteed by the
    ``uq_tickets_product_code`` constraint. A write rejected because another
    ticket holds the code surfaces as :class:`DuplicateTicketCodeError`; any
    other integrity violation propagates unchanged.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        async with self._engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)

    async def exists_code(self, product_id: int, unique_code: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketTable.key)
                .where(TicketTable.product_id == product_id, TicketTable.unique_code == unique_code)
                .limit(1)
            )
            return result.first() is not None

    async def save(self, ticket: Ticket) -> Ticket:
        now = datetime.now(timezone.utc)
        key = ticket.key or str(uuid.uuid4())
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = TicketTable(
                        key=key,
                        order_id=ticket.order_id,
                        owner_id=ticket.owner_id,
                        product_id=ticket.product_id,
                        unique_code=ticket.unique_code,
                        status=ticket.status.value,
                        created_at=ticket.created_at or now,
                        updated_at=now,
                    )
                    session.add(row)
                    await session.flush()
                    saved = self._table_to_ticket(row)
        except IntegrityError as exc:
            if await self._code_taken(ticket.product_id, ticket.unique_code, other_than=key):
                raise DuplicateTicketCodeError(
                    f"Unique code {ticket.unique_code} is already used for product {ticket.product_id}"
                ) from exc
            raise
        return saved

    async def set_status(
        self, key: str, status: TicketStatus, *, expected: Collection[TicketStatus]
    ) -> Ticket | None:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(TicketTable)
                    .where(
                        TicketTable.key == key,
                        TicketTable.status.in_([value.value for value in expected]),
                    )
                    .values(status=status.value, updated_at=datetime.now(timezone.utc))
                )
                if result.rowcount != 1:
                    return None
                row = await session.get(TicketTable, key)
                return self._table_to_ticket(row)

    async def reassign(
        self,
        key: str,
        *,
        owner_id: int,
        unique_code: str,
        expected_owner_id: int,
        expected_status: TicketStatus,
    ) -> Ticket | None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(TicketTable)
                        .where(
                            TicketTable.key == key,
                            TicketTable.owner_id == expected_owner_id,
                            TicketTable.status == expected_status.value,
                        )
                        .values(owner_id=owner_id, unique_code=unique_code, updated_at=datetime.now(timezone.utc))
                    )
                    if result.rowcount != 1:
                        return None
                    row = await session.get(TicketTable, key)
                    reassigned = self._table_to_ticket(row)
        except IntegrityError as exc:
            product_id = select(TicketTable.product_id).where(TicketTable.key == key).scalar_subquery()
            if await self._code_taken(product_id, unique_code, other_than=key):
                raise DuplicateTicketCodeError(f"Unique code {unique_code} is already used") from exc
            raise
        return reassigned

    async def find_by_product_and_code(self, product_id: int, unique_code: str) -> Ticket | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketTable).where(
                    TicketTable.product_id == product_id, TicketTable.unique_code == unique_code
                )
            )
            row = result.scalars().first()
        return self._table_to_ticket(row) if row is not None else None

    async def find_by_key(self, key: str) -> Ticket | None:
        async with self._session_factory() as session:
            row = await session.get(TicketTable, key)
        return self._table_to_ticket(row) if row is not None else None

    async def find_all(self) -> Sequence[Ticket]:
        return await self._find_where()

    async def find_all_by_product(self, product_id: int) -> Sequence[Ticket]:
        return await self._find_where(TicketTable.product_id == product_id)

    async def find_all_by_customer(self, customer_id: int) -> Sequence[Ticket]:
        return await self._find_where(TicketTable.owner_id == customer_id, newest_first=True)

    async def find_all_by_order(self, order_id: int) -> Sequence[Ticket]:
        return await self._find_where(TicketTable.order_id == order_id)

    async def find_all_by_product_and_owner(self, product_id: int, owner_id: int) -> Sequence[Ticket]:
        return await self._find_where(TicketTable.product_id == product_id, TicketTable.owner_id == owner_id)

    async def delete_all(self, tickets: Sequence[Ticket]) -> None:
        keys = [ticket.key for ticket in tickets if ticket.key]
        if not keys:
            return
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(TicketTable).where(TicketTable.key.in_(keys)))

    async def claim_issuance(self, order_id: int) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(OrderTable)
                    .where(OrderTable.id == order_id, OrderTable.ticket_created == False)  # noqa: E712
                    .values(ticket_created=True)
                )
        return result.rowcount == 1

    async def release_issuance(self, order_id: int) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(OrderTable).where(OrderTable.id == order_id).values(ticket_created=False)
                )

    async def _code_taken(self, product_id, unique_code: str, *, other_than: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketTable.key)
                .where(
                    TicketTable.product_id == product_id,
                    TicketTable.unique_code == unique_code,
                    TicketTable.key != other_than,
                )
                .limit(1)
            )
            return result.first() is not None

    async def _find_where(self, *criteria, newest_first: bool = False) -> list[Ticket]:
        order = TicketTable.created_at.desc() if newest_first else TicketTable.created_at.asc()
        async with self._session_factory() as session:
            result = await session.execute(select(TicketTable).where(*criteria).order_by(order))
            return [self._table_to_ticket(row) for row in result.scalars().all()]

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            key=row.key,
            order_id=row.order_id,
            owner_id=row.owner_id,
            product_id=row.product_id,
            unique_code=row.unique_code,
            status=TicketStatus(row.status),
            created_at=_ensure_datetime(row.created_at),
            updated_at=_ensure_datetime(row.updated_at),
        )


class SqlEventResolver:
    """Resolve the event a product belongs to through the `products` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_product(self, product_id: int) -> Event:
        async with self._session_factory() as session:
            result = await session.execute(
                select(EventTable)
                .join(ProductTable, ProductTable.event_id == EventTable.id)
                .where(ProductTable.id == product_id)
            )
            row = result.scalars().first()
        if row is None:
            raise EventNotFoundError(f"No event found for product {product_id}")
        return Event(
            id=row.id,
            title=row.title,
            start=_ensure_datetime(row.start),
            end=_ensure_datetime(row.end),
        )


def _ensure_datetime(value: datetime | None) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    raise TypeError("Expected datetime value from database")
