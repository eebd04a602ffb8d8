from __future__ import annotations

import logging
from typing import Sequence

from opentelemetry import trace

from .codes import CodeGenerator
from .errors import InvalidTicketTransitionError, TicketNotFoundError
from .models import Customer, Order, Product, Ticket
from .state import TicketStateMachine, TicketStatus
from .store import TicketStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class TicketService:
    """High level orchestration for ticket issuance, status and lookups."""

    def __init__(
        self,
        store: TicketStore,
        *,
        code_generator: CodeGenerator | None = None,
        state_machine: type[TicketStateMachine] = TicketStateMachine,
    ) -> None:
        self._store = store
        self._code_generator = code_generator or CodeGenerator(store)
        self._state_machine = state_machine

    async def issue(self, order: Order) -> list[Ticket]:
        """Create one ticket per purchased unit of ``order``.

        Issuance happens at most once per order. When the order is already
        marked, or another caller wins the claim on it, an empty list is
        returned and nothing is written.
        """

        if order.ticket_created:
            logger.debug("Tickets for order %s were already issued", order.id)
            return []

        with tracer.start_as_current_span("tickets.issue") as span:
            span.set_attribute("order.id", order.id)
            if not await self._store.claim_issuance(order.id):
                logger.info("Order %s was already claimed for ticket issuance", order.id)
                order.ticket_created = True
                return []

            issued: list[Ticket] = []
            try:
                for line in order.order_products:
                    for _ in range(line.amount):
                        ticket = Ticket(
                            order_id=order.id,
                            owner_id=order.owner.id,
                            product_id=line.product.id,
                            unique_code="",
                            status=self._state_machine.initial_state(),
                        )
                        issued.append(await self._code_generator.save_with_new_code(ticket))
            except BaseException:
                logger.warning(
                    "Issuing tickets for order %s failed after %d tickets; rolling back", order.id, len(issued)
                )
                await self._store.delete_all(issued)
                await self._store.release_issuance(order.id)
                raise

            order.ticket_created = True
            span.set_attribute("tickets.count", len(issued))
            logger.info("Issued %d tickets for order %s", len(issued), order.id)
            return issued

    async def update_status(self, ticket: Ticket, status: TicketStatus) -> Ticket:
        """Move ``ticket`` to ``status`` and refresh the caller's copy.

        The transition is checked against the stored ticket, not against
        ``ticket``, and the write only lands while the stored status is still
        a legal predecessor of ``status``. Owner and code are never written
        here, so an outdated copy cannot undo a transfer.
        """

        stored = await self._load(ticket)
        if not self._state_machine.can_transition(stored.status, status):
            raise InvalidTicketTransitionError(
                f"Cannot move ticket {stored.key} from {stored.status.value} to {status.value}"
            )

        updated = await self._store.set_status(
            stored.key, status, expected=self._state_machine.predecessors(status)
        )
        if updated is None:
            # Moved on between read and write; report against the status that won.
            current = await self._load(ticket)
            raise InvalidTicketTransitionError(
                f"Cannot move ticket {current.key} from {current.status.value} to {status.value}"
            )
        ticket.refresh_from(updated)
        return updated

    async def delete_by_order(self, order: Order) -> None:
        tickets = await self._store.find_all_by_order(order.id)
        if not tickets:
            return
        await self._store.delete_all(tickets)
        logger.info("Deleted %d tickets of order %s", len(tickets), order.id)

    async def get_by_unique_code(self, product: Product, unique_code: str) -> Ticket:
        ticket = await self._store.find_by_product_and_code(product.id, unique_code)
        if ticket is None:
            raise TicketNotFoundError(f"No ticket with code {unique_code} for product {product.id}")
        return ticket

    async def get_by_key(self, key: str) -> Ticket:
        ticket = await self._store.find_by_key(key)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {key} not found")
        return ticket

    async def get_all(self) -> Sequence[Ticket]:
        return await self._store.find_all()

    async def get_all_by_product(self, product: Product) -> Sequence[Ticket]:
        return await self._store.find_all_by_product(product.id)

    async def get_all_by_customer(self, customer: Customer) -> Sequence[Ticket]:
        return await self._store.find_all_by_customer(customer.id)

    async def get_all_by_order(self, order: Order) -> Sequence[Ticket]:
        return await self._store.find_all_by_order(order.id)

    async def get_all_by_product_and_customer(self, product: Product, customer: Customer) -> Sequence[Ticket]:
        return await self._store.find_all_by_product_and_owner(product.id, customer.id)

    async def _load(self, ticket: Ticket) -> Ticket:
        if not ticket.key:
            raise TicketNotFoundError("Ticket has not been stored yet")
        return await self.get_by_key(ticket.key)
