from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Literal, NoReturn

from opentelemetry import trace

from .codes import CodeGenerator
from .errors import EventNotFoundError, TicketNotFoundError, TicketNotTransferableError, TransferRejection
from .models import Customer, Event, Ticket
from .state import TicketStateMachine
from .store import EventResolver, Notifier, TicketStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

TransferCutoff = Literal["start", "end"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketTransferService:
    """Decide whether a ticket may change hands and carry out the transfer.

    Every successful transfer rotates the ticket's unique code, so a code the
    previous owner saved or screenshotted stops working immediately.
    """

    def __init__(
        self,
        store: TicketStore,
        events: EventResolver,
        notifier: Notifier,
        *,
        code_generator: CodeGenerator | None = None,
        cutoff: TransferCutoff = "start",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if cutoff not in ("start", "end"):
            raise ValueError(f"Unknown transfer cutoff: {cutoff}")
        self._store = store
        self._events = events
        self._notifier = notifier
        self._code_generator = code_generator or CodeGenerator(store)
        self._cutoff = cutoff
        self._clock = clock

    def can_transfer(
        self,
        ticket: Ticket,
        current_owner: Customer,
        new_owner: Customer,
        event: Event | None,
    ) -> None:
        """Raise :class:`TicketNotTransferableError` unless the transfer is allowed."""

        if ticket.owner_id != current_owner.id:
            raise TicketNotTransferableError(
                TransferRejection.OWNER_MISMATCH,
                f"Ticket {ticket.key} is not owned by customer {current_owner.id}",
            )
        if not TicketStateMachine.is_unused(ticket.status):
            raise TicketNotTransferableError(
                TransferRejection.ALREADY_USED,
                f"Ticket {ticket.key} has already been {ticket.status.value}",
            )
        if event is not None and self._past_cutoff(event):
            raise TicketNotTransferableError(
                TransferRejection.EVENT_STARTED,
                f"Event {event.id} has already {'started' if self._cutoff == 'start' else 'ended'}",
            )
        if new_owner.id == current_owner.id:
            raise TicketNotTransferableError(
                TransferRejection.SAME_OWNER,
                f"Ticket {ticket.key} is already owned by customer {new_owner.id}",
            )

    async def transfer(self, ticket: Ticket, current_owner: Customer, new_owner: Customer) -> Ticket:
        """Hand ``ticket`` to ``new_owner`` under a fresh code.

        Eligibility is judged on the stored ticket. The owner and code are
        written only while the stored owner is still ``current_owner`` and
        the ticket is still unused; losing that race is reported as a
        rejection, never as a transfer.
        """

        with tracer.start_as_current_span("tickets.transfer") as span:
            span.set_attribute("ticket.key", ticket.key or "")
            stored = await self._load(ticket)
            event = await self._resolve_event(stored.product_id)

            try:
                self.can_transfer(stored, current_owner, new_owner, event)
                transferred = await self._code_generator.write_with_new_code(
                    stored.product_id,
                    lambda code: self._store.reassign(
                        stored.key,
                        owner_id=new_owner.id,
                        unique_code=code,
                        expected_owner_id=current_owner.id,
                        expected_status=stored.status,
                    ),
                )
                if transferred is None:
                    await self._reject_changed(stored, current_owner, new_owner, event)
            except TicketNotTransferableError as exc:
                span.set_attribute("transfer.rejected", exc.reason.value)
                logger.info("Transfer of ticket %s refused: %s", stored.key, exc.reason.value)
                raise

            ticket.refresh_from(transferred)
            logger.info(
                "Ticket %s transferred from customer %s to customer %s",
                stored.key,
                current_owner.id,
                new_owner.id,
            )

        try:
            await self._notifier.send_transfer_confirmation(transferred, current_owner, new_owner)
        except Exception:
            # The transfer is committed; delivery problems belong to the notifier.
            logger.exception("Transfer confirmation for ticket %s could not be sent", transferred.key)

        return transferred

    async def _load(self, ticket: Ticket) -> Ticket:
        stored = await self._store.find_by_key(ticket.key) if ticket.key else None
        if stored is None:
            raise TicketNotFoundError(f"Ticket {ticket.key} not found")
        return stored

    async def _reject_changed(
        self, stored: Ticket, current_owner: Customer, new_owner: Customer, event: Event | None
    ) -> NoReturn:
        latest = await self._load(stored)
        self.can_transfer(latest, current_owner, new_owner, event)
        raise TicketNotTransferableError(
            TransferRejection.OWNER_MISMATCH,
            f"Ticket {stored.key} changed while being transferred",
        )

    async def _resolve_event(self, product_id: int) -> Event | None:
        try:
            return await self._events.get_by_product(product_id)
        except EventNotFoundError:
            logger.debug("Product %s has no event; no transfer time restriction applies", product_id)
            return None

    def _past_cutoff(self, event: Event) -> bool:
        now = self._clock()
        if self._cutoff == "start":
            return event.has_started(now)
        return event.has_ended(now)
