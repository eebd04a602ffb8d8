from __future__ import annotations

import logging

from .models import Customer, Ticket

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Notifier that records transfer confirmations in the application log.

    Used when no mail transport is wired in; delivery itself belongs to the
    surrounding application.
    """

    async def send_transfer_confirmation(
        self, ticket: Ticket, previous_owner: Customer, new_owner: Customer
    ) -> None:
        logger.info(
            "Ticket %s transferred from %s <%s> to %s <%s>",
            ticket.key,
            previous_owner.name,
            previous_owner.email,
            new_owner.name,
            new_owner.email,
        )
