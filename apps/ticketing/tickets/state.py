from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "open"
    SCANNED = "scanned"
    VOID = "void"


class TicketStateMachine:
    """Validate ticket lifecycle transitions.

    Statuses only move forward: an open ticket may be scanned at the door or
    voided, and both of those are terminal. Re-applying the current status is
    accepted so repeated scans stay harmless.
    """

    _TRANSITIONS: dict[TicketStatus, set[TicketStatus]] = {
        TicketStatus.OPEN: {TicketStatus.SCANNED, TicketStatus.VOID},
        TicketStatus.SCANNED: set(),
        TicketStatus.VOID: set(),
    }

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.OPEN

    @classmethod
    def is_unused(cls, status: TicketStatus) -> bool:
        return status == cls.initial_state()

    @classmethod
    def can_transition(cls, current: TicketStatus, new: TicketStatus) -> bool:
        if current == new:
            return True
        return new in cls._TRANSITIONS.get(current, set())

    @classmethod
    def predecessors(cls, new: TicketStatus) -> set[TicketStatus]:
        """Statuses a stored ticket may hold for a move to ``new`` to be legal."""

        return {status for status in TicketStatus if cls.can_transition(status, new)}
