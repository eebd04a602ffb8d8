from __future__ import annotations

from enum import Enum


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketNotFoundError(TicketServiceError):
    """Raised when a ticket could not be located."""


class EventNotFoundError(TicketServiceError):
    """Raised when no event is linked to a product."""


class InvalidTicketTransitionError(TicketServiceError):
    """Raised when attempting to move a ticket to an earlier status."""


class TransferRejection(str, Enum):
    """Reasons a ticket transfer is refused."""

    OWNER_MISMATCH = "owner_mismatch"
    ALREADY_USED = "already_used"
    EVENT_STARTED = "event_started"
    SAME_OWNER = "same_owner"


class TicketNotTransferableError(TicketServiceError):
    """Raised when a ticket fails the transfer eligibility checks."""

    def __init__(self, reason: TransferRejection, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class CodeFormatError(TicketServiceError):
    """Raised when a stored unique code does not have the canonical shape."""


class CodeEncodingError(TicketServiceError):
    """Raised when a unique code cannot be rendered as a QR symbol."""


class CodeGenerationError(TicketServiceError):
    """Raised when no free unique code was found within the attempt limit."""


class DuplicateTicketCodeError(TicketServiceError):
    """Raised by a store when a (product, code) pair is already taken."""
