"""Ticket issuance, status and transfer services."""

from .codes import CodeGenerator, is_canonical_code
from .errors import (
    CodeEncodingError,
    CodeFormatError,
    CodeGenerationError,
    DuplicateTicketCodeError,
    EventNotFoundError,
    InvalidTicketTransitionError,
    TicketNotFoundError,
    TicketNotTransferableError,
    TicketServiceError,
    TransferRejection,
)
from .models import Customer, Event, Order, OrderProduct, Product, Ticket
from .qr import CodeImageEncoder
from .service import TicketService
from .state import TicketStateMachine, TicketStatus
from .transfer import TicketTransferService

__all__ = [
    "CodeEncodingError",
    "CodeFormatError",
    "CodeGenerationError",
    "CodeGenerator",
    "CodeImageEncoder",
    "Customer",
    "DuplicateTicketCodeError",
    "Event",
    "EventNotFoundError",
    "InvalidTicketTransitionError",
    "Order",
    "OrderProduct",
    "Product",
    "Ticket",
    "TicketNotFoundError",
    "TicketNotTransferableError",
    "TicketService",
    "TicketServiceError",
    "TicketStateMachine",
    "TicketStatus",
    "TicketTransferService",
    "TransferRejection",
    "is_canonical_code",
]
