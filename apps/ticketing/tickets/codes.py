from __future__ import annotations

import logging
import re
import uuid
from dataclasses import replace
from typing import Awaitable, Callable, TypeVar

from .errors import CodeGenerationError, DuplicateTicketCodeError
from .models import Ticket
from .store import TicketStore

logger = logging.getLogger(__name__)

CANONICAL_CODE_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")

DEFAULT_MAX_ATTEMPTS = 10

T = TypeVar("T")


def is_canonical_code(code: str) -> bool:
    """Return whether ``code`` is a lowercase dashed-hex UUID string."""

    return CANONICAL_CODE_RE.fullmatch(code or "") is not None


def _random_code() -> str:
    return str(uuid.uuid4())


class CodeGenerator:
    """Draw random unique codes that are not yet used within a product.

    The existence check only covers the common case. Two concurrent writers
    may still draw the same code between check and write; the store's
    uniqueness constraint rejects the loser, and :meth:`save_with_new_code`
    redraws for it.
    """

    def __init__(
        self,
        store: TicketStore,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        code_factory: Callable[[], str] | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._max_attempts = max_attempts
        self._code_factory = code_factory or _random_code

    async def generate(self, product_id: int) -> str:
        for attempt in range(1, self._max_attempts + 1):
            code = self._code_factory()
            if not await self._store.exists_code(product_id, code):
                return code
            logger.warning(
                "Unique code collision for product %s (attempt %d/%d)", product_id, attempt, self._max_attempts
            )

        logger.error("Could not draw a free unique code for product %s", product_id)
        raise CodeGenerationError(
            f"No free unique code for product {product_id} after {self._max_attempts} attempts"
        )

    async def write_with_new_code(self, product_id: int, write: Callable[[str], Awaitable[T]]) -> T:
        """Call ``write`` with freshly drawn codes until the store accepts one."""

        for attempt in range(1, self._max_attempts + 1):
            code = await self.generate(product_id)
            try:
                return await write(code)
            except DuplicateTicketCodeError:
                logger.warning(
                    "Unique code for product %s was taken concurrently (attempt %d/%d)",
                    product_id,
                    attempt,
                    self._max_attempts,
                )

        logger.error("Could not persist a free code for product %s", product_id)
        raise CodeGenerationError(
            f"No free unique code for product {product_id} after {self._max_attempts} attempts"
        )

    async def save_with_new_code(self, ticket: Ticket) -> Ticket:
        """Insert ``ticket`` under a freshly drawn code, redrawing on write conflicts."""

        return await self.write_with_new_code(
            ticket.product_id,
            lambda code: self._store.save(replace(ticket, unique_code=code)),
        )
