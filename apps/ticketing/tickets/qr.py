from __future__ import annotations

import base64
import io
import logging

import qrcode
import qrcode.constants
from qrcode.exceptions import DataOverflowError
from qrcode.image.pil import PilImage

from .codes import is_canonical_code
from .errors import CodeEncodingError, CodeFormatError
from .models import Ticket

logger = logging.getLogger(__name__)

_ERROR_CORRECTION = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


class CodeImageEncoder:
    """Render ticket unique codes as PNG QR codes.

    Codes issued before the UUID format was introduced may still live in the
    database, so every code is checked against the canonical shape before it
    is handed to the QR encoder.
    """

    def __init__(self, *, box_size: int = 10, border: int = 4, error_correction: str = "M") -> None:
        if error_correction not in _ERROR_CORRECTION:
            raise ValueError(f"Unknown QR error correction level: {error_correction}")
        self._box_size = box_size
        self._border = border
        self._error_correction = _ERROR_CORRECTION[error_correction]

    def encode(self, ticket: Ticket) -> bytes:
        if not is_canonical_code(ticket.unique_code):
            logger.warning(
                "Ticket %s has a non-canonical unique code; refusing to render it", ticket.key
            )
            raise CodeFormatError(f"Unique code of ticket {ticket.key} is not a UUID")
        return self._render(ticket.unique_code)

    def encode_data_uri(self, ticket: Ticket) -> str:
        """Return the QR code as a base64 ``data:`` URI for inline embedding."""

        encoded = base64.b64encode(self.encode(ticket)).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def _render(self, payload: str) -> bytes:
        qr = qrcode.QRCode(
            version=None,
            error_correction=self._error_correction,
            box_size=self._box_size,
            border=self._border,
            image_factory=PilImage,
        )
        try:
            qr.add_data(payload)
            qr.make(fit=True)
        except (DataOverflowError, ValueError) as exc:
            raise CodeEncodingError(f"Cannot encode unique code as QR symbol: {exc}") from exc

        image = qr.make_image(fill_color="black", back_color="white")
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()
