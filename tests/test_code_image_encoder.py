from __future__ import annotations

import base64
import io

import pytest
from PIL import Image

from apps.ticketing.tickets.errors import CodeEncodingError, CodeFormatError
from apps.ticketing.tickets.models import Ticket
from apps.ticketing.tickets.qr import CodeImageEncoder
from apps.ticketing.tickets.state import TicketStatus

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _ticket(code: str) -> Ticket:
    return Ticket(
        key="k-1",
        order_id=1,
        owner_id=1,
        product_id=10,
        unique_code=code,
        status=TicketStatus.OPEN,
    )


def test_encode_renders_png_for_canonical_code():
    encoder = CodeImageEncoder()

    image_bytes = encoder.encode(_ticket("0b6f3a52-6f4e-4c1a-9d7e-1c2b3a4d5e6f"))

    assert image_bytes.startswith(PNG_SIGNATURE)
    with Image.open(io.BytesIO(image_bytes)) as image:
        assert image.width == image.height
        assert image.width > 0


def test_encode_is_deterministic():
    encoder = CodeImageEncoder()
    ticket = _ticket("7d1e2f30-1a2b-4c3d-8e9f-0a1b2c3d4e5f")

    assert encoder.encode(ticket) == encoder.encode(ticket)


@pytest.mark.parametrize(
    "code",
    [
        "TKT-1700000000-abcdef12",
        "0B6F3A52-6F4E-4C1A-9D7E-1C2B3A4D5E6F",
        "0b6f3a526f4e4c1a9d7e1c2b3a4d5e6f",
        "",
    ],
)
def test_encode_rejects_legacy_codes_without_rendering(code, monkeypatch):
    encoder = CodeImageEncoder()

    def _fail(payload):
        raise AssertionError("renderer must not be reached")

    monkeypatch.setattr(encoder, "_render", _fail)

    with pytest.raises(CodeFormatError):
        encoder.encode(_ticket(code))


def test_overflowing_payload_surfaces_encoding_error():
    encoder = CodeImageEncoder(error_correction="H")

    with pytest.raises(CodeEncodingError):
        encoder._render("x" * 8000)


def test_encode_data_uri_wraps_png():
    encoder = CodeImageEncoder(box_size=4, border=2)

    uri = encoder.encode_data_uri(_ticket("f0e1d2c3-b4a5-4697-8879-6a5b4c3d2e1f"))

    prefix = "data:image/png;base64,"
    assert uri.startswith(prefix)
    assert base64.b64decode(uri[len(prefix) :]).startswith(PNG_SIGNATURE)


def test_unknown_error_correction_level_is_rejected():
    with pytest.raises(ValueError):
        CodeImageEncoder(error_correction="Z")
