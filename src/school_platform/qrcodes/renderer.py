from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Protocol

import qrcode
from PIL import Image

from ..core.constants import QR_BORDER, QR_DARK_COLOR, QR_ERROR_CORRECTION, QR_IMAGE_SIZE, QR_LIGHT_COLOR
from ..core.exceptions import ValidationError

_ERROR_CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


class ImageRenderer(Protocol):
    def render(self, payload: str) -> bytes:
        raise NotImplementedError


@dataclass(frozen=True)
class QRCodePngRenderer(ImageRenderer):
    """Render a payload as a square PNG QR code."""

    size: int = QR_IMAGE_SIZE
    border: int = QR_BORDER
    error_correction: str = QR_ERROR_CORRECTION
    dark_color: str = QR_DARK_COLOR
    light_color: str = QR_LIGHT_COLOR

    def __post_init__(self):
        if self.error_correction.upper() not in _ERROR_CORRECTION_LEVELS:
            raise ValidationError(f"Unknown QR error correction level: {self.error_correction!r}")
        if self.border < 1:
            raise ValidationError("QR border must be at least 1 module")
        if self.size <= 0:
            raise ValidationError("QR image size must be positive")

    def render(self, payload: str) -> bytes:
        qr = qrcode.QRCode(
            version=None,
            error_correction=_ERROR_CORRECTION_LEVELS[self.error_correction.upper()],
            box_size=10,
            border=self.border,
        )
        qr.add_data(payload)
        qr.make(fit=True)

        img = qr.make_image(fill_color=self.dark_color, back_color=self.light_color).get_image()
        img = img.convert("RGB").resize((self.size, self.size), Image.NEAREST)

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()
