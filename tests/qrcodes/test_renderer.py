from __future__ import annotations

import io

import pytest
import qrcode
from PIL import Image

from school_platform.core.exceptions import ValidationError
from school_platform.qrcodes.renderer import QRCodePngRenderer

PAYLOAD = '{"schoolId":"SCH1","sessionId":"S1","timestamp":0,"token":"3f1c","type":"attendance_session"}'


def test_renders_square_png_with_theme_colors():
    png = QRCodePngRenderer().render(PAYLOAD)

    img = Image.open(io.BytesIO(png))
    assert img.format == "PNG"
    assert img.size == (256, 256)

    rgb = img.convert("RGB")
    colors = {c for _, c in rgb.getcolors(maxcolors=256 * 256)}
    assert colors == {(255, 107, 53), (255, 255, 255)}
    # quiet zone
    assert rgb.getpixel((0, 0)) == (255, 255, 255)


def test_custom_size():
    png = QRCodePngRenderer(size=128).render(PAYLOAD)
    assert Image.open(io.BytesIO(png)).size == (128, 128)


@pytest.mark.parametrize("kwargs", [{"error_correction": "X"}, {"border": 0}, {"size": 0}])
def test_rejects_bad_settings(kwargs):
    with pytest.raises(ValidationError):
        QRCodePngRenderer(**kwargs)


def _expected_modules(payload: str, border: int = 1) -> list[list[bool]]:
    qr = qrcode.QRCode(version=None, error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=10, border=border)
    qr.add_data(payload)
    qr.make(fit=True)
    return qr.get_matrix()


@pytest.mark.parametrize("size", [256, 128, 500])
def test_image_carries_the_payload_modules(size):
    modules = _expected_modules(PAYLOAD)
    n = len(modules)

    img = Image.open(io.BytesIO(QRCodePngRenderer(size=size).render(PAYLOAD))).convert("RGB")

    sampled = [
        [img.getpixel((int((c + 0.5) * size / n), int((r + 0.5) * size / n))) != (255, 255, 255) for c in range(n)]
        for r in range(n)
    ]
    assert sampled == modules
    # quiet zone is a single light module wide
    assert not any(modules[0]) and not any(row[0] for row in modules)
    assert any(modules[1])
