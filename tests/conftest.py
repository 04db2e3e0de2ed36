"""Shared fixtures for keyboard-og tests."""

import os
from io import BytesIO

import pytest
from PIL import Image

from keyboard_og.config import Settings
from keyboard_og.errors import RenderError
from keyboard_og.fonts import FontAsset
from keyboard_og.raster import init_rasterizer

# -- System resources -------------------------------------------------------

# DejaVu Sans is available on most Linux systems
FONTS_DIR = "/usr/share/fonts/truetype/dejavu"
SYSTEM_FONT = os.path.join(FONTS_DIR, "DejaVuSans.ttf")
SYSTEM_FONT_BOLD = os.path.join(FONTS_DIR, "DejaVuSans-Bold.ttf")

HAS_SYSTEM_FONTS = os.path.exists(SYSTEM_FONT) and os.path.exists(SYSTEM_FONT_BOLD)
skip_no_font = pytest.mark.skipif(not HAS_SYSTEM_FONTS, reason="DejaVu Sans not found")


def _cairo_available() -> bool:
    try:
        init_rasterizer()
    except RenderError:
        return False
    return True


HAS_CAIRO = _cairo_available()
skip_no_cairo = pytest.mark.skipif(not HAS_CAIRO, reason="cairo runtime not available")


# -- Helpers ----------------------------------------------------------------


def encode_multipart(fields=None, files=None, boundary="----keyboardogtestboundary"):
    """Build a multipart/form-data body.

    ``files`` maps field name -> (filename, content_type, data).
    Returns (body_bytes, content_type_header).
    """
    parts = []
    for name, value in (fields or {}).items():
        parts.append(
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
            + value.encode("utf-8")
            + b"\r\n"
        )
    for name, (filename, content_type, data) in (files or {}).items():
        header = (
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
        )
        if content_type:
            header += f"Content-Type: {content_type}\r\n"
        parts.append((header + "\r\n").encode() + data + b"\r\n")
    body = b"".join(parts) + f"--{boundary}--\r\n".encode()
    return body, f"multipart/form-data; boundary={boundary}"


def make_png(size=(8, 6), color=(255, 0, 0)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    value = value.lstrip("#")
    return tuple(int(value[i : i + 2], 16) for i in (0, 2, 4))


# -- Fixtures ---------------------------------------------------------------


@pytest.fixture()
def png_bytes():
    """A small solid-red PNG."""
    return make_png()


@pytest.fixture()
def font_assets():
    """Regular + bold FontAssets read from the DejaVu system fonts."""
    with open(SYSTEM_FONT, "rb") as f:
        regular = f.read()
    with open(SYSTEM_FONT_BOLD, "rb") as f:
        bold = f.read()
    return [
        FontAsset(name="DejaVu Sans", weight=400, data=regular),
        FontAsset(name="DejaVu Sans", weight=700, data=bold),
    ]


@pytest.fixture()
def local_settings():
    """Settings that read the DejaVu system fonts instead of Google Fonts."""
    return Settings(
        font_source="local",
        fonts_dir=FONTS_DIR,
        font_family="DejaVu Sans",
        font_regular="DejaVuSans.ttf",
        font_bold="DejaVuSans-Bold.ttf",
        subset=True,
    )
