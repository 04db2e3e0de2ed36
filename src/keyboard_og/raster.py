"""SVG -> PNG rasterization with cairosvg.

Importing cairosvg loads the native cairo library through cairocffi. That
happens once per process in ``init_rasterizer``, which servers call before
accepting requests; ``svg_to_png`` falls back to it on first use.
"""

from __future__ import annotations

import logging
import threading
import time

from keyboard_og.config import CANVAS_WIDTH
from keyboard_og.errors import RenderError

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()
_ready = False
_svg2png = None


def init_rasterizer() -> None:
    """Load the rasterizer's native runtime. Safe to call repeatedly."""
    global _ready, _svg2png
    if _ready:
        return
    with _init_lock:
        if _ready:
            return
        t0 = time.monotonic()
        try:
            from cairosvg import svg2png
        except (ImportError, OSError) as e:
            msg = f"SVG rasterizer unavailable: {e}"
            raise RenderError(msg) from e
        _svg2png = svg2png
        _ready = True
        logger.info("Rasterizer ready (%.2fs)", time.monotonic() - t0)


def is_rasterizer_ready() -> bool:
    return _ready


def svg_to_png(svg: str, width: int = CANVAS_WIDTH) -> bytes:
    """Rasterize SVG text to PNG bytes, ``width`` px wide, height by aspect ratio."""
    init_rasterizer()
    try:
        png = _svg2png(bytestring=svg.encode("utf-8"), output_width=width)
    except Exception as e:
        msg = f"Rasterization failed: {e}"
        raise RenderError(msg) from e
    if not png:
        msg = "Rasterization produced no output"
        raise RenderError(msg)
    return png
