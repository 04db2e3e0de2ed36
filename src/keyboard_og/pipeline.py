"""Pipeline orchestrator: form -> RenderRequest -> fonts -> SVG -> PNG.

Ties together normalization, font acquisition, tree construction, layout and
rasterization. This is the main entry point for rendering an OG image.
"""

from __future__ import annotations

import logging
import time

from keyboard_og.config import CANVAS_HEIGHT, CANVAS_WIDTH, Settings, load_settings
from keyboard_og.errors import OgImageError, RenderError
from keyboard_og.fonts import acquire_fonts
from keyboard_og.forms import FormData
from keyboard_og.normalizer import normalize_form
from keyboard_og.raster import svg_to_png
from keyboard_og.schema import RenderRequest
from keyboard_og.svg import render_svg
from keyboard_og.tree import build_visual_tree

logger = logging.getLogger(__name__)


def render_request_svg(request: RenderRequest, settings: Settings | None = None) -> str:
    """Steps 1-3: fonts, visual tree, vector rendering."""
    if settings is None:
        settings = load_settings()

    fonts = acquire_fonts(request, settings)
    tree = build_visual_tree(request, request.scheme)
    try:
        return render_svg(tree, fonts, CANVAS_WIDTH, CANVAS_HEIGHT)
    except OgImageError:
        raise
    except Exception as e:
        msg = f"Layout failed: {e}"
        raise RenderError(msg) from e


def render_og_image(request: RenderRequest, settings: Settings | None = None) -> bytes:
    """Render ``request`` to a 1748x1240 PNG.

    Raises an OgImageError subclass on any failure; no partial image is
    ever returned.
    """
    t0 = time.monotonic()
    svg = render_request_svg(request, settings)
    png = svg_to_png(svg, CANVAS_WIDTH)
    logger.info(
        "Rendered OG image for '%s' (%s, photo=%s) in %.2fs, %d bytes",
        request.keyboard_name,
        request.color_scheme,
        request.photo_data_uri is not None,
        time.monotonic() - t0,
        len(png),
    )
    return png


def render_form(form: FormData, settings: Settings | None = None) -> bytes:
    """Normalize decoded form fields and render them."""
    return render_og_image(normalize_form(form), settings)
