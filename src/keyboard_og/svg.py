"""Serialize laid-out frames to a self-contained SVG document.

Text is emitted as glyph outlines (one ``<path>`` per line) drawn through
fontTools pens, so the SVG needs no font lookup when it is rasterized.
"""

from __future__ import annotations

import logging
import math
from xml.sax.saxutils import quoteattr

from fontTools.pens.svgPathPen import SVGPathPen
from fontTools.pens.transformPen import TransformPen

from keyboard_og.config import CANVAS_HEIGHT, CANVAS_WIDTH
from keyboard_og.layout import Frame, LayoutEngine
from keyboard_og.text import FontBook
from keyboard_og.tree import Box, ImageNode, LinearGradient, Node, TextNode

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"


def _num(value: float) -> str:
    """Compact, deterministic number formatting."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def _gradient_vector(angle: float) -> tuple[float, float, float, float]:
    """Map a CSS gradient angle to objectBoundingBox x1, y1, x2, y2."""
    rad = math.radians(angle)
    dx, dy = math.sin(rad), -math.cos(rad)
    span = max(abs(dx), abs(dy))
    dx, dy = dx / span, dy / span
    return 0.5 - dx / 2, 0.5 - dy / 2, 0.5 + dx / 2, 0.5 + dy / 2


class SvgWriter:
    """Accumulates SVG markup for one document."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.defs: list[str] = []
        self.body: list[str] = []
        self._ids = 0

    def _next_id(self, prefix: str) -> str:
        self._ids += 1
        return f"{prefix}{self._ids}"

    def _gradient(self, gradient: LinearGradient) -> str:
        gid = self._next_id("g")
        x1, y1, x2, y2 = _gradient_vector(gradient.angle)
        stops = "".join(
            f'<stop offset="{_num(offset)}" stop-color="{color}"/>'
            for color, offset in gradient.stops
        )
        self.defs.append(
            f'<linearGradient id="{gid}" x1="{_num(x1)}" y1="{_num(y1)}" '
            f'x2="{_num(x2)}" y2="{_num(y2)}">{stops}</linearGradient>'
        )
        return f"url(#{gid})"

    def _rect(self, frame: Frame) -> None:
        style = frame.style
        if style.gradient is not None:
            fill = self._gradient(style.gradient)
        elif style.background is not None:
            fill = style.background
        else:
            return
        self.body.append(
            f'<rect x="{_num(frame.x)}" y="{_num(frame.y)}" '
            f'width="{_num(frame.width)}" height="{_num(frame.height)}" fill="{fill}"/>'
        )

    def _image(self, frame: Frame) -> None:
        node = frame.node
        aspect = "xMidYMid slice" if node.style.object_fit == "cover" else "xMidYMid meet"
        self.body.append(
            f'<image x="{_num(frame.x)}" y="{_num(frame.y)}" '
            f'width="{_num(frame.width)}" height="{_num(frame.height)}" '
            f'preserveAspectRatio="{aspect}" xlink:href={quoteattr(node.src)}/>'
        )

    def _text(self, frame: Frame) -> None:
        font = frame.font
        if font is None:
            return
        size = frame.style.font_size
        scale = font.scale(size)
        for line in frame.lines:
            pen = SVGPathPen(font.glyph_set, ntos=_num)
            cursor = line.x
            for char in line.text:
                name = font.glyph_name(char)
                if name in font.glyph_set:
                    transform = (scale, 0, 0, -scale, cursor, line.baseline)
                    font.glyph_set[name].draw(TransformPen(pen, transform))
                cursor += font.advance(char) * scale
            commands = pen.getCommands()
            if commands:
                self.body.append(f'<path d="{commands}" fill="{frame.style.color}"/>')

    def draw(self, frame: Frame) -> None:
        node: Node = frame.node
        opacity = frame.style.opacity
        grouped = opacity < 1.0
        if grouped:
            self.body.append(f'<g opacity="{_num(opacity)}">')

        if isinstance(node, TextNode):
            self._text(frame)
        elif isinstance(node, ImageNode):
            self._image(frame)
        elif isinstance(node, Box):
            self._rect(frame)
            for child in sorted(frame.children, key=lambda f: f.style.z_index):
                self.draw(child)

        if grouped:
            self.body.append("</g>")

    def document(self) -> str:
        defs = f"<defs>{''.join(self.defs)}</defs>" if self.defs else ""
        return (
            f'<svg xmlns="{SVG_NS}" xmlns:xlink="{XLINK_NS}" '
            f'width="{self.width}" height="{self.height}" '
            f'viewBox="0 0 {self.width} {self.height}">'
            f"{defs}{''.join(self.body)}</svg>"
        )


def frames_to_svg(root: Frame, width: int, height: int) -> str:
    writer = SvgWriter(width, height)
    writer.draw(root)
    return writer.document()


def render_svg(tree: Node, fonts, width: int = CANVAS_WIDTH, height: int = CANVAS_HEIGHT) -> str:
    """Lay out ``tree`` with ``fonts`` (FontAsset list) and return SVG text."""
    book = FontBook(list(fonts))
    try:
        frame = LayoutEngine(book).layout(tree, width, height)
        svg = frames_to_svg(frame, width, height)
    finally:
        book.close()
    logger.debug("Rendered SVG (%d chars)", len(svg))
    return svg
