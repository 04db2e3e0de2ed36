"""Flexbox-style layout of a visual tree into positioned frames.

Supports the subset of flex layout the card uses: absolute layers, column
and row flow, justify/align, padding, bottom margins, px and percentage
sizes, and wrapped text. Content that does not fit overflows its box the
same way CSS does; clipping happens at the canvas edge.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from keyboard_og.text import LINE_HEIGHT_RATIO, FontBook, LoadedFont, wrap_text
from keyboard_og.tree import Box, ImageNode, Node, Style, TextNode


@dataclass(frozen=True)
class TextLine:
    text: str
    x: float
    baseline: float
    width: float


@dataclass
class Frame:
    """A node with its resolved position and size."""

    node: Node
    x: float
    y: float
    width: float
    height: float
    children: list[Frame] = field(default_factory=list)
    lines: list[TextLine] = field(default_factory=list)
    font: LoadedFont | None = None

    @property
    def style(self) -> Style:
        return self.node.style


def _resolve_length(value: float | str | None, available: float) -> float | None:
    if value is None:
        return None
    if isinstance(value, str):
        if value.endswith("%"):
            return available * float(value[:-1]) / 100
        return float(value)
    return float(value)


def _is_absolute(node: Node) -> bool:
    return node.style.position == "absolute"


def _pad(style: Style) -> tuple[float, float]:
    """(horizontal, vertical) padding totals."""
    top, right, bottom, left = style.padding
    return left + right, top + bottom


def _offset(free: float, mode: str) -> float:
    if mode == "center":
        return free / 2
    if mode == "end":
        return free
    return 0.0


class LayoutEngine:
    """Resolves sizes and positions for a tree against a FontBook."""

    def __init__(self, fonts: FontBook):
        self.fonts = fonts

    def layout(self, root: Node, width: float, height: float) -> Frame:
        return self._place(root, 0.0, 0.0, width, height)

    # -- text ---------------------------------------------------------------

    def _font(self, node: TextNode) -> LoadedFont:
        return self.fonts.for_weight(node.style.font_weight)

    def _line_height(self, node: TextNode) -> float:
        return node.style.font_size * LINE_HEIGHT_RATIO

    def _wrap(self, node: TextNode, inner_width: float) -> list[str]:
        style = node.style
        return wrap_text(node.text, self._font(node), style.font_size, inner_width, style.max_lines)

    # -- sizing -------------------------------------------------------------

    def _max_content_width(self, node: Node) -> float:
        pad_x, _ = _pad(node.style)
        if isinstance(node, TextNode):
            font = self._font(node)
            widest = max(
                (font.measure(line, node.style.font_size) for line in node.text.split("\n")),
                default=0.0,
            )
            return widest + pad_x
        if isinstance(node, ImageNode):
            return pad_x
        flow = [c for c in node.children if not _is_absolute(c)]
        sizes = [self._max_content_width(c) for c in flow]
        if node.style.direction == "row":
            return sum(sizes) + pad_x
        return max(sizes, default=0.0) + pad_x

    def _outer_width(self, node: Node, available: float, stretch: bool) -> float:
        explicit = _resolve_length(node.style.width, available)
        if explicit is not None:
            return explicit
        if stretch:
            return available
        return min(self._max_content_width(node), max(available, 0.0))

    def _outer_height(self, node: Node, width: float, available: float) -> float:
        explicit = _resolve_length(node.style.height, available)
        if explicit is not None:
            return explicit

        pad_x, pad_y = _pad(node.style)
        if isinstance(node, TextNode):
            return len(self._wrap(node, width - pad_x)) * self._line_height(node) + pad_y
        if isinstance(node, ImageNode):
            return pad_y

        sizes = self._flow_sizes(node, width - pad_x, max(available - pad_y, 0.0))
        if node.style.direction == "row":
            return max((h for _, _, h in sizes), default=0.0) + pad_y
        return sum(h + child.style.margin_bottom for child, _, h in sizes) + pad_y

    def _flow_sizes(
        self, node: Box, inner_width: float, inner_height: float
    ) -> list[tuple[Node, float, float]]:
        """(child, width, height) for every in-flow child of ``node``."""
        sizes: list[tuple[Node, float, float]] = []
        flow = [c for c in node.children if not _is_absolute(c)]
        if node.style.direction == "row":
            remaining = inner_width
            for child in flow:
                w = self._outer_width(child, remaining, stretch=False)
                h = self._outer_height(child, w, inner_height)
                sizes.append((child, w, h))
                remaining -= w
        else:
            stretch = node.style.align == "stretch"
            for child in flow:
                w = self._outer_width(child, inner_width, stretch)
                h = self._outer_height(child, w, inner_height)
                sizes.append((child, w, h))
        return sizes

    # -- placement ----------------------------------------------------------

    def _place(self, node: Node, x: float, y: float, width: float, height: float) -> Frame:
        if isinstance(node, TextNode):
            return self._place_text(node, x, y, width, height)
        frame = Frame(node=node, x=x, y=y, width=width, height=height)
        if isinstance(node, ImageNode):
            return frame

        style = node.style
        top, right, bottom, left = style.padding
        inner_x, inner_y = x + left, y + top
        inner_w, inner_h = width - left - right, height - top - bottom

        frame.children.extend(self._place_flow(node, inner_x, inner_y, inner_w, inner_h))
        for child in node.children:
            if _is_absolute(child):
                frame.children.append(self._place_absolute(child, x, y, width, height))
        return frame

    def _place_flow(
        self, node: Box, inner_x: float, inner_y: float, inner_w: float, inner_h: float
    ) -> list[Frame]:
        style = node.style
        sizes = self._flow_sizes(node, inner_w, inner_h)
        row = style.direction == "row"

        if row:
            used = sum(w for _, w, _ in sizes)
            cursor = inner_x + _offset(inner_w - used, style.justify)
        else:
            used = sum(h + child.style.margin_bottom for child, _, h in sizes)
            cursor = inner_y + _offset(inner_h - used, style.justify)

        frames: list[Frame] = []
        for child, w, h in sizes:
            if row:
                cross = inner_y
                if style.align != "stretch":
                    cross += _offset(inner_h - h, style.align)
                frames.append(self._place(child, cursor, cross, w, h))
                cursor += w
            else:
                cross = inner_x
                if style.align != "stretch":
                    cross += _offset(inner_w - w, style.align)
                frames.append(self._place(child, cross, cursor, w, h))
                cursor += h + child.style.margin_bottom
        return frames

    def _place_absolute(
        self, node: Node, parent_x: float, parent_y: float, parent_w: float, parent_h: float
    ) -> Frame:
        style = node.style
        w = self._outer_width(node, parent_w, stretch=False)
        h = self._outer_height(node, w, parent_h)
        x = parent_x + (style.left or 0.0)
        if style.top is not None:
            y = parent_y + style.top
        elif style.bottom is not None:
            y = parent_y + parent_h - style.bottom - h
        else:
            y = parent_y
        return self._place(node, x, y, w, h)

    def _place_text(self, node: TextNode, x: float, y: float, width: float, height: float) -> Frame:
        style = node.style
        font = self._font(node)
        top, right, _bottom, left = style.padding
        inner_x, inner_w = x + left, width - left - right
        line_height = self._line_height(node)
        baseline_offset = font.baseline_offset(style.font_size)

        frame = Frame(node=node, x=x, y=y, width=width, height=height, font=font)
        for i, text in enumerate(self._wrap(node, inner_w)):
            line_width = font.measure(text, style.font_size)
            line_x = inner_x
            if style.text_align == "center":
                line_x += (inner_w - line_width) / 2
            elif style.text_align == "right":
                line_x += inner_w - line_width
            baseline = y + top + i * line_height + baseline_offset
            frame.lines.append(TextLine(text=text, x=line_x, baseline=baseline, width=line_width))
        return frame


def iter_frames(frame: Frame):
    """Depth-first walk over laid-out frames."""
    yield frame
    for child in frame.children:
        yield from iter_frames(child)
