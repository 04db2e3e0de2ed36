"""Declarative visual tree for the OG card and the builder that assembles it.

The tree is a nest of immutable ``Box`` / ``TextNode`` / ``ImageNode`` values
with inline ``Style``. Optional sections (photo, owner, detail rows,
description) are appended by ``_TreeBuilder`` only when their field is set,
so an absent field leaves no slot, label or spacing behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from keyboard_og.config import DETAIL_ROW_LABELS
from keyboard_og.schema import ColorScheme, RenderRequest

# Card geometry (px)
CONTENT_PADDING = 80
ACCENT_BAR_HEIGHT = 20

TITLE_SIZE = 72
OWNER_SIZE = 56
DETAIL_SIZE = 36
DESCRIPTION_SIZE = 28

TEXT_COLOR = "#374151"
DESCRIPTION_COLOR = "#6b7280"
WHITE = "#ffffff"

PHOTO_OPACITY = 0.3
OVERLAY_OPACITY = 0.8

TITLE_MAX_LINES = 2
OWNER_MAX_LINES = 1
DETAIL_MAX_LINES = 2
DESCRIPTION_MAX_LINES = 5

FULL = "100%"


@dataclass(frozen=True)
class LinearGradient:
    """CSS-style linear gradient: angle in degrees, (color, offset 0..1) stops."""

    angle: float
    stops: tuple[tuple[str, float], ...]


@dataclass(frozen=True)
class Style:
    """Inline style for one node. Lengths are px floats or percentage strings."""

    position: str = "relative"  # "relative" | "absolute"
    top: float | None = None
    left: float | None = None
    bottom: float | None = None
    width: float | str | None = None
    height: float | str | None = None
    direction: str = "column"  # "column" | "row"
    justify: str = "start"  # "start" | "center" | "end"
    align: str = "stretch"  # "start" | "center" | "end" | "stretch"
    padding: tuple[float, float, float, float] = (0, 0, 0, 0)  # top, right, bottom, left
    margin_bottom: float = 0
    background: str | None = None
    gradient: LinearGradient | None = None
    opacity: float = 1.0
    z_index: int = 0
    color: str = TEXT_COLOR
    font_size: float = 16
    font_weight: int = 400
    text_align: str = "left"  # "left" | "center" | "right"
    max_lines: int | None = None
    object_fit: str = "cover"


@dataclass(frozen=True)
class Box:
    style: Style = field(default_factory=Style)
    children: tuple[Node, ...] = ()


@dataclass(frozen=True)
class TextNode:
    text: str
    style: Style = field(default_factory=Style)


@dataclass(frozen=True)
class ImageNode:
    src: str
    style: Style = field(default_factory=Style)


Node = Union[Box, TextNode, ImageNode]


def _layer(z_index: int, **kwargs) -> Style:
    """Full-bleed absolutely positioned layer."""
    return Style(
        position="absolute", top=0, left=0, width=FULL, height=FULL, z_index=z_index, **kwargs
    )


def _padding_x(px: float) -> tuple[float, float, float, float]:
    return (0, px, 0, px)


class _TreeBuilder:
    """Assembles the card, one section at a time."""

    def __init__(self, request: RenderRequest, scheme: ColorScheme):
        self.request = request
        self.scheme = scheme
        self.layers: list[Node] = []
        self.content: list[Node] = []

    # -- layers (back to front) ---------------------------------------------

    def add_background(self) -> None:
        gradient = LinearGradient(angle=135, stops=((self.scheme.accent, 0.0), (WHITE, 1.0)))
        self.layers.append(Box(style=_layer(-2, gradient=gradient)))

    def add_photo(self) -> None:
        if not self.request.photo_data_uri:
            return
        style = _layer(-1, opacity=PHOTO_OPACITY, object_fit="cover")
        self.layers.append(ImageNode(src=self.request.photo_data_uri, style=style))

    def add_overlay(self) -> None:
        self.layers.append(Box(style=_layer(0, background=WHITE, opacity=OVERLAY_OPACITY)))

    def add_accent_bars(self) -> None:
        for edge in ("top", "bottom"):
            style = Style(
                position="absolute",
                left=0,
                width=FULL,
                height=ACCENT_BAR_HEIGHT,
                background=self.scheme.primary,
                z_index=1,
                **{edge: 0},
            )
            self.layers.append(Box(style=style))

    # -- content column -----------------------------------------------------

    def add_title(self) -> None:
        style = Style(
            font_size=TITLE_SIZE,
            font_weight=700,
            color=self.scheme.primary,
            text_align="center",
            margin_bottom=20,
            max_lines=TITLE_MAX_LINES,
        )
        self.content.append(TextNode(text=self.request.keyboard_name, style=style))

    def add_owner(self) -> None:
        if not self.request.owner:
            return
        style = Style(
            font_size=OWNER_SIZE,
            font_weight=700,
            color=self.scheme.secondary,
            text_align="center",
            margin_bottom=40,
            max_lines=OWNER_MAX_LINES,
        )
        self.content.append(TextNode(text=self.request.owner, style=style))

    def _detail_row(self, label: str, value: str) -> Box:
        label_style = Style(font_size=DETAIL_SIZE, font_weight=400)
        value_style = Style(font_size=DETAIL_SIZE, font_weight=700, max_lines=DETAIL_MAX_LINES)
        return Box(
            style=Style(direction="row", margin_bottom=10),
            children=(
                TextNode(text=label, style=label_style),
                TextNode(text=value, style=value_style),
            ),
        )

    def add_detail_rows(self) -> None:
        rows = []
        for attr, label in DETAIL_ROW_LABELS:
            value = getattr(self.request, attr)
            if value:
                rows.append(self._detail_row(label, value))
        if not rows:
            return
        style = Style(
            direction="column",
            align="start",
            width=FULL,
            padding=_padding_x(CONTENT_PADDING),
            margin_bottom=20,
        )
        self.content.append(Box(style=style, children=tuple(rows)))

    def add_description(self) -> None:
        if not self.request.description:
            return
        style = Style(
            width=FULL,
            padding=_padding_x(CONTENT_PADDING),
            font_size=DESCRIPTION_SIZE,
            color=DESCRIPTION_COLOR,
            text_align="left",
            max_lines=DESCRIPTION_MAX_LINES,
        )
        self.content.append(TextNode(text=self.request.description, style=style))

    def build(self) -> Box:
        column = Box(
            style=Style(
                width=FULL,
                height=FULL,
                direction="column",
                justify="center",
                align="center",
                padding=(CONTENT_PADDING,) * 4,
                z_index=2,
            ),
            children=tuple(self.content),
        )
        return Box(
            style=Style(width=FULL, height=FULL, direction="column"),
            children=(*self.layers, column),
        )


def build_visual_tree(request: RenderRequest, scheme: ColorScheme | None = None) -> Box:
    """Build the card for ``request`` using ``scheme`` (or the request's own scheme)."""
    builder = _TreeBuilder(request, scheme or request.scheme)
    builder.add_background()
    builder.add_photo()
    builder.add_overlay()
    builder.add_accent_bars()
    builder.add_title()
    builder.add_owner()
    builder.add_detail_rows()
    builder.add_description()
    return builder.build()


def iter_nodes(node: Node):
    """Depth-first walk over a tree, parents before children."""
    yield node
    if isinstance(node, Box):
        for child in node.children:
            yield from iter_nodes(child)


def iter_text(node: Node) -> list[str]:
    """All text strings in the tree, in document order."""
    return [n.text for n in iter_nodes(node) if isinstance(n, TextNode)]
