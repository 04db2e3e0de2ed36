"""Font metrics and line breaking for the layout engine.

Widths come straight from the ``hmtx`` advances of the loaded fonts (no
kerning), which keeps measurement and the emitted glyph outlines in exact
agreement.

Characters map one-to-one onto glyphs through the ``cmap``. No GSUB or GPOS
shaping is applied, so ligatures and contextual forms are not produced and
only simple left-to-right scripts (Latin, Greek, Cyrillic, CJK) render
correctly. Explicit newlines in a value are kept as line breaks.
"""

from __future__ import annotations

import re
from io import BytesIO
from typing import TYPE_CHECKING

from fontTools.ttLib import TTFont, TTLibError

from keyboard_og.config import ELLIPSIS
from keyboard_og.errors import RenderError

if TYPE_CHECKING:
    from keyboard_og.fonts import FontAsset

LINE_HEIGHT_RATIO = 1.2
_TOKEN_RE = re.compile(r"\S+|\s+")


class LoadedFont:
    """A parsed font weight with the lookups needed to measure and draw text."""

    def __init__(self, asset: FontAsset):
        try:
            self.ttfont = TTFont(BytesIO(asset.data), fontNumber=0, lazy=True)
            self.units_per_em = self.ttfont["head"].unitsPerEm
            hhea = self.ttfont["hhea"]
            self.ascender = hhea.ascent
            self.descender = hhea.descent
            self.cmap = self.ttfont.getBestCmap() or {}
            self.hmtx = self.ttfont["hmtx"]
            self.glyph_set = self.ttfont.getGlyphSet()
        except (TTLibError, KeyError, AssertionError) as e:
            msg = f"Could not load font '{asset.name}' weight {asset.weight}: {e}"
            raise RenderError(msg) from e

        self.name = asset.name
        self.weight = asset.weight
        self._widths: dict[str, int] = {}

    def glyph_name(self, char: str) -> str:
        return self.cmap.get(ord(char), ".notdef")

    def advance(self, char: str) -> int:
        """Advance width of ``char`` in font units."""
        width = self._widths.get(char)
        if width is None:
            name = self.glyph_name(char)
            width = self.hmtx[name][0] if name in self.hmtx.metrics else 0
            self._widths[char] = width
        return width

    def scale(self, font_size: float) -> float:
        return font_size / self.units_per_em

    def measure(self, text: str, font_size: float) -> float:
        """Width of ``text`` in pixels at ``font_size``."""
        return sum(self.advance(c) for c in text) * self.scale(font_size)

    def baseline_offset(self, font_size: float) -> float:
        """Distance from the top of a line box to the baseline."""
        line_height = font_size * LINE_HEIGHT_RATIO
        content = (self.ascender - self.descender) * self.scale(font_size)
        return (line_height - content) / 2 + self.ascender * self.scale(font_size)

    def close(self) -> None:
        self.ttfont.close()


class FontBook:
    """All weights of the display face, picked by nearest weight."""

    def __init__(self, assets: list[FontAsset]):
        if not assets:
            msg = "At least one font is required to render text"
            raise RenderError(msg)
        self.fonts = [LoadedFont(a) for a in assets]

    def for_weight(self, weight: int) -> LoadedFont:
        return min(self.fonts, key=lambda f: (abs(f.weight - weight), f.weight))

    def close(self) -> None:
        for font in self.fonts:
            font.close()


def _break_chars(word: str, font: LoadedFont, size: float, max_width: float) -> list[str]:
    """Split a single over-long token at character boundaries."""
    pieces: list[str] = []
    current = ""
    for char in word:
        if current and font.measure(current + char, size) > max_width:
            pieces.append(current)
            current = char
        else:
            current += char
    if current:
        pieces.append(current)
    return pieces


def _wrap_paragraph(para: str, font: LoadedFont, size: float, max_width: float) -> list[str]:
    lines: list[str] = []
    current = ""
    for token in _TOKEN_RE.findall(para):
        candidate = current + token
        if font.measure(candidate.rstrip(), size) <= max_width:
            current = candidate
            continue
        if token.isspace():
            # whitespace at a break point is dropped
            if current.strip():
                lines.append(current.rstrip())
            current = ""
            continue
        if current.strip():
            lines.append(current.rstrip())
        if font.measure(token, size) <= max_width:
            current = token
            continue
        pieces = _break_chars(token, font, size, max_width)
        lines.extend(pieces[:-1])
        current = pieces[-1]
    if current.strip() or not lines:
        lines.append(current.rstrip())
    return lines


def fit_with_ellipsis(line: str, font: LoadedFont, size: float, max_width: float) -> str:
    """Trim ``line`` until it plus an ellipsis fits ``max_width``."""
    text = line.rstrip()
    while text and font.measure(text + ELLIPSIS, size) > max_width:
        text = text[:-1].rstrip()
    return text + ELLIPSIS


def wrap_text(
    text: str,
    font: LoadedFont,
    size: float,
    max_width: float,
    max_lines: int | None = None,
) -> list[str]:
    """Break ``text`` into lines no wider than ``max_width``.

    Breaks at whitespace, falling back to character breaks for tokens wider
    than a line (which also covers scripts written without spaces). Line
    breaks (LF, CRLF or CR) start a new line. When ``max_lines`` is set,
    extra lines are dropped and the last kept line ends with an ellipsis.
    """
    if not text:
        return []

    max_width = max(max_width, 1.0)
    lines: list[str] = []
    for para in text.splitlines():
        lines.extend(_wrap_paragraph(para, font, size, max_width))

    if max_lines is not None and len(lines) > max_lines:
        lines = lines[:max_lines]
        lines[-1] = fit_with_ellipsis(lines[-1], font, size, max_width)
    return lines
