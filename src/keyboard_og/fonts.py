"""Font acquisition: bundled files or the Google Fonts CSS API, plus subsetting.

Remote fonts are resolved in two requests: the css2 stylesheet for a
family/weight (scoped with ``text=`` to the characters actually drawn), then
the font file whose URL the stylesheet embeds. Google serves plain TrueType
to clients that do not advertise woff2 support, which is what the layout
engine reads.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.parse import quote, quote_plus
from urllib.request import Request, urlopen

from fontTools import subset
from fontTools.ttLib import TTFont, TTLibError

from keyboard_og.config import (
    ELLIPSIS,
    FONT_WEIGHT_BOLD,
    FONT_WEIGHT_REGULAR,
    GOOGLE_FONTS_CSS_URL,
    GOOGLE_FONTS_FALLBACK_SUBSET,
    DETAIL_ROW_LABELS,
    Settings,
)
from keyboard_og.errors import FontResolutionError, UpstreamError
from keyboard_og.schema import RenderRequest

logger = logging.getLogger(__name__)

STYLESHEET_FONT_URL_RE = re.compile(r"src: url\((.+?)\) format\('(opentype|truetype)'\)")
USER_AGENT = "keyboard-og/0.1"


@dataclass(frozen=True)
class FontAsset:
    """One weight of the display typeface, as raw font-file bytes."""

    name: str
    weight: int
    data: bytes
    style: str = "normal"


def collect_text(request: RenderRequest) -> str:
    """Distinct characters the image can draw, in first-seen order.

    Covers every non-empty text field, the labels of the detail rows that will
    be shown, and the ellipsis used when text is clamped.
    """
    parts = list(request.text_fields())
    for attr, label in DETAIL_ROW_LABELS:
        if getattr(request, attr):
            parts.append(label)
    parts.append(ELLIPSIS)
    return "".join(dict.fromkeys("".join(parts)))


# ---------------------------------------------------------------------------
# Google Fonts
# ---------------------------------------------------------------------------


def build_stylesheet_url(family: str, weight: int, text: str = "") -> str:
    """css2 URL for one family/weight, scoped to ``text`` when given."""
    query = f"family={quote_plus(family)}:wght@{weight}"
    if text:
        query += f"&text={quote(text, safe='')}"
    else:
        query += f"&subset={GOOGLE_FONTS_FALLBACK_SUBSET}"
    return f"{GOOGLE_FONTS_CSS_URL}?{query}"


def extract_font_url(css: str) -> str:
    """Return the first TrueType/OpenType ``src: url(...)`` in a stylesheet."""
    match = STYLESHEET_FONT_URL_RE.search(css)
    if not match:
        msg = "Failed to resolve font from stylesheet"
        raise FontResolutionError(msg)
    return match.group(1).strip().strip("'\"")


def _http_get(url: str, timeout: float) -> bytes:
    req = Request(url, method="GET")
    req.add_header("User-Agent", USER_AGENT)
    try:
        with urlopen(req, timeout=timeout) as resp:  # noqa: S310
            return resp.read()
    except HTTPError as e:
        msg = f"Font service returned HTTP {e.code} for {url}"
        raise UpstreamError(msg) from e
    except (URLError, TimeoutError, OSError) as e:
        reason = getattr(e, "reason", e)
        msg = f"Could not reach font service: {reason}"
        raise UpstreamError(msg) from e


def fetch_google_font(family: str, weight: int, text: str = "", timeout: float = 10.0) -> bytes:
    """Fetch one weight of a Google Fonts family as font-file bytes."""
    css_url = build_stylesheet_url(family, weight, text)
    css = _http_get(css_url, timeout).decode("utf-8", errors="replace")
    font_url = extract_font_url(css)
    data = _http_get(font_url, timeout)
    logger.info("Fetched %s %d from Google Fonts (%d bytes)", family, weight, len(data))
    return data


# ---------------------------------------------------------------------------
# Local fonts and subsetting
# ---------------------------------------------------------------------------


def load_local_font(fonts_dir: str, filename: str) -> bytes:
    """Read a bundled font file from ``fonts_dir``."""
    if not filename or ".." in filename or "/" in filename:
        msg = f"Invalid font filename: '{filename}'"
        raise FontResolutionError(msg)

    font_path = Path(fonts_dir) / filename
    if not font_path.is_file():
        msg = f"Font not found: {font_path}"
        raise FontResolutionError(msg)
    return font_path.read_bytes()


def subset_font(data: bytes, text: str) -> bytes:
    """Shrink a font to the glyphs needed for ``text``."""
    options = subset.Options()
    options.notdef_outline = True
    options.layout_features = ["*"]

    try:
        font = TTFont(BytesIO(data), fontNumber=0)
    except TTLibError as e:
        msg = f"Could not read font for subsetting: {e}"
        raise FontResolutionError(msg) from e

    try:
        subsetter = subset.Subsetter(options=options)
        subsetter.populate(text=text)
        subsetter.subset(font)
        out = BytesIO()
        font.save(out)
    except TTLibError as e:
        msg = f"Font subsetting failed: {e}"
        raise FontResolutionError(msg) from e
    finally:
        font.close()

    result = out.getvalue()
    logger.debug("Subset font to %d chars: %d -> %d bytes", len(text), len(data), len(result))
    return result


def acquire_fonts(request: RenderRequest, settings: Settings) -> list[FontAsset]:
    """Obtain the regular (400) and bold (700) weights for a request."""
    t0 = time.monotonic()
    text = collect_text(request) if settings.subset else ""

    if settings.font_source == "local":
        regular = load_local_font(settings.fonts_dir, settings.font_regular)
        bold = load_local_font(settings.fonts_dir, settings.font_bold)
        if text:
            regular = subset_font(regular, text)
            bold = subset_font(bold, text)
    else:
        regular = fetch_google_font(
            settings.font_family, FONT_WEIGHT_REGULAR, text, settings.font_timeout
        )
        bold = fetch_google_font(
            settings.font_family, FONT_WEIGHT_BOLD, text, settings.font_timeout
        )

    logger.info(
        "Acquired fonts from %s in %.2fs (%d + %d bytes)",
        settings.font_source,
        time.monotonic() - t0,
        len(regular),
        len(bold),
    )
    return [
        FontAsset(name=settings.font_family, weight=FONT_WEIGHT_REGULAR, data=regular),
        FontAsset(name=settings.font_family, weight=FONT_WEIGHT_BOLD, data=bold),
    ]
