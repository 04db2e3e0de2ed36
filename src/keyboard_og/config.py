"""Constants and configuration for keyboard-og."""

from __future__ import annotations

import os
from dataclasses import dataclass
from types import MappingProxyType

# Output canvas (logical SVG units == output pixels)
CANVAS_WIDTH = 1748
CANVAS_HEIGHT = 1240

DEFAULT_KEYBOARD_NAME = "My Keyboard"
DEFAULT_COLOR_SCHEME = "blue"

# Raw colour table; see schema.COLOR_SCHEMES for the validated mapping
COLOR_SCHEME_HEX: MappingProxyType[str, dict[str, str]] = MappingProxyType(
    {
        "blue": {"primary": "#3b82f6", "secondary": "#1e40af", "accent": "#dbeafe"},
        "purple": {"primary": "#8b5cf6", "secondary": "#7c3aed", "accent": "#ede9fe"},
        "orange": {"primary": "#f97316", "secondary": "#ea580c", "accent": "#fed7aa"},
        "green": {"primary": "#10b981", "secondary": "#059669", "accent": "#d1fae5"},
        "red": {"primary": "#ef4444", "secondary": "#dc2626", "accent": "#fecaca"},
    }
)

# Form field names posted to /api/og
FIELD_KEYBOARD_NAME = "keyboardName"
FIELD_OWNER = "owner"
FIELD_SWITCHES = "switches"
FIELD_KEYCAPS = "keycaps"
FIELD_LAYOUT = "layout"
FIELD_COLOR_SCHEME = "colorScheme"
FIELD_DESCRIPTION = "description"
FIELD_PHOTO = "keyboardPhoto"

# Truncation limits (characters) applied before layout
MAX_NAME_CHARS = 80
MAX_OWNER_CHARS = 60
MAX_DETAIL_CHARS = 80
MAX_DESCRIPTION_CHARS = 400
ELLIPSIS = "…"

MAX_BODY_SIZE = 10 * 1024 * 1024  # 10MB

# Fonts
DEFAULT_FONT_FAMILY = "IBM Plex Sans JP"
DEFAULT_FONT_REGULAR = "IBMPlexSansJP-Regular.ttf"
DEFAULT_FONT_BOLD = "IBMPlexSansJP-Bold.ttf"
DEFAULT_FONTS_DIR = "public/fonts"
FONT_WEIGHT_REGULAR = 400
FONT_WEIGHT_BOLD = 700
FONT_SOURCES = ("google", "local")

GOOGLE_FONTS_CSS_URL = "https://fonts.googleapis.com/css2"
# Subset requested when there is no text to scope the font to
GOOGLE_FONTS_FALLBACK_SUBSET = "japanese"
DEFAULT_FONT_TIMEOUT = 10.0

# Detail rows shown under the owner line, in display order
DETAIL_ROW_LABELS = (
    ("switches", "Switches: "),
    ("keycaps", "Keycaps: "),
    ("layout", "Layout: "),
)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from the environment by ``load_settings``."""

    font_source: str = "google"
    fonts_dir: str = DEFAULT_FONTS_DIR
    font_family: str = DEFAULT_FONT_FAMILY
    font_regular: str = DEFAULT_FONT_REGULAR
    font_bold: str = DEFAULT_FONT_BOLD
    subset: bool = True
    font_timeout: float = DEFAULT_FONT_TIMEOUT


def load_settings() -> Settings:
    """Build Settings from OG_* environment variables."""
    source = os.environ.get("OG_FONT_SOURCE", "google").strip().lower()
    if source not in FONT_SOURCES:
        msg = f"OG_FONT_SOURCE must be one of {', '.join(FONT_SOURCES)}, got '{source}'"
        raise ValueError(msg)

    return Settings(
        font_source=source,
        fonts_dir=os.environ.get("OG_FONTS_DIR", DEFAULT_FONTS_DIR),
        font_family=os.environ.get("OG_FONT_FAMILY", DEFAULT_FONT_FAMILY),
        font_regular=os.environ.get("OG_FONT_REGULAR", DEFAULT_FONT_REGULAR),
        font_bold=os.environ.get("OG_FONT_BOLD", DEFAULT_FONT_BOLD),
        subset=_env_flag("OG_FONT_SUBSET", True),
        font_timeout=float(os.environ.get("OG_FONT_TIMEOUT", DEFAULT_FONT_TIMEOUT)),
    )
