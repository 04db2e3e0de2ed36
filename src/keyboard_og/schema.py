"""Pydantic v2 models for render requests and colour schemes."""

from __future__ import annotations

from types import MappingProxyType
from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from keyboard_og.config import (
    COLOR_SCHEME_HEX,
    DEFAULT_COLOR_SCHEME,
    DEFAULT_KEYBOARD_NAME,
    ELLIPSIS,
    MAX_DESCRIPTION_CHARS,
    MAX_NAME_CHARS,
    MAX_OWNER_CHARS,
    MAX_DETAIL_CHARS,
)

ColorSchemeKey = Literal["blue", "purple", "orange", "green", "red"]

_OPTIONAL_LIMITS = {
    "owner": MAX_OWNER_CHARS,
    "switches": MAX_DETAIL_CHARS,
    "keycaps": MAX_DETAIL_CHARS,
    "layout": MAX_DETAIL_CHARS,
    "description": MAX_DESCRIPTION_CHARS,
}


def truncate(text: str, limit: int) -> str:
    """Cut text to at most ``limit`` characters, ending with an ellipsis when cut."""
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + ELLIPSIS


class ColorScheme(BaseModel):
    """Three colours applied uniformly across the rendered image."""

    model_config = ConfigDict(frozen=True)

    primary: str
    secondary: str
    accent: str

    @field_validator("primary", "secondary", "accent")
    @classmethod
    def hex_color(cls, v: str) -> str:
        if len(v) != 7 or not v.startswith("#"):
            msg = f"Colour must be #rrggbb, got '{v}'"
            raise ValueError(msg)
        int(v[1:], 16)
        return v.lower()


COLOR_SCHEMES: MappingProxyType[str, ColorScheme] = MappingProxyType(
    {key: ColorScheme(**colors) for key, colors in COLOR_SCHEME_HEX.items()}
)


class RenderRequest(BaseModel):
    """Fully defaulted, render-ready values for one image."""

    model_config = ConfigDict(frozen=True)

    keyboard_name: str = DEFAULT_KEYBOARD_NAME
    owner: str | None = None
    switches: str | None = None
    keycaps: str | None = None
    layout: str | None = None
    description: str | None = None
    color_scheme: ColorSchemeKey = DEFAULT_COLOR_SCHEME
    photo_data_uri: str | None = None

    @field_validator("keyboard_name", mode="before")
    @classmethod
    def default_name(cls, v: str | None) -> str:
        text = (v or "").strip()
        if not text:
            return DEFAULT_KEYBOARD_NAME
        return truncate(text, MAX_NAME_CHARS)

    @field_validator("owner", "switches", "keycaps", "layout", "description", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None, info: ValidationInfo) -> str | None:
        text = (v or "").strip()
        if not text:
            return None
        return truncate(text, _OPTIONAL_LIMITS[info.field_name])

    @field_validator("photo_data_uri")
    @classmethod
    def data_uri_only(cls, v: str | None) -> str | None:
        if v is not None and not v.startswith("data:"):
            msg = "photo_data_uri must be a data: URI"
            raise ValueError(msg)
        return v

    @property
    def scheme(self) -> ColorScheme:
        return COLOR_SCHEMES[self.color_scheme]

    def text_fields(self) -> list[str]:
        """Non-empty text values in display order."""
        values = [
            self.keyboard_name,
            self.owner,
            self.switches,
            self.keycaps,
            self.layout,
            self.description,
        ]
        return [v for v in values if v]
