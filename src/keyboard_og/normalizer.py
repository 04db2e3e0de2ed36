"""Turn decoded form fields into a render-ready RenderRequest."""

from __future__ import annotations

import base64
import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from keyboard_og.config import (
    DEFAULT_COLOR_SCHEME,
    FIELD_COLOR_SCHEME,
    FIELD_DESCRIPTION,
    FIELD_KEYBOARD_NAME,
    FIELD_KEYCAPS,
    FIELD_LAYOUT,
    FIELD_OWNER,
    FIELD_PHOTO,
    FIELD_SWITCHES,
)
from keyboard_og.errors import InputError
from keyboard_og.forms import FormData, UploadedFile
from keyboard_og.schema import COLOR_SCHEMES, ColorScheme, RenderRequest

logger = logging.getLogger(__name__)

GENERIC_CONTENT_TYPES = {"", "application/octet-stream", "binary/octet-stream"}


def resolve_color_scheme(key: str | None) -> tuple[str, ColorScheme]:
    """Look up a colour scheme by key.

    Matching is case-insensitive. Missing and unrecognised keys both resolve
    to the default scheme; an unrecognised key is logged.
    """
    normalized = (key or "").strip().lower()
    if not normalized:
        return DEFAULT_COLOR_SCHEME, COLOR_SCHEMES[DEFAULT_COLOR_SCHEME]
    if normalized not in COLOR_SCHEMES:
        logger.warning(
            "Unknown color scheme '%s', using '%s'", normalized, DEFAULT_COLOR_SCHEME
        )
        return DEFAULT_COLOR_SCHEME, COLOR_SCHEMES[DEFAULT_COLOR_SCHEME]
    return normalized, COLOR_SCHEMES[normalized]


def sniff_image_type(data: bytes) -> str:
    """Return the MIME type Pillow detects for ``data``.

    Raises InputError when the bytes are not a readable image.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as e:
        msg = "Uploaded photo is not a readable image"
        raise InputError(msg) from e

    if not fmt:
        msg = "Uploaded photo is not a readable image"
        raise InputError(msg)
    return Image.MIME.get(fmt, f"image/{fmt.lower()}")


def photo_data_uri(data: bytes, mime: str) -> str:
    """Encode bytes as ``data:<mime>;base64,<content>``."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def _photo_to_data_uri(upload: UploadedFile | None) -> str | None:
    if upload is None or upload.size == 0:
        return None

    sniffed = sniff_image_type(upload.data)
    declared = upload.content_type.split(";", 1)[0].strip().lower()
    mime = sniffed if declared in GENERIC_CONTENT_TYPES else declared
    logger.info("Embedding photo '%s' (%s, %d bytes)", upload.filename, mime, upload.size)
    return photo_data_uri(upload.data, mime)


def normalize_form(form: FormData) -> RenderRequest:
    """Extract and default every field the renderer needs."""
    scheme_key, _ = resolve_color_scheme(form.get(FIELD_COLOR_SCHEME))

    return RenderRequest(
        keyboard_name=form.get(FIELD_KEYBOARD_NAME),
        owner=form.get(FIELD_OWNER),
        switches=form.get(FIELD_SWITCHES),
        keycaps=form.get(FIELD_KEYCAPS),
        layout=form.get(FIELD_LAYOUT),
        description=form.get(FIELD_DESCRIPTION),
        color_scheme=scheme_key,
        photo_data_uri=_photo_to_data_uri(form.get_file(FIELD_PHOTO)),
    )
