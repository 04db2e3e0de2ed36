"""CLI helper functions, decorators, and option definitions for keyboard-og."""

from __future__ import annotations

import mimetypes
from dataclasses import replace
from pathlib import Path

import click

from keyboard_og.config import (
    COLOR_SCHEME_HEX,
    FIELD_COLOR_SCHEME,
    FIELD_DESCRIPTION,
    FIELD_KEYBOARD_NAME,
    FIELD_KEYCAPS,
    FIELD_LAYOUT,
    FIELD_OWNER,
    FIELD_PHOTO,
    FIELD_SWITCHES,
    FONT_SOURCES,
    Settings,
    load_settings,
)
from keyboard_og.forms import FormData, UploadedFile

# CLI option name -> form field name
_TEXT_OPTION_FIELDS = (
    ("name", FIELD_KEYBOARD_NAME),
    ("owner", FIELD_OWNER),
    ("switches", FIELD_SWITCHES),
    ("keycaps", FIELD_KEYCAPS),
    ("layout", FIELD_LAYOUT),
    ("color_scheme", FIELD_COLOR_SCHEME),
    ("description", FIELD_DESCRIPTION),
)


def shared_card_options(func):
    """Decorator that adds the card content options to a command."""
    options = [
        click.option("--name", default=None, help="Keyboard name (default: My Keyboard)"),
        click.option("--owner", default=None, help="Owner shown under the name"),
        click.option("--switches", default=None, help="Switches detail row"),
        click.option("--keycaps", default=None, help="Keycaps detail row"),
        click.option("--layout", default=None, help="Layout detail row"),
        click.option(
            "--color-scheme",
            type=click.Choice(sorted(COLOR_SCHEME_HEX), case_sensitive=False),
            default=None,
            help="Colour scheme (default: blue)",
        ),
        click.option("--description", default=None, help="Description paragraph"),
        click.option(
            "--photo",
            type=click.Path(exists=True, dir_okay=False),
            default=None,
            help="Background photo (PNG/JPEG/...)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def shared_font_options(func):
    """Decorator that adds font source overrides to a command."""
    options = [
        click.option(
            "--font-source",
            type=click.Choice(FONT_SOURCES),
            default=None,
            help="Where fonts come from (default: OG_FONT_SOURCE or google)",
        ),
        click.option(
            "--fonts-dir",
            type=click.Path(file_okay=False),
            default=None,
            help="Directory with bundled fonts (local source)",
        ),
        click.option("--regular", default=None, help="Regular (400) font file name"),
        click.option("--bold", default=None, help="Bold (700) font file name"),
        click.option("--no-subset", is_flag=True, help="Do not subset fonts to the card text"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_settings(opts: dict) -> Settings:
    """Environment settings with CLI overrides applied."""
    settings = load_settings()
    overrides = {}
    if opts.get("font_source"):
        overrides["font_source"] = opts["font_source"]
    if opts.get("fonts_dir"):
        overrides["fonts_dir"] = opts["fonts_dir"]
    if opts.get("regular"):
        overrides["font_regular"] = opts["regular"]
    if opts.get("bold"):
        overrides["font_bold"] = opts["bold"]
    if opts.get("no_subset"):
        overrides["subset"] = False
    return replace(settings, **overrides)


def _build_form(opts: dict) -> FormData:
    """Build the same FormData the HTTP endpoint would decode."""
    form = FormData()
    for option, field_name in _TEXT_OPTION_FIELDS:
        if opts.get(option) is not None:
            form.fields[field_name] = opts[option]

    photo = opts.get("photo")
    if photo:
        path = Path(photo)
        content_type, _ = mimetypes.guess_type(path.name)
        form.files[FIELD_PHOTO] = UploadedFile(
            filename=path.name,
            content_type=content_type or "",
            data=path.read_bytes(),
        )
    return form
