"""CLI entry point for keyboard-og - render keyboard-build OG images."""

from __future__ import annotations

import logging
import sys
from io import BytesIO
from pathlib import Path

import click

from keyboard_og.cli_helpers import (
    _build_form,
    _build_settings,
    shared_card_options,
    shared_font_options,
)
from keyboard_og.errors import OgImageError


@click.group()
@click.version_option(version="0.1.0", prog_name="keyboard-og")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def cli(verbose: bool):
    """Render Open Graph preview images for keyboard builds."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


# -- render ----------------------------------------------------------------------------


@cli.command()
@click.option(
    "-o", "--output", type=click.Path(dir_okay=False), default="og.png", help="Output PNG path"
)
@shared_card_options
@shared_font_options
def render(output, **opts):
    """Render a card to a 1748x1240 PNG."""
    from PIL import Image

    from keyboard_og.pipeline import render_form

    try:
        settings = _build_settings(opts)
        png = render_form(_build_form(opts), settings)
    except (OgImageError, ValueError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    Path(output).write_bytes(png)
    with Image.open(BytesIO(png)) as img:
        width, height = img.size
    click.secho(f"Wrote {output}", fg="green")
    click.echo(f"  Size: {width}x{height}, {len(png)} bytes")
    click.echo(f"  Fonts: {settings.font_source} ({settings.font_family})")


# -- svg -------------------------------------------------------------------------------


@cli.command()
@click.option(
    "-o", "--output", type=click.Path(dir_okay=False), default="og.svg", help="Output SVG path"
)
@shared_card_options
@shared_font_options
def svg(output, **opts):
    """Write the intermediate SVG instead of a PNG."""
    from keyboard_og.normalizer import normalize_form
    from keyboard_og.pipeline import render_request_svg

    try:
        settings = _build_settings(opts)
        document = render_request_svg(normalize_form(_build_form(opts)), settings)
    except (OgImageError, ValueError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    Path(output).write_text(document, encoding="utf-8")
    click.secho(f"Wrote {output}", fg="green")
    click.echo(f"  {len(document)} characters")


# -- fonts -----------------------------------------------------------------------------


@cli.command()
@shared_font_options
def fonts(**opts):
    """Show the configured font source and check that both weights resolve."""
    from keyboard_og.fonts import acquire_fonts
    from keyboard_og.schema import RenderRequest

    try:
        settings = _build_settings(opts)
    except ValueError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    click.echo(f"Source:  {settings.font_source}")
    click.echo(f"Family:  {settings.font_family}")
    if settings.font_source == "local":
        click.echo(f"Dir:     {Path(settings.fonts_dir).resolve()}")
        click.echo(f"Files:   {settings.font_regular}, {settings.font_bold}")
    click.echo(f"Subset:  {'yes' if settings.subset else 'no'}")
    click.echo(f"Timeout: {settings.font_timeout:g}s")

    try:
        assets = acquire_fonts(RenderRequest(), settings)
    except OgImageError as e:
        click.secho(f"\nFont check failed: {e}", fg="red", err=True)
        sys.exit(1)

    click.echo()
    for asset in assets:
        click.echo(f"  {asset.name} {asset.weight}: {len(asset.data)} bytes")
    click.secho("Fonts OK", fg="green")
