"""Shared utilities for serve.py and the serverless API handler.

Consolidates the /api/og request flow (body reading, multipart decoding,
rendering) and the HTTP response helpers so both entry points answer
identically.
"""

from __future__ import annotations

import json
import logging
from http.server import BaseHTTPRequestHandler
from typing import Any

from keyboard_og.config import MAX_BODY_SIZE, Settings
from keyboard_og.errors import InputError
from keyboard_og.forms import parse_multipart
from keyboard_og.pipeline import render_form

logger = logging.getLogger("keyboard_og.server")

UNKNOWN_ERROR = "An unknown error occurred"
NO_CACHE = "no-cache, no-store, must-revalidate"


# ---------------------------------------------------------------------------
# HTTP helpers (work with any BaseHTTPRequestHandler subclass)
# ---------------------------------------------------------------------------


def cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def send_bytes(
    handler: BaseHTTPRequestHandler,
    body: bytes,
    content_type: str,
    status: int = 200,
    headers: dict[str, str] | None = None,
) -> None:
    handler.send_response(status)
    handler.send_header("Content-Type", content_type)
    handler.send_header("Content-Length", str(len(body)))
    for k, v in cors_headers().items():
        handler.send_header(k, v)
    if headers:
        for k, v in headers.items():
            handler.send_header(k, v)
    handler.end_headers()
    handler.wfile.write(body)


def png_response(handler: BaseHTTPRequestHandler, png: bytes) -> None:
    """Send rendered PNG bytes; output is per-request so caching is disabled."""
    send_bytes(handler, png, "image/png", headers={"Cache-Control": NO_CACHE})


def text_error(handler: BaseHTTPRequestHandler, message: str, status: int = 500) -> None:
    """Send a plain-text error body (the error message, or a fixed fallback)."""
    body = (message or UNKNOWN_ERROR).encode("utf-8")
    send_bytes(handler, body, "text/plain; charset=utf-8", status, {"Cache-Control": NO_CACHE})


def json_response(handler: BaseHTTPRequestHandler, data: Any, status: int = 200) -> None:
    send_bytes(handler, json.dumps(data).encode("utf-8"), "application/json", status)


def preflight_response(handler: BaseHTTPRequestHandler) -> None:
    """Answer a CORS preflight request."""
    handler.send_response(204)
    for k, v in cors_headers().items():
        handler.send_header(k, v)
    handler.end_headers()


def read_raw_body(handler: BaseHTTPRequestHandler, max_size: int = MAX_BODY_SIZE) -> bytes:
    """Read the request body as bytes, raising InputError when unusable."""
    raw_length = handler.headers.get("Content-Length", "0")
    try:
        length = int(raw_length)
    except ValueError as e:
        msg = f"Invalid Content-Length: '{raw_length}'"
        raise InputError(msg) from e

    if length > max_size or length < 0:
        msg = f"Payload too large ({length} bytes, limit {max_size})"
        raise InputError(msg)
    if length == 0:
        msg = "Empty body"
        raise InputError(msg)
    return handler.rfile.read(length)


# ---------------------------------------------------------------------------
# /api/og
# ---------------------------------------------------------------------------


def handle_og_post(handler: BaseHTTPRequestHandler, settings: Settings | None = None) -> None:
    """Decode the form, render the image, and answer with PNG or a 500."""
    try:
        body = read_raw_body(handler)
        form = parse_multipart(body, handler.headers.get("Content-Type"))
        png = render_form(form, settings)
    except InputError as e:
        logger.warning("Rejected OG request from %s: %s", handler.client_address[0], e)
        text_error(handler, str(e), 500)
        return
    except Exception as e:
        logger.exception("OG image rendering failed")
        text_error(handler, str(e), 500)
        return

    png_response(handler, png)
