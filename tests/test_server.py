"""Tests for the HTTP layer: serve.py routes and the shared /api/og flow."""

import json
import threading
import xml.etree.ElementTree as ET
from http.client import HTTPConnection
from http.server import BaseHTTPRequestHandler
from io import BytesIO

import pytest
from PIL import Image

import server_utils
from keyboard_og import pipeline
from keyboard_og.errors import InputError, RenderError
from keyboard_og.tree import iter_text
from server_utils import UNKNOWN_ERROR, handle_og_post, read_raw_body, text_error
from tests.conftest import encode_multipart, skip_no_cairo, skip_no_font


class FakeHandler:
    """Just enough of BaseHTTPRequestHandler for the response helpers."""

    def __init__(self, body=b"", headers=None):
        self.headers = dict(headers or {})
        self.rfile = BytesIO(body)
        self.wfile = BytesIO()
        self.client_address = ("127.0.0.1", 50000)
        self.status = None
        self.sent_headers = {}

    def send_response(self, status):
        self.status = status

    def send_header(self, key, value):
        self.sent_headers[key] = value

    def end_headers(self):
        pass


ALICE_FORM = {
    "keyboardName": "Alice's Board",
    "owner": "Alice",
    "colorScheme": "purple",
    "switches": "Gateron Milky Yellow",
}


def _post_handler(fields=None, files=None):
    body, ctype = encode_multipart(fields, files)
    return FakeHandler(body, {"Content-Type": ctype, "Content-Length": str(len(body))})


# ---------------------------------------------------------------------------
# Helpers (no socket)
# ---------------------------------------------------------------------------


class TestReadRawBody:
    def test_reads_declared_length(self):
        handler = FakeHandler(b"abcdef", {"Content-Length": "3"})
        assert read_raw_body(handler) == b"abc"

    def test_empty_raises(self):
        with pytest.raises(InputError, match="Empty body"):
            read_raw_body(FakeHandler())

    def test_bad_length_raises(self):
        with pytest.raises(InputError, match="Invalid Content-Length"):
            read_raw_body(FakeHandler(b"x", {"Content-Length": "abc"}))

    def test_too_large_raises(self):
        with pytest.raises(InputError, match="too large"):
            read_raw_body(FakeHandler(b"x" * 20, {"Content-Length": "20"}), max_size=10)


class TestTextError:
    def test_message_body(self):
        handler = FakeHandler()
        text_error(handler, "Font not found: x.ttf")
        assert handler.status == 500
        assert handler.wfile.getvalue() == b"Font not found: x.ttf"
        assert handler.sent_headers["Content-Type"].startswith("text/plain")

    def test_empty_message_uses_fallback(self):
        handler = FakeHandler()
        text_error(handler, "")
        assert handler.wfile.getvalue().decode() == UNKNOWN_ERROR


class TestHandleOgPost:
    def test_success_sends_png(self, monkeypatch):
        monkeypatch.setattr(server_utils, "render_form", lambda form, settings: b"PNGDATA")
        handler = _post_handler({"keyboardName": "Corne"})
        handle_og_post(handler)
        assert handler.status == 200
        assert handler.sent_headers["Content-Type"] == "image/png"
        assert handler.sent_headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
        assert handler.sent_headers["Access-Control-Allow-Origin"] == "*"
        assert handler.wfile.getvalue() == b"PNGDATA"

    def test_form_reaches_renderer(self, monkeypatch):
        seen = {}

        def fake_render(form, settings):
            seen["name"] = form.get("keyboardName")
            seen["settings"] = settings
            return b"PNG"

        monkeypatch.setattr(server_utils, "render_form", fake_render)
        handle_og_post(_post_handler({"keyboardName": "Lily58"}), settings="cfg")
        assert seen == {"name": "Lily58", "settings": "cfg"}

    def test_render_error_is_500_with_message(self, monkeypatch):
        def failing(form, settings):
            raise RenderError("Rasterization failed: boom")

        monkeypatch.setattr(server_utils, "render_form", failing)
        handler = _post_handler()
        handle_og_post(handler)
        assert handler.status == 500
        assert handler.wfile.getvalue() == b"Rasterization failed: boom"

    def test_unexpected_error_without_message(self, monkeypatch):
        def failing(form, settings):
            raise RuntimeError()

        monkeypatch.setattr(server_utils, "render_form", failing)
        handler = _post_handler()
        handle_og_post(handler)
        assert handler.status == 500
        assert handler.wfile.getvalue().decode() == UNKNOWN_ERROR

    def test_wrong_content_type_is_500(self):
        handler = FakeHandler(b"{}", {"Content-Type": "application/json", "Content-Length": "2"})
        handle_og_post(handler)
        assert handler.status == 500
        assert b"multipart/form-data" in handler.wfile.getvalue()


@skip_no_font
class TestAliceCard:
    """The purple card with one detail row, rendered through the handler."""

    @pytest.fixture()
    def captured(self, monkeypatch):
        seen = {}
        build = pipeline.build_visual_tree

        def capture_tree(request, scheme=None):
            tree = build(request, scheme)
            seen["text"] = iter_text(tree)
            return tree

        def capture_svg(svg, width):
            seen["svg"] = svg
            return b"\x89PNG-fake"

        monkeypatch.setattr(pipeline, "build_visual_tree", capture_tree)
        monkeypatch.setattr(pipeline, "svg_to_png", capture_svg)
        return seen

    def test_response_headers(self, captured, local_settings):
        handler = _post_handler(ALICE_FORM)
        handle_og_post(handler, local_settings)
        assert handler.status == 200
        assert handler.sent_headers["Content-Type"] == "image/png"
        assert handler.sent_headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
        assert handler.wfile.getvalue() == b"\x89PNG-fake"

    def test_text_lines(self, captured, local_settings):
        handle_og_post(_post_handler(ALICE_FORM), local_settings)
        assert captured["text"] == ["Alice's Board", "Alice", "Switches: ", "Gateron Milky Yellow"]

    def test_purple_fills_and_no_image(self, captured, local_settings):
        handle_og_post(_post_handler(ALICE_FORM), local_settings)
        svg = captured["svg"]
        assert "<image" not in svg
        root = ET.fromstring(svg)
        fills = {p.get("fill") for p in root.iter("{http://www.w3.org/2000/svg}path")}
        assert "#8b5cf6" in fills
        assert "#7c3aed" in fills


# ---------------------------------------------------------------------------
# serve.py over a real socket
# ---------------------------------------------------------------------------


@pytest.fixture()
def server(local_settings):
    from serve import make_server

    srv = make_server("127.0.0.1", 0, local_settings)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield srv
    srv.shutdown()
    srv.server_close()


def _request(srv, method, path, body=None, headers=None):
    conn = HTTPConnection("127.0.0.1", srv.server_address[1], timeout=60)
    try:
        conn.request(method, path, body=body, headers=headers or {})
        resp = conn.getresponse()
        return resp.status, dict(resp.getheaders()), resp.read()
    finally:
        conn.close()


@skip_no_cairo
class TestServeRoutes:
    def test_healthz(self, server):
        status, headers, body = _request(server, "GET", "/healthz")
        assert status == 200
        assert json.loads(body) == {"ok": True, "rasterizer": True}
        assert headers["X-Content-Type-Options"] == "nosniff"

    def test_unknown_path_404(self, server):
        assert _request(server, "GET", "/nope")[0] == 404
        assert _request(server, "POST", "/api/other", body=b"x")[0] == 404

    def test_preflight(self, server):
        status, headers, _ = _request(server, "OPTIONS", "/api/og")
        assert status == 204
        assert headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"

    def test_bad_body_is_500_text(self, server):
        status, headers, body = _request(
            server, "POST", "/api/og", body=b"hello", headers={"Content-Type": "text/plain"}
        )
        assert status == 500
        assert headers["Content-Type"].startswith("text/plain")
        assert b"expected multipart/form-data" in body

    @skip_no_font
    def test_render_png(self, server):
        body, ctype = encode_multipart(ALICE_FORM)
        status, headers, png = _request(
            server, "POST", "/api/og?v=1", body=body, headers={"Content-Type": ctype}
        )
        assert status == 200
        assert headers["Content-Type"] == "image/png"
        assert headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
        with Image.open(BytesIO(png)) as img:
            assert img.size == (1748, 1240)


class TestServerlessHandler:
    def test_handler_class(self):
        from api.og import handler

        assert issubclass(handler, BaseHTTPRequestHandler)
        assert hasattr(handler, "do_POST")
        assert hasattr(handler, "do_OPTIONS")
