"""Local HTTP server for keyboard-og.

Routes:
- POST    /api/og:   Render an OG image from a multipart/form-data body
- OPTIONS /api/og:   CORS preflight
- GET     /healthz:  Liveness and rasterizer readiness

Uses ThreadingHTTPServer so slow renders (remote font fetches) do not block
other requests.
"""

import logging
import os
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from keyboard_og.config import load_settings
from keyboard_og.raster import init_rasterizer, is_rasterizer_ready
from server_utils import handle_og_post, json_response, preflight_response

logger = logging.getLogger("keyboard_og.server")

OG_PATH = "/api/og"
HEALTH_PATH = "/healthz"


class OgServerHandler(BaseHTTPRequestHandler):
    """HTTP handler for the OG image API."""

    settings = None

    def _route(self) -> str:
        return self.path.split("?", 1)[0]

    def end_headers(self):
        self.send_header("X-Content-Type-Options", "nosniff")
        super().end_headers()

    def do_GET(self):
        if self._route() == HEALTH_PATH:
            json_response(self, {"ok": True, "rasterizer": is_rasterizer_ready()})
        else:
            self.send_error(404, "Not Found")

    def do_POST(self):
        if self._route() == OG_PATH:
            handle_og_post(self, self.settings)
        else:
            self.send_error(404, "Not Found")

    def do_OPTIONS(self):
        if self._route() == OG_PATH:
            preflight_response(self)
        else:
            self.send_error(404, "Not Found")

    def log_message(self, fmt, *args):
        sys.stderr.write(f"[serve] {fmt % args}\n")


def make_server(host: str = "127.0.0.1", port: int = 8042, settings=None) -> ThreadingHTTPServer:
    """Create (but do not start) a server with the rasterizer initialised."""
    init_rasterizer()
    handler = type("BoundOgServerHandler", (OgServerHandler,), {"settings": settings})
    return ThreadingHTTPServer((host, port), handler)


def run_server(host: str = "127.0.0.1", port: int = 8042, settings=None) -> None:
    settings = settings or load_settings()
    server = make_server(host, port, settings)
    print(f"keyboard-og server on http://{host}:{server.server_address[1]}")
    print(f"Endpoint:    POST http://{host}:{server.server_address[1]}{OG_PATH}")
    print(f"Font source: {settings.font_source}", end="")
    if settings.font_source == "local":
        print(f" ({os.path.abspath(settings.fonts_dir)}/)")
    else:
        print(f" ({settings.font_family})")
    print("Press Ctrl+C to stop\n")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down.")
    finally:
        server.server_close()


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8042
    run_server(port=port)


if __name__ == "__main__":
    main()
