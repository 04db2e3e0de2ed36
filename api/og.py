"""Vercel Serverless Function: POST /api/og

Renders a keyboard-build Open Graph image (1748x1240 PNG) from a
multipart/form-data body.
"""

import logging
import sys
from http.server import BaseHTTPRequestHandler
from pathlib import Path

# Add src/ and the project root to Python path so keyboard_og and server_utils import
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))
sys.path.insert(0, str(PROJECT_ROOT))

from keyboard_og.errors import RenderError  # noqa: E402
from keyboard_og.raster import init_rasterizer  # noqa: E402
from server_utils import handle_og_post, preflight_response  # noqa: E402

logger = logging.getLogger("keyboard_og.og")

# Warm the rasterizer on cold start; the first render retries on failure
try:
    init_rasterizer()
except RenderError:
    logger.exception("Rasterizer initialisation failed")


class handler(BaseHTTPRequestHandler):
    def do_POST(self):
        handle_og_post(self)

    def do_OPTIONS(self):
        preflight_response(self)
