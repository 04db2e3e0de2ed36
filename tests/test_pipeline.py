"""End-to-end tests: form fields in, PNG out."""

from io import BytesIO

import pytest
from PIL import Image

from keyboard_og import fonts
from keyboard_og.config import Settings
from keyboard_og.errors import FontResolutionError, InputError, UpstreamError
from keyboard_og.forms import FormData, UploadedFile
from keyboard_og.pipeline import render_form, render_og_image, render_request_svg
from keyboard_og.schema import COLOR_SCHEMES, RenderRequest
from tests.conftest import hex_to_rgb, make_png, skip_no_cairo, skip_no_font


def _open(png: bytes) -> Image.Image:
    img = Image.open(BytesIO(png))
    img.load()
    return img.convert("RGB")


def _close_to(actual, expected, tolerance=3):
    return all(abs(a - e) <= tolerance for a, e in zip(actual, expected))


@skip_no_font
class TestRenderSvg:
    def test_svg_for_full_request(self, local_settings):
        req = RenderRequest(
            keyboard_name="Alice's Board",
            owner="Alice",
            switches="Gateron Yellow",
            color_scheme="purple",
        )
        svg = render_request_svg(req, local_settings)
        assert svg.startswith("<svg")
        assert 'width="1748"' in svg

    def test_missing_local_font_propagates(self, tmp_path):
        settings = Settings(font_source="local", fonts_dir=str(tmp_path))
        with pytest.raises(FontResolutionError):
            render_request_svg(RenderRequest(), settings)


class TestUpstreamFailure:
    def test_font_service_down(self, monkeypatch):
        def failing_fetch(family, weight, text, timeout):
            raise UpstreamError("Could not reach font service: timed out")

        monkeypatch.setattr(fonts, "fetch_google_font", failing_fetch)
        with pytest.raises(UpstreamError, match="timed out"):
            render_og_image(RenderRequest(), Settings())


@skip_no_font
@skip_no_cairo
class TestRenderOgImage:
    def test_minimal_form(self, local_settings):
        png = render_form(FormData(), local_settings)
        assert _open(png).size == (1748, 1240)

    def test_purple_card(self, local_settings):
        form = FormData(
            fields={
                "keyboardName": "Alice's Board",
                "owner": "Alice",
                "switches": "Gateron Yellow",
                "colorScheme": "purple",
            }
        )
        img = _open(render_form(form, local_settings))
        primary = hex_to_rgb(COLOR_SCHEMES["purple"].primary)

        assert img.size == (1748, 1240)
        assert _close_to(img.getpixel((10, 10)), primary)
        assert _close_to(img.getpixel((1700, 1235)), primary)

    def test_overlay_lightens_background(self, local_settings):
        img = _open(render_og_image(RenderRequest(color_scheme="orange"), local_settings))
        r, g, b = img.getpixel((40, 600))
        assert min(r, g, b) > 200

    def test_photo_tints_background(self, local_settings):
        red_photo = UploadedFile(
            filename="board.png", content_type="image/png", data=make_png((64, 48))
        )
        plain = _open(render_form(FormData(), local_settings))
        with_photo = _open(
            render_form(FormData(files={"keyboardPhoto": red_photo}), local_settings)
        )
        _, g_plain, _ = plain.getpixel((40, 600))
        r_photo, g_photo, _ = with_photo.getpixel((40, 600))
        assert g_photo < g_plain - 5
        assert r_photo > g_photo

    def test_very_long_description(self, local_settings):
        req = RenderRequest(keyboard_name="Corne", description="lorem ipsum " * 420)
        assert _open(render_og_image(req, local_settings)).size == (1748, 1240)

    def test_japanese_text_renders(self, local_settings):
        req = RenderRequest(keyboard_name="自作キーボード", owner="テスト")
        assert _open(render_og_image(req, local_settings)).size == (1748, 1240)

    def test_bad_photo_raises_input_error(self, local_settings):
        broken = UploadedFile(filename="a.png", content_type="image/png", data=b"nope")
        with pytest.raises(InputError):
            render_form(FormData(files={"keyboardPhoto": broken}), local_settings)
