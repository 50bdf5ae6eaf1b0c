"""Tests for resize, optimize, convert and watermark operations."""

import io

import pytest
from PIL import Image

from globetrotter_imaging.core.exceptions import (
    ConfigurationError,
    DecodeError,
    UnsupportedFormatError,
)
from globetrotter_imaging.core.models import ProcessOptions, WatermarkOptions, WebOptimizeOptions
from globetrotter_imaging.core.processing import (
    add_watermark,
    content_type_for,
    convert_format,
    create_thumbnail,
    optimize_for_web,
    process_image,
    resize_image,
    resolve_output_format,
    watermark_offset,
)
from globetrotter_imaging.testing.fakes import create_exif_image, create_test_image

Image.init()
AVIF_AVAILABLE = "AVIF" in Image.SAVE


def _decode(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class TestResolveOutputFormat:
    """Tests for resolve_output_format and content_type_for."""

    @pytest.mark.parametrize(
        "requested, expected",
        [("jpeg", "jpeg"), ("JPG", "jpeg"), ("png", "png"), ("webp", "webp"), ("tiff", "tiff")],
    )
    def test_supported(self, requested, expected):
        assert resolve_output_format(requested) == expected

    @pytest.mark.parametrize("requested", ["bmp", "gif", "", "heic"])
    def test_unsupported(self, requested):
        with pytest.raises(UnsupportedFormatError):
            resolve_output_format(requested)

    def test_content_types(self):
        assert content_type_for("jpeg") == "image/jpeg"
        assert content_type_for("jpg") == "image/jpeg"
        assert content_type_for("webp") == "image/webp"
        assert content_type_for("bmp") == "application/octet-stream"


class TestResizeImage:
    """Tests for resize_image fit modes."""

    def test_cover_fills_box(self):
        img = Image.new("RGB", (400, 200))
        assert resize_image(img, 100, 100, "cover").size == (100, 100)

    def test_cover_never_enlarges(self):
        img = Image.new("RGB", (150, 80))
        resized = resize_image(img, 300, 300, "cover")
        assert resized.width <= 150 and resized.height <= 80

    def test_cover_position_selects_crop(self):
        # blue top-left quadrant on red
        img = _decode(create_test_image(200, 100, format="PNG")).convert("RGB")

        left = resize_image(img, 100, 100, "cover", "left")
        right = resize_image(img, 100, 100, "cover", "right")

        assert left.getpixel((10, 10))[2] > 200
        assert right.getpixel((90, 10))[0] > 200

    def test_contain_preserves_aspect_ratio(self):
        img = Image.new("RGB", (400, 200))
        assert resize_image(img, 100, 100, "contain").size == (100, 50)
        assert resize_image(img, 100, 100, "inside").size == (100, 50)

    def test_contain_never_enlarges(self):
        img = Image.new("RGB", (50, 20))
        assert resize_image(img, 500, 500, "inside") is img

    def test_fill_stretches(self):
        img = Image.new("RGB", (400, 200))
        assert resize_image(img, 100, 100, "fill").size == (100, 100)

    def test_single_dimension_keeps_ratio(self):
        img = Image.new("RGB", (400, 200))
        assert resize_image(img, 200, None, "cover").size == (200, 100)
        assert resize_image(img, None, 50, "inside").size == (100, 50)

    def test_no_box_returns_source(self):
        img = Image.new("RGB", (40, 20))
        assert resize_image(img, None, None) is img

    def test_unknown_position_raises(self):
        with pytest.raises(ConfigurationError):
            resize_image(Image.new("RGB", (400, 200)), 100, 100, "cover", "nowhere")

    def test_unknown_fit_raises(self):
        with pytest.raises(ConfigurationError):
            resize_image(Image.new("RGB", (400, 200)), 100, 100, "squash")


class TestProcessImage:
    """Tests for process_image and create_thumbnail."""

    def test_defaults_reencode_as_jpeg(self):
        data = process_image(create_test_image(64, 48, format="PNG"))
        img = _decode(data)
        assert img.format == "JPEG"
        assert img.size == (64, 48)

    def test_resize_to_webp(self):
        options = ProcessOptions(width=100, height=100, format="webp", quality=60)
        img = _decode(process_image(create_test_image(300, 200), options))
        assert img.format == "WEBP"
        assert img.size == (100, 100)

    def test_png_with_alpha_to_jpeg(self):
        buffer = create_test_image(40, 40, format="PNG", mode="RGBA")
        img = _decode(process_image(buffer, ProcessOptions(format="jpeg")))
        assert img.mode == "RGB"

    def test_auto_orients(self):
        buffer = create_exif_image(width=120, height=80, orientation=6)
        img = _decode(process_image(buffer, ProcessOptions(format="png")))
        assert img.size == (80, 120)

    def test_unsupported_format_raises(self):
        with pytest.raises(UnsupportedFormatError):
            process_image(create_test_image(), ProcessOptions(format="bmp"))

    def test_invalid_fit_rejected_by_options(self):
        with pytest.raises(ValueError):
            ProcessOptions(fit="stretch")

    def test_undecodable_raises(self):
        with pytest.raises(DecodeError):
            process_image(b"not an image")

    def test_thumbnail_is_square_jpeg(self):
        img = _decode(create_thumbnail(create_test_image(800, 600)))
        assert img.format == "JPEG"
        assert img.size == (300, 300)

    def test_thumbnail_custom_size(self):
        img = _decode(create_thumbnail(create_test_image(800, 600), size=64))
        assert img.size == (64, 64)

    @pytest.mark.skipif(not AVIF_AVAILABLE, reason="Pillow built without AVIF support")
    def test_avif_output(self):
        img = _decode(process_image(create_test_image(64, 64), ProcessOptions(format="avif")))
        assert img.format == "AVIF"


class TestOptimizeForWeb:
    """Tests for optimize_for_web."""

    def test_large_image_fits_box_with_ratio(self):
        img = _decode(optimize_for_web(create_test_image(4000, 2000)))

        assert img.format == "WEBP"
        assert img.width <= 1920 and img.height <= 1080
        assert img.size == (1920, 960)

    def test_tall_image_limited_by_height(self):
        options = WebOptimizeOptions(max_width=1920, max_height=1080, format="jpeg")
        img = _decode(optimize_for_web(create_test_image(1000, 2000), options))
        assert img.size == (540, 1080)

    def test_small_image_not_enlarged(self):
        img = _decode(optimize_for_web(create_test_image(300, 200)))
        assert img.size == (300, 200)

    def test_unsupported_format(self):
        with pytest.raises(UnsupportedFormatError):
            optimize_for_web(create_test_image(), WebOptimizeOptions(format="bmp"))


class TestConvertFormat:
    """Tests for convert_format."""

    @pytest.mark.parametrize(
        "target, pil_format", [("png", "PNG"), ("jpg", "JPEG"), ("webp", "WEBP"), ("tiff", "TIFF")]
    )
    def test_convert(self, target, pil_format):
        img = _decode(convert_format(create_test_image(30, 20), target))
        assert img.format == pil_format
        assert img.size == (30, 20)

    def test_encoder_options_passed_through(self):
        buffer = create_test_image(200, 200)
        low = convert_format(buffer, "jpeg", {"quality": 10})
        high = convert_format(buffer, "jpeg", {"quality": 95})
        assert len(low) < len(high)

    def test_bmp_rejected_before_decoding(self):
        with pytest.raises(UnsupportedFormatError, match="bmp"):
            convert_format(b"not even an image", "bmp")


class TestWatermark:
    """Tests for add_watermark and watermark_offset."""

    def test_offset_corners(self):
        assert watermark_offset((200, 100), (50, 20), "topLeft", 10) == (10, 10)
        assert watermark_offset((200, 100), (50, 20), "bottomRight", 10) == (140, 70)
        assert watermark_offset((200, 100), (50, 20), "center", 10) == (75, 40)
        assert watermark_offset((200, 100), (50, 20), "bottom", 10) == (75, 70)

    def test_offset_clamped_to_image(self):
        assert watermark_offset((40, 40), (30, 30), "bottomRight", 20) == (0, 0)

    def test_text_watermark_keeps_format_and_size(self):
        buffer = create_test_image(400, 300)

        data = add_watermark(buffer, "GlobeTrotter")

        img = _decode(data)
        assert img.format == "JPEG"
        assert img.size == (400, 300)
        assert data != buffer

    def test_text_watermark_changes_anchor_region(self):
        base = Image.new("RGB", (400, 300), (0, 0, 0))
        stream = io.BytesIO()
        base.save(stream, format="PNG")

        options = WatermarkOptions(position="topLeft", opacity=1.0, margin=0)
        img = _decode(add_watermark(stream.getvalue(), "XXXX", options)).convert("RGB")

        corner = img.crop((0, 0, 80, 50))
        assert max(pixel[0] for pixel in corner.getdata()) > 0
        assert img.getpixel((399, 299)) == (0, 0, 0)

    def test_image_watermark(self):
        buffer = create_test_image(300, 200, format="PNG")
        mark = create_test_image(400, 400, format="PNG")

        img = _decode(add_watermark(buffer, mark, WatermarkOptions(position="center")))

        assert img.format == "PNG"
        assert img.size == (300, 200)

    def test_zero_opacity_leaves_pixels(self):
        base = Image.new("RGB", (120, 80), (10, 20, 30))
        stream = io.BytesIO()
        base.save(stream, format="PNG")

        options = WatermarkOptions(opacity=0.0)
        img = _decode(add_watermark(stream.getvalue(), "hidden", options)).convert("RGB")

        assert set(img.getdata()) == {(10, 20, 30)}

    def test_invalid_position_rejected(self):
        with pytest.raises(ValueError):
            WatermarkOptions(position="middle")
