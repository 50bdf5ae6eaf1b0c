"""Resize, re-encode, convert and watermark image buffers."""

import io
from typing import Any, Dict, Optional, Tuple, Union

from PIL import Image, ImageDraw, ImageFont, ImageOps

from .error_handling import with_error_handling
from .exceptions import ConfigurationError, UnsupportedFormatError
from .exif import auto_orient, normalize_format_name, open_image, oriented_size
from .logging_config import get_logger
from .models import ProcessOptions, WatermarkOptions, WebOptimizeOptions

logger = get_logger("processing")

# canonical name -> (Pillow format, content type)
ENCODERS: Dict[str, Tuple[str, str]] = {
    "jpeg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
    "webp": ("WEBP", "image/webp"),
    "avif": ("AVIF", "image/avif"),
    "tiff": ("TIFF", "image/tiff"),
    "gif": ("GIF", "image/gif"),
}

# Targets accepted by process_image and convert_format
SUPPORTED_FORMATS = ("jpeg", "jpg", "png", "webp", "avif", "tiff")

# position/gravity -> ImageOps.fit centering
POSITION_CENTERING: Dict[str, Tuple[float, float]] = {
    "center": (0.5, 0.5),
    "centre": (0.5, 0.5),
    "top": (0.5, 0.0),
    "north": (0.5, 0.0),
    "bottom": (0.5, 1.0),
    "south": (0.5, 1.0),
    "left": (0.0, 0.5),
    "west": (0.0, 0.5),
    "right": (1.0, 0.5),
    "east": (1.0, 0.5),
    "left top": (0.0, 0.0),
    "northwest": (0.0, 0.0),
    "right top": (1.0, 0.0),
    "northeast": (1.0, 0.0),
    "left bottom": (0.0, 1.0),
    "southwest": (0.0, 1.0),
    "right bottom": (1.0, 1.0),
    "southeast": (1.0, 1.0),
}

WATERMARK_ANCHORS: Dict[str, Tuple[str, str]] = {
    "topLeft": ("left", "top"),
    "top": ("center", "top"),
    "topRight": ("right", "top"),
    "left": ("left", "center"),
    "center": ("center", "center"),
    "right": ("right", "center"),
    "bottomLeft": ("left", "bottom"),
    "bottom": ("center", "bottom"),
    "bottomRight": ("right", "bottom"),
}

WATERMARK_IMAGE_BOX = (100, 50)
WATERMARK_FONT_SIZE = 24
DEFAULT_ENCODE_QUALITY = 80


def resolve_output_format(format_name: str) -> str:
    """
    Map a requested target format to its canonical encoder name.

    Raises:
        UnsupportedFormatError: If the target is not supported, or the
            installed Pillow build cannot write it.
    """
    name = (format_name or "").strip().lower()
    if name not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(format_name)
    name = normalize_format_name(name)

    Image.init()
    if ENCODERS[name][0] not in Image.SAVE:
        raise UnsupportedFormatError(format_name, "encoder not available in this Pillow build")
    return name


def content_type_for(format_name: str) -> str:
    """Return the MIME type for a canonical format name."""
    return ENCODERS.get(normalize_format_name(format_name), ("", "application/octet-stream"))[1]


def _prepare_mode(img: Image.Image, format_name: str) -> Image.Image:
    if format_name == "jpeg":
        if img.mode not in ("RGB", "L", "CMYK"):
            return img.convert("RGB")
    elif format_name in ("webp", "avif"):
        if img.mode not in ("RGB", "RGBA"):
            return img.convert("RGBA" if "A" in img.getbands() or img.mode == "P" else "RGB")
    elif format_name == "png":
        if img.mode == "CMYK":
            return img.convert("RGB")
    return img


def encode_image(
    img: Image.Image,
    format_name: str,
    quality: Optional[int] = None,
    options: Optional[Dict[str, Any]] = None,
) -> bytes:
    """Encode a Pillow image into ``format_name`` and return the bytes."""
    pil_format = ENCODERS[format_name][0]
    save_kwargs: Dict[str, Any] = dict(options or {})

    if quality is not None and format_name in ("jpeg", "webp", "avif"):
        save_kwargs.setdefault("quality", quality)
    if format_name == "png":
        save_kwargs.setdefault("optimize", True)

    output_stream = io.BytesIO()
    _prepare_mode(img, format_name).save(output_stream, format=pil_format, **save_kwargs)
    return output_stream.getvalue()


def _scaled(size: int, ratio: float) -> int:
    return max(1, round(size * ratio))


def resize_image(
    img: Image.Image,
    width: Optional[int],
    height: Optional[int],
    fit: str = "cover",
    position: str = "center",
) -> Image.Image:
    """
    Resize an image into a target box without ever enlarging it.

    ``cover`` crops to fill the box around ``position``; ``contain`` and
    ``inside`` scale to fit entirely inside the box; ``fill`` stretches to
    the box, ignoring aspect ratio.
    """
    if width is None and height is None:
        return img

    src_width, src_height = img.size
    if width is None:
        width = _scaled(src_width, height / src_height)
    if height is None:
        height = _scaled(src_height, width / src_width)

    if fit == "cover":
        centering = POSITION_CENTERING.get(position.lower())
        if centering is None:
            raise ConfigurationError(f"Unknown crop position: {position}")
        box = (min(width, src_width), min(height, src_height))
        if box == img.size:
            return img
        return ImageOps.fit(img, box, method=Image.Resampling.LANCZOS, centering=centering)

    if fit in ("contain", "inside"):
        ratio = min(width / src_width, height / src_height, 1.0)
        if ratio >= 1.0:
            return img
        return img.resize(
            (_scaled(src_width, ratio), _scaled(src_height, ratio)),
            Image.Resampling.LANCZOS,
        )

    if fit == "fill":
        target = (min(width, src_width), min(height, src_height))
        if target == img.size:
            return img
        return img.resize(target, Image.Resampling.LANCZOS)

    raise ConfigurationError(f"Unknown fit mode: {fit}")


def render_image(buffer: bytes, options: ProcessOptions) -> Tuple[bytes, str, int, int]:
    """
    Auto-orient, resize and encode one buffer.

    Returns:
        Tuple of (encoded bytes, canonical format, width, height)
    """
    format_name = resolve_output_format(options.format)

    img = open_image(buffer)
    with img:
        oriented = auto_orient(img)
        if oriented.mode == "P":
            oriented = oriented.convert("RGBA")
        resized = resize_image(
            oriented, options.width, options.height, options.fit, options.position
        )
        data = encode_image(resized, format_name, quality=options.quality)
        return data, format_name, resized.width, resized.height


@with_error_handling
def process_image(buffer: bytes, options: Optional[ProcessOptions] = None) -> bytes:
    """
    Compress and resize an image for a given use case.

    Args:
        buffer: Original image bytes
        options: Target box, fit, position, format and quality

    Returns:
        Encoded image bytes
    """
    data, _, _, _ = render_image(buffer, options or ProcessOptions())
    return data


def create_thumbnail(buffer: bytes, size: int = 300) -> bytes:
    """Create a square, centre-cropped JPEG thumbnail."""
    return process_image(
        buffer, ProcessOptions(width=size, height=size, quality=70, format="jpeg")
    )


@with_error_handling
def optimize_for_web(buffer: bytes, options: Optional[WebOptimizeOptions] = None) -> bytes:
    """
    Re-encode an image for web delivery inside a bounding box.

    Sources larger than ``max_width`` x ``max_height`` are scaled by
    ``min(max_width / width, max_height / height)``, preserving aspect ratio.
    """
    opts = options or WebOptimizeOptions()
    resolve_output_format(opts.format)

    img = open_image(buffer)
    with img:
        width, height = oriented_size(img)

    if width > opts.max_width or height > opts.max_height:
        ratio = min(opts.max_width / width, opts.max_height / height)
        width = round(width * ratio)
        height = round(height * ratio)
        logger.debug(f"Scaling to {width}x{height} for web delivery")

    data, _, _, _ = render_image(
        buffer,
        ProcessOptions(
            width=max(1, width),
            height=max(1, height),
            quality=opts.quality,
            format=opts.format,
            fit="contain",
        ),
    )
    return data


@with_error_handling
def convert_format(
    buffer: bytes, format: str, options: Optional[Dict[str, Any]] = None
) -> bytes:
    """
    Convert an image to another format.

    Args:
        buffer: Original image bytes
        format: Target format (jpeg, jpg, png, webp, avif or tiff)
        options: Format-specific encoder options passed to Pillow

    Raises:
        UnsupportedFormatError: For any other target, before decoding
    """
    format_name = resolve_output_format(format)

    img = open_image(buffer)
    with img:
        img.load()
        return encode_image(img, format_name, options=options)


def _opacity(overlay: Image.Image, opacity: float) -> Image.Image:
    alpha = overlay.getchannel("A").point(lambda value: round(value * opacity))
    overlay.putalpha(alpha)
    return overlay


def _text_overlay(text: str, opacity: float) -> Image.Image:
    font = ImageFont.load_default(size=WATERMARK_FONT_SIZE)
    left, top, right, bottom = ImageDraw.Draw(Image.new("RGBA", (1, 1))).textbbox(
        (0, 0), text, font=font
    )
    overlay = Image.new("RGBA", (right - left + 20, bottom - top + 20), (0, 0, 0, 0))
    ImageDraw.Draw(overlay).text(
        (10 - left, 10 - top), text, font=font, fill=(255, 255, 255, round(255 * opacity))
    )
    return overlay


def _image_overlay(buffer: bytes, opacity: float) -> Image.Image:
    img = open_image(buffer)
    with img:
        overlay = auto_orient(img).convert("RGBA")
    overlay.thumbnail(WATERMARK_IMAGE_BOX, Image.Resampling.LANCZOS)
    return _opacity(overlay, opacity)


def watermark_offset(
    base_size: Tuple[int, int],
    overlay_size: Tuple[int, int],
    position: str,
    margin: int,
) -> Tuple[int, int]:
    """Top-left corner for an overlay anchored at ``position``."""
    horizontal, vertical = WATERMARK_ANCHORS[position]

    def _axis(anchor: str, outer: int, inner: int) -> int:
        if anchor in ("left", "top"):
            offset = margin
        elif anchor == "center":
            offset = (outer - inner) // 2
        else:
            offset = outer - inner - margin
        return max(0, min(offset, outer - inner))

    return (
        _axis(horizontal, base_size[0], overlay_size[0]),
        _axis(vertical, base_size[1], overlay_size[1]),
    )


@with_error_handling
def add_watermark(
    buffer: bytes,
    watermark: Union[str, bytes],
    options: Optional[WatermarkOptions] = None,
) -> bytes:
    """
    Overlay a text or image watermark.

    Args:
        buffer: Original image bytes
        watermark: Text to draw, or image bytes to composite
        options: Position, opacity and margin

    Returns:
        Watermarked image bytes in the source format (PNG when the source
        format cannot be written)
    """
    opts = options or WatermarkOptions()

    img = open_image(buffer)
    with img:
        source_format = normalize_format_name(img.format)
        base = auto_orient(img).convert("RGBA")

    if isinstance(watermark, str):
        overlay = _text_overlay(watermark, opts.opacity)
    else:
        overlay = _image_overlay(watermark, opts.opacity)

    if overlay.width > base.width or overlay.height > base.height:
        overlay.thumbnail(base.size, Image.Resampling.LANCZOS)

    base.alpha_composite(
        overlay, dest=watermark_offset(base.size, overlay.size, opts.position, opts.margin)
    )

    output_format = source_format if source_format in ENCODERS else "png"
    return encode_image(base, output_format, quality=DEFAULT_ENCODE_QUALITY)
