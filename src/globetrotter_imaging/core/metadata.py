"""Metadata extraction for uploaded image buffers."""

from .error_handling import with_error_handling
from .exif import EXIF_PARSE_ERRORS, normalize_format_name, open_image, read_exif
from .logging_config import get_logger
from .models import ImageMetadata

logger = get_logger("metadata")


@with_error_handling
def extract_image_metadata(buffer: bytes) -> ImageMetadata:
    """
    Extract dimensions, format, byte size and EXIF fields from an image.

    The base properties must decode or a ``DecodeError`` is raised. EXIF
    parsing is best effort: a missing or damaged block leaves ``exif`` unset
    and the base metadata is still returned.

    Args:
        buffer: Raw image bytes

    Returns:
        ImageMetadata for the source image, dimensions as stored
    """
    img = open_image(buffer)
    with img:
        metadata = ImageMetadata(
            width=img.width,
            height=img.height,
            format=normalize_format_name(img.format),
            size=len(buffer),
        )

        try:
            metadata.exif = read_exif(img)
        except EXIF_PARSE_ERRORS as e:
            logger.warning(f"EXIF extraction failed: {e}")

    logger.debug(
        f"Extracted metadata: {metadata.width}x{metadata.height} "
        f"{metadata.format}, {metadata.size} bytes, exif={'yes' if metadata.exif else 'no'}"
    )
    return metadata
