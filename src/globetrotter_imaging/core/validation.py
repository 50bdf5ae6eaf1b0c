"""Upload gate applied before any expensive processing."""

from typing import Optional

from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError
from .exif import normalize_format_name, open_image
from .logging_config import get_logger
from .models import ImageMetadata, ValidationPolicy, ValidationResult

logger = get_logger("validation")

INVALID_IMAGE_MESSAGE = "Invalid image file"


def _megabytes(size: int) -> str:
    return f"{size / (1024 * 1024):g}"


def _dimensions_exceeded(policy: ValidationPolicy) -> ValidationResult:
    return ValidationResult(
        valid=False,
        error=(
            "Image dimensions exceed maximum allowed size of "
            f"{policy.max_width}x{policy.max_height}"
        ),
    )


def _is_decompression_bomb(error: BaseException) -> bool:
    return isinstance(error, Image.DecompressionBombError) or isinstance(
        error.__cause__, Image.DecompressionBombError
    )


def validate_image(
    buffer: bytes, policy: Optional[ValidationPolicy] = None
) -> ValidationResult:
    """
    Check an upload against size, dimension and format limits.

    Checks run in order and stop at the first failure: byte size (before
    decoding), then dimensions, then format. A buffer that cannot be
    decoded is rejected as an invalid image file. A header declaring more
    pixels than Pillow will open is reported as a dimension failure.
    Rejections are returned, never raised.
    """
    policy = policy or ValidationPolicy()

    if len(buffer) > policy.max_size:
        return ValidationResult(
            valid=False,
            error=f"File size exceeds maximum allowed size of {_megabytes(policy.max_size)}MB",
        )

    try:
        img = open_image(buffer)
        with img:
            metadata = ImageMetadata(
                width=img.width,
                height=img.height,
                format=normalize_format_name(img.format),
                size=len(buffer),
            )
    except (DecodeError, UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        if _is_decompression_bomb(e):
            logger.info(f"Rejected oversized upload: {e}")
            return _dimensions_exceeded(policy)
        logger.info(f"Rejected upload: {e}")
        return ValidationResult(valid=False, error=INVALID_IMAGE_MESSAGE)

    if metadata.width > policy.max_width or metadata.height > policy.max_height:
        return _dimensions_exceeded(policy)

    if metadata.format not in policy.allowed_formats:
        return ValidationResult(
            valid=False,
            error=(
                f"Image format {metadata.format} is not allowed. "
                f"Allowed formats: {', '.join(policy.allowed_formats)}"
            ),
        )

    return ValidationResult(valid=True, metadata=metadata)
