"""Core image processing components for GlobeTrotter uploads."""

from .exceptions import (
    ConfigurationError,
    DecodeError,
    ImageProcessingError,
    ImagingError,
    StorageError,
    UnsupportedFormatError,
)
from .exif import convert_dms_to_dd
from .logging_config import get_logger, setup_logger
from .metadata import extract_image_metadata
from .models import (
    DEFAULT_SIZE_PRESETS,
    ExifData,
    GeoLocation,
    ImageMetadata,
    ProcessedVariant,
    ProcessOptions,
    SizePreset,
    StoredVariant,
    UploadResult,
    ValidationPolicy,
    ValidationResult,
    WatermarkOptions,
    WebOptimizeOptions,
)
from .processing import (
    add_watermark,
    convert_format,
    create_thumbnail,
    optimize_for_web,
    process_image,
)
from .validation import validate_image
from .variants import generate_multiple_sizes, generate_multiple_sizes_async

__all__ = [
    "DEFAULT_SIZE_PRESETS",
    "ExifData",
    "GeoLocation",
    "ImageMetadata",
    "ProcessedVariant",
    "ProcessOptions",
    "SizePreset",
    "StoredVariant",
    "UploadResult",
    "ValidationPolicy",
    "ValidationResult",
    "WatermarkOptions",
    "WebOptimizeOptions",
    "extract_image_metadata",
    "convert_dms_to_dd",
    "process_image",
    "create_thumbnail",
    "optimize_for_web",
    "convert_format",
    "add_watermark",
    "generate_multiple_sizes",
    "generate_multiple_sizes_async",
    "validate_image",
    "setup_logger",
    "get_logger",
    "ImagingError",
    "DecodeError",
    "UnsupportedFormatError",
    "ImageProcessingError",
    "StorageError",
    "ConfigurationError",
]
