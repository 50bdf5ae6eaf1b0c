"""Exception hierarchy for the imaging component."""


class ImagingError(Exception):
    """Base exception for all imaging errors."""


class DecodeError(ImagingError):
    """Raised when a buffer cannot be decoded as an image."""


class UnsupportedFormatError(ImagingError):
    """Raised when an encode target is not a supported format."""

    def __init__(self, format_name: str, reason: str = ""):
        self.format_name = format_name
        message = f"Unsupported format: {format_name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ImageProcessingError(ImagingError):
    """Raised when resizing, encoding or compositing an image fails."""


class StorageError(ImagingError):
    """Raised for blob storage failures."""


class ConfigurationError(ImagingError):
    """Raised for invalid configuration or options."""
