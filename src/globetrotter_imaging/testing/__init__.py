"""Testing utilities and fakes for the imaging component."""

from .fakes import (
    FakeLogger,
    FakeS3Client,
    S3Bucket,
    S3Object,
    create_corrupt_exif_image,
    create_exif_image,
    create_test_image,
)

__all__ = [
    "FakeS3Client",
    "FakeLogger",
    "S3Object",
    "S3Bucket",
    "create_test_image",
    "create_exif_image",
    "create_corrupt_exif_image",
]
