"""Factory classes for creating configured service instances."""

from typing import Any, Mapping, Optional

import boto3

from .config import ImagingSettings
from .exceptions import ConfigurationError
from .models import SizePreset
from .observability import MetricsCollector, StructuredLogger
from .protocols import LoggerProtocol, S3ClientProtocol
from .services import ImageUploadService
from .storage import S3VariantStorage


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(**kwargs: Any) -> S3ClientProtocol:
        """Create S3 client with optional configuration."""
        session = boto3.Session()
        return session.client("s3", **kwargs)  # type: ignore


class UploadServiceFactory:
    """Factory for creating the complete upload pipeline."""

    @staticmethod
    def create_service(
        settings: Optional[ImagingSettings] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        sizes: Optional[Mapping[str, SizePreset]] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> ImageUploadService:
        """Create a fully configured upload service."""
        settings = settings or ImagingSettings.from_env()
        if not settings.storage_bucket:
            raise ConfigurationError("STORAGE_BUCKET must be set to store variants")

        if s3_client is None:
            s3_client = S3ClientFactory.create_s3_client()

        if logger is None:
            logger = StructuredLogger("service")

        storage = S3VariantStorage(
            s3_client,
            bucket=settings.storage_bucket,
            prefix=settings.storage_prefix,
            public_url_base=settings.storage_public_url,
        )

        return ImageUploadService(
            storage=storage,
            logger=logger,
            policy=settings.validation_policy(),
            sizes=sizes,
            variant_format=settings.variant_format,
            metrics_collector=metrics_collector,
        )
