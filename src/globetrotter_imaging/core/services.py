"""Upload pipeline: validate, extract metadata, render variants, store."""

import time
import uuid
from typing import Dict, Mapping, Optional

from .error_handling import BatchOperationContextManager
from .metadata import extract_image_metadata
from .models import SizePreset, UploadResult, ValidationPolicy
from .observability import LogContext, MetricsCollector
from .protocols import LoggerProtocol, VariantStorage
from .validation import validate_image
from .variants import generate_multiple_sizes


class ImageUploadService:
    """Runs one uploaded buffer through the imaging pipeline."""

    def __init__(
        self,
        storage: VariantStorage,
        logger: LoggerProtocol,
        policy: Optional[ValidationPolicy] = None,
        sizes: Optional[Mapping[str, SizePreset]] = None,
        variant_format: str = "jpeg",
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._storage = storage
        self._logger = logger
        self._policy = policy or ValidationPolicy()
        self._sizes = sizes
        self._variant_format = variant_format
        self._metrics = metrics_collector or MetricsCollector()

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    def process_upload(
        self, buffer: bytes, asset_id: Optional[str] = None, filename: str = ""
    ) -> UploadResult:
        """
        Process a single upload with full error handling.

        Validation failures are reported before any rendering or storage.
        Any later failure aborts the upload and is reported in the result.
        """
        asset_id = asset_id or uuid.uuid4().hex
        start_time = time.time()
        log_context = LogContext(
            correlation_id=asset_id, component="image_upload_service"
        ).with_metadata(filename=filename or "<buffer>", size=len(buffer))

        result = UploadResult()

        try:
            self._logger.debug("Validating upload", log_context.with_operation("validate"))
            with self._metrics.measure("validate"):
                validation = validate_image(buffer, self._policy)
            if not validation.valid:
                result.error = validation.error or "Invalid image file"
                self._logger.warning(
                    "Upload rejected", log_context.with_metadata(reason=result.error)
                )
                return result

            self._logger.debug("Extracting metadata", log_context.with_operation("extract_metadata"))
            with self._metrics.measure("extract_metadata"):
                result.metadata = extract_image_metadata(buffer)

            self._logger.debug("Generating variants", log_context.with_operation("generate_variants"))
            with self._metrics.measure("generate_variants"):
                variants = generate_multiple_sizes(
                    buffer, self._sizes, format=self._variant_format
                )

            self._logger.debug("Storing variants", log_context.with_operation("store_variants"))
            with self._metrics.measure("store_variants"):
                result.variants = self._storage.store_variants(asset_id, variants)

            result.success = True
            self._logger.info(
                "Successfully processed upload",
                log_context,
                variants=len(result.variants),
            )

        except Exception as e:
            result.success = False
            result.error = str(e)
            self._logger.error(
                "Upload processing failed", log_context.with_metadata(error=str(e))
            )

        finally:
            result.processing_time = time.time() - start_time

        return result

    def process_batch(self, uploads: Mapping[str, bytes]) -> Dict[str, UploadResult]:
        """Process several named uploads one after another."""
        results: Dict[str, UploadResult] = {}
        with BatchOperationContextManager("Upload batch") as batch:
            for name, buffer in uploads.items():
                result = self.process_upload(buffer, filename=name)
                if not result.success:
                    batch.add_error(result.error, name)
                results[name] = result
        return results
