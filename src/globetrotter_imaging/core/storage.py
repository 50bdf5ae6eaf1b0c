"""S3-backed storage for rendered image variants."""

from typing import Dict, List, Mapping, Optional

from .error_handling import retry_storage_operation, with_error_handling
from .exceptions import StorageError
from .logging_config import get_logger
from .models import ProcessedVariant, StoredVariant
from .processing import content_type_for
from .protocols import S3ClientProtocol, VariantStorage

logger = get_logger("storage")

FILE_EXTENSIONS = {"jpeg": "jpg", "tiff": "tif"}


def variant_key(prefix: str, asset_id: str, name: str, format_name: str) -> str:
    """Build the object key for one variant of an asset."""
    extension = FILE_EXTENSIONS.get(format_name, format_name)
    relative_key = f"{asset_id}/{name}.{extension}"
    if prefix:
        return f"{prefix.strip('/')}/{relative_key}"
    return relative_key


@retry_storage_operation()
@with_error_handling
def _put_object(s3_client, bucket: str, key: str, data: bytes, content_type: str):
    logger.debug(f"Uploading to s3://{bucket}/{key}")
    s3_client.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)


@retry_storage_operation()
@with_error_handling
def _delete_object(s3_client, bucket: str, key: str):
    logger.debug(f"Deleting s3://{bucket}/{key}")
    s3_client.delete_object(Bucket=bucket, Key=key)


class S3VariantStorage(VariantStorage):
    """Uploads variants to a bucket and reports their public URLs."""

    def __init__(
        self,
        s3_client: S3ClientProtocol,
        bucket: str,
        prefix: str = "",
        public_url_base: Optional[str] = None,
    ):
        self._s3_client = s3_client
        self._bucket = bucket
        self._prefix = prefix
        self._public_url_base = (
            public_url_base or f"https://{bucket}.s3.amazonaws.com"
        ).rstrip("/")

    def public_url(self, key: str) -> str:
        return f"{self._public_url_base}/{key}"

    def store_variants(
        self, asset_id: str, variants: Mapping[str, ProcessedVariant]
    ) -> Dict[str, StoredVariant]:
        """
        Upload every variant under ``<prefix>/<asset_id>/<name>.<ext>``.

        If any upload fails, variants already uploaded for this asset are
        removed and the error is raised.
        """
        stored: Dict[str, StoredVariant] = {}
        try:
            for name, variant in variants.items():
                key = variant_key(self._prefix, asset_id, name, variant.format)
                content_type = content_type_for(variant.format)
                _put_object(self._s3_client, self._bucket, key, variant.data, content_type)
                stored[name] = StoredVariant(
                    name=name,
                    key=key,
                    url=self.public_url(key),
                    size=variant.size,
                    content_type=content_type,
                )
        except StorageError:
            if stored:
                logger.warning(
                    f"[{asset_id}] Removing {len(stored)} variant(s) after failed upload"
                )
                self._cleanup([v.key for v in stored.values()])
            raise

        logger.info(f"[{asset_id}] Stored {len(stored)} variants in s3://{self._bucket}")
        return stored

    def delete_variants(self, keys: List[str]) -> None:
        for key in keys:
            _delete_object(self._s3_client, self._bucket, key)

    def _cleanup(self, keys: List[str]) -> None:
        for key in keys:
            try:
                _delete_object(self._s3_client, self._bucket, key)
            except StorageError as e:
                logger.error(f"Could not remove orphaned variant {key}: {e}")
