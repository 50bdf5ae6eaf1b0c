"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Protocol

from .models import ProcessedVariant, StoredVariant


class S3ClientProtocol(Protocol):
    """Subset of the boto3 S3 client used for variant storage."""

    def put_object(
        self, Bucket: str, Key: str, Body: bytes, ContentType: str
    ) -> Dict[str, Any]:
        """Put object to S3."""
        ...

    def delete_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Delete object from S3."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for context-aware logging."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...


class VariantStorage(ABC):
    """Blob storage for rendered variants."""

    @abstractmethod
    def store_variants(
        self, asset_id: str, variants: Mapping[str, ProcessedVariant]
    ) -> Dict[str, StoredVariant]:
        """Store every variant and return where each one lives."""
        ...

    @abstractmethod
    def delete_variants(self, keys: List[str]) -> None:
        """Remove stored variants by key."""
        ...
