"""Runtime settings for the imaging component."""

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .config_store import RATE_LIMIT_KEY, ConfigStore, rate_limit_disabled
from .exceptions import ConfigurationError
from .models import ValidationPolicy


class ImagingSettings(BaseModel):
    """Settings read from the environment or a config store."""

    max_upload_size: int = 10 * 1024 * 1024
    max_image_width: int = 4096
    max_image_height: int = 4096
    allowed_formats: List[str] = Field(
        default_factory=lambda: ["jpeg", "png", "webp", "gif"]
    )
    variant_format: str = "jpeg"
    storage_bucket: Optional[str] = None
    storage_prefix: str = "globe-trotter"
    storage_public_url: Optional[str] = None
    rate_limit_enabled: bool = True

    @classmethod
    def from_mapping(cls, values: Mapping[str, Optional[str]]) -> "ImagingSettings":
        """Build settings from upper-case keys such as ``MAX_UPLOAD_SIZE``."""
        fields = {}
        if values.get("MAX_UPLOAD_SIZE"):
            fields["max_upload_size"] = values["MAX_UPLOAD_SIZE"]
        if values.get("MAX_IMAGE_WIDTH"):
            fields["max_image_width"] = values["MAX_IMAGE_WIDTH"]
        if values.get("MAX_IMAGE_HEIGHT"):
            fields["max_image_height"] = values["MAX_IMAGE_HEIGHT"]
        if values.get("ALLOWED_IMAGE_FORMATS"):
            fields["allowed_formats"] = [
                fmt.strip().lower()
                for fmt in values["ALLOWED_IMAGE_FORMATS"].split(",")
                if fmt.strip()
            ]
        if values.get("VARIANT_FORMAT"):
            fields["variant_format"] = values["VARIANT_FORMAT"].lower()
        if values.get("STORAGE_BUCKET"):
            fields["storage_bucket"] = values["STORAGE_BUCKET"]
        if values.get("STORAGE_PREFIX") is not None:
            fields["storage_prefix"] = values["STORAGE_PREFIX"]
        if values.get("STORAGE_PUBLIC_URL"):
            fields["storage_public_url"] = values["STORAGE_PUBLIC_URL"]
        fields["rate_limit_enabled"] = not rate_limit_disabled(values.get(RATE_LIMIT_KEY))

        try:
            return cls(**fields)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid imaging settings: {e}") from e

    @classmethod
    def from_env(cls) -> "ImagingSettings":
        return cls.from_mapping(os.environ)

    @classmethod
    def from_store(cls, store: ConfigStore) -> "ImagingSettings":
        return cls.from_mapping(store.as_dict())

    def validation_policy(self) -> ValidationPolicy:
        return ValidationPolicy(
            max_size=self.max_upload_size,
            max_width=self.max_image_width,
            max_height=self.max_image_height,
            allowed_formats=self.allowed_formats,
        )
