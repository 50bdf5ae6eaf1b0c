"""Shared data models for the imaging component."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

FIT_MODES = ("cover", "contain", "inside", "fill")

WATERMARK_POSITIONS = (
    "topLeft",
    "top",
    "topRight",
    "left",
    "center",
    "right",
    "bottomLeft",
    "bottom",
    "bottomRight",
)


class GeoLocation(BaseModel):
    """Signed decimal-degree coordinates."""

    latitude: float
    longitude: float


class ExifData(BaseModel):
    """Capture details read from an image's EXIF block."""

    camera: Optional[str] = None
    date_taken: Optional[datetime] = None
    location: Optional[GeoLocation] = None
    orientation: Optional[int] = None


class ImageMetadata(BaseModel):
    """Intrinsic properties of a source image."""

    width: int
    height: int
    format: str
    size: int
    exif: Optional[ExifData] = None


class SizePreset(BaseModel):
    """Target bounds and encode quality for one rendition."""

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    quality: int = Field(default=80, ge=1, le=100)


DEFAULT_SIZE_PRESETS: Dict[str, SizePreset] = {
    "thumbnail": SizePreset(width=300, height=300, quality=70),
    "medium": SizePreset(width=800, height=800, quality=80),
    "large": SizePreset(width=1200, height=1200, quality=90),
}


class ProcessedVariant(BaseModel):
    """An encoded rendition tagged with the preset that produced it."""

    name: str
    data: bytes
    format: str
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.data)


class ValidationPolicy(BaseModel):
    """Limits applied by the upload validator."""

    max_size: int = 10 * 1024 * 1024
    max_width: int = 4096
    max_height: int = 4096
    allowed_formats: List[str] = Field(
        default_factory=lambda: ["jpeg", "png", "webp", "gif"]
    )

    @field_validator("allowed_formats")
    @classmethod
    def _lowercase_formats(cls, value: List[str]) -> List[str]:
        return [fmt.strip().lower() for fmt in value if fmt.strip()]


class ValidationResult(BaseModel):
    """Outcome of validating an upload."""

    valid: bool
    error: Optional[str] = None
    metadata: Optional[ImageMetadata] = None


class ProcessOptions(BaseModel):
    """Options for a single resize and re-encode."""

    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    quality: int = Field(default=80, ge=1, le=100)
    format: str = "jpeg"
    fit: str = "cover"
    position: str = "center"

    @field_validator("fit")
    @classmethod
    def _check_fit(cls, value: str) -> str:
        if value not in FIT_MODES:
            raise ValueError(f"fit must be one of {', '.join(FIT_MODES)}")
        return value


class WebOptimizeOptions(BaseModel):
    """Options for web delivery optimization."""

    max_width: int = Field(default=1920, gt=0)
    max_height: int = Field(default=1080, gt=0)
    quality: int = Field(default=85, ge=1, le=100)
    format: str = "webp"


class WatermarkOptions(BaseModel):
    """Placement of a watermark overlay."""

    position: str = "bottomRight"
    opacity: float = Field(default=0.7, ge=0.0, le=1.0)
    margin: int = Field(default=20, ge=0)

    @field_validator("position")
    @classmethod
    def _check_position(cls, value: str) -> str:
        if value not in WATERMARK_POSITIONS:
            raise ValueError(f"position must be one of {', '.join(WATERMARK_POSITIONS)}")
        return value


class StoredVariant(BaseModel):
    """A variant persisted by the storage collaborator."""

    name: str
    key: str
    url: str
    size: int
    content_type: str


class UploadResult(BaseModel):
    """Result of running one upload through the pipeline."""

    success: bool = False
    error: str = ""
    metadata: Optional[ImageMetadata] = None
    variants: Dict[str, StoredVariant] = Field(default_factory=dict)
    processing_time: float = 0.0
