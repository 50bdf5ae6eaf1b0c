"""Decoding and EXIF helpers shared by the imaging operations."""

import io
import math
import struct
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Optional

from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError

from .exceptions import DecodeError
from .logging_config import get_logger
from .models import ExifData, GeoLocation

logger = get_logger("exif")

# Pillow names for formats that callers know by another name
FORMAT_ALIASES = {
    "mpo": "jpeg",
    "jpg": "jpeg",
    "tif": "tiff",
}

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

# Exceptions Pillow raises while parsing a damaged EXIF block
EXIF_PARSE_ERRORS = (SyntaxError, ValueError, TypeError, KeyError, OSError, struct.error)


def normalize_format_name(format_name: Optional[str]) -> str:
    """Return the lower-case canonical name for a Pillow format."""
    if not format_name:
        return "unknown"
    name = format_name.lower()
    return FORMAT_ALIASES.get(name, name)


def open_image(buffer: bytes) -> Image.Image:
    """
    Open an image buffer without decoding pixel data.

    Raises:
        DecodeError: If Pillow cannot identify the buffer as an image.
    """
    try:
        return Image.open(io.BytesIO(buffer))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise DecodeError(f"Buffer is not a decodable image: {e}") from e


def _component(value: Any) -> float:
    if not value:
        return 0.0
    number = float(value)
    return 0.0 if math.isnan(number) else number


def convert_dms_to_dd(dms: Any, ref: Any = None) -> float:
    """
    Convert a degrees/minutes/seconds triple to signed decimal degrees.

    ``dd = degrees + minutes / 60 + seconds / 3600``, negated when ``ref`` is
    ``"S"`` or ``"W"``. A missing or malformed triple converts to ``0``.
    """
    if not dms or isinstance(dms, (str, bytes)) or not isinstance(dms, Sequence):
        return 0
    try:
        degrees = _component(dms[0] if len(dms) > 0 else None)
        minutes = _component(dms[1] if len(dms) > 1 else None)
        seconds = _component(dms[2] if len(dms) > 2 else None)
    except (TypeError, ValueError, ZeroDivisionError):
        return 0

    dd = degrees + minutes / 60 + seconds / 3600

    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if isinstance(ref, str) and ref.strip("\x00 ").upper() in ("S", "W"):
        dd = -dd

    return dd


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = str(value).strip("\x00 ")
    return text or None


def parse_exif_datetime(value: Any) -> Optional[datetime]:
    """Parse an EXIF ``YYYY:MM:DD HH:MM:SS`` timestamp, or return None."""
    text = _clean_text(value)
    if not text:
        return None
    try:
        return datetime.strptime(text, EXIF_DATE_FORMAT)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring unparsable EXIF timestamp {text!r}")
        return None


def read_exif(img: Image.Image) -> Optional[ExifData]:
    """
    Read camera, capture time, GPS location and orientation from an image.

    Returns None when the image carries no recognised EXIF field. Parse
    errors from a damaged EXIF block propagate to the caller.
    """
    exif = img.getexif()
    if not exif:
        return None

    fields = {}

    make = _clean_text(exif.get(ExifTags.Base.Make))
    model = _clean_text(exif.get(ExifTags.Base.Model))
    if make and model:
        fields["camera"] = f"{make} {model}".strip()

    exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
    date_taken = parse_exif_datetime(exif_ifd.get(ExifTags.Base.DateTimeOriginal))
    if date_taken is not None:
        fields["date_taken"] = date_taken

    gps = exif.get_ifd(ExifTags.IFD.GPSInfo)
    latitude = gps.get(ExifTags.GPS.GPSLatitude)
    longitude = gps.get(ExifTags.GPS.GPSLongitude)
    if latitude and longitude:
        fields["location"] = GeoLocation(
            latitude=convert_dms_to_dd(latitude, gps.get(ExifTags.GPS.GPSLatitudeRef)),
            longitude=convert_dms_to_dd(longitude, gps.get(ExifTags.GPS.GPSLongitudeRef)),
        )

    orientation = exif.get(ExifTags.Base.Orientation)
    if orientation:
        fields["orientation"] = int(orientation)

    if not fields:
        return None
    return ExifData(**fields)


def oriented_size(img: Image.Image) -> tuple:
    """Return (width, height) as displayed once the orientation tag is applied."""
    try:
        orientation = img.getexif().get(ExifTags.Base.Orientation)
    except EXIF_PARSE_ERRORS:
        orientation = None
    # Orientations 5-8 store the image rotated by 90 degrees
    if orientation in (5, 6, 7, 8):
        return img.height, img.width
    return img.width, img.height


def auto_orient(img: Image.Image) -> Image.Image:
    """Apply the EXIF orientation tag so the pixels are upright."""
    try:
        return ImageOps.exif_transpose(img)
    except EXIF_PARSE_ERRORS as e:
        # Unreadable orientation leaves the pixels as stored
        logger.debug(f"Skipping auto-orientation: {e}")
        return img
