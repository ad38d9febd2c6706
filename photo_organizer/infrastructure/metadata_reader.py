"""Embedded metadata extraction (EXIF timestamps, GPS, dimensions).

Decoding is done by Pillow, with HEIC/HEIF support from pillow-heif. The raw
tag dictionaries never leave this module: `extract_metadata` turns them into
a typed `ImageMetadata`. Missing or corrupt tags only leave fields empty; a
file that cannot be opened at all raises `ExtractionFailure`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path
import re
import struct
from typing import Any

from PIL import ExifTags, Image, UnidentifiedImageError
from loguru import logger
from pillow_heif import register_heif_opener

from photo_organizer.core.errors import ExtractionFailure
from photo_organizer.core.models import GeoPosition, ImageMetadata
from photo_organizer.core.services.interfaces import IMetadataReader

register_heif_opener()

EXIF_DT_FMT = "%Y:%m:%d %H:%M:%S"

# Most trustworthy first; DateTime is rewritten by many tools on copy/edit
_TIME_TAGS = (
    ("DateTimeOriginal", "OffsetTimeOriginal"),
    ("DateTimeDigitized", "OffsetTimeDigitized"),
    ("DateTime", "OffsetTime"),
)

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


@dataclass
class DecodedImage:
    """What the codec hands back: dimensions plus a name-keyed tag mapping."""

    width: int | None = None
    height: int | None = None
    image_format: str | None = None
    tags: dict[str, Any] = field(default_factory=dict)


def _named(ifd: Any, names: dict[int, str]) -> dict[str, Any]:
    return {names.get(tag, str(tag)): value for tag, value in dict(ifd).items()}


def decode_image(path: str | Path) -> DecodedImage:
    """Open `path` with Pillow and flatten IFD0, Exif and GPS tags by name.

    Raises:
        ExtractionFailure: If the file cannot be opened or is not an image.
    """
    try:
        with Image.open(path) as im:
            width, height = im.size
            decoded = DecodedImage(width=width, height=height, image_format=im.format)
            try:
                exif = im.getexif()
                tags = _named(exif, ExifTags.TAGS)
                tags.update(_named(exif.get_ifd(ExifTags.IFD.Exif), ExifTags.TAGS))
                gps = exif.get_ifd(ExifTags.IFD.GPSInfo)
                if gps:
                    tags["GPSInfo"] = _named(gps, ExifTags.GPSTAGS)
                else:
                    tags.pop("GPSInfo", None)
                decoded.tags = tags
            except (OSError, ValueError, TypeError, KeyError, SyntaxError, struct.error) as ex:
                logger.debug("EXIF read failed for {}: {}", path, ex)
            return decoded
    except UnidentifiedImageError as ex:
        raise ExtractionFailure(path, "not a recognized image container") from ex
    except OSError as ex:
        raise ExtractionFailure(path, str(ex) or type(ex).__name__) from ex


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = str(value).replace("\x00", "").strip()
    return text or None


def parse_utc_offset(value: Any) -> tzinfo | None:
    """Parse an EXIF offset tag such as "+02:00"; None when absent or malformed."""
    text = _as_text(value)
    if not text:
        return None
    m = _OFFSET_RE.match(text)
    if not m:
        return None
    sign, hours, minutes = m.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    return timezone(-delta if sign == "-" else delta)


def parse_exif_datetime(value: Any, tz: tzinfo) -> datetime | None:
    """Parse "YYYY:MM:DD HH:MM:SS" in zone `tz` and return it in UTC."""
    text = _as_text(value)
    if not text:
        return None
    try:
        naive = datetime.strptime(text[:19], EXIF_DT_FMT)
    except ValueError:
        logger.debug("Invalid EXIF datetime: {}", text)
        return None
    return naive.replace(tzinfo=tz).astimezone(timezone.utc)


def capture_time_from_tags(tags: dict[str, Any], default_tz: tzinfo) -> datetime | None:
    """Pick the capture time, preferring the original-capture tag over file-modified."""
    for time_tag, offset_tag in _TIME_TAGS:
        if time_tag not in tags:
            continue
        tz = parse_utc_offset(tags.get(offset_tag)) or default_tz
        ts = parse_exif_datetime(tags[time_tag], tz)
        if ts is not None:
            return ts
    return None


def _rational(value: Any) -> float:
    if isinstance(value, tuple) and len(value) == 2:
        num, den = value
        return float(num) / float(den)
    return float(value)


def dms_to_degrees(dms: Any, ref: Any) -> float | None:
    """Convert degrees/minutes/seconds plus hemisphere reference to signed degrees."""
    try:
        if isinstance(dms, (tuple, list)):
            parts = [_rational(v) for v in dms]
            while len(parts) < 3:
                parts.append(0.0)
            degrees = parts[0] + parts[1] / 60.0 + parts[2] / 3600.0
        else:
            degrees = _rational(dms)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    if degrees != degrees:  # NaN from a 0/0 rational
        return None
    hemisphere = (_as_text(ref) or "").upper()[:1]
    if hemisphere in ("S", "W"):
        degrees = -degrees
    return degrees


def position_from_gps(gps: dict[str, Any]) -> GeoPosition | None:
    """Signed decimal position from a name-keyed GPS IFD; None if incomplete or out of range."""
    if not isinstance(gps, dict):
        return None
    if "GPSLatitude" not in gps or "GPSLongitude" not in gps:
        return None
    lat = dms_to_degrees(gps["GPSLatitude"], gps.get("GPSLatitudeRef"))
    lon = dms_to_degrees(gps["GPSLongitude"], gps.get("GPSLongitudeRef"))
    if lat is None or lon is None:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return GeoPosition(lat, lon)


def altitude_from_gps(gps: dict[str, Any]) -> float | None:
    if not isinstance(gps, dict) or "GPSAltitude" not in gps:
        return None
    try:
        alt = _rational(gps["GPSAltitude"])
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    ref = gps.get("GPSAltitudeRef")
    if isinstance(ref, bytes):
        ref = ref[:1] == b"\x01"
    if ref in (1, True):
        alt = -alt
    return alt


def extract_metadata(decoded: DecodedImage, default_tz: tzinfo = timezone.utc) -> ImageMetadata:
    """Build the typed metadata from a decoded image."""
    tags = decoded.tags
    gps = tags.get("GPSInfo") or {}
    return ImageMetadata(
        capture_time=capture_time_from_tags(tags, default_tz),
        position=position_from_gps(gps),
        altitude=altitude_from_gps(gps),
        width=decoded.width,
        height=decoded.height,
        image_format=decoded.image_format,
        camera_make=_as_text(tags.get("Make")),
        camera_model=_as_text(tags.get("Model")),
    )


class PillowMetadataReader(IMetadataReader):
    """Reads metadata through Pillow."""

    def __init__(self, default_tz: tzinfo = timezone.utc) -> None:
        self._default_tz = default_tz

    def read(self, path: Path) -> ImageMetadata:
        return extract_metadata(decode_image(path), self._default_tz)
