"""Deterministic destination naming.

Layout under the destination root:

    [<geo bucket>/]YYYY/MM/<formatted capture time><ext>
    [<geo bucket>/]<undated_dir>/<original file name>

The geographic bucket is the coordinate floored to a grid, e.g. `N47_E008`.
"""

from __future__ import annotations

import math
from pathlib import Path
import re

from photo_organizer.core.config import OrganizerConfig
from photo_organizer.core.models import GeoPosition, PhotoRecord

_UNSAFE = re.compile(r"[^\w\-.]")


def _format_band(value: float, size: float, positive: str, negative: str, width: int) -> str:
    # nudge values sitting on a cell edge past float error in the division
    floored = math.floor(value / size + 1e-9) * size
    letter = positive if floored >= 0 else negative
    magnitude = abs(floored)
    if float(size).is_integer():
        return f"{letter}{int(round(magnitude)):0{width}d}"
    return f"{letter}{magnitude:0{width + 3}.2f}".replace(".", "p")


def geo_bucket(position: GeoPosition, degrees: float) -> str:
    """Return the grid cell label of `position`, e.g. "N47_E008" or "S33_W071"."""
    lat = _format_band(position.latitude, degrees, "N", "S", 2)
    lon = _format_band(position.longitude, degrees, "E", "W", 3)
    return f"{lat}_{lon}"


def sanitize_stem(stem: str) -> str:
    return _UNSAFE.sub("_", stem).strip("._") or "photo"


def destination_for(record: PhotoRecord, config: OrganizerConfig) -> Path:
    """Compute the un-disambiguated destination of `record` under the destination root."""
    if config.destination_root is None:
        raise ValueError("destination_root is not configured")

    folder = Path(config.destination_root)
    position = record.effective_position
    if position is not None and config.geo_bucket_degrees > 0:
        folder = folder / geo_bucket(position, config.geo_bucket_degrees)

    ext = record.source_path.suffix.lower()
    if record.capture_time is None:
        return folder / config.undated_dir / (sanitize_stem(record.source_path.stem) + ext)

    local = record.capture_time.astimezone(config.output_timezone)
    pattern = config.name_format.replace("{stem}", sanitize_stem(record.source_path.stem))
    stem = local.strftime(pattern)
    if not stem or "/" in stem or "\\" in stem:
        raise ValueError(
            f"name format {config.name_format!r} produced an invalid file name: {stem!r}"
        )
    return folder / f"{local.year:04d}" / f"{local.month:02d}" / f"{stem}{ext}"


def with_hash_suffix(destination: Path, content_hash: str, length: int) -> Path:
    """Append `_<hash prefix>` to the stem of `destination`."""
    return destination.with_name(f"{destination.stem}_{content_hash[:length]}{destination.suffix}")
