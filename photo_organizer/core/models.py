"""Core domain models for photo records, tracks and duplicate groups."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path


@dataclass(frozen=True)
class GeoPosition:
    """A signed decimal-degree coordinate."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class CorrelatedPosition:
    """A position interpolated from a GPS track.

    Attributes:
        latitude: Interpolated latitude.
        longitude: Interpolated longitude.
        gap: Width of the bracketing trackpoint interval. Zero for an exact
            trackpoint match; a narrower gap means a more trustworthy position.
    """

    latitude: float
    longitude: float
    gap: timedelta

    def is_low_confidence(self, threshold: timedelta) -> bool:
        """Return True when the bracketing gap is wider than `threshold`."""
        return self.gap > threshold

    def as_position(self) -> GeoPosition:
        return GeoPosition(self.latitude, self.longitude)


@dataclass(frozen=True)
class ImageMetadata:
    """Typed result of reading a file's embedded metadata.

    Every field is optional; absence means the tag was missing or unreadable.
    """

    capture_time: datetime | None = None
    position: GeoPosition | None = None
    altitude: float | None = None
    width: int | None = None
    height: int | None = None
    image_format: str | None = None
    camera_make: str | None = None
    camera_model: str | None = None


@dataclass(frozen=True)
class PhotoRecord:
    """Analysis result for one source file. Immutable once created."""

    source_path: Path
    content_hash: str
    capture_time: datetime | None = None
    embedded_position: GeoPosition | None = None
    correlated_position: CorrelatedPosition | None = None
    metadata: ImageMetadata = field(default_factory=ImageMetadata)

    @property
    def file_name(self) -> str:
        return self.source_path.name

    @property
    def effective_position(self) -> GeoPosition | None:
        """Embedded GPS if present, else the correlated position, else None."""
        if self.embedded_position is not None:
            return self.embedded_position
        if self.correlated_position is not None:
            return self.correlated_position.as_position()
        return None


@dataclass(frozen=True)
class TrackPoint:
    """A single timestamped GPS fix."""

    timestamp: datetime
    latitude: float
    longitude: float


@dataclass
class DuplicateGroup:
    """Records sharing one content hash. The canonical member is chosen by policy."""

    content_hash: str
    members: list[PhotoRecord] = field(default_factory=list)

    @property
    def is_singleton(self) -> bool:
        return len(self.members) == 1


@dataclass(frozen=True)
class AnalysisFailure:
    """A per-file hard failure from the analysis phase.

    Attributes:
        source_path: File that could not be analyzed.
        reason: Short reason code, e.g. "extraction-failed" or "hash-failed".
        message: Human readable detail.
    """

    source_path: Path
    reason: str
    message: str = ""
