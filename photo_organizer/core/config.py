"""Organizer configuration passed explicitly through the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta, timezone
from pathlib import Path

DEFAULT_EXTENSIONS = (
    ".jpg",
    ".jpeg",
    ".png",
    ".tif",
    ".tiff",
    ".heic",
    ".heif",
    ".webp",
)

MODES = ("copy", "move")


@dataclass
class OrganizerConfig:
    """All tunables of a run.

    Attributes:
        destination_root: Root of the organized tree.
        source_roots: Roots that are walked for photos, in priority order.
        mode: "copy" keeps sources in place, "move" removes them.
        duplicate_policy: Name of the canonical-duplicate policy.
        max_gap_minutes: Widest trackpoint gap that may be interpolated.
        low_confidence_gap_minutes: Correlated positions with a wider gap are
            flagged in logs.
        geo_bucket_degrees: Grid size of the geographic subfolder; 0 disables it.
        name_format: strftime pattern for dated file stems. `{stem}` inserts
            the original file stem.
        undated_dir: Folder for photos without a capture time.
        suffix_length: Hex characters of the content hash used to
            disambiguate colliding destinations.
        camera_utc_offset_hours: Offset assumed for EXIF times without an
            explicit offset tag.
        output_utc_offset_hours: Offset in which folder and file names are
            rendered.
        extensions: File extensions considered photos (lower case, dotted).
        include_hidden: Walk hidden files and directories.
        follow_symlinks: Follow symlinked directories and files.
        workers: Worker pool size; None means one per CPU.
    """

    destination_root: Path | None = None
    source_roots: list[Path] = field(default_factory=list)
    mode: str = "copy"
    duplicate_policy: str = "earliest"
    max_gap_minutes: float = 15.0
    low_confidence_gap_minutes: float = 10.0
    geo_bucket_degrees: float = 1.0
    name_format: str = "%Y%m%d_%H%M%S"
    undated_dir: str = "undated"
    suffix_length: int = 8
    camera_utc_offset_hours: float = 0.0
    output_utc_offset_hours: float = 0.0
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    include_hidden: bool = False
    follow_symlinks: bool = False
    workers: int | None = None

    @property
    def max_gap(self) -> timedelta:
        return timedelta(minutes=self.max_gap_minutes)

    @property
    def low_confidence_gap(self) -> timedelta:
        return timedelta(minutes=self.low_confidence_gap_minutes)

    @property
    def camera_timezone(self) -> timezone:
        return timezone(timedelta(hours=self.camera_utc_offset_hours))

    @property
    def output_timezone(self) -> timezone:
        return timezone(timedelta(hours=self.output_utc_offset_hours))
