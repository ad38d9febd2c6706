from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from PIL import Image
import pytest

from photo_organizer.core.config import OrganizerConfig
from photo_organizer.core.models import ImageMetadata, PhotoRecord
from photo_organizer.core.services.interfaces import IMetadataReader


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class StubReader(IMetadataReader):
    """Metadata reader keyed by file name; exceptions in the map are raised."""

    def __init__(self, by_name: dict[str, object] | None = None) -> None:
        self._by_name = by_name or {}

    def read(self, path: Path) -> ImageMetadata:
        value = self._by_name.get(Path(path).name, ImageMetadata())
        if isinstance(value, BaseException):
            raise value
        return value


def write_jpeg(
    path: Path,
    color: tuple[int, int, int] = (200, 30, 30),
    exif_datetime: str | None = None,
    make: str | None = None,
    model: str | None = None,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", (16, 12), color)
    exif = Image.Exif()
    # DateTime, Make, Model in IFD0
    for tag, value in ((306, exif_datetime), (271, make), (272, model)):
        if value:
            exif[tag] = value
    if len(exif):
        img.save(path, "JPEG", exif=exif)
    else:
        img.save(path, "JPEG")
    return path


@pytest.fixture
def config(tmp_path: Path) -> OrganizerConfig:
    return OrganizerConfig(destination_root=tmp_path / "dest", source_roots=[tmp_path / "src"])


@pytest.fixture
def make_record():
    def _make(
        path: str,
        content_hash: str,
        capture_time: datetime | None = None,
        **kwargs,
    ) -> PhotoRecord:
        return PhotoRecord(
            source_path=Path(path),
            content_hash=content_hash,
            capture_time=capture_time,
            **kwargs,
        )

    return _make
