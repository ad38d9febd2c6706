"""GPX track-log loading via gpxpy."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timezone
from pathlib import Path

import gpxpy
from gpxpy.gpx import GPXException
from loguru import logger

from photo_organizer.core.errors import TrackParseFailure
from photo_organizer.core.models import TrackPoint
from photo_organizer.core.services.interfaces import ITrackParser


def _to_trackpoint(point) -> TrackPoint | None:
    if point.time is None:
        return None
    ts = point.time
    if ts.tzinfo is None:
        # GPX times are UTC by definition
        ts = ts.replace(tzinfo=timezone.utc)
    return TrackPoint(ts.astimezone(timezone.utc), float(point.latitude), float(point.longitude))


class GpxTrackParser(ITrackParser):
    """Reads track and route points from a GPX file, in file order."""

    def parse(self, path: Path) -> list[TrackPoint]:
        path = Path(path)
        try:
            with path.open("r", encoding="utf-8") as f:
                gpx = gpxpy.parse(f)
        except (OSError, ValueError, GPXException) as ex:
            raise TrackParseFailure(path, str(ex) or type(ex).__name__) from ex

        points: list[TrackPoint] = []
        skipped = 0
        raw = [p for track in gpx.tracks for segment in track.segments for p in segment.points]
        raw.extend(p for route in gpx.routes for p in route.points)
        for p in raw:
            tp = _to_trackpoint(p)
            if tp is None:
                skipped += 1
                continue
            points.append(tp)

        if skipped:
            logger.warning("{}: skipped {} points without time", path, skipped)
        if not points:
            raise TrackParseFailure(path, "no timestamped points")
        logger.info("Loaded {} trackpoints from {}", len(points), path)
        return points


def load_tracks(
    paths: Iterable[Path], parser: ITrackParser | None = None
) -> list[list[TrackPoint]]:
    """Load every track file; the first failure aborts with `TrackParseFailure`."""
    parser = parser or GpxTrackParser()
    return [parser.parse(Path(p)) for p in paths]
