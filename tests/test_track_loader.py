from __future__ import annotations

from conftest import utc
import pytest

from photo_organizer.core.errors import TrackParseFailure
from photo_organizer.infrastructure.track_loader import GpxTrackParser, load_tracks

GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <trk><trkseg>
    <trkpt lat="47.0" lon="8.0"><time>2023-06-01T10:00:00Z</time></trkpt>
    <trkpt lat="47.5" lon="8.5"></trkpt>
    <trkpt lat="48.0" lon="9.0"><time>2023-06-01T10:10:00Z</time></trkpt>
  </trkseg></trk>
</gpx>
"""


def test_parses_timestamped_points_and_skips_others(tmp_path):
    path = tmp_path / "walk.gpx"
    path.write_text(GPX, encoding="utf-8")
    points = GpxTrackParser().parse(path)
    assert [(p.timestamp, p.latitude, p.longitude) for p in points] == [
        (utc(2023, 6, 1, 10, 0), 47.0, 8.0),
        (utc(2023, 6, 1, 10, 10), 48.0, 9.0),
    ]


def test_invalid_xml_is_a_parse_failure(tmp_path):
    path = tmp_path / "broken.gpx"
    path.write_text("<gpx><trk>", encoding="utf-8")
    with pytest.raises(TrackParseFailure):
        GpxTrackParser().parse(path)


def test_track_without_times_is_a_parse_failure(tmp_path):
    path = tmp_path / "notime.gpx"
    path.write_text(GPX.replace("<time>2023-06-01T10:00:00Z</time>", "").replace(
        "<time>2023-06-01T10:10:00Z</time>", ""
    ), encoding="utf-8")
    with pytest.raises(TrackParseFailure, match="no timestamped points"):
        GpxTrackParser().parse(path)


def test_missing_file_aborts_loading(tmp_path):
    good = tmp_path / "good.gpx"
    good.write_text(GPX, encoding="utf-8")
    with pytest.raises(TrackParseFailure):
        load_tracks([good, tmp_path / "absent.gpx"])
