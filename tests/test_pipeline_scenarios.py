from __future__ import annotations

from datetime import timedelta

from conftest import StubReader, utc
import pytest

from photo_organizer.app.pipeline import build_plan
from photo_organizer.core.errors import ExtractionFailure, TrackParseFailure
from photo_organizer.core.models import GeoPosition, ImageMetadata
from photo_organizer.core.services.interfaces import ActionKind, Outcome
from photo_organizer.infrastructure.execution_service import ExecutionService
from photo_organizer.infrastructure.plan_repository import dumps_plan

TRACK = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <trk><trkseg>
    <trkpt lat="47.0" lon="8.0"><time>2023-06-01T10:00:00Z</time></trkpt>
    <trkpt lat="47.8" lon="8.8"><time>2023-06-01T10:08:00Z</time></trkpt>
  </trkseg></trk>
</gpx>
"""


def _write(path, data: bytes):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def test_duplicates_keep_dated_copy_and_report_every_file(config, tmp_path):
    src = tmp_path / "src"
    _write(src / "a.jpg", b"same bytes")
    _write(src / "b.jpg", b"same bytes")
    _write(src / "c.jpg", b"other bytes")
    reader = StubReader(
        {
            "a.jpg": ImageMetadata(capture_time=utc(2023, 6, 1, 10, 0)),
            "c.jpg": ImageMetadata(capture_time=utc(2023, 6, 2, 12, 0)),
        }
    )
    result = build_plan(config, reader=reader)
    plan = result.plan
    kinds = {a.source_path.name: a.kind for a in plan.actions}
    assert kinds == {"a.jpg": ActionKind.COPY, "b.jpg": ActionKind.SKIP_DUPLICATE, "c.jpg": ActionKind.COPY}
    skip = next(a for a in plan.actions if a.kind == ActionKind.SKIP_DUPLICATE)
    assert skip.canonical_source == src / "a.jpg"

    report = ExecutionService(workers=2).execute(plan)
    assert len(report.entries) == 3
    assert report.counts()["copied"] == 2
    assert report.counts()["skipped-duplicate"] == 1
    assert (config.destination_root / "2023/06/20230601_100000.jpg").read_bytes() == b"same bytes"
    assert (config.destination_root / "2023/06/20230602_120000.jpg").read_bytes() == b"other bytes"


def test_track_correlation_places_photo_without_gps(config, tmp_path):
    _write(tmp_path / "src" / "walk.jpg", b"walk")
    track = tmp_path / "track.gpx"
    track.write_text(TRACK, encoding="utf-8")
    reader = StubReader({"walk.jpg": ImageMetadata(capture_time=utc(2023, 6, 1, 10, 3))})

    result = build_plan(config, [track], reader=reader)
    record = result.analysis.records[0]
    correlated = record.correlated_position
    assert correlated is not None
    assert correlated.gap == timedelta(minutes=8)
    assert correlated.latitude == pytest.approx(47.3)
    assert correlated.longitude == pytest.approx(8.3)
    assert not correlated.is_low_confidence(config.low_confidence_gap)
    assert result.plan.actions[0].destination_path.parent.parent.parent.name == "N47_E008"


def test_embedded_gps_is_not_overridden_by_track(config, tmp_path):
    _write(tmp_path / "src" / "gps.jpg", b"gps")
    track = tmp_path / "track.gpx"
    track.write_text(TRACK, encoding="utf-8")
    reader = StubReader(
        {"gps.jpg": ImageMetadata(capture_time=utc(2023, 6, 1, 10, 3), position=GeoPosition(-33.4, -70.6))}
    )
    record = build_plan(config, [track], reader=reader).analysis.records[0]
    assert record.correlated_position is None
    assert record.effective_position == GeoPosition(-33.4, -70.6)


def test_same_name_different_content_gets_stable_suffixes(config, tmp_path):
    _write(tmp_path / "src" / "one" / "x.jpg", b"first")
    _write(tmp_path / "src" / "two" / "x.jpg", b"second")
    ts = utc(2023, 6, 1, 10, 0)
    reader = StubReader({"x.jpg": ImageMetadata(capture_time=ts)})

    first = build_plan(config, reader=reader)
    hashes = {r.source_path: r.content_hash for r in first.analysis.records}
    for action in first.plan.actions:
        assert action.kind == ActionKind.COPY
        expected = f"20230601_100000_{hashes[action.source_path][:8]}.jpg"
        assert action.destination_path.name == expected

    again = build_plan(config, reader=reader)
    assert dumps_plan(again.plan) == dumps_plan(first.plan)


def test_unreadable_files_become_failures_not_aborts(config, tmp_path):
    src = tmp_path / "src"
    _write(src / "ok.jpg", b"ok")
    _write(src / "bad.jpg", b"bad")
    _write(src / "boom.jpg", b"boom")
    reader = StubReader(
        {
            "bad.jpg": ExtractionFailure(src / "bad.jpg", "not an image"),
            "boom.jpg": RuntimeError("decoder crashed"),
        }
    )
    result = build_plan(config, reader=reader)
    assert result.analysis.file_count == 3
    assert [(f.source_path.name, f.reason) for f in result.plan.failures] == [
        ("bad.jpg", "extraction-failed"),
        ("boom.jpg", "analysis-crashed"),
    ]
    report = ExecutionService().execute(result.plan, dry_run=True)
    assert len(report.entries) == 3
    assert report.has_problems
    assert [e.outcome for e in report.entries].count(Outcome.FAILED) == 2


def test_bad_track_aborts_before_analysis(config, tmp_path):
    _write(tmp_path / "src" / "a.jpg", b"a")
    track = tmp_path / "bad.gpx"
    track.write_text("<gpx", encoding="utf-8")
    with pytest.raises(TrackParseFailure):
        build_plan(config, [track], reader=StubReader())
    assert not config.destination_root.exists()
