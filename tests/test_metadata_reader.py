from __future__ import annotations

from datetime import timedelta, timezone

from conftest import utc, write_jpeg
from PIL import Image
import pytest

from photo_organizer.core.errors import ExtractionFailure
from photo_organizer.core.models import GeoPosition
from photo_organizer.infrastructure.metadata_reader import (
    DecodedImage,
    PillowMetadataReader,
    altitude_from_gps,
    capture_time_from_tags,
    decode_image,
    dms_to_degrees,
    extract_metadata,
    parse_utc_offset,
    position_from_gps,
)


def test_dms_to_degrees_with_hemisphere():
    assert dms_to_degrees((47.0, 30.0, 36.0), "N") == pytest.approx(47.51)
    assert dms_to_degrees((33, 27, 0), "S") == pytest.approx(-33.45)
    assert dms_to_degrees(((8, 1), (15, 1), (0, 1)), b"W\x00") == pytest.approx(-8.25)


def test_dms_to_degrees_malformed():
    assert dms_to_degrees(((1, 0), (0, 1), (0, 1)), "N") is None
    assert dms_to_degrees("garbage", "N") is None


def test_position_from_gps():
    gps = {
        "GPSLatitudeRef": "N",
        "GPSLatitude": (47.0, 22.0, 12.0),
        "GPSLongitudeRef": "E",
        "GPSLongitude": (8.0, 32.0, 24.0),
    }
    pos = position_from_gps(gps)
    assert pos.latitude == pytest.approx(47.37)
    assert pos.longitude == pytest.approx(8.54)


def test_position_requires_both_coordinates_and_valid_range():
    assert position_from_gps({"GPSLatitude": (1.0, 0.0, 0.0), "GPSLatitudeRef": "N"}) is None
    assert (
        position_from_gps(
            {"GPSLatitude": (95.0, 0.0, 0.0), "GPSLatitudeRef": "N", "GPSLongitude": (1.0, 0.0, 0.0)}
        )
        is None
    )


def test_altitude_below_sea_level():
    assert altitude_from_gps({"GPSAltitude": 12.5, "GPSAltitudeRef": b"\x01"}) == -12.5
    assert altitude_from_gps({"GPSAltitude": 12.5, "GPSAltitudeRef": 0}) == 12.5
    assert altitude_from_gps({}) is None


def test_original_capture_tag_wins_over_modified():
    tags = {"DateTime": "2024:01:01 00:00:00", "DateTimeOriginal": "2023:06:01 10:00:00"}
    assert capture_time_from_tags(tags, timezone.utc) == utc(2023, 6, 1, 10, 0)


def test_falls_back_when_original_is_malformed():
    tags = {"DateTimeOriginal": "0000:00:00 00:00:00", "DateTime": "2023:06:01 10:00:00"}
    assert capture_time_from_tags(tags, timezone.utc) == utc(2023, 6, 1, 10, 0)


def test_offset_tag_and_default_zone():
    tags = {"DateTimeOriginal": "2023:06:01 12:00:00", "OffsetTimeOriginal": "+02:00"}
    assert capture_time_from_tags(tags, timezone.utc) == utc(2023, 6, 1, 10, 0)

    plus_one = timezone(timedelta(hours=1))
    assert capture_time_from_tags({"DateTime": "2023:06:01 12:00:00"}, plus_one) == utc(2023, 6, 1, 11, 0)
    assert parse_utc_offset("-05:30") == timezone(-timedelta(hours=5, minutes=30))
    assert parse_utc_offset("bogus") is None


def test_extract_metadata_is_typed():
    decoded = DecodedImage(
        width=4000,
        height=3000,
        image_format="JPEG",
        tags={
            "Make": "Canon\x00",
            "Model": b"EOS R",
            "DateTimeOriginal": "2023:06:01 10:00:00",
            "GPSInfo": {
                "GPSLatitudeRef": "S",
                "GPSLatitude": (33.0, 27.0, 0.0),
                "GPSLongitudeRef": "W",
                "GPSLongitude": (70.0, 39.0, 0.0),
                "GPSAltitude": 520.0,
            },
        },
    )
    md = extract_metadata(decoded)
    assert md.capture_time == utc(2023, 6, 1, 10, 0)
    assert md.position == GeoPosition(pytest.approx(-33.45), pytest.approx(-70.65))
    assert md.altitude == 520.0
    assert (md.camera_make, md.camera_model) == ("Canon", "EOS R")
    assert (md.width, md.height, md.image_format) == (4000, 3000, "JPEG")


def test_missing_tags_leave_fields_empty():
    md = extract_metadata(DecodedImage(width=1, height=1, image_format="PNG"))
    assert md.capture_time is None
    assert md.position is None
    assert md.camera_make is None


def test_reads_jpeg_written_by_pillow(tmp_path):
    path = write_jpeg(tmp_path / "a.jpg", exif_datetime="2023:06:01 10:00:00")
    md = PillowMetadataReader().read(path)
    assert md.capture_time == utc(2023, 6, 1, 10, 0)
    assert (md.width, md.height) == (16, 12)
    assert md.image_format == "JPEG"


def test_image_without_metadata_is_not_fatal(tmp_path):
    path = tmp_path / "plain.png"
    Image.new("RGB", (8, 8)).save(path)
    decoded = decode_image(path)
    assert decoded.image_format == "PNG"
    md = extract_metadata(decoded)
    assert md.capture_time is None


def test_unrecognized_file_is_extraction_failure(tmp_path):
    path = tmp_path / "notes.jpg"
    path.write_text("this is not an image")
    with pytest.raises(ExtractionFailure) as info:
        decode_image(path)
    assert info.value.path == path


def test_missing_file_is_extraction_failure(tmp_path):
    with pytest.raises(ExtractionFailure):
        decode_image(tmp_path / "gone.jpg")
