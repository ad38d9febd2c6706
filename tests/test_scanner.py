from __future__ import annotations

from pathlib import Path

from photo_organizer.infrastructure.scanner import iter_photo_files

EXTS = (".jpg", ".jpeg", ".png")


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x")
    return path


def test_filters_extensions_case_insensitively(tmp_path):
    _touch(tmp_path / "b.JPG")
    _touch(tmp_path / "a.jpeg")
    _touch(tmp_path / "notes.txt")
    _touch(tmp_path / "sub" / "c.png")
    names = [p.name for p in iter_photo_files([tmp_path], EXTS)]
    assert names == ["a.jpeg", "b.JPG", "c.png"]


def test_hidden_files_and_directories(tmp_path):
    _touch(tmp_path / ".hidden.jpg")
    _touch(tmp_path / ".cache" / "thumb.jpg")
    _touch(tmp_path / "visible.jpg")
    assert [p.name for p in iter_photo_files([tmp_path], EXTS)] == ["visible.jpg"]
    found = {p.name for p in iter_photo_files([tmp_path], EXTS, include_hidden=True)}
    assert found == {".hidden.jpg", "thumb.jpg", "visible.jpg"}


def test_excluded_subtree_is_pruned(tmp_path):
    _touch(tmp_path / "in.jpg")
    _touch(tmp_path / "organized" / "2023" / "out.jpg")
    found = [p.name for p in iter_photo_files([tmp_path], EXTS, exclude=[tmp_path / "organized"])]
    assert found == ["in.jpg"]


def test_overlapping_roots_yield_each_file_once(tmp_path):
    _touch(tmp_path / "sub" / "a.jpg")
    found = list(iter_photo_files([tmp_path, tmp_path / "sub"], EXTS))
    assert len(found) == 1
    assert found[0].is_absolute()


def test_symlinks_skipped_unless_followed(tmp_path):
    target = _touch(tmp_path / "real" / "a.jpg")
    link_dir = tmp_path / "links"
    link_dir.mkdir()
    (link_dir / "b.jpg").symlink_to(target)
    found = [p.name for p in iter_photo_files([link_dir], EXTS)]
    assert found == []
    found = [p.name for p in iter_photo_files([link_dir], EXTS, follow_symlinks=True)]
    assert found == ["b.jpg"]


def test_missing_root_is_skipped(tmp_path):
    assert list(iter_photo_files([tmp_path / "nope"], EXTS)) == []
