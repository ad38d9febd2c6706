from __future__ import annotations

import hashlib
import os

import pytest

from photo_organizer.core.errors import HashFailure
from photo_organizer.infrastructure.hashing import sha256_file


def test_known_digest(tmp_path):
    path = tmp_path / "abc.bin"
    path.write_bytes(b"abc")
    assert sha256_file(path) == hashlib.sha256(b"abc").hexdigest()


def test_identity_ignores_name_and_mtime(tmp_path):
    data = os.urandom(300_000)
    a = tmp_path / "IMG_0001.JPG"
    b = tmp_path / "nested" / "copy of photo.jpeg"
    b.parent.mkdir()
    a.write_bytes(data)
    b.write_bytes(data)
    os.utime(b, (0, 0))
    assert sha256_file(a, block_size=4096) == sha256_file(b)


def test_single_byte_difference_changes_digest(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.write_bytes(b"\x00" * 1024)
    b.write_bytes(b"\x00" * 1023 + b"\x01")
    assert sha256_file(a) != sha256_file(b)


def test_unreadable_file_raises_hash_failure(tmp_path):
    with pytest.raises(HashFailure) as info:
        sha256_file(tmp_path / "missing.jpg")
    assert info.value.reason == "hash-failed"
