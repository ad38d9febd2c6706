"""Content fingerprinting."""

from __future__ import annotations

import hashlib
from pathlib import Path

from photo_organizer.core.errors import HashFailure

BLOCK_SIZE = 1 << 20


def sha256_file(path: str | Path, block_size: int = BLOCK_SIZE) -> str:
    """Stream `path` through SHA-256 in blocks and return the hex digest.

    Only file bytes are hashed; name, mtime and permissions do not matter.
    """
    h = hashlib.sha256()
    try:
        with Path(path).open("rb") as f:
            for chunk in iter(lambda: f.read(block_size), b""):
                h.update(chunk)
    except OSError as ex:
        raise HashFailure(path, str(ex) or type(ex).__name__) from ex
    return h.hexdigest()
