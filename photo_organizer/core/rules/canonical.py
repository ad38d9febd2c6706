"""Policies that pick the canonical member of a duplicate group.

A policy is a sort key over `PhotoRecord`; the smallest record wins. Every
key ends with the source path so that the choice is total and reproducible.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from photo_organizer.core.models import PhotoRecord

SortKey = Callable[[PhotoRecord], Any]

_LATEST = datetime.max.replace(tzinfo=timezone.utc)


def earliest_capture(record: PhotoRecord) -> tuple:
    """Earliest capture time first; undated records after dated ones."""
    ts = record.capture_time
    return (ts is None, ts or _LATEST, str(record.source_path))


def shortest_path(record: PhotoRecord) -> tuple:
    path = str(record.source_path)
    return (len(path), path)


def root_order(roots: Sequence[Path]) -> SortKey:
    """Prefer files under roots listed earlier, then fall back to `earliest_capture`."""
    resolved = [Path(r) for r in roots]

    def key(record: PhotoRecord) -> tuple:
        rank = len(resolved)
        for i, root in enumerate(resolved):
            if record.source_path.is_relative_to(root):
                rank = i
                break
        return (rank, *earliest_capture(record))

    return key


POLICIES = ("earliest", "shortest-path", "root-order")


def get_policy(name: str, roots: Sequence[Path] = ()) -> SortKey:
    """Return the sort key for policy `name`."""
    if name == "earliest":
        return earliest_capture
    if name == "shortest-path":
        return shortest_path
    if name == "root-order":
        return root_order(roots)
    raise ValueError(f"unknown duplicate policy: {name!r} (expected one of {', '.join(POLICIES)})")


def choose_canonical(members: Sequence[PhotoRecord], key: SortKey) -> PhotoRecord:
    return min(members, key=key)
