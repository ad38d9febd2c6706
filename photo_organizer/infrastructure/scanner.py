"""Directory walk producing candidate photo files."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
import os
from pathlib import Path

from loguru import logger


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _is_under(child: Path, parents: list[Path]) -> bool:
    return any(child == p or child.is_relative_to(p) for p in parents)


def iter_photo_files(
    roots: Iterable[str | Path],
    extensions: Iterable[str],
    include_hidden: bool = False,
    follow_symlinks: bool = False,
    exclude: Iterable[str | Path] = (),
) -> Iterator[Path]:
    """Yield absolute paths of photo files under `roots`, lazily and in a stable order.

    Args:
        roots: Directories to walk. A root that is a file is yielded as is.
        extensions: Accepted suffixes, compared case-insensitively.
        include_hidden: Also walk dot-files and dot-directories.
        follow_symlinks: Follow symlinked directories and yield symlinked files.
        exclude: Subtrees to skip, typically the destination root.
    """
    exts = {e.lower() for e in extensions}
    excluded = [Path(p).resolve() for p in exclude]
    seen: set[Path] = set()
    visited_dirs: set[Path] = set()

    def accept(path: Path) -> bool:
        if path.suffix.lower() not in exts:
            return False
        if path.is_symlink() and not follow_symlinks:
            return False
        resolved = path.resolve()
        if resolved in seen:
            return False
        seen.add(resolved)
        return True

    for root in roots:
        root_path = Path(root).absolute()
        if root_path.is_file():
            if accept(root_path):
                yield root_path
            continue
        if not root_path.is_dir():
            logger.warning("Source root is not a directory: {}", root_path)
            continue

        for dirpath, dirnames, filenames in os.walk(root_path, followlinks=follow_symlinks):
            current = Path(dirpath)
            real = current.resolve()
            if real in visited_dirs:
                # symlink cycle or overlapping roots
                dirnames[:] = []
                continue
            visited_dirs.add(real)
            kept = []
            for d in sorted(dirnames):
                if not include_hidden and _is_hidden(d):
                    continue
                if _is_under((current / d).resolve(), excluded):
                    logger.debug("Skipping excluded directory: {}", current / d)
                    continue
                kept.append(d)
            dirnames[:] = kept

            for name in sorted(filenames):
                if not include_hidden and _is_hidden(name):
                    continue
                path = current / name
                if accept(path):
                    yield path
