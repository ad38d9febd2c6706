"""CSV index of the organized collection.

The index lives at the destination root and records, for every file the
organizer placed there, its path relative to the root, its original file
name and its content hash. `verify` re-hashes against it.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
import csv
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from photo_organizer.core.errors import HashFailure
from photo_organizer.core.services.interfaces import ExecutionReport, Outcome, Plan
from photo_organizer.infrastructure.hashing import sha256_file

INDEX_FILE_NAME = "photo_organizer_index.csv"

CSV_HEADERS = ["FilePath", "OriginalFileName", "FileHash"]


@dataclass(frozen=True)
class IndexEntry:
    file_path: str
    original_file_name: str
    file_hash: str


@dataclass
class VerifyResult:
    """Outcome of re-checking a collection against its index."""

    checked: int = 0
    missing: list[str] = field(default_factory=list)
    mismatched: list[str] = field(default_factory=list)
    duplicates: list[list[str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.missing or self.mismatched or self.duplicates)


class CsvIndexRepository:
    """Load, merge and save the collection index."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.path = self.root / INDEX_FILE_NAME

    def load(self) -> list[IndexEntry]:
        """Return index entries; an absent index is empty."""
        if not self.path.exists():
            return []
        entries: list[IndexEntry] = []
        with self.path.open("r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            missing = [h for h in CSV_HEADERS if h not in (reader.fieldnames or [])]
            if missing:
                raise ValueError(f"index missing required headers: {missing}")
            for row in reader:
                if not row.get("FilePath"):
                    logger.warning("Index row without path ignored: {}", row)
                    continue
                entries.append(
                    IndexEntry(
                        row["FilePath"], row.get("OriginalFileName", ""), row.get("FileHash", "")
                    )
                )
        return entries

    def save(self, entries: Iterable[IndexEntry]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_HEADERS)
            writer.writeheader()
            for e in sorted(entries, key=lambda x: x.file_path):
                writer.writerow(
                    {
                        "FilePath": e.file_path,
                        "OriginalFileName": e.original_file_name,
                        "FileHash": e.file_hash,
                    }
                )

    def merge(self, entries: Iterable[IndexEntry]) -> int:
        """Add or replace entries keyed by relative path; return how many were written."""
        by_path = {e.file_path: e for e in self.load()}
        count = 0
        for e in entries:
            by_path[e.file_path] = e
            count += 1
        self.save(by_path.values())
        return count

    def record_execution(self, plan: Plan, report: ExecutionReport) -> int:
        """Add every file the report shows as moved or copied under the root."""
        hashes = {a.source_path: a.content_hash for a in plan.actions}
        new_entries: list[IndexEntry] = []
        for e in report.entries:
            if e.dry_run or e.outcome not in (Outcome.MOVED, Outcome.COPIED):
                continue
            if e.destination_path is None:
                continue
            try:
                rel = e.destination_path.relative_to(self.root)
            except ValueError:
                logger.warning("Destination outside index root: {}", e.destination_path)
                continue
            new_entries.append(
                IndexEntry(rel.as_posix(), e.source_path.name, hashes.get(e.source_path, ""))
            )
        if not new_entries:
            return 0
        count = self.merge(new_entries)
        logger.info("Index updated: {} ({} entries added)", self.path, count)
        return count

    def verify(self) -> VerifyResult:
        """Re-hash every indexed file and look for missing files, mismatches and duplicates."""
        result = VerifyResult()
        by_hash: dict[str, list[str]] = defaultdict(list)
        for entry in self.load():
            result.checked += 1
            by_hash[entry.file_hash].append(entry.file_path)
            full = self.root / entry.file_path
            if not full.is_file():
                logger.warning("{}: indexed file is missing", entry.file_path)
                result.missing.append(entry.file_path)
                continue
            try:
                actual = sha256_file(full)
            except HashFailure as ex:
                logger.warning("{}: could not re-hash ({})", entry.file_path, ex.message)
                result.mismatched.append(entry.file_path)
                continue
            if actual != entry.file_hash:
                logger.warning(
                    "{}: hash does not match (recorded {} but was {})",
                    entry.file_path,
                    entry.file_hash,
                    actual,
                )
                result.mismatched.append(entry.file_path)

        for h, paths in sorted(by_hash.items()):
            if len(paths) > 1:
                logger.warning(
                    "These files seem to be duplicates (hash: {}): {}", h, ", ".join(paths)
                )
                result.duplicates.append(sorted(paths))
        return result
