"""Parallel per-file analysis: metadata, fingerprint and track correlation.

Each file is analyzed by an independent task that only reads that file and
returns one immutable `PhotoRecord` or one `AnalysisFailure`. Results are
gathered at a single fan-in point and sorted by source path before planning.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
import os
from pathlib import Path

from loguru import logger

from photo_organizer.core.errors import ExtractionFailure, HashFailure
from photo_organizer.core.models import AnalysisFailure, ImageMetadata, PhotoRecord
from photo_organizer.core.services.correlator import TrackCorrelator
from photo_organizer.core.services.interfaces import IMetadataReader
from photo_organizer.infrastructure.hashing import sha256_file

Hasher = Callable[[Path], str]


@dataclass
class AnalysisResult:
    """Fan-in buffer of the analysis phase, sorted by source path."""

    records: list[PhotoRecord] = field(default_factory=list)
    failures: list[AnalysisFailure] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.records) + len(self.failures)


def build_record(
    path: Path,
    metadata: ImageMetadata,
    content_hash: str,
    correlator: TrackCorrelator | None = None,
) -> PhotoRecord:
    """Assemble a record; correlate only when the file carries no GPS of its own."""
    correlated = None
    if metadata.position is None and metadata.capture_time is not None and correlator is not None:
        correlated = correlator.correlate(metadata.capture_time)
    return PhotoRecord(
        source_path=path,
        content_hash=content_hash,
        capture_time=metadata.capture_time,
        embedded_position=metadata.position,
        correlated_position=correlated,
        metadata=metadata,
    )


class AnalysisService:
    """Runs extraction and fingerprinting for many files on a worker pool."""

    def __init__(
        self,
        reader: IMetadataReader,
        correlator: TrackCorrelator | None = None,
        hasher: Hasher = sha256_file,
        workers: int | None = None,
    ) -> None:
        self._reader = reader
        self._correlator = correlator
        self._hasher = hasher
        self._workers = max(1, workers or os.cpu_count() or 1)

    def analyze_one(self, path: Path) -> PhotoRecord | AnalysisFailure:
        """Analyze a single file; every error becomes that file's failure."""
        try:
            metadata = self._reader.read(path)
            content_hash = self._hasher(path)
            return build_record(path, metadata, content_hash, self._correlator)
        except (ExtractionFailure, HashFailure) as ex:
            logger.warning("Cannot analyze {}: {}", path, ex.message)
            return AnalysisFailure(path, ex.reason, ex.message)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            logger.exception("Unexpected error analyzing {}", path)
            return AnalysisFailure(path, "analysis-crashed", f"{type(ex).__name__}: {ex}")

    def analyze(self, paths: Iterable[Path]) -> AnalysisResult:
        """Analyze all `paths` in parallel and return the sorted fan-in buffer."""
        paths = list(paths)
        result = AnalysisResult()
        if not paths:
            return result

        logger.info("Analyzing {} files with {} workers", len(paths), self._workers)
        with ThreadPoolExecutor(max_workers=self._workers) as executor:
            futures = [executor.submit(self.analyze_one, p) for p in paths]
            for future in as_completed(futures):
                outcome = future.result()
                if isinstance(outcome, AnalysisFailure):
                    result.failures.append(outcome)
                else:
                    result.records.append(outcome)

        result.records.sort(key=lambda r: str(r.source_path))
        result.failures.sort(key=lambda f: str(f.source_path))
        logger.info(
            "Analysis done: {} records, {} failures", len(result.records), len(result.failures)
        )
        return result
