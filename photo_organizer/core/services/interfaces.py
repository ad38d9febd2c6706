"""Core service interfaces and shared data structures.

This module defines the plan and report dataclasses passed between the
planner, the execution engine and the persistence layer, plus the narrow
interfaces through which the pipeline reaches its codecs.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from photo_organizer.core.errors import PlanConflict
from photo_organizer.core.models import AnalysisFailure, ImageMetadata, TrackPoint


class ActionKind(str, Enum):
    """What the execution engine should do with one source file."""

    MOVE = "move"
    COPY = "copy"
    SKIP_DUPLICATE = "skip-duplicate"
    SKIP_CONFLICT = "skip-conflict"

    @property
    def is_skip(self) -> bool:
        return self in (ActionKind.SKIP_DUPLICATE, ActionKind.SKIP_CONFLICT)


class Outcome(str, Enum):
    """Final per-file outcome in a report."""

    MOVED = "moved"
    COPIED = "copied"
    SKIPPED_DUPLICATE = "skipped-duplicate"
    SKIPPED_CONFLICT = "skipped-conflict"
    FAILED = "failed"


@dataclass(frozen=True)
class PlannedAction:
    """One planned operation.

    Attributes:
        source_path: File the action concerns.
        destination_path: Target path; None for skip actions.
        kind: Operation kind.
        content_hash: Content digest of the source, used to recognise files
            already present at the destination.
        reason: Reason code for skip actions.
        canonical_source: For duplicates, the source kept in their place.
    """

    source_path: Path
    destination_path: Path | None
    kind: ActionKind
    content_hash: str = ""
    reason: str | None = None
    canonical_source: Path | None = None


def destination_key(path: Path) -> str:
    """Comparison key for destinations, safe for case-insensitive filesystems."""
    return str(path).casefold()


@dataclass
class Plan:
    """The complete, deterministic set of intended file actions.

    Attributes:
        destination_root: Root under which all destinations live.
        mode: "copy" or "move".
        actions: One action per analyzed file, sorted by source path.
        failures: Files that failed analysis and are excluded from the plan.
    """

    destination_root: Path
    mode: str
    actions: list[PlannedAction] = field(default_factory=list)
    failures: list[AnalysisFailure] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.actions) + len(self.failures)

    def active_actions(self) -> list[PlannedAction]:
        """Actions that touch the filesystem."""
        return [a for a in self.actions if not a.kind.is_skip]

    def assert_unique_destinations(self) -> None:
        """Raise `PlanConflict` if two non-skip actions share a destination."""
        seen: dict[str, Path] = {}
        for action in self.active_actions():
            if action.destination_path is None:
                raise PlanConflict(
                    f"{action.source_path}: {action.kind.value} action without destination"
                )
            key = destination_key(action.destination_path)
            if key in seen:
                raise PlanConflict(
                    f"{action.source_path} and {seen[key]} both target {action.destination_path}"
                )
            seen[key] = action.source_path


@dataclass(frozen=True)
class ActionReport:
    """Outcome of a single file in an execution report."""

    source_path: Path
    outcome: Outcome
    destination_path: Path | None = None
    reason: str | None = None
    dry_run: bool = False


@dataclass
class ExecutionReport:
    """Per-file accounting of one run, in plan order."""

    entries: list[ActionReport] = field(default_factory=list)
    dry_run: bool = False

    def counts(self) -> dict[str, int]:
        counter = Counter(e.outcome.value for e in self.entries)
        return {o.value: counter.get(o.value, 0) for o in Outcome}

    @property
    def has_problems(self) -> bool:
        return any(e.outcome in (Outcome.FAILED, Outcome.SKIPPED_CONFLICT) for e in self.entries)

    def summary(self) -> str:
        counts = self.counts()
        parts = ", ".join(f"{k}={v}" for k, v in counts.items())
        prefix = "DRY RUN " if self.dry_run else ""
        return f"{prefix}total={len(self.entries)}, {parts}"


class IMetadataReader:
    """Interface for reading typed metadata from an image file."""

    def read(self, path: Path) -> ImageMetadata:
        """Return metadata for `path`; raise `ExtractionFailure` if it cannot be opened."""
        raise NotImplementedError


class ITrackParser:
    """Interface for GPS track-log parsers."""

    def parse(self, path: Path) -> list[TrackPoint]:
        """Return the trackpoints of `path`; raise `TrackParseFailure` on error."""
        raise NotImplementedError
