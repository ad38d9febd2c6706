"""Error taxonomy for the organization pipeline.

Per-file errors (`ExtractionFailure`, `HashFailure`, `ExecutionFailure`) are
converted into report entries and never abort a batch. `TrackParseFailure`
and `ConfigurationError` abort the run before any filesystem mutation.
"""

from __future__ import annotations

from pathlib import Path


class PhotoOrganizerError(Exception):
    """Base class for all organizer errors."""


class _PathError(PhotoOrganizerError):
    def __init__(self, path: str | Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = Path(path)
        self.message = message


class ExtractionFailure(_PathError):
    """The file could not be opened as an image at all."""

    reason = "extraction-failed"


class HashFailure(_PathError):
    """An I/O error occurred while hashing the file."""

    reason = "hash-failed"


class TrackParseFailure(_PathError):
    """A GPS track file could not be loaded."""


class ExecutionFailure(_PathError):
    """A filesystem operation for one planned action failed."""

    def __init__(self, path: str | Path, message: str, reason: str = "io-error") -> None:
        super().__init__(path, message)
        self.reason = reason


class PlanConflict(PhotoOrganizerError):
    """Two non-skip actions claim the same destination, or a plan file is inconsistent."""


class ConfigurationError(PhotoOrganizerError):
    """Invalid options or an unusable destination root."""
