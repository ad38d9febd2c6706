"""Plan execution service.

Applies a `Plan` to the filesystem, or validates it without mutation in dry
run. Both paths share `check_action`, so a dry-run preview reports exactly
what an apply would do. No code path overwrites an existing file.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import errno
import os
from pathlib import Path
import shutil
import threading

from loguru import logger

from photo_organizer.core.errors import ExecutionFailure, HashFailure
from photo_organizer.core.services.interfaces import (
    ActionKind,
    ActionReport,
    ExecutionReport,
    Outcome,
    Plan,
    PlannedAction,
)
from photo_organizer.infrastructure.hashing import sha256_file

_DONE = {ActionKind.MOVE: Outcome.MOVED, ActionKind.COPY: Outcome.COPIED}
_SKIPPED = {
    ActionKind.SKIP_DUPLICATE: Outcome.SKIPPED_DUPLICATE,
    ActionKind.SKIP_CONFLICT: Outcome.SKIPPED_CONFLICT,
}
_CROSS_DEVICE = {errno.EXDEV, errno.EPERM, errno.ENOTSUP, errno.EACCES}


class AlreadyPresent(Exception):
    """The destination already holds a byte-identical copy of the source."""


def _nearest_existing(path: Path) -> Path:
    current = path
    while not current.exists():
        if current.parent == current:
            break
        current = current.parent
    return current


def check_action(action: PlannedAction) -> None:
    """Validate that a move/copy can be performed right now.

    Raises:
        AlreadyPresent: The destination exists with the same content.
        ExecutionFailure: Any precondition fails; `reason` carries the code.
    """
    src = action.source_path
    dst = action.destination_path
    if dst is None:
        raise ExecutionFailure(src, "no destination in plan", reason="invalid-action")
    if not src.is_file():
        raise ExecutionFailure(src, "source file no longer exists", reason="source-missing")

    if dst.exists() or dst.is_symlink():
        if dst.is_file() and action.content_hash:
            try:
                same = sha256_file(dst) == action.content_hash
            except HashFailure as ex:
                raise ExecutionFailure(src, ex.message, reason="destination-unreadable") from ex
            if same:
                raise AlreadyPresent(str(dst))
        raise ExecutionFailure(
            src, f"destination already exists: {dst}", reason="destination-exists"
        )

    anchor = _nearest_existing(dst.parent)
    if not anchor.is_dir():
        raise ExecutionFailure(
            src, f"cannot create directory under {anchor}", reason="destination-blocked"
        )
    if not os.access(anchor, os.W_OK | os.X_OK):
        raise ExecutionFailure(
            src, f"directory not writable: {anchor}", reason="destination-unwritable"
        )


def _copy_exclusive(src: Path, dst: Path) -> None:
    """Copy with exclusive create so an existing destination is never clobbered."""
    with src.open("rb") as fin:
        with dst.open("xb") as fout:
            try:
                shutil.copyfileobj(fin, fout, 1 << 20)
            except OSError:
                fout.close()
                dst.unlink(missing_ok=True)
                raise
    shutil.copystat(src, dst)


def _move(src: Path, dst: Path) -> None:
    try:
        os.link(src, dst)
    except FileExistsError:
        raise
    except OSError as ex:
        # hardlinks are not possible across devices or on some filesystems
        if ex.errno not in _CROSS_DEVICE:
            raise
        _copy_exclusive(src, dst)
    try:
        src.unlink()
    except OSError:
        # a failed move must not leave a second copy behind
        dst.unlink(missing_ok=True)
        raise


class ExecutionService:
    """Coordinates plan execution and per-action reporting."""

    def __init__(self, workers: int | None = None) -> None:
        self._workers = max(1, workers or os.cpu_count() or 1)
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop scheduling new actions; actions already started run to completion."""
        self._cancelled.set()

    def perform(self, action: PlannedAction, dry_run: bool = False) -> ActionReport:
        """Validate and (unless `dry_run`) execute one move/copy action."""
        if self._cancelled.is_set():
            return ActionReport(
                action.source_path, Outcome.FAILED, action.destination_path, "cancelled", dry_run
            )
        try:
            check_action(action)
            if not dry_run:
                dst = action.destination_path
                # exist_ok: concurrent creators of the same directory both succeed
                dst.parent.mkdir(parents=True, exist_ok=True)
                if action.kind == ActionKind.MOVE:
                    _move(action.source_path, dst)
                else:
                    _copy_exclusive(action.source_path, dst)
                logger.info("{} {} -> {}", action.kind.value, action.source_path, dst)
            return ActionReport(
                action.source_path, _DONE[action.kind], action.destination_path, None, dry_run
            )
        except AlreadyPresent:
            logger.info("Already present: {} at {}", action.source_path, action.destination_path)
            return ActionReport(
                action.source_path,
                Outcome.SKIPPED_DUPLICATE,
                action.destination_path,
                "already-present",
                dry_run,
            )
        except ExecutionFailure as ex:
            logger.error("{}: {}", action.source_path, ex.message)
            return ActionReport(
                action.source_path, Outcome.FAILED, action.destination_path, ex.reason, dry_run
            )
        except FileExistsError:
            logger.error("Destination appeared during apply: {}", action.destination_path)
            return ActionReport(
                action.source_path,
                Outcome.FAILED,
                action.destination_path,
                "destination-exists",
                dry_run,
            )
        except OSError as ex:
            logger.error("I/O error for {}: {}", action.source_path, ex)
            return ActionReport(
                action.source_path, Outcome.FAILED, action.destination_path, "io-error", dry_run
            )

    def execute(self, plan: Plan, dry_run: bool = False) -> ExecutionReport:
        """Apply `plan` (or preview it) and report one entry per input file.

        Args:
            plan: The plan produced by the planner or loaded from a plan file.
            dry_run: Validate every action without mutating the filesystem.

        Returns:
            Entries in plan order followed by the analysis failures.
        """
        plan.assert_unique_destinations()
        reports: dict[int, ActionReport] = {}
        futures: dict[int, Future[ActionReport]] = {}

        with ThreadPoolExecutor(max_workers=self._workers) as executor:
            for i, action in enumerate(plan.actions):
                if action.kind.is_skip:
                    reports[i] = ActionReport(
                        action.source_path,
                        _SKIPPED[action.kind],
                        None,
                        action.reason,
                        dry_run,
                    )
                    continue
                futures[i] = executor.submit(self.perform, action, dry_run)

            for i, future in futures.items():
                reports[i] = future.result()

        entries = [reports[i] for i in range(len(plan.actions))]
        entries.extend(
            ActionReport(f.source_path, Outcome.FAILED, None, f.reason, dry_run)
            for f in plan.failures
        )
        report = ExecutionReport(entries=entries, dry_run=dry_run)
        logger.info("Execution finished: {}", report.summary())
        return report
