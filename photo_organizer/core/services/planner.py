"""Organization planning.

Turns the complete set of analyzed records into one deterministic plan.
The planner is single-threaded and pure: it never touches the filesystem,
and the same records always produce the same plan.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from photo_organizer.core.config import OrganizerConfig
from photo_organizer.core.models import AnalysisFailure, DuplicateGroup, PhotoRecord
from photo_organizer.core.rules.canonical import choose_canonical, get_policy
from photo_organizer.core.rules.naming import destination_for, with_hash_suffix
from photo_organizer.core.services.interfaces import (
    ActionKind,
    Plan,
    PlannedAction,
    destination_key,
)


def group_duplicates(records: Iterable[PhotoRecord]) -> list[DuplicateGroup]:
    """Group records by content hash, ordered by hash then source path."""
    grouped: dict[str, list[PhotoRecord]] = defaultdict(list)
    for record in records:
        grouped[record.content_hash].append(record)
    return [
        DuplicateGroup(content_hash=h, members=sorted(items, key=lambda r: str(r.source_path)))
        for h, items in sorted(grouped.items())
    ]


class OrganizationPlanner:
    """Builds a `Plan` from records and analysis failures."""

    def __init__(self, config: OrganizerConfig) -> None:
        if config.mode not in ("copy", "move"):
            raise ValueError(f"unknown mode: {config.mode!r}")
        if config.destination_root is None:
            raise ValueError("destination_root is not configured")
        self._config = config
        self._policy = get_policy(config.duplicate_policy, config.source_roots)

    def plan(
        self, records: Iterable[PhotoRecord], failures: Iterable[AnalysisFailure] = ()
    ) -> Plan:
        """Compute the plan.

        Args:
            records: Successfully analyzed files.
            failures: Files that failed analysis; carried through unchanged so
                the final report accounts for every walked file.

        Returns:
            A plan with exactly one action per record, sorted by source path.
        """
        records = list(records)
        seen: set[Path] = set()
        for record in records:
            if record.source_path in seen:
                raise ValueError(f"source analyzed twice: {record.source_path}")
            seen.add(record.source_path)

        actions: dict[Path, PlannedAction] = {}
        canonicals: list[PhotoRecord] = []

        for group in group_duplicates(records):
            keep = choose_canonical(group.members, self._policy)
            canonicals.append(keep)
            for other in group.members:
                if other is keep:
                    continue
                logger.debug("Duplicate: {} (canonical: {})", other.source_path, keep.source_path)
                actions[other.source_path] = PlannedAction(
                    source_path=other.source_path,
                    destination_path=None,
                    kind=ActionKind.SKIP_DUPLICATE,
                    content_hash=other.content_hash,
                    reason="duplicate",
                    canonical_source=keep.source_path,
                )

        proposed = self._propose_destinations(canonicals, actions)
        self._claim_destinations(proposed, actions)

        plan = Plan(
            destination_root=Path(self._config.destination_root),
            mode=self._config.mode,
            actions=[actions[p] for p in sorted(actions, key=str)],
            failures=sorted(failures, key=lambda f: str(f.source_path)),
        )
        plan.assert_unique_destinations()
        return plan

    def _propose_destinations(
        self, canonicals: list[PhotoRecord], actions: dict[Path, PlannedAction]
    ) -> list[tuple[PhotoRecord, Path]]:
        """Compute destinations and suffix every member of a colliding set."""
        by_key: dict[str, list[tuple[PhotoRecord, Path]]] = defaultdict(list)
        for record in sorted(canonicals, key=lambda r: str(r.source_path)):
            try:
                dest = destination_for(record, self._config)
            except ValueError as ex:
                logger.warning("Cannot name {}: {}", record.source_path, ex)
                actions[record.source_path] = PlannedAction(
                    source_path=record.source_path,
                    destination_path=None,
                    kind=ActionKind.SKIP_CONFLICT,
                    content_hash=record.content_hash,
                    reason="naming-failed",
                )
                continue
            corr = record.correlated_position
            if (
                record.embedded_position is None
                and corr is not None
                and corr.is_low_confidence(self._config.low_confidence_gap)
            ):
                logger.warning(
                    "Low-confidence track position for {} (gap {})", record.source_path, corr.gap
                )
            by_key[destination_key(dest)].append((record, dest))

        proposed: list[tuple[PhotoRecord, Path]] = []
        for entries in by_key.values():
            if len(entries) == 1:
                proposed.append(entries[0])
                continue
            logger.info(
                "{} files would be named {}, adding hash suffixes", len(entries), entries[0][1]
            )
            for record, dest in entries:
                suffixed = with_hash_suffix(dest, record.content_hash, self._config.suffix_length)
                proposed.append((record, suffixed))
        proposed.sort(key=lambda item: str(item[0].source_path))
        return proposed

    def _claim_destinations(
        self, proposed: list[tuple[PhotoRecord, Path]], actions: dict[Path, PlannedAction]
    ) -> None:
        """Hand out destinations in source-path order.

        A suffixed name can still equal another record's unsuffixed name; the
        later record then becomes `skip-conflict` instead of overwriting.
        """
        kind = ActionKind.MOVE if self._config.mode == "move" else ActionKind.COPY
        claimed: dict[str, Path] = {}
        for record, dest in proposed:
            key = destination_key(dest)
            if key in claimed:
                logger.error(
                    "Unresolved destination conflict: {} and {} both map to {}",
                    claimed[key],
                    record.source_path,
                    dest,
                )
                actions[record.source_path] = PlannedAction(
                    source_path=record.source_path,
                    destination_path=None,
                    kind=ActionKind.SKIP_CONFLICT,
                    content_hash=record.content_hash,
                    reason="unresolved-collision",
                )
                continue
            claimed[key] = record.source_path
            actions[record.source_path] = PlannedAction(
                source_path=record.source_path,
                destination_path=dest,
                kind=kind,
                content_hash=record.content_hash,
            )
