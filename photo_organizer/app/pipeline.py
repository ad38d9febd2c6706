"""Wiring of the organization pipeline: walk, analyze, correlate, plan.

Configuration and track data are passed in explicitly so the whole pipeline
can be driven from tests with stub collaborators.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from photo_organizer.core.config import OrganizerConfig
from photo_organizer.core.services.correlator import TrackCorrelator
from photo_organizer.core.services.interfaces import IMetadataReader, ITrackParser, Plan
from photo_organizer.core.services.planner import OrganizationPlanner
from photo_organizer.infrastructure.analysis_service import AnalysisResult, AnalysisService
from photo_organizer.infrastructure.metadata_reader import PillowMetadataReader
from photo_organizer.infrastructure.scanner import iter_photo_files
from photo_organizer.infrastructure.track_loader import load_tracks


@dataclass
class PipelineResult:
    plan: Plan
    analysis: AnalysisResult


def build_correlator(
    config: OrganizerConfig, track_paths: Iterable[Path], parser: ITrackParser | None = None
) -> TrackCorrelator | None:
    """Load all track files up front; any failure aborts with `TrackParseFailure`."""
    track_paths = list(track_paths)
    if not track_paths:
        return None
    correlator = TrackCorrelator.from_tracks(load_tracks(track_paths, parser), config.max_gap)
    span = correlator.span
    logger.info("Track covers {} to {} ({} points)", span[0], span[1], len(correlator))
    return correlator


def collect_files(config: OrganizerConfig) -> list[Path]:
    exclude = [config.destination_root] if config.destination_root is not None else []
    return list(
        iter_photo_files(
            config.source_roots,
            config.extensions,
            include_hidden=config.include_hidden,
            follow_symlinks=config.follow_symlinks,
            exclude=exclude,
        )
    )


def analyze_sources(
    config: OrganizerConfig,
    correlator: TrackCorrelator | None = None,
    reader: IMetadataReader | None = None,
) -> AnalysisResult:
    files = collect_files(config)
    logger.info("Found {} candidate files", len(files))
    reader = reader or PillowMetadataReader(config.camera_timezone)
    service = AnalysisService(reader, correlator=correlator, workers=config.workers)
    return service.analyze(files)


def build_plan(
    config: OrganizerConfig,
    track_paths: Iterable[Path] = (),
    reader: IMetadataReader | None = None,
    parser: ITrackParser | None = None,
) -> PipelineResult:
    """Run the analysis phase, then the single-threaded planning pass."""
    correlator = build_correlator(config, track_paths, parser)
    analysis = analyze_sources(config, correlator, reader)
    plan = OrganizationPlanner(config).plan(analysis.records, analysis.failures)
    return PipelineResult(plan=plan, analysis=analysis)
