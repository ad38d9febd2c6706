"""Command-line interface.

Exit codes: 0 on success, 1 if any file failed or was left in an unresolved
conflict (or `verify` found problems), 2 if the run was aborted before any
filesystem mutation.
"""

from __future__ import annotations

import argparse
from pathlib import Path
import subprocess
import sys

import gpxpy.gpx
from loguru import logger

from photo_organizer.app.pipeline import analyze_sources, build_correlator, build_plan
from photo_organizer.core.config import MODES, OrganizerConfig
from photo_organizer.core.errors import (
    ConfigurationError,
    PlanConflict,
    TrackParseFailure,
)
from photo_organizer.core.rules.canonical import POLICIES
from photo_organizer.core.services.interfaces import ExecutionReport, Outcome, Plan
from photo_organizer.infrastructure.execution_service import ExecutionService
from photo_organizer.infrastructure.index_repository import CsvIndexRepository
from photo_organizer.infrastructure.logging import init_logging
from photo_organizer.infrastructure.plan_repository import (
    dumps_plan,
    load_plan,
    save_plan,
    save_report,
)
from photo_organizer.infrastructure.settings import JsonSettings, load_config, validate_config

EXIT_OK = 0
EXIT_PROBLEMS = 1
EXIT_ABORTED = 2


def _organize_options() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(add_help=False)
    p.add_argument("sources", nargs="*", type=Path, help="Source directories to walk")
    p.add_argument("--dest", type=Path, help="Destination root of the organized tree")
    p.add_argument(
        "--track", type=Path, action="append", default=[], help="GPX track log (repeatable)"
    )
    p.add_argument("--mode", choices=MODES, help="Copy (default) or move files")
    p.add_argument(
        "--duplicate-policy", choices=POLICIES, help="How to pick the kept copy of duplicates"
    )
    p.add_argument(
        "--max-gap", type=float, metavar="MINUTES", help="Widest track gap to interpolate across"
    )
    p.add_argument("--workers", type=int, help="Worker threads (default: one per CPU)")
    p.add_argument(
        "--include-hidden", action="store_true", default=None, help="Also walk hidden files"
    )
    p.add_argument(
        "--follow-symlinks", action="store_true", default=None, help="Follow symbolic links"
    )
    p.add_argument("--report", type=Path, help="Write a per-file report (.json or .csv)")
    return p


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="po",
        description="Organize photos by capture date and location, without duplicates.",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More output (repeatable)"
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only report errors")
    parser.add_argument("--log-dir", type=Path, help="Also write rotating log files here")
    parser.add_argument("--settings", type=Path, help="JSON settings file")
    sub = parser.add_subparsers(dest="command", required=True)

    organize = _organize_options()
    p_plan = sub.add_parser(
        "plan", parents=[organize], help="Compute the plan without changing anything"
    )
    p_plan.add_argument("--output", help="Write the plan as JSON ('-' for stdout)")

    p_apply = sub.add_parser(
        "apply", parents=[organize], help="Compute or load a plan and execute it"
    )
    p_apply.add_argument(
        "--plan", type=Path, dest="plan_file", help="Execute a previously written plan"
    )

    p_list = sub.add_parser("list", help="Show metadata of photos")
    p_list.add_argument("sources", nargs="+", type=Path)
    p_list.add_argument("--include-hidden", action="store_true", default=None)

    p_map = sub.add_parser("map", help="Export photo locations as GPX waypoints")
    p_map.add_argument("sources", nargs="+", type=Path)
    p_map.add_argument("--output", type=Path, required=True, help="GPX file to write")
    p_map.add_argument("--track", type=Path, action="append", default=[], help="GPX track log")
    p_map.add_argument("--max-gap", type=float, metavar="MINUTES")
    p_map.add_argument(
        "--command", dest="open_with", help="Open the GPX file with this program afterwards"
    )

    p_verify = sub.add_parser("verify", help="Re-hash the organized collection against its index")
    p_verify.add_argument("--dest", type=Path, required=True)
    return parser


def _config_from_args(args: argparse.Namespace) -> OrganizerConfig:
    settings = JsonSettings(args.settings) if args.settings else None
    dest = getattr(args, "dest", None)
    sources = getattr(args, "sources", None) or None
    return load_config(
        settings,
        destination_root=dest.absolute() if dest is not None else None,
        source_roots=[s.absolute() for s in sources] if sources else None,
        mode=getattr(args, "mode", None),
        duplicate_policy=getattr(args, "duplicate_policy", None),
        max_gap_minutes=getattr(args, "max_gap", None),
        workers=getattr(args, "workers", None),
        include_hidden=getattr(args, "include_hidden", None),
        follow_symlinks=getattr(args, "follow_symlinks", None),
    )


def _print_summary(report: ExecutionReport) -> None:
    for e in report.entries:
        if e.outcome in (Outcome.FAILED, Outcome.SKIPPED_CONFLICT):
            print(f"{e.outcome.value}: {e.source_path} ({e.reason})")
    print(report.summary())


def _finish(report: ExecutionReport, args: argparse.Namespace) -> int:
    if args.report:
        save_report(args.report, report)
    _print_summary(report)
    return EXIT_PROBLEMS if report.has_problems else EXIT_OK


def _compute_plan(args: argparse.Namespace) -> tuple[Plan, OrganizerConfig]:
    config = _config_from_args(args)
    validate_config(config)
    if not config.source_roots:
        raise ConfigurationError("at least one source directory is required")
    result = build_plan(config, args.track)
    return result.plan, config


def cmd_plan(args: argparse.Namespace) -> int:
    plan, config = _compute_plan(args)
    if args.output == "-":
        sys.stdout.write(dumps_plan(plan))
    elif args.output:
        save_plan(args.output, plan)
    report = ExecutionService(config.workers).execute(plan, dry_run=True)
    return _finish(report, args)


def cmd_apply(args: argparse.Namespace) -> int:
    if args.plan_file:
        plan = load_plan(args.plan_file)
        config = _config_from_args(args)
        config.destination_root = plan.destination_root
        config.mode = plan.mode
        validate_config(config)
    else:
        plan, config = _compute_plan(args)

    report = ExecutionService(config.workers).execute(plan, dry_run=False)
    CsvIndexRepository(plan.destination_root).record_execution(plan, report)
    return _finish(report, args)


def cmd_list(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    validate_config(config, require_destination=False)
    analysis = analyze_sources(config)
    for r in analysis.records:
        md = r.metadata
        when = "unknown time"
        if r.capture_time is not None:
            when = r.capture_time.astimezone(config.output_timezone).strftime("%d.%m.%Y %H:%M")
        pos = r.embedded_position
        loc = f"{pos.latitude:.4f},{pos.longitude:.4f}" if pos else "?,?"
        alt = f"{md.altitude:g}m" if md.altitude is not None else "?"
        make = md.camera_make or "<unknown make>"
        model = md.camera_model or "<unknown model>"
        size = f"{md.width}x{md.height} {md.image_format or ''}".rstrip()
        print(f"{r.source_path}: {make} / {model} / {when} / loc: {loc},{alt} / {size}")
    for f in analysis.failures:
        print(f"{f.source_path}: could not read ({f.message})")
    return EXIT_PROBLEMS if analysis.failures else EXIT_OK


def open_with(command: str, path: Path) -> bool:
    """Run `command` on `path` and wait for it; False if it could not run or failed."""
    logger.info("Invoking external command {}...", command)
    try:
        subprocess.run([command, str(path)], check=True)
        return True
    except (OSError, subprocess.CalledProcessError) as ex:
        logger.error("Could not open {} with {}: {}", path, command, ex)
        return False


def cmd_map(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    validate_config(config, require_destination=False)
    correlator = build_correlator(config, args.track)
    analysis = analyze_sources(config, correlator)

    gpx = gpxpy.gpx.GPX()
    for r in analysis.records:
        pos = r.effective_position
        if pos is None:
            logger.warning("No location for {}", r.source_path)
            continue
        gpx.waypoints.append(
            gpxpy.gpx.GPXWaypoint(
                latitude=pos.latitude,
                longitude=pos.longitude,
                elevation=r.metadata.altitude if r.embedded_position else None,
                time=r.capture_time,
                name=str(r.source_path),
            )
        )
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(gpx.to_xml(), encoding="utf-8")
    print(f"{len(gpx.waypoints)} locations written to {args.output}")

    if args.open_with and not open_with(args.open_with, args.output):
        return EXIT_PROBLEMS
    return EXIT_OK


def cmd_verify(args: argparse.Namespace) -> int:
    repo = CsvIndexRepository(args.dest)
    if not repo.path.exists():
        raise ConfigurationError(f"no index found at {repo.path}")
    result = repo.verify()
    print(
        f"checked={result.checked}, missing={len(result.missing)}, "
        f"mismatched={len(result.mismatched)}, duplicate_groups={len(result.duplicates)}"
    )
    return EXIT_OK if result.ok else EXIT_PROBLEMS


COMMANDS = {
    "plan": cmd_plan,
    "apply": cmd_apply,
    "list": cmd_list,
    "map": cmd_map,
    "verify": cmd_verify,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    init_logging(-1 if args.quiet else args.verbose, args.log_dir)
    try:
        return COMMANDS[args.command](args)
    except (ConfigurationError, TrackParseFailure, PlanConflict) as ex:
        logger.error("Aborted: {}", ex)
        return EXIT_ABORTED
    except (FileNotFoundError, ValueError) as ex:
        logger.error("Aborted: {}", ex)
        return EXIT_ABORTED
