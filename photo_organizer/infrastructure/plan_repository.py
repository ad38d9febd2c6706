"""JSON persistence for plans and JSON/CSV persistence for execution reports.

Plans are written as canonical JSON (sorted keys, fixed indentation, no
timestamps) so two plans over the same input are byte-identical.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from loguru import logger

from photo_organizer.core.errors import PlanConflict
from photo_organizer.core.models import AnalysisFailure
from photo_organizer.core.services.interfaces import (
    ActionKind,
    ExecutionReport,
    Plan,
    PlannedAction,
)

PLAN_FORMAT_VERSION = 1

REPORT_HEADERS = ["SourcePath", "Outcome", "DestinationPath", "Reason", "DryRun"]


def _opt(path: Path | None) -> str | None:
    return str(path) if path is not None else None


def plan_to_dict(plan: Plan) -> dict[str, Any]:
    return {
        "version": PLAN_FORMAT_VERSION,
        "destination_root": str(plan.destination_root),
        "mode": plan.mode,
        "actions": [
            {
                "source_path": str(a.source_path),
                "destination_path": _opt(a.destination_path),
                "kind": a.kind.value,
                "content_hash": a.content_hash,
                "reason": a.reason,
                "canonical_source": _opt(a.canonical_source),
            }
            for a in plan.actions
        ],
        "failures": [
            {"source_path": str(f.source_path), "reason": f.reason, "message": f.message}
            for f in plan.failures
        ],
    }


def plan_from_dict(data: dict[str, Any]) -> Plan:
    """Rebuild a plan and re-check its destination uniqueness.

    Raises:
        PlanConflict: The document is malformed or violates uniqueness.
    """
    if data.get("version") != PLAN_FORMAT_VERSION:
        raise PlanConflict(f"unsupported plan version: {data.get('version')!r}")
    try:
        actions = [
            PlannedAction(
                source_path=Path(a["source_path"]),
                destination_path=Path(a["destination_path"]) if a.get("destination_path") else None,
                kind=ActionKind(a["kind"]),
                content_hash=a.get("content_hash") or "",
                reason=a.get("reason"),
                canonical_source=Path(a["canonical_source"]) if a.get("canonical_source") else None,
            )
            for a in data["actions"]
        ]
        failures = [
            AnalysisFailure(Path(f["source_path"]), f["reason"], f.get("message", ""))
            for f in data.get("failures", [])
        ]
        plan = Plan(
            destination_root=Path(data["destination_root"]),
            mode=data["mode"],
            actions=actions,
            failures=failures,
        )
    except (KeyError, TypeError, ValueError) as ex:
        raise PlanConflict(f"malformed plan: {ex}") from ex
    plan.assert_unique_destinations()
    return plan


def dumps_plan(plan: Plan) -> str:
    return json.dumps(plan_to_dict(plan), indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def save_plan(path: str | Path, plan: Plan) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="\n") as f:
        f.write(dumps_plan(plan))
    logger.info("Plan written: {} ({} actions)", path, len(plan.actions))


def load_plan(path: str | Path) -> Plan:
    with Path(path).open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as ex:
            raise PlanConflict(f"{path}: invalid JSON: {ex}") from ex
    return plan_from_dict(data)


def report_rows(report: ExecutionReport) -> list[dict[str, Any]]:
    return [
        {
            "source_path": str(e.source_path),
            "outcome": e.outcome.value,
            "destination_path": _opt(e.destination_path),
            "reason": e.reason,
            "dry_run": e.dry_run,
        }
        for e in report.entries
    ]


def save_report(path: str | Path, report: ExecutionReport) -> None:
    """Write `report` as CSV when `path` ends in .csv, otherwise as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = report_rows(report)
    if path.suffix.lower() == ".csv":
        with path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(REPORT_HEADERS)
            for row in rows:
                writer.writerow(
                    [
                        row["source_path"],
                        row["outcome"],
                        row["destination_path"] or "",
                        row["reason"] or "",
                        1 if row["dry_run"] else 0,
                    ]
                )
    else:
        doc = {"summary": report.counts(), "dry_run": report.dry_run, "files": rows}
        with path.open("w", encoding="utf-8", newline="\n") as f:
            json.dump(doc, f, indent=2, sort_keys=True, ensure_ascii=False)
            f.write("\n")
    logger.info("Report written: {} ({} files)", path, len(rows))
