"""
Presentation helpers for batch output.

Keeps the CLI focused on wiring while this module builds, saves and reloads
the JSON artifact, prints end-of-run summaries, and appends the execution log.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

from orchestrate.results import BatchResult, BatchTiming, Outcome, RotationLogEntry
from orchestrate.timing import format_duration


BANNER = "=" * 60


def outcome_as_dict(outcome: Outcome) -> dict:
    return {
        "target": outcome.target,
        "value": outcome.value,
        "matchedSelector": outcome.matched_selector,
        "succeeded": outcome.succeeded,
        "error": outcome.error,
        "retriesUsed": outcome.retries_used,
        "userAgent": outcome.user_agent,
        "durationSeconds": outcome.duration_seconds,
    }


def rotation_entry_as_dict(entry: RotationLogEntry) -> dict:
    return {
        "request": entry.sequence_label,
        "ip": entry.identity,
        "target": entry.target,
        "changed": entry.changed,
    }


def build_artifact(result: BatchResult, timestamp: datetime | None = None) -> dict:
    """Build the JSON document handed to the report writer."""
    timestamp = timestamp or datetime.now(timezone.utc)
    timing = result.timing
    return {
        "timestamp": timestamp.isoformat(),
        "status": result.status,
        "error": result.fatal_error,
        "timing": {
            "startTime": timing.start,
            "endTime": timing.end,
            "durationSeconds": timing.duration_seconds,
            "durationFormatted": format_duration(timing.duration_seconds),
            "averagePerTargetSeconds": timing.average_per_target_seconds,
            "averagePerTargetFormatted": format_duration(timing.average_per_target_seconds),
            "estimatedSeconds": timing.estimated_seconds,
        },
        "summary": {
            "total": result.total,
            "successful": result.successful,
            "failed": result.failed,
            "successRate": f"{result.success_rate:.1f}%",
        },
        "ipRotationLog": [rotation_entry_as_dict(e) for e in result.rotation_log],
        "failedTargets": list(result.failed_targets),
        "results": [outcome_as_dict(o) for o in result.outcomes],
    }


def write_artifact(result: BatchResult, output_path: Path) -> Path:
    """Write the JSON artifact to output_path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(build_artifact(result), f, indent=2, ensure_ascii=False)
    return output_path


def load_artifact(path: Path) -> dict:
    """Load a JSON artifact."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict) or not isinstance(data.get("results"), list):
        raise ValueError(f"Not a batch results file: {path}")
    return data


def batch_result_from_artifact(data: dict) -> BatchResult:
    """Rebuild a BatchResult from a parsed artifact."""
    timing = data.get("timing") or {}
    outcomes = tuple(
        Outcome(
            target=r.get("target", ""),
            value=r.get("value"),
            matched_selector=r.get("matchedSelector"),
            succeeded=bool(r.get("succeeded")),
            error=r.get("error"),
            retries_used=int(r.get("retriesUsed") or 0),
            user_agent=r.get("userAgent"),
            duration_seconds=float(r.get("durationSeconds") or 0.0),
        )
        for r in data.get("results", [])
    )
    rotation_log = tuple(
        RotationLogEntry(
            sequence_label=e.get("request"),
            identity=e.get("ip"),
            target=e.get("target", ""),
            changed=bool(e.get("changed")),
        )
        for e in data.get("ipRotationLog", [])
    )
    return BatchResult(
        outcomes=outcomes,
        rotation_log=rotation_log,
        failed_targets=tuple(data.get("failedTargets", [])),
        timing=BatchTiming(
            start=timing.get("startTime", ""),
            end=timing.get("endTime", ""),
            duration_seconds=float(timing.get("durationSeconds") or 0.0),
            average_per_target_seconds=float(timing.get("averagePerTargetSeconds") or 0.0),
            estimated_seconds=float(timing.get("estimatedSeconds") or 0.0),
        ),
        fatal_error=data.get("error"),
    )


def print_summary(result: BatchResult) -> None:
    """Print time summary, rotation log, failures and per-target results."""
    timing = result.timing
    print("\n" + BANNER)
    print("TIME SUMMARY")
    print(BANNER)
    print(f"Start Time: {timing.start}")
    print(f"End Time: {timing.end}")
    print(f"Total Duration: {format_duration(timing.duration_seconds)}")
    print(f"Average per Address: {format_duration(timing.average_per_target_seconds)}")
    if timing.estimated_seconds:
        diff = timing.duration_seconds - timing.estimated_seconds
        direction = "slower" if diff > 0 else "faster"
        print(f"Estimated Duration: {format_duration(timing.estimated_seconds)}")
        print(f"Difference: {format_duration(abs(diff))} {direction} than estimate")

    print("\n" + BANNER)
    print("IP ROTATION LOG")
    print(BANNER)
    for entry in result.rotation_log:
        note = "" if entry.changed or entry.sequence_label == 0 else " [unchanged]"
        print(f"Request {entry.sequence_label}: {entry.identity or 'unknown'} ({entry.target}){note}")

    print("\n" + BANNER)
    print("FAILED ADDRESSES")
    print(BANNER)
    if result.fatal_error:
        print(f"Batch aborted: {result.fatal_error}")
    elif not result.failed_targets:
        print("All addresses scraped successfully!")
    else:
        for idx, target in enumerate(result.failed_targets, 1):
            print(f"{idx}. {target}")
        print(f"\nTotal failed: {len(result.failed_targets)}/{result.total}")

    print("\n" + BANNER)
    print("RESULTS SUMMARY")
    print(BANNER)
    print(f"Success rate: {result.successful}/{result.total} ({result.success_rate:.1f}%)")
    for idx, outcome in enumerate(result.outcomes, 1):
        print(f"\n{idx}. Address: {outcome.target}")
        if outcome.succeeded:
            print(f"   Total Assets: {outcome.value}")
            print(f"   Selector Used: {outcome.matched_selector}")
        else:
            print("   Status: Failed to retrieve")
            if outcome.error:
                print(f"   Error: {outcome.error}")
            if outcome.retries_used:
                print(f"   Retries: {outcome.retries_used}")


def append_execution_log(
    result: BatchResult,
    log_file: Path,
    command: str,
    config: dict,
    output_path: Path | None = None,
) -> bool:
    """Append one JSON line describing this run. Returns False on write failure."""
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "duration_sec": round(result.timing.duration_seconds, 1),
        "command": command,
        "config": config,
        "results": {
            "status": result.status,
            "targets_attempted": result.total,
            "targets_succeeded": result.successful,
            "targets_failed": result.failed,
            "rotations": max(0, len(result.rotation_log) - 1),
            "output": str(output_path) if output_path else None,
        },
    }
    try:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")
    except OSError as exc:
        print(f"Warning: Could not write execution log: {exc}", file=sys.stderr)
        return False
    print(f"Execution logged to: {log_file}")
    return True
