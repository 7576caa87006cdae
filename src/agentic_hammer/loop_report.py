"""JSON reports for finished hammer loops."""

import json
from pathlib import Path

from agentic_hammer.hammer import LoopOutcome


def build_loop_report(outcome: LoopOutcome, file_path: str) -> dict:
    return {
        "file_path": file_path,
        "verification_script": outcome.verification_script_path,
        "reason": outcome.reason.value,
        "message": outcome.message,
        "succeeded": outcome.succeeded,
        "last_exit_code": outcome.last_exit_code,
        "verification_runs": outcome.verification_runs,
        "corrective_runs": outcome.corrective_runs,
        "attempts": [
            {
                "phase": a.phase,
                "exit_code": a.exit_code,
                "duration_seconds": round(a.duration_seconds, 3),
                "spawn_error": a.spawn_error,
            }
            for a in outcome.attempts
        ],
        "start_time": outcome.started_at.isoformat(),
        "end_time": outcome.finished_at.isoformat(),
        "duration_seconds": (outcome.finished_at - outcome.started_at).total_seconds(),
    }


def write_loop_report(outcome: LoopOutcome, file_path: str, output_dir: Path) -> Path:
    """
    Write a structured loop report to disk.

    Report format: JSON with the outcome and every attempt.
    Filename: {file stem}_{timestamp}.json
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = outcome.finished_at.strftime("%Y%m%d_%H%M%S")
    report_path = output_dir / f"{Path(file_path).stem}_{timestamp}.json"

    report = build_loop_report(outcome, file_path)
    report_path.write_text(json.dumps(report, indent=2))

    return report_path
