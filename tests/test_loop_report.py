"""Tests for JSON loop reports."""

import json
from datetime import datetime, timedelta

from agentic_hammer.hammer import AttemptRecord, LoopOutcome, TerminationReason
from agentic_hammer.loop_report import build_loop_report, write_loop_report


def make_outcome():
    started = datetime(2024, 1, 2, 3, 4, 5)
    return LoopOutcome(
        reason=TerminationReason.SUCCESS,
        message="Hammer succeeded",
        verification_runs=2,
        corrective_runs=1,
        last_exit_code=0,
        verification_script_path="/proj/hammer",
        attempts=[
            AttemptRecord(phase="verify", exit_code=1, duration_seconds=1.23456),
            AttemptRecord(phase="correct", exit_code=0, duration_seconds=4.0),
            AttemptRecord(phase="verify", exit_code=0, duration_seconds=1.0),
        ],
        started_at=started,
        finished_at=started + timedelta(seconds=6.5),
    )


class TestLoopReport:
    """Report content and file naming."""

    def test_report_fields(self):
        report = build_loop_report(make_outcome(), "/proj/src/app.py")

        assert report["reason"] == "success"
        assert report["succeeded"] is True
        assert [a["phase"] for a in report["attempts"]] == ["verify", "correct", "verify"]
        assert report["attempts"][0]["duration_seconds"] == 1.235
        assert report["duration_seconds"] == 6.5

    def test_write(self, tmp_path):
        path = write_loop_report(make_outcome(), "/proj/src/app.py", tmp_path / "reports")

        assert path.name == "app_20240102_030411.json"
        assert json.loads(path.read_text())["verification_script"] == "/proj/hammer"
