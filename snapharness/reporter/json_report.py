"""JSON report output."""

from __future__ import annotations

import json
import time
from collections import Counter
from pathlib import Path

from snapharness.models.result import FailureRecord


def generate_json_report(
    failures: list[FailureRecord],
    tests_run: int,
    output_path: Path,
) -> None:
    """Write a machine-readable summary of snapshot failures."""
    by_kind = Counter(f.kind.value for f in failures)
    report = {
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "tests_run": tests_run,
        "failed_tests": len({f.test_id for f in failures}),
        "failures_by_kind": dict(by_kind),
        "failures": [f.model_dump(mode="json") for f in failures],
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)


def load_json_report(path: Path) -> tuple[dict, list[FailureRecord]]:
    """Read a report back into its header and failure records."""
    with open(path) as f:
        data = json.load(f)
    failures = [FailureRecord(**item) for item in data.get("failures", [])]
    return data, failures
