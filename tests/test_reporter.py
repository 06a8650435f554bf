"""Tests for failure reporting and the JSON report."""

import json

import pytest

from snapharness.models.result import ComparisonResult, FailureKind, SourceLocation
from snapharness.reporter.failures import (
    FailureReporter,
    HarnessFailure,
    PresentationTimeoutError,
    SnapshotMismatchError,
    UnsupportedCapabilityError,
)
from snapharness.reporter.json_report import generate_json_report, load_json_report

LOCATION = SourceLocation(file="tests/test_cells.py", line=12)


class TestFailureReporter:
    """Tests for collecting failures."""

    def test_starts_empty(self):
        reporter = FailureReporter("t")
        assert reporter.failures == []
        assert not reporter.has_failures
        reporter.raise_if_failed()

    def test_passing_comparison_ignored(self):
        reporter = FailureReporter("t")
        assert reporter.record_comparison(ComparisonResult(passed=True), LOCATION) is None
        assert reporter.failures == []

    def test_failed_comparison_recorded_with_artifacts(self):
        reporter = FailureReporter("t")
        result = ComparisonResult(
            passed=False,
            reference_path="ref.png",
            current_path="failed.png",
            diff_path="diff.png",
            message="Pixel diff: 3.00%",
        )
        record = reporter.record_comparison(result, LOCATION, label="iPadPortrait", identifier="DarkTheme")

        assert record.kind == FailureKind.MISMATCH
        assert record.artifacts == {"reference": "ref.png", "current": "failed.png", "diff": "diff.png"}
        assert record.label == "iPadPortrait"
        assert record.identifier == "DarkTheme"

    def test_recorded_comparison_kind(self):
        reporter = FailureReporter("t")
        record = reporter.record_comparison(ComparisonResult(passed=False, recorded=True), LOCATION)
        assert record.kind == FailureKind.RECORDED

    def test_describe_includes_attribution(self):
        reporter = FailureReporter("suite::test_cells")
        record = reporter.record(FailureKind.MISMATCH, "Pixel diff", LOCATION, label="375")
        text = record.describe()
        assert "suite::test_cells" in text
        assert "375" in text
        assert "tests/test_cells.py:12" in text

    def test_raise_if_failed_aggregates(self):
        reporter = FailureReporter("t")
        reporter.record(FailureKind.MISMATCH, "one", LOCATION, label="a")
        reporter.record(FailureKind.LAYOUT, "two", LOCATION)

        with pytest.raises(SnapshotMismatchError) as exc_info:
            reporter.raise_if_failed()
        assert len(exc_info.value.records) == 2
        assert "2 snapshot failure(s)" in str(exc_info.value)

    def test_aggregate_failure_is_a_harness_failure(self):
        reporter = FailureReporter("t")
        reporter.record(FailureKind.MISMATCH, "one", LOCATION, label="a")
        reporter.record(FailureKind.SETUP_ERROR, "two", LOCATION, label="b")

        with pytest.raises(HarnessFailure) as exc_info:
            reporter.raise_if_failed()
        assert isinstance(exc_info.value, SnapshotMismatchError)
        assert isinstance(exc_info.value, AssertionError)
        assert exc_info.value.record is reporter.failures[0]
        assert "2 snapshot failure(s)" in str(exc_info.value)

    def test_fail_hard_records_and_raises(self):
        reporter = FailureReporter("t")
        with pytest.raises(UnsupportedCapabilityError) as exc_info:
            reporter.fail_hard(UnsupportedCapabilityError, FailureKind.CAPABILITY, "not themeable", LOCATION)
        assert exc_info.value.record is reporter.failures[0]
        assert isinstance(exc_info.value, AssertionError)

    def test_hard_failures_not_raised_twice(self):
        reporter = FailureReporter("t")
        with pytest.raises(PresentationTimeoutError):
            reporter.fail_hard(PresentationTimeoutError, FailureKind.TIMEOUT, "slow", LOCATION)
        reporter.raise_if_failed()


class TestJsonReport:
    """Tests for JSON report generation."""

    def test_generate_report(self, tmp_path):
        reporter = FailureReporter("t::a")
        reporter.record(FailureKind.MISMATCH, "diff", LOCATION, label="320")
        reporter.record(FailureKind.MISMATCH, "diff", LOCATION, label="375")
        other = FailureReporter("t::b")
        other.record(FailureKind.TIMEOUT, "slow", LOCATION)

        output = tmp_path / "reports" / "snapshots.json"
        generate_json_report(reporter.failures + other.failures, 5, output)

        data = json.loads(output.read_text())
        assert data["tests_run"] == 5
        assert data["failed_tests"] == 2
        assert data["failures_by_kind"] == {"mismatch": 2, "timeout": 1}
        assert data["failures"][0]["kind"] == "mismatch"
        assert data["failures"][0]["location"] == {"file": "tests/test_cells.py", "line": 12}

    def test_load_report(self, tmp_path):
        reporter = FailureReporter("t::a")
        reporter.record(FailureKind.LAYOUT, "ambiguous", LOCATION)
        output = tmp_path / "snapshots.json"
        generate_json_report(reporter.failures, 1, output)

        data, failures = load_json_report(output)
        assert data["tests_run"] == 1
        assert failures == reporter.failures

    def test_empty_report(self, tmp_path):
        output = tmp_path / "snapshots.json"
        generate_json_report([], 3, output)
        data = json.loads(output.read_text())
        assert data["failures"] == []
        assert data["failed_tests"] == 0
