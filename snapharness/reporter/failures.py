"""Failure reporting for snapshot tests."""

from __future__ import annotations

import logging
from typing import Optional

from snapharness.models.result import ComparisonResult, FailureKind, FailureRecord, SourceLocation

logger = logging.getLogger(__name__)


class HarnessFailure(AssertionError):
    """Base class for failures the harness raises instead of only recording."""

    def __init__(self, record: FailureRecord):
        super().__init__(record.describe())
        self.record = record


class UnsupportedCapabilityError(HarnessFailure):
    pass


class PresentationTimeoutError(HarnessFailure):
    pass


class SnapshotMismatchError(HarnessFailure):
    """Everything a test recorded without raising, reported at once.

    ``record`` is the first of ``records``.
    """

    def __init__(self, records: list[FailureRecord]):
        lines = [f"{len(records)} snapshot failure(s):"] + [f"  {r.describe()}" for r in records]
        AssertionError.__init__(self, "\n".join(lines))
        self.record = records[0]
        self.records = records


class FailureReporter:
    """Collects failures for one test without interrupting it."""

    def __init__(self, test_id: str):
        self.test_id = test_id
        self.failures: list[FailureRecord] = []

    def record(
        self,
        kind: FailureKind,
        message: str,
        location: SourceLocation,
        label: Optional[str] = None,
        identifier: str = "",
        artifacts: Optional[dict[str, str]] = None,
    ) -> FailureRecord:
        record = FailureRecord(
            test_id=self.test_id,
            kind=kind,
            message=message,
            location=location,
            label=label,
            identifier=identifier,
            artifacts=artifacts or {},
        )
        self.failures.append(record)
        logger.warning("%s", record.describe())
        return record

    def record_comparison(
        self,
        result: ComparisonResult,
        location: SourceLocation,
        label: Optional[str] = None,
        identifier: str = "",
    ) -> FailureRecord | None:
        """Record a failed comparison; passing results are ignored."""
        if result.passed:
            return None
        artifacts = {
            name: path
            for name, path in (
                ("reference", result.reference_path),
                ("current", result.current_path),
                ("diff", result.diff_path),
            )
            if path
        }
        kind = FailureKind.RECORDED if result.recorded else FailureKind.MISMATCH
        return self.record(kind, result.message, location, label, identifier, artifacts)

    def fail_hard(
        self,
        error_cls: type[HarnessFailure],
        kind: FailureKind,
        message: str,
        location: SourceLocation,
        label: Optional[str] = None,
    ) -> None:
        """Record a programmer-error failure and raise it."""
        record = self.record(kind, message, location, label)
        raise error_cls(record)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def raise_if_failed(self) -> None:
        """Raise once for everything recorded but not already raised."""
        soft = [f for f in self.failures if f.kind not in (FailureKind.CAPABILITY, FailureKind.TIMEOUT)]
        if soft:
            raise SnapshotMismatchError(soft)
