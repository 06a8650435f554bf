"""Capture requests, comparison results and failure records."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class SourceLocation(BaseModel):
    file: str
    line: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"

    @classmethod
    def of_caller(cls, depth: int = 1) -> "SourceLocation":
        """Location of the frame ``depth`` levels above the function calling this."""
        frame = inspect.currentframe()
        try:
            target = frame.f_back if frame else None
            for _ in range(depth):
                if target is None or target.f_back is None:
                    break
                target = target.f_back
            if target is None:
                return cls(file="<unknown>", line=0)
            return cls(file=target.f_code.co_filename, line=target.f_lineno)
        finally:
            del frame


@dataclass
class CaptureRequest:
    view: Any
    label: Optional[str]
    tolerance: float
    location: SourceLocation
    identifier: str = ""
    extra_layout_pass: bool = False
    background: Optional[str] = None

    @property
    def name(self) -> str:
        """Reference image name: identifier and label joined, or 'reference'."""
        parts = [p for p in (self.identifier, self.label) if p]
        return "_".join(parts) if parts else "reference"


class ComparisonResult(BaseModel):
    passed: bool
    recorded: bool = False
    diff_ratio: float = 0.0
    tolerance: float = 0.0
    reference_path: Optional[str] = None
    current_path: Optional[str] = None
    diff_path: Optional[str] = None
    message: str = ""


class FailureKind(str, Enum):
    MISMATCH = "mismatch"
    LAYOUT = "layout"
    SETUP_ERROR = "setup_error"
    CAPABILITY = "capability"
    TIMEOUT = "timeout"
    RECORDED = "recorded"


class FailureRecord(BaseModel):
    test_id: str
    kind: FailureKind
    message: str
    location: SourceLocation
    label: Optional[str] = None
    identifier: str = ""
    artifacts: dict[str, str] = Field(default_factory=dict)

    def describe(self) -> str:
        where = self.label or "-"
        if self.identifier:
            where = f"{self.identifier}/{where}"
        return f"[{self.kind.value}] {self.test_id} ({where}) at {self.location}: {self.message}"


class SnapshotReference(BaseModel):
    test_id: str
    name: str
    width: int
    height: int
    image_path: str  # relative path from reference_dir to the PNG
    captured_at: str  # ISO timestamp
    image_hash: str  # SHA-256 hex digest


class ReferenceRegistry(BaseModel):
    last_updated: str = ""
    references: dict[str, SnapshotReference] = Field(default_factory=dict)
    # key format: "{test_id}__{name}"
