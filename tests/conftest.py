"""Pytest configuration and shared fixtures."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image

from snapharness.harness.harness import SnapshotHarness
from snapharness.harness.style import StyleContext
from snapharness.harness.view import (
    HostContainer,
    Presentable,
    SafeAreaAware,
    SnapshotView,
    Themeable,
)
from snapharness.models.config import HarnessConfig
from snapharness.models.devices import ColorSchemeVariant, Size
from snapharness.models.result import CaptureRequest, ComparisonResult
from snapharness.reporter.failures import FailureReporter

pytest_plugins = ["pytester"]


# ============================================================================
# Fake views
# ============================================================================


class FakeView(SnapshotView):
    """Solid-colour view that records what the harness did to it."""

    def __init__(self, color: str = "#336699", ambiguous: bool = False):
        self.color = color
        self.ambiguous = ambiguous
        self._frame = Size(0, 0)
        self.frames: list[Size] = []
        self.layout_passes = 0
        self.ambiguity_checks = 0

    @property
    def frame(self) -> Size:
        return self._frame

    @frame.setter
    def frame(self, size: Size) -> None:
        self._frame = size
        self.frames.append(size)

    def layout_if_needed(self) -> None:
        self.layout_passes += 1

    def render(self, background: str | None = None) -> Image.Image:
        width = max(int(self._frame.width), 1)
        height = max(int(self._frame.height), 1)
        return Image.new("RGBA", (width, height), self.color)

    def has_ambiguous_layout(self) -> bool:
        self.ambiguity_checks += 1
        return self.ambiguous


class ThemeableFakeView(FakeView, Themeable):
    def __init__(self):
        super().__init__()
        self._variant = ColorSchemeVariant.LIGHT
        self.variants_set: list[ColorSchemeVariant] = []

    @property
    def color_scheme_variant(self) -> ColorSchemeVariant:
        return self._variant

    @color_scheme_variant.setter
    def color_scheme_variant(self, variant: ColorSchemeVariant) -> None:
        self._variant = variant
        self.variants_set.append(variant)
        self.color = "#FFFFFF" if variant == ColorSchemeVariant.LIGHT else "#000000"


class SafeAreaFakeView(FakeView, SafeAreaAware):
    def __init__(self):
        super().__init__()
        self.insets: Optional[tuple[float, float, float, float]] = None

    def set_safe_area_insets(self, top: float, left: float, bottom: float, right: float) -> None:
        self.insets = (top, left, bottom, right)


class FakeAlert(Presentable):
    def __init__(self):
        self._view = FakeView("#EEEEEE")
        self._view.frame = Size(270, 140)
        self.prepared = False

    @property
    def view(self) -> SnapshotView:
        return self._view

    def prepare(self) -> None:
        self.prepared = True
        super().prepare()


class FakeHost(HostContainer):
    def __init__(self, size: Size, completes: bool = True):
        self.size = size
        self.completes = completes
        self.presented: list[Presentable] = []
        self.dismissed = False

    def present(self, presentable, completion) -> None:
        self.presented.append(presentable)
        if self.completes:
            completion()

    def dismiss(self) -> None:
        self.dismissed = True


# ============================================================================
# Comparator double
# ============================================================================


@dataclass
class CapturedCall:
    test_id: str
    label: Optional[str]
    identifier: str
    name: str
    frame: Size
    tolerance: float
    background: Optional[str]
    variant: Optional[ColorSchemeVariant]


class RecordingComparator:
    """Records every capture and fails the labels it is told to."""

    def __init__(self, failing_labels: tuple[str, ...] = ()):
        self.failing_labels = failing_labels
        self.calls: list[CapturedCall] = []

    def compare(self, request: CaptureRequest, test_id: str) -> ComparisonResult:
        self.calls.append(CapturedCall(
            test_id=test_id,
            label=request.label,
            identifier=request.identifier,
            name=request.name,
            frame=request.view.frame,
            tolerance=request.tolerance,
            background=request.background,
            variant=getattr(request.view, "color_scheme_variant", None),
        ))
        if request.label in self.failing_labels:
            return ComparisonResult(passed=False, diff_ratio=0.5, message="Pixel diff: 50.00%")
        return ComparisonResult(passed=True)

    @property
    def labels(self) -> list[Optional[str]]:
        return [c.label for c in self.calls]


# ============================================================================
# Harness fixtures
# ============================================================================


@pytest.fixture
def harness_config(tmp_path: Path) -> HarnessConfig:
    """Create a harness configuration writing under tmp_path."""
    return HarnessConfig(
        reference_dir=str(tmp_path / "reference"),
        failure_dir=str(tmp_path / "failures"),
        presentation_timeout_seconds=0.1,
    )


@pytest.fixture
def comparator() -> RecordingComparator:
    return RecordingComparator()


@pytest.fixture
def style() -> StyleContext:
    return StyleContext()


@pytest.fixture
def harness(harness_config, comparator, style) -> SnapshotHarness:
    """Create a harness wired to the recording comparator."""
    return SnapshotHarness(
        test_id="tests/test_view.py::test_layout",
        config=harness_config,
        comparator=comparator,
        reporter=FailureReporter("tests/test_view.py::test_layout"),
        style=style,
        host_factory=lambda size: FakeHost(size),
    )


@pytest.fixture
def view() -> FakeView:
    return FakeView()
