"""Snapshot harness — verifies a view across device sizes, widths and themes."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Callable, Optional, Protocol

from snapharness.capture.comparator import ImageComparator
from snapharness.harness.style import StyleContext
from snapharness.harness.view import (
    HostFactory,
    Presentable,
    SafeAreaAware,
    SnapshotView,
    Themeable,
)
from snapharness.models.config import HarnessConfig
from snapharness.models.devices import (
    DEFAULT_PHONE_SIZE,
    DEVICE_SCREEN_SIZES,
    PHONE_SCREEN_SIZES,
    PHONE_WIDTHS,
    TABLET_SCREEN_SIZES,
    TABLET_WIDTHS,
    ColorSchemeVariant,
    ConfigurationSet,
    Size,
)
from snapharness.models.result import CaptureRequest, ComparisonResult, FailureKind, SourceLocation
from snapharness.reporter.failures import (
    FailureReporter,
    PresentationTimeoutError,
    UnsupportedCapabilityError,
)

logger = logging.getLogger(__name__)

SetupWithDeviceType = Callable[[SnapshotView, bool], None]
Setup = Callable[[SnapshotView], None]


class Comparator(Protocol):
    def compare(self, request: CaptureRequest, test_id: str) -> ComparisonResult:
        ...


def _as_configuration_set(configurations: Mapping, operation: str) -> ConfigurationSet:
    """Accept a ConfigurationSet or a plain label -> value mapping."""
    if not isinstance(configurations, ConfigurationSet):
        configurations = ConfigurationSet(configurations)
    if not configurations:
        raise ValueError(f"{operation} needs at least one configuration")
    return configurations


class SnapshotHarness:
    """Runs snapshot captures for one test and relays failures to a reporter.

    Mismatches are recorded and never raised, so every configuration in a
    set is attempted. Missing capabilities and presentation timeouts are
    recorded and raised.
    """

    def __init__(
        self,
        test_id: str,
        config: HarnessConfig | None = None,
        comparator: Comparator | None = None,
        reporter: FailureReporter | None = None,
        style: StyleContext | None = None,
        host_factory: HostFactory | None = None,
        tablet_sizes: ConfigurationSet = TABLET_SCREEN_SIZES,
    ):
        self.test_id = test_id
        self.config = config or HarnessConfig()
        self.comparator = comparator or ImageComparator(self.config)
        self.reporter = reporter or FailureReporter(test_id)
        self.style = style or StyleContext()
        self.host_factory = host_factory
        self.tablet_sizes = tablet_sizes
        self.snapshot_background: Optional[str] = None
        self._themed_views: list[Themeable] = []

    # ------------------------------------------------------------------
    # Single capture
    # ------------------------------------------------------------------

    def verify(
        self,
        view: SnapshotView,
        identifier: str = "",
        label: Optional[str] = None,
        tolerance: Optional[float] = None,
        extra_layout_pass: bool = False,
        location: Optional[SourceLocation] = None,
    ) -> ComparisonResult:
        """Lay out ``view``, capture it and compare against its reference."""
        location = location or SourceLocation.of_caller()
        request = CaptureRequest(
            view=view,
            label=label,
            tolerance=self.config.default_tolerance if tolerance is None else tolerance,
            location=location,
            identifier=identifier,
            extra_layout_pass=extra_layout_pass,
            background=self.snapshot_background,
        )
        return self._capture(request)

    def _capture(self, request: CaptureRequest) -> ComparisonResult:
        request.view.layout_if_needed()
        if request.extra_layout_pass:
            request.view.layout_if_needed()
        result = self.comparator.compare(request, self.test_id)
        self.reporter.record_comparison(result, request.location, request.label, request.identifier)
        return result

    # ------------------------------------------------------------------
    # Sizes
    # ------------------------------------------------------------------

    def is_tablet(self, size: Size) -> bool:
        return size in {self.tablet_sizes.values_of(label) for label in self.tablet_sizes}

    def verify_across_sizes(
        self,
        view: SnapshotView,
        sizes: Mapping[str, Size],
        setup: Optional[SetupWithDeviceType] = None,
        extra_layout_pass: bool = False,
        location: Optional[SourceLocation] = None,
    ) -> list[ComparisonResult]:
        """Capture ``view`` once per size in ``sizes``, in label order.

        A setup callback that raises is recorded against its label and the
        view is still captured, so every size yields exactly one capture.
        """
        location = location or SourceLocation.of_caller()
        sizes = _as_configuration_set(sizes, "verify_across_sizes")

        results = []
        for label in sizes:
            size = sizes.values_of(label)
            logger.debug("Verifying %s at %s (%s)", self.test_id, label, size)
            view.frame = size
            if setup is not None:
                try:
                    with self.style.without_animation():
                        setup(view, self.is_tablet(size))
                except Exception as e:
                    self.reporter.record(
                        FailureKind.SETUP_ERROR,
                        f"Setup raised {type(e).__name__}: {e}",
                        location,
                        label=label,
                    )
            results.append(self.verify(
                view,
                label=label,
                extra_layout_pass=extra_layout_pass,
                location=location,
            ))
        return results

    def verify_in_all_phone_sizes(
        self,
        view: SnapshotView,
        setup: Optional[Setup] = None,
        extra_layout_pass: bool = False,
        location: Optional[SourceLocation] = None,
    ) -> list[ComparisonResult]:
        location = location or SourceLocation.of_caller()
        with_device_type = None
        if setup is not None:
            def with_device_type(v: SnapshotView, _is_tablet: bool) -> None:
                setup(v)
        return self.verify_across_sizes(view, PHONE_SCREEN_SIZES, with_device_type, extra_layout_pass, location)

    def verify_in_all_device_sizes(
        self,
        view: SnapshotView,
        setup: Optional[SetupWithDeviceType] = None,
        extra_layout_pass: bool = False,
        location: Optional[SourceLocation] = None,
    ) -> list[ComparisonResult]:
        location = location or SourceLocation.of_caller()
        return self.verify_across_sizes(view, DEVICE_SCREEN_SIZES, setup, extra_layout_pass, location)

    def verify_in_phone_size(
        self, view: SnapshotView, location: Optional[SourceLocation] = None
    ) -> ComparisonResult:
        """Capture at the smallest supported phone screen."""
        location = location or SourceLocation.of_caller()
        view.frame = DEFAULT_PHONE_SIZE
        return self.verify(view, location=location)

    # ------------------------------------------------------------------
    # Widths
    # ------------------------------------------------------------------

    def verify_across_widths(
        self,
        view: SnapshotView,
        widths: Mapping[str, float],
        tolerance: float = 0.0,
        extra_layout_pass: bool = False,
        location: Optional[SourceLocation] = None,
    ) -> list[ComparisonResult]:
        """Check layout ambiguity once, then capture ``view`` at each width."""
        location = location or SourceLocation.of_caller()
        widths = _as_configuration_set(widths, "verify_across_widths")
        if view.has_ambiguous_layout():
            self.reporter.record(
                FailureKind.LAYOUT,
                "View has an ambiguous layout",
                location,
            )

        results = []
        for label in widths:
            width = widths.values_of(label)
            view.frame = Size(width, self.config.width_frame_height)
            results.append(self.verify(
                view,
                label=label,
                tolerance=tolerance,
                extra_layout_pass=extra_layout_pass,
                location=location,
            ))
        return results

    def verify_in_all_phone_widths(
        self,
        view: SnapshotView,
        tolerance: float = 0.0,
        extra_layout_pass: bool = False,
        location: Optional[SourceLocation] = None,
    ) -> list[ComparisonResult]:
        location = location or SourceLocation.of_caller()
        return self.verify_across_widths(view, PHONE_WIDTHS, tolerance, extra_layout_pass, location)

    def verify_in_all_tablet_widths(
        self,
        view: SnapshotView,
        tolerance: float = 0.0,
        extra_layout_pass: bool = False,
        location: Optional[SourceLocation] = None,
    ) -> list[ComparisonResult]:
        location = location or SourceLocation.of_caller()
        return self.verify_across_widths(view, TABLET_WIDTHS, tolerance, extra_layout_pass, location)

    # ------------------------------------------------------------------
    # Themes and safe areas
    # ------------------------------------------------------------------

    def verify_theme_variants(
        self,
        view: SnapshotView,
        tolerance: float = 0.0,
        location: Optional[SourceLocation] = None,
    ) -> list[ComparisonResult]:
        """Capture ``view`` in the light scheme, then in the dark scheme."""
        location = location or SourceLocation.of_caller()
        if not isinstance(view, Themeable):
            self.reporter.fail_hard(
                UnsupportedCapabilityError,
                FailureKind.CAPABILITY,
                f"{type(view).__name__} does not support color scheme variants",
                location,
            )

        if view not in self._themed_views:
            self._themed_views.append(view)
        results = []
        for variant, background, identifier in (
            (ColorSchemeVariant.LIGHT, self.config.light_background, "LightTheme"),
            (ColorSchemeVariant.DARK, self.config.dark_background, "DarkTheme"),
        ):
            self.style.color_scheme = variant
            view.color_scheme_variant = variant
            self.snapshot_background = background
            results.append(self.verify(view, identifier=identifier, tolerance=tolerance, location=location))
        return results

    def verify_safe_areas(
        self,
        view: SnapshotView,
        tolerance: float = 0.0,
        location: Optional[SourceLocation] = None,
    ) -> ComparisonResult:
        """Capture ``view`` on a notched phone screen with status and home bar insets."""
        location = location or SourceLocation.of_caller()
        if not isinstance(view, SafeAreaAware):
            self.reporter.fail_hard(
                UnsupportedCapabilityError,
                FailureKind.CAPABILITY,
                f"{type(view).__name__} does not support safe area insets",
                location,
            )
        view.set_safe_area_insets(top=44, left=0, bottom=34, right=0)
        view.frame = Size(375, 812)
        return self.verify(view, tolerance=tolerance, location=location)

    # ------------------------------------------------------------------
    # Transient presentation
    # ------------------------------------------------------------------

    def verify_transient_presentation(
        self,
        presentable: Presentable,
        location: Optional[SourceLocation] = None,
    ) -> ComparisonResult:
        """Present ``presentable`` on a throwaway host, wait for it, then capture."""
        location = location or SourceLocation.of_caller()
        if self.host_factory is None:
            raise ValueError("verify_transient_presentation needs a host_factory")

        host_size = Size(self.config.host_size.width, self.config.host_size.height)
        host = self.host_factory(host_size)
        try:
            presentable.prepare()
            presented: Future = Future()

            def on_presented() -> None:
                if not presented.done():
                    presented.set_result(None)

            host.present(presentable, on_presented)
            try:
                presented.result(timeout=self.config.presentation_timeout_seconds)
            except FutureTimeoutError:
                self.reporter.fail_hard(
                    PresentationTimeoutError,
                    FailureKind.TIMEOUT,
                    f"Presentation did not complete within {self.config.presentation_timeout_seconds:g}s",
                    location,
                )
            return self.verify(presentable.view, location=location)
        finally:
            host.dismiss()

    # ------------------------------------------------------------------
    # Style state
    # ------------------------------------------------------------------

    def reset_process_wide_style_state(self) -> None:
        """Restore default styling and put every themed view back on it."""
        self.style.reset()
        for view in self._themed_views:
            view.color_scheme_variant = self.style.color_scheme
        self._themed_views.clear()
        self.snapshot_background = None


def harness_for_test(test_id: str, config: HarnessConfig, style: StyleContext,
                     host_factory: HostFactory | None = None) -> SnapshotHarness:
    """Build a harness wired to the default comparator and a fresh reporter."""
    Path(config.reference_dir).mkdir(parents=True, exist_ok=True)
    return SnapshotHarness(
        test_id=test_id,
        config=config,
        style=style,
        host_factory=host_factory,
    )
