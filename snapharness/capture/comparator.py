"""Image comparator — captures a view and compares it against its reference."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageChops

from snapharness.capture.reference_store import ReferenceStore, safe_name
from snapharness.models.config import HarnessConfig
from snapharness.models.result import CaptureRequest, ComparisonResult

logger = logging.getLogger(__name__)


def diff_images(
    reference: Image.Image, current: Image.Image, pixel_threshold: int = 0
) -> tuple[float, Image.Image]:
    """Return the fraction of differing pixels and a mask of where they differ.

    A pixel differs when any RGBA channel moves by more than ``pixel_threshold``.
    Raises ValueError when the images have different sizes.
    """
    if reference.size != current.size:
        raise ValueError(f"Image sizes differ: reference {reference.size}, current {current.size}")

    diff = ImageChops.difference(reference.convert("RGBA"), current.convert("RGBA"))
    bands = diff.split()
    peak = bands[0]
    for band in bands[1:]:
        peak = ImageChops.lighter(peak, band)
    mask = peak.point(lambda v: 255 if v > pixel_threshold else 0)

    total = reference.width * reference.height
    if total == 0:
        return 0.0, mask
    return mask.histogram()[255] / total, mask


def highlight_diff(current: Image.Image, mask: Image.Image) -> Image.Image:
    """Paint differing pixels red on top of the current image."""
    base = current.convert("RGBA")
    red = Image.new("RGBA", base.size, (255, 0, 0, 255))
    return Image.composite(red, base, mask)


class ImageComparator:
    """Renders the requested view and compares it with the stored reference.

    Missing references are recorded and pass. In record mode every capture
    overwrites its reference and fails, so a suite left in record mode
    cannot go green.
    """

    def __init__(self, config: HarnessConfig, store: ReferenceStore | None = None):
        self.config = config
        self.store = store or ReferenceStore(Path(config.reference_dir))
        self.failure_dir = Path(config.failure_dir)

    def compare(self, request: CaptureRequest, test_id: str) -> ComparisonResult:
        name = request.name
        current = request.view.render(background=request.background).convert("RGBA")
        logger.debug("Captured %s/%s at %dx%d", test_id, name, current.width, current.height)

        if self.config.record_mode:
            entry = self.store.store(test_id, name, current)
            return ComparisonResult(
                passed=False,
                recorded=True,
                tolerance=request.tolerance,
                reference_path=str(self.store.absolute_path(entry)),
                message="Recorded reference in record mode; turn record mode off to compare",
            )

        entry = self.store.get(test_id, name)
        if entry is None:
            entry = self.store.store(test_id, name, current)
            return ComparisonResult(
                passed=True,
                recorded=True,
                tolerance=request.tolerance,
                reference_path=str(self.store.absolute_path(entry)),
                message="No reference found; recorded current image",
            )

        reference_path = self.store.absolute_path(entry)
        try:
            with Image.open(reference_path) as img:
                reference = img.convert("RGBA")
        except OSError as e:
            return ComparisonResult(
                passed=False,
                tolerance=request.tolerance,
                reference_path=str(reference_path),
                message=f"Could not read reference image: {e}",
            )

        try:
            ratio, mask = diff_images(reference, current, self.config.pixel_threshold)
        except ValueError as e:
            result = ComparisonResult(
                passed=False,
                diff_ratio=1.0,
                tolerance=request.tolerance,
                reference_path=str(reference_path),
                message=str(e),
            )
            result.current_path = str(self._write_failure(test_id, name, reference, current, None))
            return result

        passed = ratio <= request.tolerance
        result = ComparisonResult(
            passed=passed,
            diff_ratio=ratio,
            tolerance=request.tolerance,
            reference_path=str(reference_path),
            message=f"Pixel diff: {ratio:.2%} (tolerance: {request.tolerance:.2%})",
        )
        if not passed:
            result.current_path = str(self._write_failure(test_id, name, reference, current, mask))
            result.diff_path = str(self._failure_path(test_id, name, "diff"))
        return result

    def _failure_path(self, test_id: str, name: str, kind: str) -> Path:
        return self.failure_dir / safe_name(test_id) / f"{kind}_{safe_name(name)}.png"

    def _write_failure(
        self,
        test_id: str,
        name: str,
        reference: Image.Image,
        current: Image.Image,
        mask: Image.Image | None,
    ) -> Path:
        """Write reference, failed and diff images; return the failed image path."""
        failed_path = self._failure_path(test_id, name, "failed")
        failed_path.parent.mkdir(parents=True, exist_ok=True)
        reference.save(self._failure_path(test_id, name, "reference"), format="PNG")
        current.save(failed_path, format="PNG")
        if mask is not None:
            highlight_diff(current, mask).save(self._failure_path(test_id, name, "diff"), format="PNG")
        logger.warning("Snapshot mismatch for %s/%s, artifacts in %s", test_id, name, failed_path.parent)
        return failed_path
