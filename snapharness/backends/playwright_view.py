"""Playwright backend — exposes a browser page or element as a snapshot view."""

from __future__ import annotations

import io
import logging
from typing import Callable, Optional

from PIL import Image
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from snapharness.harness.style import StyleContext
from snapharness.harness.view import HostContainer, Presentable, SafeAreaAware, SnapshotView, Themeable
from snapharness.models.devices import ColorSchemeVariant, Size

logger = logging.getLogger(__name__)

# Viewport height used while the frame height is left to the content
MEASURING_HEIGHT = 800

_OVERFLOW_SCRIPT = """(selector) => {
    const el = selector ? document.querySelector(selector) : document.documentElement;
    if (!el) return false;
    return el.scrollWidth > el.clientWidth;
}"""

_SAFE_AREA_SCRIPT = """(insets) => {
    const style = document.documentElement.style;
    for (const [side, value] of Object.entries(insets)) {
        style.setProperty(`--safe-area-inset-${side}`, `${value}px`);
    }
}"""

_NEXT_FRAME_SCRIPT = "() => new Promise(resolve => requestAnimationFrame(() => resolve()))"


class PlaywrightView(SnapshotView, Themeable, SafeAreaAware):
    """A page, or the element matching ``selector``, rendered by Playwright.

    When ``style`` is given the page follows it: its color scheme and
    animation setting are emulated on every change, including ``reset``.
    """

    def __init__(
        self,
        page: Page,
        selector: Optional[str] = None,
        settle_timeout_ms: int = 3000,
        style: Optional[StyleContext] = None,
    ):
        self.page = page
        self.selector = selector
        self.settle_timeout_ms = settle_timeout_ms
        self.style = style
        self._frame = Size(page.viewport_size["width"], page.viewport_size["height"]) \
            if page.viewport_size else Size(0, 0)
        self._variant = ColorSchemeVariant.LIGHT
        if style is not None:
            style.subscribe(self._apply_style)

    def _apply_style(self, style: StyleContext) -> None:
        self._variant = style.color_scheme
        if self.page.is_closed():
            return
        self.page.emulate_media(
            color_scheme=style.color_scheme.value,
            reduced_motion="no-preference" if style.animations_enabled else "reduce",
        )

    @property
    def frame(self) -> Size:
        return self._frame

    @frame.setter
    def frame(self, size: Size) -> None:
        self._frame = size
        height = int(size.height) if size.height > 0 else MEASURING_HEIGHT
        self.page.set_viewport_size({"width": int(size.width), "height": height})

    def layout_if_needed(self) -> None:
        try:
            self.page.wait_for_load_state("networkidle", timeout=self.settle_timeout_ms)
        except PlaywrightTimeoutError:
            # Long-polling pages never go idle; settle on the next frame instead
            logger.debug("Page did not reach network idle within %dms", self.settle_timeout_ms)
        self.page.evaluate(_NEXT_FRAME_SCRIPT)

    def render(self, background: str | None = None) -> Image.Image:
        omit_background = background is not None
        if self.selector:
            data = self.page.locator(self.selector).screenshot(
                animations="disabled", omit_background=omit_background
            )
        else:
            data = self.page.screenshot(
                full_page=self._frame.height <= 0,
                animations="disabled",
                omit_background=omit_background,
            )
        image = Image.open(io.BytesIO(data)).convert("RGBA")
        if background is None:
            return image
        return Image.alpha_composite(Image.new("RGBA", image.size, background), image)

    def has_ambiguous_layout(self) -> bool:
        """Content wider than its box means the width does not constrain it."""
        return bool(self.page.evaluate(_OVERFLOW_SCRIPT, self.selector))

    @property
    def color_scheme_variant(self) -> ColorSchemeVariant:
        return self._variant

    @color_scheme_variant.setter
    def color_scheme_variant(self, variant: ColorSchemeVariant) -> None:
        if self.style is not None:
            self.style.color_scheme = variant
            if self._variant == variant:
                return
        # Unbound, or the binding ended at the last reset
        self._variant = variant
        if not self.page.is_closed():
            self.page.emulate_media(color_scheme=variant.value)

    def set_safe_area_insets(self, top: float, left: float, bottom: float, right: float) -> None:
        self.page.evaluate(_SAFE_AREA_SCRIPT, {"top": top, "left": left, "bottom": bottom, "right": right})


class PlaywrightDialog(Presentable):
    """A ``<dialog>`` element shown with ``showModal()``."""

    def __init__(self, page: Page, selector: str = "dialog", style: Optional[StyleContext] = None):
        self.page = page
        self.selector = selector
        self._view = PlaywrightView(page, selector, style=style)

    @property
    def view(self) -> SnapshotView:
        return self._view


class PlaywrightHost(HostContainer):
    """Hosts a dialog in a page resized to the host size.

    ``dismiss`` closes the dialog and puts the page back at the viewport it
    had before the host resized it.
    """

    def __init__(self, page: Page, size: Size, open_timeout_ms: int = 2000):
        self.page = page
        self.open_timeout_ms = open_timeout_ms
        self._presented: Optional[PlaywrightDialog] = None
        self._previous_viewport = dict(page.viewport_size) if page.viewport_size else None
        page.set_viewport_size({"width": int(size.width), "height": int(size.height)})

    def present(self, presentable: Presentable, completion: Callable[[], None]) -> None:
        if not isinstance(presentable, PlaywrightDialog):
            raise TypeError(f"PlaywrightHost cannot present {type(presentable).__name__}")
        self._presented = presentable
        dialog = self.page.locator(presentable.selector)
        dialog.evaluate("el => el.showModal()")
        try:
            self.page.wait_for_function(
                "(selector) => document.querySelector(selector)?.open === true",
                arg=presentable.selector,
                timeout=self.open_timeout_ms,
            )
        except PlaywrightTimeoutError:
            logger.warning("Dialog %s never opened", presentable.selector)
            return
        completion()

    def dismiss(self) -> None:
        if self._presented is not None:
            self.page.locator(self._presented.selector).evaluate("el => el.open && el.close()")
            self._presented = None
        if self._previous_viewport is not None:
            self.page.set_viewport_size(self._previous_viewport)
            self._previous_viewport = None


def playwright_host_factory(page: Page) -> Callable[[Size], PlaywrightHost]:
    return lambda size: PlaywrightHost(page, size)
