"""Process-wide style state shared by views under test."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from snapharness.models.devices import ColorSchemeVariant

logger = logging.getLogger(__name__)

StyleListener = Callable[["StyleContext"], None]


class StyleContext:
    """Shared theming and text-formatting state with an explicit reset.

    Views subscribe to be told when the color scheme or the animation
    setting changes. Tests that change any of it must call ``reset`` before
    the next test runs; the pytest plugin does this on fixture teardown.
    ``reset`` notifies subscribers one last time and then drops them, so a
    subscription lasts until the end of the test that made it.
    """

    def __init__(self) -> None:
        self._color_scheme = ColorSchemeVariant.LIGHT
        self._animations_enabled = True
        self.markdown_styles: dict[str, Any] = {}
        self.paragraph_styles: dict[str, Any] = {}
        self._listeners: list[StyleListener] = []

    @property
    def color_scheme(self) -> ColorSchemeVariant:
        return self._color_scheme

    @color_scheme.setter
    def color_scheme(self, variant: ColorSchemeVariant) -> None:
        if variant == self._color_scheme:
            return
        self._color_scheme = variant
        self._notify()

    @property
    def animations_enabled(self) -> bool:
        return self._animations_enabled

    @animations_enabled.setter
    def animations_enabled(self, enabled: bool) -> None:
        if enabled == self._animations_enabled:
            return
        self._animations_enabled = enabled
        self._notify()

    def subscribe(self, listener: StyleListener) -> None:
        """Call ``listener`` now and after every change."""
        self._listeners.append(listener)
        listener(self)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    def reset(self) -> None:
        self._color_scheme = ColorSchemeVariant.LIGHT
        self._animations_enabled = True
        self.invalidate_markdown_style()
        self.invalidate_paragraph_style()
        self._notify()
        self._listeners.clear()
        logger.debug("Style context reset to defaults")

    def invalidate_markdown_style(self) -> None:
        self.markdown_styles.clear()

    def invalidate_paragraph_style(self) -> None:
        self.paragraph_styles.clear()

    @contextmanager
    def without_animation(self) -> Iterator[None]:
        previous = self.animations_enabled
        self.animations_enabled = False
        try:
            yield
        finally:
            self.animations_enabled = previous

    def is_default(self) -> bool:
        return (
            self.color_scheme == ColorSchemeVariant.LIGHT
            and not self.markdown_styles
            and not self.paragraph_styles
            and self.animations_enabled
        )
