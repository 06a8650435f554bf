"""Interfaces the harness drives: views, theming, and transient presentation.

These describe the UI toolkit as seen from a snapshot test. Concrete toolkits
(see ``snapharness.backends``) implement them; the harness never looks past
these methods.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from PIL import Image

from snapharness.models.devices import ColorSchemeVariant, Size


class SnapshotView(ABC):
    """A renderable view whose frame the harness can change."""

    @property
    @abstractmethod
    def frame(self) -> Size:
        ...

    @frame.setter
    @abstractmethod
    def frame(self, size: Size) -> None:
        ...

    @abstractmethod
    def layout_if_needed(self) -> None:
        """Run a layout pass and wait until it settles."""

    @abstractmethod
    def render(self, background: str | None = None) -> Image.Image:
        """Rasterize the view at its current frame."""

    def has_ambiguous_layout(self) -> bool:
        """True when the view's layout has no unique solution."""
        return False


class Themeable(ABC):
    """Optional capability: a view with a light/dark color scheme."""

    @property
    @abstractmethod
    def color_scheme_variant(self) -> ColorSchemeVariant:
        ...

    @color_scheme_variant.setter
    @abstractmethod
    def color_scheme_variant(self, variant: ColorSchemeVariant) -> None:
        ...


class SafeAreaAware(ABC):
    """Optional capability: a view that honours additional safe-area insets."""

    @abstractmethod
    def set_safe_area_insets(self, top: float, left: float, bottom: float, right: float) -> None:
        ...


class Presentable(ABC):
    """Something shown modally on top of a host, like an alert."""

    @property
    @abstractmethod
    def view(self) -> SnapshotView:
        ...

    def prepare(self) -> None:
        """Load and lay out the content before presenting."""
        self.view.layout_if_needed()


class HostContainer(ABC):
    """Throwaway window hosting a transient presentation."""

    @abstractmethod
    def present(self, presentable: Presentable, completion: Callable[[], None]) -> None:
        """Start presenting; call ``completion`` once presentation finished.

        The completion may fire on another thread or after this returns.
        """

    def dismiss(self) -> None:
        return None


HostFactory = Callable[[Size], HostContainer]
