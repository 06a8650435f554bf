"""Device screen sizes and named configuration sets."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Union


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    def __str__(self) -> str:
        return f"{self.width:g}x{self.height:g}"


class ColorSchemeVariant(str, Enum):
    LIGHT = "light"
    DARK = "dark"


ConfigurationValue = Union[Size, float, ColorSchemeVariant]


@dataclass(frozen=True)
class NamedConfiguration:
    label: str
    value: ConfigurationValue
    is_tablet: bool = False


class ConfigurationSet(Mapping):
    """Read-only mapping of label -> NamedConfiguration.

    Iteration is sorted by label so repeated runs visit configurations
    in the same order.
    """

    def __init__(self, entries: Mapping[str, ConfigurationValue] | None = None, tablet: bool = False):
        self._entries: dict[str, NamedConfiguration] = {}
        for label, value in (entries or {}).items():
            self._entries[label] = NamedConfiguration(label=label, value=value, is_tablet=tablet)

    @classmethod
    def from_configurations(cls, configurations: list[NamedConfiguration]) -> "ConfigurationSet":
        result = cls()
        for configuration in configurations:
            result._entries[configuration.label] = configuration
        return result

    def __getitem__(self, label: str) -> NamedConfiguration:
        return self._entries[label]

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        inner = ", ".join(f"{label}={self._entries[label].value}" for label in self)
        return f"ConfigurationSet({inner})"

    def merge(self, other: "ConfigurationSet") -> "ConfigurationSet":
        """Return a new set with ``other``'s entries winning on label collision."""
        merged = {**self._entries, **other._entries}
        return ConfigurationSet.from_configurations(list(merged.values()))

    def values_of(self, label: str) -> ConfigurationValue:
        return self._entries[label].value


def merge_configurations(*sets: ConfigurationSet) -> ConfigurationSet:
    """Merge sets left to right; later sets win on label collision."""
    merged = ConfigurationSet()
    for s in sets:
        merged = merged.merge(s)
    return merged


# Device screens in points, portrait unless stated
IPHONE_4_0_INCH = Size(320, 568)
IPHONE_4_7_INCH = Size(375, 667)
IPHONE_5_5_INCH = Size(414, 736)
IPHONE_5_8_INCH = Size(375, 812)
IPHONE_6_5_INCH = Size(414, 896)
IPAD_PORTRAIT = Size(768, 1024)
IPAD_LANDSCAPE = Size(1024, 768)

PHONE_SCREEN_SIZES = ConfigurationSet({
    "iPhone4_0Inch": IPHONE_4_0_INCH,
    "iPhone4_7Inch": IPHONE_4_7_INCH,
    "iPhone5_5Inch": IPHONE_5_5_INCH,
    "iPhone5_8Inch": IPHONE_5_8_INCH,
    "iPhone6_5Inch": IPHONE_6_5_INCH,
})

# TODO: add iPad Pro sizes 1366x1024 and 1194x834
TABLET_SCREEN_SIZES = ConfigurationSet({
    "iPadPortrait": IPAD_PORTRAIT,
    "iPadLandscape": IPAD_LANDSCAPE,
}, tablet=True)

DEVICE_SCREEN_SIZES = merge_configurations(PHONE_SCREEN_SIZES, TABLET_SCREEN_SIZES)

# iPhone X shares the 4.7" width and iPhone XR shares the 5.5" width
PHONE_WIDTHS = ConfigurationSet({
    "320": IPHONE_4_0_INCH.width,
    "375": IPHONE_4_7_INCH.width,
    "414": IPHONE_5_5_INCH.width,
})

TABLET_WIDTHS = ConfigurationSet(
    {label: TABLET_SCREEN_SIZES.values_of(label).width for label in TABLET_SCREEN_SIZES},
    tablet=True,
)

# Smallest phone screen supported
DEFAULT_PHONE_SIZE = IPHONE_4_0_INCH
