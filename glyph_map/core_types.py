# glyph_map/core_types.py
from __future__ import annotations

"""
Core type aliases, small value objects, and the error hierarchy.
"""

from dataclasses import dataclass
from typing import Callable, NamedTuple, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

# Basic aliases

RGBTuple = Tuple[int, int, int]
HexStr = str

U8Image = NDArray[np.uint8]  # (H, W, 3)
Lab = NDArray[np.float32]  # (..., 3) CIE Lab
ColorSample = Sequence[float]  # one (L, a, b) row

DistanceFn = Callable[[ColorSample, ColorSample], float]
# [K,3] samples x [N,3] references -> [K,N] distances
DistanceMatrixFn = Callable[[NDArray[np.float64], NDArray[np.float64]], NDArray[np.float64]]

# Errors


class GlyphMapError(Exception):
    """Base class for errors raised by glyph_map."""


class ConfigurationError(GlyphMapError, ValueError):
    """Inputs that make a render session impossible (images, palette, ramp, atlas)."""


class DeviceError(GlyphMapError, RuntimeError):
    """CUDA unavailable, allocation failure or kernel launch failure."""


# Value objects


class PairMatch(NamedTuple):
    """Closest and second-closest palette indices with their distances."""

    closest: int
    second: int
    d1: float
    d2: float


class Cell(NamedTuple):
    """Tile rectangle inside the atlas, in pixels."""

    x: int
    y: int
    w: int
    h: int


@dataclass(frozen=True)
class CellSelection:
    """Per-pixel search results for a whole image. All arrays are (H, W)."""

    closest: NDArray[np.int32]
    second: NDArray[np.int32]
    d1: NDArray[np.float64]
    d2: NDArray[np.float64]
    glyph: NDArray[np.int32]

    @classmethod
    def empty(cls, height: int, width: int) -> "CellSelection":
        shape = (height, width)
        return cls(
            closest=np.zeros(shape, dtype=np.int32),
            second=np.zeros(shape, dtype=np.int32),
            d1=np.zeros(shape, dtype=np.float64),
            d2=np.zeros(shape, dtype=np.float64),
            glyph=np.zeros(shape, dtype=np.int32),
        )

    @property
    def shape(self) -> Tuple[int, int]:
        return (int(self.closest.shape[0]), int(self.closest.shape[1]))

    def same_cells(self, other: "CellSelection") -> bool:
        """True when both selections pick the same tile for every pixel."""
        return (
            self.shape == other.shape
            and np.array_equal(self.closest, other.closest)
            and np.array_equal(self.second, other.second)
            and np.array_equal(self.glyph, other.glyph)
        )


@dataclass(frozen=True)
class RenderResult:
    """Output canvas plus the selection that produced it."""

    canvas: U8Image
    selection: CellSelection


# Small helpers


def rgb_to_hex(rgb: RGBTuple) -> HexStr:
    """RGB tuple to lowercase hex string '#rrggbb'."""
    return f"#{rgb[0]:02x}{rgb[1]:02x}{rgb[2]:02x}"


def hex_to_rgb(hex_str: str) -> RGBTuple:
    """Parse '#rgb' or '#rrggbb' (case-insensitive) into an RGB tuple."""
    s = hex_str.strip().lower()
    if not s.startswith("#"):
        s = f"#{s}"
    if len(s) == 4:
        r, g, b = s[1], s[2], s[3]
        s = f"#{r}{r}{g}{g}{b}{b}"
    if len(s) != 7:
        raise ConfigurationError(f"hex colour must be '#rrggbb' or '#rgb': {hex_str!r}")
    try:
        return (int(s[1:3], 16), int(s[3:5], 16), int(s[5:7], 16))
    except ValueError:
        raise ConfigurationError(f"invalid hex colour: {hex_str!r}") from None


def hex_list_to_u8_rgb_array(hex_list: Sequence[str]) -> U8Image:
    """Convert a sequence of hex strings to a (N,3) uint8 array."""
    out = np.empty((len(hex_list), 3), dtype=np.uint8)
    for i, hx in enumerate(hex_list):
        out[i] = hex_to_rgb(hx)
    return out


def assert_u8_image_rgb(image: np.ndarray) -> U8Image:
    """Validate a uint8 (H,W,3) image and return it typed as U8Image."""
    if image.dtype != np.uint8 or image.ndim != 3 or image.shape[-1] != 3:
        raise TypeError("expected uint8 (H,W,3) image")
    return image  # type: ignore[return-value]


def assert_lab_image(lab: np.ndarray) -> Lab:
    """Validate a float (H,W,3) Lab image."""
    if lab.ndim != 3 or lab.shape[-1] != 3 or lab.dtype.kind != "f":
        raise TypeError("expected float (H,W,3) Lab image")
    return lab  # type: ignore[return-value]


__all__ = [
    # aliases / types
    "RGBTuple",
    "HexStr",
    "U8Image",
    "Lab",
    "ColorSample",
    "DistanceFn",
    "DistanceMatrixFn",
    # errors
    "GlyphMapError",
    "ConfigurationError",
    "DeviceError",
    # value objects
    "PairMatch",
    "Cell",
    "CellSelection",
    "RenderResult",
    # helpers
    "rgb_to_hex",
    "hex_to_rgb",
    "hex_list_to_u8_rgb_array",
    "assert_u8_image_rgb",
    "assert_lab_image",
]
