# glyph_map/palette_data.py
from __future__ import annotations

"""
Palette definitions and builders.

Exports:
  Palette
  palette_from_rgb(rows)
  palette_from_hex(hex_list)
  palette_from_image(path)
  default_palette()
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

import numpy as np

from .colour_convert import rgb_to_lab
from .constants import DEFAULT_PALETTE
from .core_types import (
    ConfigurationError,
    Lab,
    U8Image,
    hex_list_to_u8_rgb_array,
    rgb_to_hex,
)
from .image_io import load_image_rgb
from .utils import warn


@dataclass(frozen=True, eq=False)
class Palette:
    """Ordered reference colours. rgb is uint8 [N,3], lab is float32 [N,3]."""

    rgb: U8Image
    lab: Lab
    names: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        # private read-only copies; callers keep their own arrays writable
        object.__setattr__(self, "rgb", np.array(self.rgb, dtype=np.uint8))
        object.__setattr__(self, "lab", np.array(self.lab, dtype=np.float32))
        if self.rgb.ndim != 2 or self.rgb.shape[-1] != 3:
            raise ConfigurationError("palette rgb must be shaped (N, 3)")
        if self.lab.shape != self.rgb.shape:
            raise ConfigurationError("palette lab and rgb rows differ in shape")
        if self.rgb.shape[0] < 2:
            raise ConfigurationError(
                f"palette needs at least 2 colours, got {self.rgb.shape[0]}"
            )
        self.rgb.setflags(write=False)
        self.lab.setflags(write=False)

    def __len__(self) -> int:
        return int(self.rgb.shape[0])

    def hex_codes(self) -> List[str]:
        return [rgb_to_hex((int(r), int(g), int(b))) for r, g, b in self.rgb.tolist()]

    def label(self, index: int) -> str:
        """Name for an entry, falling back to its hex code."""
        if index < len(self.names):
            return self.names[index]
        return self.hex_codes()[index]


def palette_from_rgb(rows: np.ndarray, names: Sequence[str] = ()) -> Palette:
    """Build a Palette from uint8 RGB rows; Lab comes from the colour adapter."""
    rgb = np.array(rows, dtype=np.uint8).reshape(-1, 3)
    if rgb.shape[0] >= 2:
        n_unique = np.unique(rgb, axis=0).shape[0]
        if n_unique < rgb.shape[0]:
            warn(f"palette has {rgb.shape[0] - n_unique} duplicate colour(s)")
    lab = rgb_to_lab(rgb)
    return Palette(rgb=rgb, lab=lab, names=list(names))


def palette_from_hex(hex_list: Sequence[str], names: Sequence[str] = ()) -> Palette:
    """Build a Palette from '#rrggbb' strings."""
    return palette_from_rgb(hex_list_to_u8_rgb_array(hex_list), names)


def palette_from_image(path: Path) -> Palette:
    """
    Build a Palette from a swatch image. Every pixel is one entry, read
    row-major, so a 1-pixel-high strip of N pixels gives N colours.
    """
    rgb = load_image_rgb(path)
    return palette_from_rgb(rgb.reshape(-1, 3))


def default_palette() -> Palette:
    """The 16-colour palette from constants.DEFAULT_PALETTE."""
    return palette_from_hex(
        [hx for hx, _name in DEFAULT_PALETTE], [name for _hx, name in DEFAULT_PALETTE]
    )


def parse_hex_list(text: str) -> List[str]:
    """Split 'a,b c' style CLI text into hex strings."""
    return [tok for tok in text.replace(",", " ").split() if tok]


__all__ = [
    "Palette",
    "palette_from_rgb",
    "palette_from_hex",
    "palette_from_image",
    "default_palette",
    "parse_hex_list",
]
