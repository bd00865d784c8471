# glyph_map/ramp.py
from __future__ import annotations

"""
Glyph ramp and the glyph index calculator.

glyph_index() is plain scalar code so render.gpu can compile it as a CUDA
device function; keep it free of Python-only constructs.
"""

import math
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .constants import DEFAULT_RAMP
from .core_types import ConfigurationError


@dataclass(frozen=True)
class GlyphRamp:
    """Symbols ordered from sparsest to densest."""

    symbols: str = DEFAULT_RAMP

    def __post_init__(self) -> None:
        if not isinstance(self.symbols, str) or len(self.symbols) == 0:
            raise ConfigurationError("glyph ramp must hold at least one symbol")

    def __len__(self) -> int:
        return len(self.symbols)

    def __getitem__(self, index: int) -> str:
        return self.symbols[index]


def glyph_index(d1, d2, n_glyphs):
    """
    Position on the ramp for a pixel at distance d1 from its closest colour and
    d2 from the second closest. d2 == 0 gives the densest glyph; otherwise
    floor(d1 / d2 * (n_glyphs - 1)), clamped to [0, n_glyphs - 1].

    A sample equal to one palette colour has d1 == 0 and gets glyph 0, a blank
    cell on that colour. Only a second matching entry (d2 == 0) gives the
    densest glyph.
    """
    top = n_glyphs - 1
    if d2 == 0.0:
        return top
    ratio = d1 / d2
    # also catches NaN
    if not ratio > 0.0:
        return 0
    if ratio >= 1.0:
        return top
    idx = int(math.floor(ratio * top))
    if idx > top:
        return top
    return idx


def glyph_indices(
    d1: NDArray[np.float64], d2: NDArray[np.float64], n_glyphs: int
) -> NDArray[np.int32]:
    """glyph_index over arrays, same clamping rules."""
    d1 = np.asarray(d1, dtype=np.float64)
    d2 = np.asarray(d2, dtype=np.float64)
    top = n_glyphs - 1
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = d1 / d2
        scaled = np.floor(ratio * top)
    out = np.where(ratio > 0.0, scaled, 0.0)
    out = np.where(ratio >= 1.0, top, out)
    out = np.where(d2 == 0.0, top, out)
    return np.clip(out, 0, top).astype(np.int32)


__all__ = ["GlyphRamp", "glyph_index", "glyph_indices"]
