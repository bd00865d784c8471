# glyph_map/atlas.py
from __future__ import annotations

"""
Glyph atlas: a grid of pre-rendered tiles, one per (glyph, background, foreground).

Layout, for a ramp of M glyphs and a palette of N colours:
  column g            -> glyph ramp index g
  row (bg * N + fg)   -> background colour bg, foreground colour fg
All cells share one size, derived from the atlas size.

Exports:
  Atlas
  build_atlas(ramp, palette, cell_w, cell_h, font_path=None) -> U8Image
  load_font(font_path, size)
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .constants import ATLAS_CELL_PADDING, FONT_PATHS
from .core_types import Cell, ConfigurationError, U8Image
from .image_io import load_image_rgb
from .palette_data import Palette
from .ramp import GlyphRamp

AnyFont = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]


class Atlas:
    """Read-only tile grid with its cell geometry."""

    def __init__(self, pixels: np.ndarray, n_glyphs: int, n_colours: int) -> None:
        if pixels.ndim != 3 or pixels.dtype != np.uint8:
            raise ConfigurationError("atlas must be a uint8 (H,W,C) image")
        if n_glyphs < 1:
            raise ConfigurationError("atlas needs at least one glyph column")
        if n_colours < 2:
            raise ConfigurationError("atlas needs at least two colours")

        height, width = int(pixels.shape[0]), int(pixels.shape[1])
        rows = n_colours * n_colours
        if width % n_glyphs != 0 or height % rows != 0:
            raise ConfigurationError(
                f"atlas {width}x{height} does not split into {n_glyphs} columns "
                f"x {rows} rows ({n_colours} colours squared)"
            )
        if width < n_glyphs or height < rows:
            raise ConfigurationError(f"atlas {width}x{height} is too small for its grid")

        self._pixels = np.array(pixels, dtype=np.uint8, copy=True)
        self._pixels.setflags(write=False)
        self.n_glyphs = int(n_glyphs)
        self.n_colours = int(n_colours)
        self.cell_w = width // n_glyphs
        self.cell_h = height // rows

    @classmethod
    def from_file(cls, path: Path, n_glyphs: int, n_colours: int) -> "Atlas":
        return cls(load_image_rgb(path), n_glyphs, n_colours)

    @property
    def pixels(self) -> U8Image:
        return self._pixels

    @property
    def channels(self) -> int:
        return int(self._pixels.shape[2])

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self._pixels.shape)

    def canvas_shape(self, height: int, width: int) -> Tuple[int, int, int]:
        """Output canvas shape for a source of height x width pixels."""
        return (height * self.cell_h, width * self.cell_w, self.channels)

    def lookup_cell(self, glyph: int, bg: int, fg: int) -> Cell:
        """Rectangle of the tile for (glyph, bg, fg). Out-of-range input raises IndexError."""
        if not 0 <= glyph < self.n_glyphs:
            raise IndexError(f"glyph index {glyph} outside [0, {self.n_glyphs})")
        if not (0 <= bg < self.n_colours and 0 <= fg < self.n_colours):
            raise IndexError(
                f"colour pair ({bg}, {fg}) outside [0, {self.n_colours})"
            )
        return Cell(
            glyph * self.cell_w,
            (bg * self.n_colours + fg) * self.cell_h,
            self.cell_w,
            self.cell_h,
        )

    def tile(self, cell: Cell) -> U8Image:
        """Read-only view of one cell."""
        return self._pixels[cell.y : cell.y + cell.h, cell.x : cell.x + cell.w]


# Atlas generation


def load_font(font_path: Optional[str], size: int) -> AnyFont:
    """TrueType font at size from font_path or the first system font found."""
    candidates: List[str] = []
    if font_path:
        candidates.append(font_path)
    candidates += FONT_PATHS
    for p in candidates:
        try:
            if Path(p).exists():
                return ImageFont.truetype(p, size)
        except OSError:
            continue
    if font_path:
        raise ConfigurationError(f"cannot load font {font_path}")
    return ImageFont.load_default()


def _best_font_size(font_path: Optional[str], symbols: str, cell_w: int, cell_h: int) -> int:
    """Largest size at which every symbol fits inside a padded cell."""
    lo, hi = 1, max(2, cell_h * 2)
    best = lo
    avail_w = max(1, cell_w - 2 * ATLAS_CELL_PADDING)
    avail_h = max(1, cell_h - 2 * ATLAS_CELL_PADDING)
    while lo <= hi:
        mid = (lo + hi) // 2
        font = load_font(font_path, mid)
        fits = True
        for ch in symbols:
            x0, y0, x1, y1 = font.getbbox(ch)
            if x1 - x0 > avail_w or y1 - y0 > avail_h:
                fits = False
                break
        if fits:
            best = mid
            lo = mid + 1
        else:
            hi = mid - 1
    return best


def build_atlas(
    ramp: GlyphRamp,
    palette: Palette,
    cell_w: int,
    cell_h: int,
    font_path: Optional[str] = None,
) -> U8Image:
    """
    Render every (glyph, bg, fg) tile: cell filled with palette[bg], glyph drawn
    centred in palette[fg].

    Returns:
      uint8 [N*N*cell_h, M*cell_w, 3]
    """
    if cell_w < 1 or cell_h < 1:
        raise ConfigurationError("cell size must be positive")
    n = len(palette)
    m = len(ramp)
    font = load_font(font_path, _best_font_size(font_path, ramp.symbols, cell_w, cell_h))

    img = Image.new("RGB", (m * cell_w, n * n * cell_h))
    colours = [tuple(int(v) for v in row) for row in palette.rgb.tolist()]

    for bg in range(n):
        for fg in range(n):
            cy = (bg * n + fg) * cell_h
            for g, ch in enumerate(ramp.symbols):
                # drawn on its own tile so ink is clipped to the cell
                tile = Image.new("RGB", (cell_w, cell_h), colours[bg])
                if not ch.isspace():
                    draw = ImageDraw.Draw(tile)
                    x0, y0, x1, y1 = draw.textbbox((0, 0), ch, font=font)
                    tx = (cell_w - (x1 - x0)) // 2 - x0
                    ty = (cell_h - (y1 - y0)) // 2 - y0
                    draw.text((tx, ty), ch, fill=colours[fg], font=font)
                img.paste(tile, (g * cell_w, cy))

    return np.array(img, dtype=np.uint8)


__all__ = ["Atlas", "build_atlas", "load_font"]
