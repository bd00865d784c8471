# glyph_map/render/cpu.py
from __future__ import annotations

"""
CPU renderer.

Each row is matched in one numpy pass (distance matrix -> nearest pair ->
glyph index), then every pixel's tile is copied into the canvas block at
(x * cell_w, y * cell_h). Blocks never overlap, so row spans can run on a
thread pool without locks and give the same canvas as the single pass.
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np

from ..atlas import Atlas
from ..core_types import (
    CellSelection,
    ConfigurationError,
    DistanceMatrixFn,
    Lab,
    RenderResult,
    assert_lab_image,
)
from ..metrics import resolve_distance
from ..palette_data import Palette
from ..ramp import GlyphRamp, glyph_indices
from ..search import nearest_pairs
from ..utils import split_rows_into_parts


def _render_rows(
    y0: int,
    y1: int,
    lab: np.ndarray,
    palette_lab: np.ndarray,
    atlas: Atlas,
    distance: DistanceMatrixFn,
    canvas: np.ndarray,
    selection: CellSelection,
) -> None:
    """Match and copy tiles for rows [y0, y1)."""
    cell_w, cell_h = atlas.cell_w, atlas.cell_h
    for y in range(y0, y1):
        closest, second, d1, d2 = nearest_pairs(lab[y], palette_lab, distance)
        glyph = glyph_indices(d1, d2, atlas.n_glyphs)

        selection.closest[y] = closest
        selection.second[y] = second
        selection.d1[y] = d1
        selection.d2[y] = d2
        selection.glyph[y] = glyph

        oy = y * cell_h
        for x, (g, bg, fg) in enumerate(zip(glyph.tolist(), closest.tolist(), second.tolist())):
            ox = x * cell_w
            canvas[oy : oy + cell_h, ox : ox + cell_w] = atlas.tile(atlas.lookup_cell(g, bg, fg))


def render_cpu(
    lab: Lab,
    palette: Palette,
    ramp: GlyphRamp,
    atlas: Atlas,
    metric: str = "cie76",
    workers: int = 1,
) -> RenderResult:
    """
    Render a Lab image to glyph tiles.

    Args:
      lab: float (H,W,3) Lab image
      workers: >1 splits rows across a thread pool
    Returns:
      RenderResult with canvas uint8 (H*cell_h, W*cell_w, C) and the per-pixel selection
    """
    assert_lab_image(lab)
    if atlas.n_glyphs != len(ramp) or atlas.n_colours != len(palette):
        raise ConfigurationError("atlas grid does not match ramp and palette sizes")
    distance = resolve_distance(metric)

    height, width = int(lab.shape[0]), int(lab.shape[1])
    canvas = np.zeros(atlas.canvas_shape(height, width), dtype=np.uint8)
    selection = CellSelection.empty(height, width)
    lab64 = np.asarray(lab, dtype=np.float64)
    palette_lab = np.asarray(palette.lab, dtype=np.float64)

    if workers <= 1 or height < 2:
        _render_rows(0, height, lab64, palette_lab, atlas, distance, canvas, selection)
    else:
        spans = split_rows_into_parts(height, workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(
                    _render_rows, s, e, lab64, palette_lab, atlas, distance, canvas, selection
                )
                for s, e in spans
            ]
            for f in futures:
                f.result()

    return RenderResult(canvas=canvas, selection=selection)


__all__ = ["render_cpu"]
