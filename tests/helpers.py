"""Small builders shared by the test modules."""
import numpy as np

from glyph_map.atlas import Atlas
from glyph_map.palette_data import Palette


def lab_palette(rows):
    """Palette from explicit Lab rows; rgb is a placeholder grey ramp."""
    lab = np.array(rows, dtype=np.float32)
    n = lab.shape[0]
    rgb = np.stack([np.linspace(0, 255, n).astype(np.uint8)] * 3, axis=1)
    return Palette(rgb=rgb, lab=lab)


def black_white():
    return lab_palette([[0.0, 0.0, 0.0], [100.0, 0.0, 0.0]])


def coded_atlas(n_glyphs, n_colours, cell_w=2, cell_h=3):
    """Atlas whose cell (g, bg, fg) is filled with the pixel value [g, bg, fg]."""
    pixels = np.zeros((n_colours * n_colours * cell_h, n_glyphs * cell_w, 3), dtype=np.uint8)
    for g in range(n_glyphs):
        for bg in range(n_colours):
            for fg in range(n_colours):
                y = (bg * n_colours + fg) * cell_h
                x = g * cell_w
                pixels[y : y + cell_h, x : x + cell_w] = (g, bg, fg)
    return Atlas(pixels, n_glyphs, n_colours)


def decode_canvas(canvas, cell_w, cell_h):
    """Inverse of coded_atlas: (glyph, bg, fg) per output block."""
    return canvas[::cell_h, ::cell_w].astype(np.int32)
