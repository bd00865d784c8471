"""CPU renderer: tile placement, worker parity and idempotence."""
import unittest

import numpy as np

from glyph_map.core_types import ConfigurationError
from glyph_map.ramp import GlyphRamp
from glyph_map.render.cpu import render_cpu

from .helpers import black_white, coded_atlas, decode_canvas, lab_palette


def random_lab(height, width, seed):
    rng = np.random.default_rng(seed)
    return rng.uniform([0, -60, -60], [100, 60, 60], size=(height, width, 3)).astype(
        np.float32
    )


class TestRenderCpu(unittest.TestCase):
    def test_black_white_scenario(self):
        lab = np.array([[[25, 0, 0], [100, 0, 0]]], dtype=np.float32)
        atlas = coded_atlas(n_glyphs=2, n_colours=2, cell_w=2, cell_h=3)
        result = render_cpu(lab, black_white(), GlyphRamp(" #"), atlas, "cie76")

        self.assertEqual(result.canvas.shape, (3, 4, 3))
        codes = decode_canvas(result.canvas, 2, 3)
        # (glyph, bg, fg): space on black/white, then space on white/black
        np.testing.assert_array_equal(codes[0, 0], [0, 0, 1])
        np.testing.assert_array_equal(codes[0, 1], [0, 1, 0])
        np.testing.assert_allclose(result.selection.d1[0], [25.0, 0.0])
        np.testing.assert_allclose(result.selection.d2[0], [75.0, 100.0])

    def test_sample_on_two_equal_entries_uses_densest_glyph(self):
        palette = lab_palette([[0, 0, 0], [100, 0, 0], [100, 0, 0]])
        lab = np.array([[[100, 0, 0]]], dtype=np.float32)
        atlas = coded_atlas(n_glyphs=2, n_colours=3)
        result = render_cpu(lab, palette, GlyphRamp(" #"), atlas)
        self.assertEqual(int(result.selection.glyph[0, 0]), 1)
        np.testing.assert_array_equal(decode_canvas(result.canvas, 2, 3)[0, 0], [1, 1, 2])

    def test_near_tie_resolved_in_double_precision(self):
        # 5.00000008 vs 5.0 from black: equal in float32, not in float64
        palette = lab_palette([[5, 0.0009, 0], [3, 4, 0], [90, 0, 0]])
        lab = np.zeros((1, 1, 3), dtype=np.float32)
        result = render_cpu(lab, palette, GlyphRamp(" #"), coded_atlas(2, 3))
        self.assertEqual(int(result.selection.closest[0, 0]), 1)
        self.assertEqual(int(result.selection.second[0, 0]), 0)
        self.assertEqual(result.selection.d1.dtype, np.float64)

    def test_empty_image(self):
        atlas = coded_atlas(2, 2)
        lab = np.zeros((0, 4, 3), dtype=np.float32)
        result = render_cpu(lab, black_white(), GlyphRamp(" #"), atlas)
        self.assertEqual(result.canvas.shape, (0, 8, 3))
        self.assertEqual(result.selection.shape, (0, 4))

    def test_blocks_match_selection(self):
        palette = lab_palette([[0, 0, 0], [50, 40, 10], [70, -30, 30], [100, 0, 0]])
        atlas = coded_atlas(n_glyphs=5, n_colours=4, cell_w=3, cell_h=2)
        lab = random_lab(6, 4, seed=3)
        result = render_cpu(lab, palette, GlyphRamp(" .:#@"), atlas, "cie94")
        codes = decode_canvas(result.canvas, 3, 2)
        sel = result.selection
        np.testing.assert_array_equal(codes[..., 0], sel.glyph)
        np.testing.assert_array_equal(codes[..., 1], sel.closest)
        np.testing.assert_array_equal(codes[..., 2], sel.second)
        self.assertTrue(np.all(sel.d1 <= sel.d2))
        self.assertTrue(np.all(sel.closest != sel.second))

    def test_workers_give_same_canvas(self):
        palette = lab_palette([[0, 0, 0], [50, 40, 10], [70, -30, 30], [100, 0, 0]])
        atlas = coded_atlas(n_glyphs=3, n_colours=4)
        lab = random_lab(9, 5, seed=11)
        ramp = GlyphRamp(" +#")
        single = render_cpu(lab, palette, ramp, atlas, workers=1)
        pooled = render_cpu(lab, palette, ramp, atlas, workers=4)
        np.testing.assert_array_equal(single.canvas, pooled.canvas)
        self.assertTrue(single.selection.same_cells(pooled.selection))

    def test_idempotent(self):
        palette = lab_palette([[0, 0, 0], [60, 20, -20], [100, 0, 0]])
        atlas = coded_atlas(n_glyphs=4, n_colours=3)
        lab = random_lab(5, 5, seed=5)
        ramp = GlyphRamp(" .o#")
        first = render_cpu(lab, palette, ramp, atlas, "cie94")
        second = render_cpu(lab, palette, ramp, atlas, "cie94")
        self.assertEqual(first.canvas.tobytes(), second.canvas.tobytes())

    def test_atlas_must_match_ramp_and_palette(self):
        lab = random_lab(2, 2, seed=1)
        with self.assertRaises(ConfigurationError):
            render_cpu(lab, black_white(), GlyphRamp(" .#"), coded_atlas(2, 2))

    def test_unknown_metric(self):
        lab = random_lab(2, 2, seed=1)
        with self.assertRaises(ConfigurationError):
            render_cpu(lab, black_white(), GlyphRamp(" #"), coded_atlas(2, 2), "cie2000")


if __name__ == "__main__":
    unittest.main()
