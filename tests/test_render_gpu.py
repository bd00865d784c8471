"""
GPU renderer against the CPU reference.

Runs the real kernels; conftest.py enables numba's CUDA simulator so no device
is needed. Images stay tiny because the simulator runs one Python thread per
CUDA thread.
"""
import unittest

import numpy as np

from glyph_map.colour_convert import normalize_rgb, rgb_to_lab
from glyph_map.core_types import ConfigurationError, DeviceError
from glyph_map.palette_data import palette_from_hex
from glyph_map.ramp import GlyphRamp
from glyph_map.render.cpu import render_cpu
from glyph_map.render.gpu import (
    DevicePairBuffer,
    gpu_available,
    normalize_on_device,
    render_gpu,
)

from .helpers import coded_atlas, decode_canvas, lab_palette

THREADS = (4, 4)


def sample_image(height, width, seed):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


@unittest.skipUnless(gpu_available(), "CUDA device or simulator not available")
class TestNormalizeKernel(unittest.TestCase):
    def test_matches_host_normalisation(self):
        rgb = sample_image(3, 5, seed=2)
        out = normalize_on_device(rgb, threads=8)
        self.assertEqual(out.shape, rgb.shape)
        self.assertEqual(out.dtype, np.float32)
        np.testing.assert_array_equal(out, normalize_rgb(rgb))


@unittest.skipUnless(gpu_available(), "CUDA device or simulator not available")
class TestDevicePairBuffer(unittest.TestCase):
    def test_released_on_exit(self):
        with DevicePairBuffer(2, 3) as pairs:
            self.assertFalse(pairs.closed)
            self.assertEqual(pairs.closest.shape, (2, 3))
        self.assertTrue(pairs.closed)
        with self.assertRaises(DeviceError):
            pairs.closest

    def test_released_on_error(self):
        with self.assertRaises(RuntimeError):
            with DevicePairBuffer(1, 1) as pairs:
                raise RuntimeError("boom")
        self.assertTrue(pairs.closed)


@unittest.skipUnless(gpu_available(), "CUDA device or simulator not available")
class TestRenderGpu(unittest.TestCase):
    def setUp(self):
        self.palette = palette_from_hex(
            ["#000000", "#ffffff", "#c03020", "#2050d0", "#40b040"]
        )
        self.ramp = GlyphRamp(" .:#")
        self.atlas = coded_atlas(n_glyphs=4, n_colours=5, cell_w=2, cell_h=2)

    def _compare(self, metric):
        rgb = sample_image(3, 4, seed=21)
        gpu = render_gpu(
            rgb, self.palette, self.ramp, self.atlas, metric, threads_per_block=THREADS
        )
        cpu = render_cpu(rgb_to_lab(rgb), self.palette, self.ramp, self.atlas, metric)
        self.assertTrue(gpu.selection.same_cells(cpu.selection))
        np.testing.assert_allclose(gpu.selection.d1, cpu.selection.d1, rtol=1e-9, atol=1e-9)
        np.testing.assert_allclose(gpu.selection.d2, cpu.selection.d2, rtol=1e-9, atol=1e-9)
        np.testing.assert_array_equal(gpu.canvas, cpu.canvas)

    def test_cie76_matches_cpu(self):
        self._compare("cie76")

    def test_cie94_matches_cpu(self):
        self._compare("cie94")

    def test_tiles_follow_selection(self):
        rgb = sample_image(2, 3, seed=8)
        result = render_gpu(
            rgb, self.palette, self.ramp, self.atlas, "cie76", threads_per_block=THREADS
        )
        codes = decode_canvas(result.canvas, 2, 2)
        np.testing.assert_array_equal(codes[..., 0], result.selection.glyph)
        np.testing.assert_array_equal(codes[..., 1], result.selection.closest)
        np.testing.assert_array_equal(codes[..., 2], result.selection.second)

    def test_black_white_scenario(self):
        palette = palette_from_hex(["#000000", "#ffffff"])
        atlas = coded_atlas(n_glyphs=2, n_colours=2, cell_w=1, cell_h=1)
        rgb = np.array([[[0, 0, 0], [255, 255, 255]]], dtype=np.uint8)
        result = render_gpu(rgb, palette, GlyphRamp(" #"), atlas, threads_per_block=THREADS)
        np.testing.assert_array_equal(result.selection.closest, [[0, 1]])
        np.testing.assert_array_equal(result.selection.second, [[1, 0]])
        np.testing.assert_array_equal(result.selection.glyph, [[0, 0]])

    def _lab_case(self, rows, n_glyphs=2):
        """Render one black pixel (Lab exactly 0,0,0) against explicit Lab rows."""
        palette = lab_palette(rows)
        ramp = GlyphRamp(" .:#"[-n_glyphs:])
        atlas = coded_atlas(n_glyphs=n_glyphs, n_colours=len(rows), cell_w=1, cell_h=1)
        rgb = np.zeros((1, 1, 3), dtype=np.uint8)
        gpu = render_gpu(rgb, palette, ramp, atlas, threads_per_block=THREADS)
        cpu = render_cpu(rgb_to_lab(rgb), palette, ramp, atlas)
        self.assertTrue(gpu.selection.same_cells(cpu.selection))
        return gpu.selection

    def test_equal_distances_keep_lower_index(self):
        sel = self._lab_case([[3, 4, 0], [0, 5, 0], [90, 0, 0]])
        self.assertEqual((int(sel.closest[0, 0]), int(sel.second[0, 0])), (0, 1))
        self.assertEqual(float(sel.d1[0, 0]), float(sel.d2[0, 0]))

    def test_duplicate_entry_gives_densest_glyph(self):
        sel = self._lab_case([[90, 0, 0], [0, 0, 0], [0, 0, 0]], n_glyphs=4)
        self.assertEqual((int(sel.closest[0, 0]), int(sel.second[0, 0])), (1, 2))
        self.assertEqual(float(sel.d2[0, 0]), 0.0)
        self.assertEqual(int(sel.glyph[0, 0]), 3)

    def test_near_tie_matches_cpu(self):
        sel = self._lab_case([[5, 0.0009, 0], [3, 4, 0], [90, 0, 0]])
        self.assertEqual((int(sel.closest[0, 0]), int(sel.second[0, 0])), (1, 0))

    def test_empty_image(self):
        rgb = np.zeros((0, 3, 3), dtype=np.uint8)
        result = render_gpu(rgb, self.palette, self.ramp, self.atlas, threads_per_block=THREADS)
        self.assertEqual(result.canvas.shape, (0, 6, 3))
        self.assertEqual(result.selection.shape, (0, 3))

    def test_idempotent(self):
        rgb = sample_image(2, 2, seed=4)
        first = render_gpu(rgb, self.palette, self.ramp, self.atlas, threads_per_block=THREADS)
        second = render_gpu(rgb, self.palette, self.ramp, self.atlas, threads_per_block=THREADS)
        self.assertEqual(first.canvas.tobytes(), second.canvas.tobytes())

    def test_unknown_metric(self):
        with self.assertRaises(ConfigurationError):
            render_gpu(sample_image(1, 1, 0), self.palette, self.ramp, self.atlas, "cie2000")

    def test_mismatched_atlas(self):
        with self.assertRaises(ConfigurationError):
            render_gpu(sample_image(1, 1, 0), self.palette, GlyphRamp(" #"), self.atlas)


if __name__ == "__main__":
    unittest.main()
