# glyph_map/render/gpu.py
from __future__ import annotations

"""
GPU renderer (numba.cuda).

Kernels:
  normalize_kernel   : values[i] /= scale over a flat buffer, one thread per element
  match kernel       : one thread per pixel; nearest pair, glyph index, cell
                       lookup and tile copy into the device canvas. Results are
                       also stored in a DevicePairBuffer for read-back.

The distance metric is fixed per kernel: match_kernel(metric) compiles (once)
a kernel closed over that metric's device function, so the per-pixel loop
never branches on the metric.

Lab samples, palette and distances are float64 on the device, as on the host.

Launches are asynchronous; render_gpu synchronises before any read-back.
Canvas blocks are disjoint per pixel, so no atomics are needed.
"""

import math
from functools import lru_cache
from typing import Optional, Tuple

import numpy as np
from numba import cuda

from ..atlas import Atlas
from ..colour_convert import as_device_layout, normalized_rgb_to_lab
from ..constants import GPU_THREADS_PER_BLOCK_1D, GPU_THREADS_PER_BLOCK_2D
from ..core_types import (
    CellSelection,
    ConfigurationError,
    DeviceError,
    RenderResult,
    U8Image,
    assert_u8_image_rgb,
)
from ..metrics import check_metric, cie76, cie94
from ..palette_data import Palette
from ..ramp import GlyphRamp, glyph_index

# Device builds of the host scalar functions
_cie76_device = cuda.jit(device=True)(cie76)
_cie94_device = cuda.jit(device=True)(cie94)
_glyph_index_device = cuda.jit(device=True)(glyph_index)

_DEVICE_DISTANCES = {
    "cie76": _cie76_device,
    "cie94": _cie94_device,
}


@cuda.jit
def normalize_kernel(values, scale):
    i = cuda.grid(1)
    if i < values.size:
        values[i] = values[i] / scale


@lru_cache(maxsize=None)
def match_kernel(metric: str):
    """Match-and-copy kernel specialised for one metric."""
    distance = _DEVICE_DISTANCES[check_metric(metric)]

    @cuda.jit
    def match_and_copy(
        lab, palette, atlas, art, closest, second, d1, d2, glyph, n_glyphs, cell_w, cell_h
    ):
        x, y = cuda.grid(2)
        if y >= lab.shape[0] or x >= lab.shape[1]:
            return

        gl = lab[y, x, 0]
        ga = lab[y, x, 1]
        gb = lab[y, x, 2]

        best = 0
        best_d = distance(gl, ga, gb, palette[0, 0], palette[0, 1], palette[0, 2])
        runner = -1
        runner_d = math.inf
        for i in range(1, palette.shape[0]):
            d = distance(gl, ga, gb, palette[i, 0], palette[i, 1], palette[i, 2])
            if d < best_d:
                runner = best
                runner_d = best_d
                best = i
                best_d = d
            elif d < runner_d:
                runner = i
                runner_d = d

        g = _glyph_index_device(best_d, runner_d, n_glyphs)

        closest[y, x] = best
        second[y, x] = runner
        d1[y, x] = best_d
        d2[y, x] = runner_d
        glyph[y, x] = g

        src_x = g * cell_w
        src_y = (best * palette.shape[0] + runner) * cell_h
        dst_x = x * cell_w
        dst_y = y * cell_h
        for dy in range(cell_h):
            for dx in range(cell_w):
                for c in range(atlas.shape[2]):
                    art[dst_y + dy, dst_x + dx, c] = atlas[src_y + dy, src_x + dx, c]

    return match_and_copy


# Device resources


def gpu_available() -> bool:
    """True when numba can reach a CUDA device (or its simulator)."""
    return bool(cuda.is_available())


def ensure_device() -> None:
    if not gpu_available():
        raise DeviceError("CUDA device not available; use the cpu backend")


class DevicePairBuffer:
    """
    Device-resident nearest-pair results for one render (closest, second,
    d1, d2, glyph; each (H, W)). Use as a context manager: the arrays are
    released when the block exits, errors included.
    """

    def __init__(self, height: int, width: int) -> None:
        shape = (int(height), int(width))
        try:
            self._arrays: Optional[dict] = {
                "closest": cuda.device_array(shape, dtype=np.int32),
                "second": cuda.device_array(shape, dtype=np.int32),
                "d1": cuda.device_array(shape, dtype=np.float64),
                "d2": cuda.device_array(shape, dtype=np.float64),
                "glyph": cuda.device_array(shape, dtype=np.int32),
            }
        except Exception as exc:
            raise DeviceError(f"device allocation failed for {shape}: {exc}") from exc
        self.shape = shape

    def __enter__(self) -> "DevicePairBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._arrays is None

    def close(self) -> None:
        """Drop the device arrays; numba frees them once unreferenced."""
        self._arrays = None

    def _get(self, name: str):
        if self._arrays is None:
            raise DeviceError("pair buffer already released")
        return self._arrays[name]

    @property
    def closest(self):
        return self._get("closest")

    @property
    def second(self):
        return self._get("second")

    @property
    def d1(self):
        return self._get("d1")

    @property
    def d2(self):
        return self._get("d2")

    @property
    def glyph(self):
        return self._get("glyph")

    def to_host(self) -> CellSelection:
        """Copy every field back. Call after synchronising."""
        return CellSelection(
            closest=self.closest.copy_to_host(),
            second=self.second.copy_to_host(),
            d1=self.d1.copy_to_host(),
            d2=self.d2.copy_to_host(),
            glyph=self.glyph.copy_to_host(),
        )


# Host side


def _grid_2d(height: int, width: int, threads: Tuple[int, int]) -> Tuple[int, int]:
    tx, ty = threads
    return ((width + tx - 1) // tx, (height + ty - 1) // ty)


def normalize_on_device(
    rgb: U8Image, scale: float = 255.0, threads: int = GPU_THREADS_PER_BLOCK_1D
) -> np.ndarray:
    """Raw pixel values -> float32 / scale, computed by normalize_kernel."""
    ensure_device()
    flat = as_device_layout(rgb.reshape(-1), np.float32)
    if flat.size == 0:
        return flat.reshape(rgb.shape)
    blocks = (flat.size + threads - 1) // threads
    try:
        d_values = cuda.to_device(flat)
        normalize_kernel[blocks, threads](d_values, scale)
        cuda.synchronize()
        out = d_values.copy_to_host()
    except Exception as exc:
        raise DeviceError(f"normalize kernel failed: {exc}") from exc
    return out.reshape(rgb.shape)


def render_gpu(
    rgb: U8Image,
    palette: Palette,
    ramp: GlyphRamp,
    atlas: Atlas,
    metric: str = "cie76",
    threads_per_block: Tuple[int, int] = GPU_THREADS_PER_BLOCK_2D,
) -> RenderResult:
    """
    Render an sRGB image to glyph tiles on the GPU.

    Args:
      rgb: uint8 (H,W,3) source pixels
      threads_per_block: (x, y) CUDA block shape
    Returns:
      RenderResult, same layout as render_cpu
    Raises:
      DeviceError on missing device, allocation or launch failure
    """
    assert_u8_image_rgb(rgb)
    if atlas.n_glyphs != len(ramp) or atlas.n_colours != len(palette):
        raise ConfigurationError("atlas grid does not match ramp and palette sizes")
    kernel = match_kernel(check_metric(metric))
    ensure_device()

    height, width = int(rgb.shape[0]), int(rgb.shape[1])
    if height == 0 or width == 0:
        return RenderResult(
            canvas=np.zeros(atlas.canvas_shape(height, width), dtype=np.uint8),
            selection=CellSelection.empty(height, width),
        )
    lab = normalized_rgb_to_lab(normalize_on_device(rgb))

    blocks = _grid_2d(height, width, threads_per_block)
    try:
        d_lab = cuda.to_device(as_device_layout(lab, np.float64))
        d_palette = cuda.to_device(as_device_layout(palette.lab, np.float64))
        d_atlas = cuda.to_device(as_device_layout(atlas.pixels, np.uint8))
        d_art = cuda.device_array(atlas.canvas_shape(height, width), dtype=np.uint8)
    except Exception as exc:
        raise DeviceError(f"device upload failed: {exc}") from exc

    with DevicePairBuffer(height, width) as pairs:
        try:
            kernel[blocks, threads_per_block](
                d_lab,
                d_palette,
                d_atlas,
                d_art,
                pairs.closest,
                pairs.second,
                pairs.d1,
                pairs.d2,
                pairs.glyph,
                atlas.n_glyphs,
                atlas.cell_w,
                atlas.cell_h,
            )
            cuda.synchronize()
            selection = pairs.to_host()
            canvas = d_art.copy_to_host()
        except DeviceError:
            raise
        except Exception as exc:
            raise DeviceError(f"match kernel failed: {exc}") from exc

    return RenderResult(canvas=canvas, selection=selection)


__all__ = [
    "normalize_kernel",
    "match_kernel",
    "gpu_available",
    "ensure_device",
    "DevicePairBuffer",
    "normalize_on_device",
    "render_gpu",
]
