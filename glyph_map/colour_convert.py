# glyph_map/colour_convert.py
from __future__ import annotations

"""
Adapter between glyph_map's Lab rows and the external colour/GPU libraries.

The sRGB -> CIE Lab transform itself is OpenCV's (cv2.cvtColor, D65). Nothing
in the matching core imports cv2 or numba types; they only see float32 arrays
shaped (..., 3).

Exports:
  normalize_rgb(rgb)
  normalized_rgb_to_lab(rgb01)
  rgb_to_lab(rgb)
  as_device_layout(array, dtype)
"""

import cv2
import numpy as np
from numpy.typing import DTypeLike

from .core_types import Lab


def normalize_rgb(rgb: np.ndarray) -> np.ndarray:
    """uint8 [0..255] -> float32 [0..1]. Shape preserved."""
    return rgb.astype(np.float32) / np.float32(255.0)


def normalized_rgb_to_lab(rgb01: np.ndarray) -> Lab:
    """
    float RGB in [0..1] -> CIE Lab float32 (L 0..100, a/b about -128..127).
    Accepts any leading shape (..., 3).
    """
    arr = np.asarray(rgb01, dtype=np.float32)
    if arr.shape[-1] != 3:
        raise TypeError("expected (..., 3) RGB array")
    if arr.size == 0:
        return np.zeros(arr.shape, dtype=np.float32)
    # cvtColor wants a 2-D image of pixels
    flat = np.ascontiguousarray(arr.reshape(1, -1, 3))
    lab = cv2.cvtColor(flat, cv2.COLOR_RGB2Lab)
    return lab.reshape(arr.shape).astype(np.float32, copy=False)


def rgb_to_lab(rgb: np.ndarray) -> Lab:
    """uint8 sRGB (..., 3) -> Lab float32 (..., 3)."""
    return normalized_rgb_to_lab(normalize_rgb(rgb))


def as_device_layout(array: np.ndarray, dtype: DTypeLike = np.float32) -> np.ndarray:
    """C-contiguous copy (or view) in the dtype the CUDA kernels index."""
    return np.ascontiguousarray(array, dtype=dtype)


__all__ = [
    "normalize_rgb",
    "normalized_rgb_to_lab",
    "rgb_to_lab",
    "as_device_layout",
]
