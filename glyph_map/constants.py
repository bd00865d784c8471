# glyph_map/constants.py
"""
Defaults and tunables used across the project.

- DEFAULT_RAMP, DEFAULT_PALETTE
- CIE94 weighting constants (graphic arts)
- Atlas generation defaults (cell size, font search paths)
- CUDA launch geometry
"""
from __future__ import annotations

from typing import List, Tuple

# =========================
# Glyph ramp, sparse to dense
# =========================
DEFAULT_RAMP: str = " .:-=+*#%@"

# =========================
# Default palette (hex, name), classic 16-colour terminal set
# =========================
DEFAULT_PALETTE: List[Tuple[str, str]] = [
    ("#000000", "Black"),
    ("#800000", "Maroon"),
    ("#008000", "Green"),
    ("#808000", "Olive"),
    ("#000080", "Navy"),
    ("#800080", "Purple"),
    ("#008080", "Teal"),
    ("#c0c0c0", "Silver"),
    ("#808080", "Grey"),
    ("#ff0000", "Red"),
    ("#00ff00", "Lime"),
    ("#ffff00", "Yellow"),
    ("#0000ff", "Blue"),
    ("#ff00ff", "Fuchsia"),
    ("#00ffff", "Aqua"),
    ("#ffffff", "White"),
]

# =========================
# CIE94, graphic arts application
# =========================
CIE94_KL: float = 1.0
CIE94_KC: float = 1.0
CIE94_KH: float = 1.0
CIE94_K1: float = 0.045
CIE94_K2: float = 0.015

# =========================
# Atlas generation
# =========================
DEFAULT_CELL_W: int = 8
DEFAULT_CELL_H: int = 16
ATLAS_CELL_PADDING: int = 1
FONT_PATHS: List[str] = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",
    "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
    "/Library/Fonts/Menlo.ttc",
    r"C:\Windows\Fonts\consola.ttf",
]

# =========================
# CUDA launch geometry
# =========================
GPU_THREADS_PER_BLOCK_2D: Tuple[int, int] = (16, 16)
GPU_THREADS_PER_BLOCK_1D: int = 256

# =========================
# Output naming
# =========================
OUTPUT_SUFFIX: str = "_glyphs"
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".bmp"}
