# glyph_map/__init__.py
"""
glyph_map package.

Purpose:
  Render images as grids of coloured glyph tiles. For every pixel the two
  closest palette colours (CIE Lab) pick the tile's background and foreground,
  and their relative distance picks the glyph. See glyph_map.cli for the CLI.

Public API:
  RenderSession / RenderConfig : load palette, ramp and atlas once; render images.
  render_cpu                   : CPU renderer (Lab image in, canvas + selection out).
  nearest_pair                 : closest and second-closest palette entries.
  glyph_index                  : ramp position from the two distances.
  Atlas / build_atlas          : tile grid lookup and generation.
  metrics                      : cie76 / cie94 colour differences.
  render.gpu                   : CUDA renderer (imported on demand, needs numba.cuda).

Quick start:
  from glyph_map import RenderConfig, RenderSession
  session = RenderSession.from_files(Path("atlas.png"), Path("palette.png"), RenderConfig())
  session.render_file(Path("photo.jpg"), Path("photo_glyphs.png"))
"""

__version__ = "0.1.0"

from . import colour_convert
from . import core_types
from . import metrics
from . import palette_data
from . import utils

from .atlas import Atlas, build_atlas  # noqa: E402,F401
from .core_types import (  # noqa: E402,F401
    CellSelection,
    ConfigurationError,
    DeviceError,
    GlyphMapError,
    PairMatch,
    RenderResult,
)
from .palette_data import Palette, default_palette, palette_from_hex  # noqa: E402,F401
from .ramp import GlyphRamp, glyph_index  # noqa: E402,F401
from .render.cpu import render_cpu  # noqa: E402,F401
from .search import nearest_pair  # noqa: E402,F401
from .session import RenderConfig, RenderSession  # noqa: E402,F401

__all__ = [
    "__version__",
    "colour_convert",
    "core_types",
    "metrics",
    "palette_data",
    "utils",
    "Atlas",
    "build_atlas",
    "CellSelection",
    "ConfigurationError",
    "DeviceError",
    "GlyphMapError",
    "PairMatch",
    "RenderResult",
    "Palette",
    "default_palette",
    "palette_from_hex",
    "GlyphRamp",
    "glyph_index",
    "render_cpu",
    "nearest_pair",
    "RenderConfig",
    "RenderSession",
]
