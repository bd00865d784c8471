# glyph_map/render/__init__.py
"""
Renderers.

render_cpu lives in render.cpu. render.gpu imports numba.cuda and is loaded
only when a session asks for the gpu backend.
"""

from .cpu import render_cpu

__all__ = ["render_cpu"]
