# glyph_map/session.py
from __future__ import annotations

"""
Render session: palette, ramp and atlas loaded once, then any number of
images rendered with one metric and one backend.

Exports:
  Backend, RenderConfig, RenderSession
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal, Optional, Tuple

import numpy as np

from .atlas import Atlas
from .colour_convert import rgb_to_lab
from .constants import DEFAULT_RAMP, GPU_THREADS_PER_BLOCK_2D
from .core_types import ConfigurationError, RenderResult, U8Image, assert_u8_image_rgb
from .image_io import (
    cap_height,
    correct_aspect,
    load_image_rgb,
    pillow_resample_from_name,
    save_image_rgb,
)
from .metrics import Metric, check_metric, distances_to_palette
from .palette_data import Palette, palette_from_image
from .ramp import GlyphRamp
from .render.cpu import render_cpu
from .utils import (
    debug_log,
    format_seconds_compact,
    format_total_duration_compact,
    key_value_pairs_to_string,
    log,
    print_config_line,
    selection_report,
)

Backend = Literal["cpu", "gpu"]
BACKENDS: Tuple[str, ...] = ("cpu", "gpu")

Renderer = Callable[[U8Image], RenderResult]


@dataclass(frozen=True)
class RenderConfig:
    """Per-session settings. Metric and backend stay fixed for the whole session."""

    ramp: str = DEFAULT_RAMP
    metric: Metric = "cie76"
    backend: Backend = "cpu"
    workers: int = 1
    threads_per_block: Tuple[int, int] = GPU_THREADS_PER_BLOCK_2D
    correct_aspect: bool = True
    max_height: Optional[int] = None
    resample: str = "bilinear"
    debug: bool = False


class RenderSession:
    """Owns the read-only palette, ramp and atlas for a run of renders."""

    def __init__(
        self, palette: Palette, ramp: GlyphRamp, atlas: Atlas, config: RenderConfig
    ) -> None:
        check_metric(config.metric)
        if config.backend not in BACKENDS:
            raise ConfigurationError(
                f"unknown backend {config.backend!r}; expected cpu or gpu"
            )
        if atlas.n_glyphs != len(ramp) or atlas.n_colours != len(palette):
            raise ConfigurationError(
                f"atlas grid {atlas.n_glyphs}x{atlas.n_colours} does not match "
                f"ramp ({len(ramp)}) and palette ({len(palette)})"
            )
        self.palette = palette
        self.ramp = ramp
        self.atlas = atlas
        self.config = config
        self._renderer = self._select_renderer()

    @classmethod
    def from_files(
        cls,
        atlas_path: Path,
        palette_path: Optional[Path],
        config: RenderConfig,
        palette: Optional[Palette] = None,
    ) -> "RenderSession":
        """Load palette (unless given) and atlas from image files."""
        ramp = GlyphRamp(config.ramp)
        if palette is None:
            if palette_path is None:
                raise ConfigurationError("a palette image or palette colours are required")
            palette = palette_from_image(palette_path)
        atlas = Atlas.from_file(atlas_path, len(ramp), len(palette))
        return cls(palette, ramp, atlas, config)

    def _select_renderer(self) -> Renderer:
        cfg = self.config
        if cfg.backend == "gpu":
            from .render.gpu import ensure_device, render_gpu

            ensure_device()

            def _gpu(rgb: U8Image) -> RenderResult:
                return render_gpu(
                    rgb,
                    self.palette,
                    self.ramp,
                    self.atlas,
                    cfg.metric,
                    threads_per_block=cfg.threads_per_block,
                )

            return _gpu

        def _cpu(rgb: U8Image) -> RenderResult:
            return render_cpu(
                rgb_to_lab(rgb),
                self.palette,
                self.ramp,
                self.atlas,
                cfg.metric,
                workers=cfg.workers,
            )

        return _cpu

    def prepare(self, rgb: U8Image) -> U8Image:
        """Optional height cap and cell aspect correction, before matching."""
        resample = pillow_resample_from_name(self.config.resample)
        out = cap_height(rgb, self.config.max_height, resample)
        if self.config.correct_aspect:
            out = correct_aspect(out, self.atlas.cell_w, self.atlas.cell_h, resample)
        return out

    def render(self, rgb: U8Image) -> RenderResult:
        """Render sRGB pixels as they are (no resize)."""
        return self._renderer(assert_u8_image_rgb(np.ascontiguousarray(rgb)))

    def render_file(self, src: Path, dst: Path) -> RenderResult:
        """Load, prepare, render and save. Nothing is written if rendering fails."""
        t_start = time.perf_counter()
        rgb = self.prepare(load_image_rgb(src))
        t_loaded = time.perf_counter()
        result = self.render(rgb)
        t_rendered = time.perf_counter()
        written = save_image_rgb(dst, result.canvas)
        t_saved = time.perf_counter()

        height, width = rgb.shape[:2]
        canvas_h, canvas_w = result.canvas.shape[:2]
        log(f"Wrote {written.name} | cells={width}x{height} | size={canvas_w}x{canvas_h}")
        if self.config.debug:
            self._debug_report(result, rgb)
            debug_log(
                f"Total {format_total_duration_compact(t_saved - t_start)}  "
                f"(load={format_seconds_compact(t_loaded - t_start)}, "
                f"render={format_seconds_compact(t_rendered - t_loaded)}, "
                f"save={format_seconds_compact(t_saved - t_rendered)})"
            )
        else:
            log(f"Total time {format_total_duration_compact(t_saved - t_start)}")
        return result

    def describe(self) -> None:
        cfg = self.config
        print_config_line(
            "render",
            [
                ("Backend", cfg.backend),
                ("Metric", cfg.metric),
                ("Ramp", len(self.ramp)),
                ("Palette", len(self.palette)),
                ("Cell", f"{self.atlas.cell_w}x{self.atlas.cell_h}"),
                ("Workers", cfg.workers),
            ],
            debug=False,
        )

    def _debug_report(self, result: RenderResult, rgb: U8Image) -> None:
        pairs, glyphs = selection_report(result.selection, self.ramp.symbols)
        debug_log("top colour pairs (bg / fg):")
        for bg, fg, count in pairs:
            debug_log(
                f"  {self.palette.label(bg)} / {self.palette.label(fg)}: cells={count:,}"
            )
        debug_log(
            "glyphs: "
            + key_value_pairs_to_string([(repr(sym), n) for sym, n in glyphs])
        )
        height, width = rgb.shape[:2]
        if height and width:
            cy, cx = height // 2, width // 2
            dists = distances_to_palette(
                rgb_to_lab(rgb[cy, cx]), self.palette.lab, self.config.metric
            )
            debug_log(
                f"centre pixel ({cx},{cy}) distances: "
                + key_value_pairs_to_string(
                    [(self.palette.label(i), d) for i, d in enumerate(dists.tolist())]
                )
            )


__all__ = ["Backend", "BACKENDS", "RenderConfig", "RenderSession"]
