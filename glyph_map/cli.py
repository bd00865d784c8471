# glyph_map/cli.py
"""
Render images as coloured glyph tiles, or build the glyph atlas they need.

Usage:
  glyph-map render INPUT [--out PATH] --atlas ATLAS (--palette IMG | --palette-hex LIST)
                   [--ramp STR] [--metric cie76|cie94] [--backend cpu|gpu] [--workers N]
                   [--height H] [--no-aspect] [--resample NAME] [--debug]
  glyph-map atlas --out PATH (--palette IMG | --palette-hex LIST)
                  [--ramp STR] [--cell-w W] [--cell-h H] [--font TTF]

Render:
  INPUT may be a folder; each image in it is written as <stem>_glyphs.png.
  If --out is omitted, output goes next to the input.

Atlas:
  The atlas has one column per ramp symbol and one row per (background,
  foreground) palette pair. Render with the same ramp and palette.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .atlas import build_atlas
from .constants import (
    DEFAULT_CELL_H,
    DEFAULT_CELL_W,
    DEFAULT_RAMP,
    IMAGE_EXTENSIONS,
    OUTPUT_SUFFIX,
)
from .core_types import GlyphMapError
from .image_io import save_image_rgb
from .metrics import METRICS
from .palette_data import Palette, palette_from_hex, palette_from_image, parse_hex_list
from .ramp import GlyphRamp
from .session import BACKENDS, RenderConfig, RenderSession
from .utils import (
    debug_log,
    enable_line_buffered_stdout,
    error,
    key_value_pairs_to_string,
    log,
    print_banner,
    print_config_line,
)


def _default_workers() -> int:
    """Leave a core free for the system."""
    n = os.cpu_count() or 2
    return max(1, n - 1)


def _add_palette_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--palette", type=Path, help="Swatch image; every pixel is a colour")
    group.add_argument(
        "--palette-hex", help='Colours as "#000000,#ffffff,..." in palette order'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glyph-map",
        description="Render images as a grid of coloured glyph tiles.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Render image(s) with a glyph atlas")
    render.add_argument("src", type=Path, help="Input image or folder")
    render.add_argument("--out", type=Path, default=None, help="Output file or folder")
    render.add_argument("--atlas", type=Path, required=True, help="Glyph atlas image")
    _add_palette_args(render)
    render.add_argument("--ramp", default=DEFAULT_RAMP, help="Glyphs, sparse to dense")
    render.add_argument("--metric", choices=list(METRICS), default="cie76")
    render.add_argument("--backend", choices=list(BACKENDS), default="cpu")
    render.add_argument(
        "--workers", type=int, default=_default_workers(), help="CPU row workers"
    )
    render.add_argument(
        "--height", type=int, default=None, help="Resize so height<=H before matching"
    )
    render.add_argument(
        "--no-aspect",
        action="store_true",
        help="Skip the height correction for non-square cells",
    )
    render.add_argument(
        "--resample",
        choices=["nearest", "bilinear", "bicubic", "lanczos"],
        default="bilinear",
    )
    render.add_argument("--debug", action="store_true", help="Verbose selection details")

    atlas = sub.add_parser("atlas", help="Build a glyph atlas for a palette and ramp")
    atlas.add_argument("--out", type=Path, required=True, help="Atlas PNG to write")
    _add_palette_args(atlas)
    atlas.add_argument("--ramp", default=DEFAULT_RAMP, help="Glyphs, sparse to dense")
    atlas.add_argument("--cell-w", type=int, default=DEFAULT_CELL_W)
    atlas.add_argument("--cell-h", type=int, default=DEFAULT_CELL_H)
    atlas.add_argument("--font", default=None, help="TTF font path")
    return parser


def _load_palette(args: argparse.Namespace) -> Palette:
    if args.palette_hex:
        return palette_from_hex(parse_hex_list(args.palette_hex))
    return palette_from_image(args.palette)


def _collect_inputs(src: Path) -> List[Path]:
    if not src.is_dir():
        return [src]
    files = [
        p
        for p in src.iterdir()
        if p.is_file()
        and p.suffix.lower() in IMAGE_EXTENSIONS
        and not p.stem.endswith(OUTPUT_SUFFIX)
    ]
    files.sort(key=lambda p: p.name.lower())
    return files


def _output_path(src: Path, out: Optional[Path], many: bool) -> Path:
    name = f"{src.stem}{OUTPUT_SUFFIX}.png"
    if out is None:
        return src.with_name(name)
    if many or out.is_dir():
        return out / name
    return out


def run_render(args: argparse.Namespace) -> int:
    config = RenderConfig(
        ramp=args.ramp,
        metric=args.metric,
        backend=args.backend,
        workers=max(1, args.workers),
        correct_aspect=not args.no_aspect,
        max_height=args.height,
        resample=args.resample,
        debug=args.debug,
    )
    if not args.src.exists():
        error(f"not found: {args.src}")
        return 2

    palette = _load_palette(args)
    session = RenderSession.from_files(args.atlas, args.palette, config, palette=palette)
    session.describe()

    inputs = _collect_inputs(args.src)
    many = args.src.is_dir()
    if args.debug:
        debug_log(
            key_value_pairs_to_string(
                [("Images", len(inputs)), ("Height cap", args.height or "-")]
            )
        )
    for path in inputs:
        print_banner(path.name)
        session.render_file(path, _output_path(path, args.out, many))
    return 0


def run_atlas(args: argparse.Namespace) -> int:
    palette = _load_palette(args)
    ramp = GlyphRamp(args.ramp)
    print_config_line(
        "atlas",
        [
            ("Ramp", len(ramp)),
            ("Palette", len(palette)),
            ("Cell", f"{args.cell_w}x{args.cell_h}"),
        ],
        debug=False,
    )
    pixels = build_atlas(ramp, palette, args.cell_w, args.cell_h, font_path=args.font)
    written = save_image_rgb(args.out, pixels)
    log(f"Wrote {written.name} | size={pixels.shape[1]}x{pixels.shape[0]}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point. Returns the process exit status."""
    enable_line_buffered_stdout()
    args = build_parser().parse_args(argv)
    try:
        if args.command == "atlas":
            return run_atlas(args)
        return run_render(args)
    except GlyphMapError as exc:
        error(str(exc))
        return 2


if __name__ == "__main__":
    sys.exit(main())
