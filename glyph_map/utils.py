# glyph_map/utils.py
from __future__ import annotations

"""
Shared utilities for glyph_map.

Time formatting, row partitioning for worker pools, the selection report,
and tidy print-based logging.
"""

from collections import Counter
from typing import Any, Iterable, List, Tuple

import numpy as np

from .core_types import CellSelection


#  Time formatting


def format_seconds_compact(seconds: float) -> str:
    """Human-friendly seconds: '<ms>ms', '<s>s', or 'Mm Ss'."""
    if seconds < 1.0:
        return f"{seconds * 1000.0:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.3f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds - 60 * minutes:.1f}s"


def format_total_duration_compact(seconds: float) -> str:
    """Compact total duration: 'Mm Ss', 'Ss.s', or 'ms'."""
    if seconds >= 60.0:
        minutes = int(seconds // 60)
        rem = int(round(seconds - 60 * minutes))
        return f"{minutes}m {rem}s"
    if seconds >= 1.0:
        return f"{seconds:.1f}s"
    return f"{seconds * 1000.0:.1f}ms"


# Worker partitioning


def split_rows_into_parts(height: int, parts: int) -> List[Tuple[int, int]]:
    """Partition range [0, height) into ~parts contiguous [start, end) row spans."""
    parts = max(1, int(parts))
    step = max(1, (height + parts - 1) // parts)
    return [(start, min(start + step, height)) for start in range(0, height, step)]


# Reports


def selection_report(
    selection: CellSelection, symbols: str, top_k: int = 8
) -> Tuple[List[Tuple[int, int, int]], List[Tuple[str, int]]]:
    """
    Summarise a selection.

    Returns:
      pairs: [(bg_index, fg_index, count), ...] most used first, at most top_k
      glyphs: [(symbol, count), ...] in ramp order, unused symbols omitted
    """
    pair_counts = Counter(
        zip(selection.closest.ravel().tolist(), selection.second.ravel().tolist())
    )
    pairs = [(bg, fg, n) for (bg, fg), n in pair_counts.most_common(top_k)]
    glyph_counts = np.bincount(selection.glyph.ravel(), minlength=len(symbols))
    glyphs = [
        (symbols[i], int(n)) for i, n in enumerate(glyph_counts.tolist()) if n > 0
    ]
    return pairs, glyphs


#  CLI / progress logging


def enable_line_buffered_stdout() -> None:
    """
    Enable line-buffered stdout when supported.
    Helps live progress printing in terminals that expose .reconfigure().
    """
    import sys

    reconfig = getattr(sys.stdout, "reconfigure", None)
    if callable(reconfig):
        try:
            reconfig(line_buffering=True, write_through=True)
        except (OSError, ValueError):
            pass


# Pretty logging


def format_bool_on_off(value: Any) -> str:
    """Pretty boolean: 'on'/'off' for bools; str(value) otherwise."""
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


def format_number_compact(value: Any) -> str:
    """Pretty number: 1_234 style for ints; compact for floats; passthrough otherwise."""
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        text = f"{value:.3f}".rstrip("0").rstrip(".")
        return text
    return str(value)


def key_value_pairs_to_string(
    pairs: Iterable[Tuple[str, Any]], sep: str = "  ", eq: str = ": "
) -> str:
    """
    Format (name, value) pairs as 'Name: value' blocks separated by sep.
    Uses format_bool_on_off / format_number_compact for readability.
    """
    out: List[str] = []
    for name, value in pairs:
        display = (
            format_bool_on_off(value)
            if isinstance(value, bool)
            else format_number_compact(value)
        )
        out.append(f"{name}{eq}{display}")
    return sep.join(out)


def print_config_line(
    section: str, pairs: Iterable[Tuple[str, Any]], debug: bool
) -> None:
    """
    Emit a single human-readable config line, e.g.:
      [render] Backend: gpu  Metric: cie94  Ramp: 10  Palette: 16
    Routes to debug_log() when debug=True, else to log().
    """
    line = f"[{section}] {key_value_pairs_to_string(pairs)}"
    (debug_log if debug else log)(line)


def print_banner(title: str) -> None:
    """Section banner."""
    print(f"\n=== {title} ===", flush=True)


def log(message: str) -> None:
    """Plain log line."""
    print(message, flush=True)


def debug_log(message: str) -> None:
    """Debug log line."""
    print(f"[debug] {message}", flush=True)


def warn(message: str) -> None:
    """Warning log line."""
    print(f"[warn] {message}", flush=True)


def error(message: str) -> None:
    """Error log line to stderr."""
    import sys

    print(f"[error] {message}", file=sys.stderr, flush=True)


__all__ = [
    "format_seconds_compact",
    "format_total_duration_compact",
    "split_rows_into_parts",
    "selection_report",
    "enable_line_buffered_stdout",
    "format_bool_on_off",
    "format_number_compact",
    "key_value_pairs_to_string",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "warn",
    "error",
]
