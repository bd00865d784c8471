# glyph_map/search.py
from __future__ import annotations

"""
Nearest-pair search: closest and second-closest palette entries to a sample.

One linear pass with strict comparisons, so on equal distances the entry
with the lower index is kept first. render.gpu runs the same loop inside
its match kernel; nearest_pairs is the vectorised form used by render.cpu.
"""

import math
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .core_types import (
    ColorSample,
    ConfigurationError,
    DistanceFn,
    DistanceMatrixFn,
    Lab,
    PairMatch,
)
from .metrics import as_lab_rows


def nearest_pair(
    goal: ColorSample, palette_lab: Sequence[ColorSample], distance: DistanceFn
) -> PairMatch:
    """
    Args:
      goal: Lab [3]
      palette_lab: Lab [N,3] array or N rows, N >= 2
      distance: scalar metric such as metrics.cie76_distance
    Returns:
      PairMatch(closest, second, d1, d2) with d1 <= d2 <= distance to any other entry
    """
    n = len(palette_lab)
    if n < 2:
        raise ConfigurationError(f"nearest-pair search needs 2+ colours, got {n}")

    best = 0
    best_d = distance(goal, palette_lab[0])
    runner = -1
    runner_d = math.inf
    for i in range(1, n):
        d = distance(goal, palette_lab[i])
        if d < best_d:
            runner, runner_d = best, best_d
            best, best_d = i, d
        elif d < runner_d:
            runner, runner_d = i, d
    return PairMatch(best, runner, float(best_d), float(runner_d))


def nearest_pairs(
    samples: Lab, palette_lab: Lab, distance: DistanceMatrixFn
) -> Tuple[NDArray[np.int32], NDArray[np.int32], NDArray[np.float64], NDArray[np.float64]]:
    """
    nearest_pair for many samples at once.

    A stable argsort of each distance row keeps the lower index first on
    equal distances, matching the strict comparisons of the scalar loop.

    Args:
      samples: Lab [K,3]
      palette_lab: Lab [N,3], N >= 2
      distance: vectorised metric from metrics.resolve_distance
    Returns:
      (closest, second, d1, d2), each [K]
    """
    n = len(palette_lab)
    if n < 2:
        raise ConfigurationError(f"nearest-pair search needs 2+ colours, got {n}")
    d = distance(as_lab_rows(samples), as_lab_rows(palette_lab))
    order = np.argsort(d, axis=1, kind="stable")[:, :2]
    dist = np.take_along_axis(d, order, axis=1)
    return (
        order[:, 0].astype(np.int32),
        order[:, 1].astype(np.int32),
        dist[:, 0],
        dist[:, 1],
    )


__all__ = ["nearest_pair", "nearest_pairs"]
