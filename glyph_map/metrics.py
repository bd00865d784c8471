# glyph_map/metrics.py
from __future__ import annotations

"""
Colour difference metrics in CIE Lab.

Each metric is written once as a scalar function of six components,
(l1, a1, b1, l2, a2, b2) -> float. render.gpu compiles these as CUDA device
functions; search.nearest_pair calls them on the host. cie76_matrix and
cie94_matrix repeat the same steps as numpy ops for the CPU renderer. Host
and device both work in float64, so the renderers agree on near-ties.

Exports:
  Metric, METRICS
  cie76(l1, a1, b1, l2, a2, b2)
  cie94(l1, a1, b1, l2, a2, b2)
  cie76_distance(x, y), cie94_distance(x, y)
  cie76_matrix(samples, refs), cie94_matrix(samples, refs)
  resolve_distance(metric) -> DistanceMatrixFn
  distance_matrix(samples, palette_lab, metric) -> float64 [K,N]
  distances_to_palette(sample, palette_lab, metric)

Notes:
  CIE94 uses the graphic-arts constants from constants.py and treats the first
  colour as the reference (C1 drives SC and SH). The renderers always pass the
  sample first.
"""

import math
from typing import Dict, Literal, Tuple

import numpy as np
from numpy.typing import NDArray

from .constants import CIE94_K1, CIE94_K2, CIE94_KC, CIE94_KH, CIE94_KL
from .core_types import ColorSample, ConfigurationError, DistanceMatrixFn, Lab

Metric = Literal["cie76", "cie94"]
METRICS: Tuple[str, ...] = ("cie76", "cie94")


def cie76(l1, a1, b1, l2, a2, b2):
    """Euclidean distance in Lab."""
    dl = l1 - l2
    da = a1 - a2
    db = b1 - b2
    return math.sqrt(dl * dl + da * da + db * db)


def cie94(l1, a1, b1, l2, a2, b2):
    """CIE 1994 colour difference; (l1, a1, b1) is the reference."""
    c1 = math.sqrt(a1 * a1 + b1 * b1)
    c2 = math.sqrt(a2 * a2 + b2 * b2)
    dl = l1 - l2
    dc = c1 - c2
    da = a1 - a2
    db = b1 - b2
    dh2 = da * da + db * db - dc * dc
    if dh2 < 0.0:
        dh2 = 0.0
    sc = 1.0 + CIE94_K1 * c1
    sh = 1.0 + CIE94_K2 * c1
    tl = dl / CIE94_KL
    tc = dc / (CIE94_KC * sc)
    th2 = dh2 / ((CIE94_KH * sh) * (CIE94_KH * sh))
    return math.sqrt(tl * tl + tc * tc + th2)


def cie76_distance(x: ColorSample, y: ColorSample) -> float:
    return cie76(
        float(x[0]), float(x[1]), float(x[2]), float(y[0]), float(y[1]), float(y[2])
    )


def cie94_distance(x: ColorSample, y: ColorSample) -> float:
    return cie94(
        float(x[0]), float(x[1]), float(x[2]), float(y[0]), float(y[1]), float(y[2])
    )


def cie76_matrix(samples: NDArray[np.float64], refs: NDArray[np.float64]) -> NDArray[np.float64]:
    """cie76 for every (sample, ref) pair: [K,3] x [N,3] -> [K,N]."""
    s = samples[:, None, :]
    r = refs[None, :, :]
    dl = s[..., 0] - r[..., 0]
    da = s[..., 1] - r[..., 1]
    db = s[..., 2] - r[..., 2]
    return np.sqrt(dl * dl + da * da + db * db)


def cie94_matrix(samples: NDArray[np.float64], refs: NDArray[np.float64]) -> NDArray[np.float64]:
    """cie94 for every (sample, ref) pair, samples as the reference colour."""
    s = samples[:, None, :]
    r = refs[None, :, :]
    a1, b1 = s[..., 1], s[..., 2]
    a2, b2 = r[..., 1], r[..., 2]
    c1 = np.sqrt(a1 * a1 + b1 * b1)
    c2 = np.sqrt(a2 * a2 + b2 * b2)
    dl = s[..., 0] - r[..., 0]
    dc = c1 - c2
    da = a1 - a2
    db = b1 - b2
    dh2 = np.maximum(da * da + db * db - dc * dc, 0.0)
    sc = 1.0 + CIE94_K1 * c1
    sh = 1.0 + CIE94_K2 * c1
    tl = dl / CIE94_KL
    tc = dc / (CIE94_KC * sc)
    th2 = dh2 / ((CIE94_KH * sh) * (CIE94_KH * sh))
    return np.sqrt(tl * tl + tc * tc + th2)


_HOST_DISTANCES: Dict[str, DistanceMatrixFn] = {
    "cie76": cie76_matrix,
    "cie94": cie94_matrix,
}


def check_metric(metric: str) -> Metric:
    """Validate a metric name."""
    if metric not in METRICS:
        raise ConfigurationError(
            f"unknown metric {metric!r}; expected one of {', '.join(METRICS)}"
        )
    return metric  # type: ignore[return-value]


def resolve_distance(metric: str) -> DistanceMatrixFn:
    """Pick the host distance function once per session (the vectorised form)."""
    return _HOST_DISTANCES[check_metric(metric)]


def as_lab_rows(values) -> NDArray[np.float64]:
    """Any (..., 3) Lab input as float64 [K,3] rows."""
    return np.asarray(values, dtype=np.float64).reshape(-1, 3)


def distance_matrix(samples: Lab, palette_lab: Lab, metric: str = "cie76") -> NDArray[np.float64]:
    """
    Distances from every sample to every palette row, in float64.

    Same arithmetic as the scalar metrics, one numpy op per step, so each
    entry equals the scalar result for the same inputs.

    Args:
      samples: Lab [K,3]
      palette_lab: Lab [N,3]
    Returns:
      float64 array [K,N]
    """
    return resolve_distance(metric)(as_lab_rows(samples), as_lab_rows(palette_lab))


def distances_to_palette(
    sample: ColorSample, palette_lab: Lab, metric: str = "cie76"
) -> NDArray[np.float64]:
    """Distances from one Lab sample [3] to every palette row, float64 [N]."""
    return distance_matrix(sample, palette_lab, metric)[0]


__all__ = [
    "Metric",
    "METRICS",
    "cie76",
    "cie94",
    "cie76_distance",
    "cie94_distance",
    "cie76_matrix",
    "cie94_matrix",
    "check_metric",
    "resolve_distance",
    "as_lab_rows",
    "distance_matrix",
    "distances_to_palette",
]
