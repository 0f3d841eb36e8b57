"""
Quantized colour buckets shared by background estimation and sampling.
"""

from dataclasses import dataclass
from typing import Dict

import numpy as np

from .colorspace import quantize_color_key

# Pixels at or below this alpha are treated as empty
ALPHA_EMPTY_MAX = 16


@dataclass
class ColorBucket:
    """Alpha-weighted sums for one 15-bit quantized colour."""
    weight: float
    r_sum: float
    g_sum: float
    b_sum: float

    def mean_rgb(self):
        """Weighted average colour as 0..1 floats, clamped."""
        return tuple(
            min(1.0, max(0.0, s / self.weight / 255))
            for s in (self.r_sum, self.g_sum, self.b_sum)
        )


def accumulate_color_buckets(rgba_pixels: np.ndarray, weights: np.ndarray) -> Dict[int, ColorBucket]:
    """
    Group pixels by quantized colour key and accumulate weighted sums.

    Args:
        rgba_pixels: (N, 4) or (N, 3) uint8 pixels
        weights: (N,) alpha weights

    Returns:
        Mapping key -> ColorBucket, ordered by first appearance of each key
    """
    if len(rgba_pixels) == 0:
        return {}

    r8 = rgba_pixels[:, 0].astype(np.float64)
    g8 = rgba_pixels[:, 1].astype(np.float64)
    b8 = rgba_pixels[:, 2].astype(np.float64)
    keys = quantize_color_key(rgba_pixels[:, 0], rgba_pixels[:, 1], rgba_pixels[:, 2])

    unique_keys, first_index, inverse = np.unique(keys, return_index=True, return_inverse=True)
    inverse = inverse.ravel()
    n = len(unique_keys)

    weight_sums = np.bincount(inverse, weights=weights, minlength=n)
    r_sums = np.bincount(inverse, weights=r8 * weights, minlength=n)
    g_sums = np.bincount(inverse, weights=g8 * weights, minlength=n)
    b_sums = np.bincount(inverse, weights=b8 * weights, minlength=n)

    buckets = {}
    for i in np.argsort(first_index, kind="stable"):
        buckets[int(unique_keys[i])] = ColorBucket(
            weight=float(weight_sums[i]),
            r_sum=float(r_sums[i]),
            g_sum=float(g_sums[i]),
            b_sum=float(b_sums[i]),
        )
    return buckets


def alpha_weights(alpha: np.ndarray) -> np.ndarray:
    """Convert 8-bit alpha to 0..1 sample weights."""
    return alpha.astype(np.float64) / 255.0
