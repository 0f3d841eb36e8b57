"""
Background estimation from the outer ring of image pixels.

When the border of an image is dominated by a single quantized colour that
colour is treated as background: pixels close to it in CIELAB are later
excluded from every histogram and from the palette.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from loguru import logger

from .buckets import ALPHA_EMPTY_MAX, accumulate_color_buckets, alpha_weights
from .colorspace import chroma, rgb_to_lab, squared_lab_distance

BACKGROUND_MIN_BORDER_SAMPLES = 24
BACKGROUND_DOMINANCE_THRESHOLD = 0.6
BACKGROUND_DISTANCE_LOW_CHROMA = 18
BACKGROUND_DISTANCE_HIGH_CHROMA = 12
BACKGROUND_LOW_CHROMA_LIMIT = 16


@dataclass(frozen=True)
class BackgroundModel:
    """A CIELAB point plus a squared-distance exclusion radius."""
    l: float
    a: float
    b_lab: float
    threshold2: float

    def contains(self, l, a, b_lab):
        """True where a colour lies within the exclusion radius."""
        dist2 = squared_lab_distance(l, a, b_lab, self.l, self.a, self.b_lab)
        return np.asarray(dist2) <= self.threshold2


def border_coordinates(height: int, width: int):
    """
    Row/column indices of the outermost pixel ring, in visiting order.

    Top and bottom rows are walked together column by column, then the left
    and right columns row by row, excluding the corners already visited.
    """
    xs = np.arange(width)
    if height > 1:
        rows = np.stack([np.zeros(width, dtype=np.int64),
                         np.full(width, height - 1, dtype=np.int64)], axis=1).ravel()
        cols = np.repeat(xs, 2)
    else:
        rows = np.zeros(width, dtype=np.int64)
        cols = xs

    side_ys = np.arange(1, height - 1)
    if width > 1:
        side_rows = np.repeat(side_ys, 2)
        side_cols = np.tile(np.array([0, width - 1]), len(side_ys))
    else:
        side_rows = side_ys
        side_cols = np.zeros(len(side_ys), dtype=np.int64)

    return (np.concatenate([rows, side_rows]).astype(np.int64),
            np.concatenate([cols, side_cols]).astype(np.int64))


def estimate_background_from_border(rgba: np.ndarray) -> Optional[BackgroundModel]:
    """
    Estimate a background colour from border pixels.

    Args:
        rgba: (H, W, 4) uint8 pixel array

    Returns:
        BackgroundModel, or None when the border is too sparse or not uniform
    """
    height, width = rgba.shape[:2]
    rows, cols = border_coordinates(height, width)
    border = rgba[rows, cols]
    border = border[border[:, 3] > ALPHA_EMPTY_MAX]

    weights = alpha_weights(border[:, 3])
    border_count = float(weights.sum())
    if border_count < BACKGROUND_MIN_BORDER_SAMPLES:
        logger.debug(f"Background rejected: border weight {border_count:.1f} "
                     f"< {BACKGROUND_MIN_BORDER_SAMPLES}")
        return None

    buckets = accumulate_color_buckets(border, weights)
    dominant = None
    for bucket in buckets.values():
        if dominant is None or bucket.weight > dominant.weight:
            dominant = bucket
    if dominant is None:
        return None

    dominance = dominant.weight / border_count
    if dominance < BACKGROUND_DOMINANCE_THRESHOLD:
        logger.debug(f"Background rejected: dominance {dominance:.3f} "
                     f"< {BACKGROUND_DOMINANCE_THRESHOLD}")
        return None

    r, g, b = dominant.mean_rgb()
    l, a, b_lab = rgb_to_lab(r, g, b)
    distance = (BACKGROUND_DISTANCE_LOW_CHROMA
                if chroma(a, b_lab) < BACKGROUND_LOW_CHROMA_LIMIT
                else BACKGROUND_DISTANCE_HIGH_CHROMA)

    model = BackgroundModel(l=l, a=a, b_lab=b_lab, threshold2=float(distance * distance))
    logger.debug(f"Background accepted: L={l:.1f} a={a:.1f} b={b_lab:.1f} "
                 f"dominance={dominance:.3f} radius={distance}")
    return model
