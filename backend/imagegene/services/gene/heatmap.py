"""
Heatmap normalization for the joint lightness/chroma histogram.

Bins are normalized by pixel count, capped at an upper quantile so a single
dominant cell does not wash out the others, gamma-compressed and quantized
to a small number of levels before being mapped to display colours.
"""

import math
from typing import List, Optional, Sequence

from .colorspace import round_half_up
from .sampling import HISTOGRAM_BINS

HEATMAP_LEVELS = 8
HEATMAP_UPPER_QUANTILE = 0.96
HEATMAP_GAMMA = 0.72

HEATMAP_LOW_RGB = (56, 96, 160)
HEATMAP_HIGH_RGB = (255, 156, 72)
HEATMAP_ALPHA_MIN = 56
HEATMAP_ALPHA_MAX = 255

EMPTY_CELL = "transparent"


def compute_heatmap_intensities(bins: Sequence[float], pixel_count: float) -> Optional[List[float]]:
    """
    Quantized display intensity per bin, in stored order.

    Stored order is chroma-major with both axes low to high, i.e. index
    saturation_bin * 3 + lightness_bin.

    Returns:
        Nine values in [0, 1] (0 for empty bins), or None when the heatmap is
        undefined
    """
    if len(bins) != HISTOGRAM_BINS * HISTOGRAM_BINS or pixel_count <= 0:
        return None

    normalized = [value / pixel_count for value in bins]
    non_zero = sorted(value for value in normalized if value > 0)
    if not non_zero:
        return None

    max_count = non_zero[-1]
    quantile_index = min(len(non_zero) - 1, math.floor(len(non_zero) * HEATMAP_UPPER_QUANTILE))
    quantile_cap = non_zero[quantile_index]
    normalized_cap = max(quantile_cap, max_count / HEATMAP_LEVELS)

    intensities = []
    for value in normalized:
        if value <= 0:
            intensities.append(0.0)
            continue
        scaled = min(1.0, max(0.0, value / normalized_cap))
        perceptual = scaled ** HEATMAP_GAMMA
        step = math.ceil(perceptual * (HEATMAP_LEVELS - 1))
        intensities.append(step / (HEATMAP_LEVELS - 1))
    return intensities


def intensity_to_color(intensity: float) -> str:
    """Interpolate between the cool and warm anchors, alpha included."""
    r, g, b = (
        round_half_up(low + (high - low) * intensity)
        for low, high in zip(HEATMAP_LOW_RGB, HEATMAP_HIGH_RGB)
    )
    alpha = (HEATMAP_ALPHA_MIN + (HEATMAP_ALPHA_MAX - HEATMAP_ALPHA_MIN) * intensity) / 255
    return f"rgba({r},{g},{b},{alpha:.2f})"


def compute_heatmap_cells(bins: Sequence[float], pixel_count: float) -> Optional[List[List[str]]]:
    """
    Colour strings for a 3x3 heatmap grid.

    Rows run from the highest chroma bin (row 0) to the lowest; columns run
    from dark to light. Empty cells are "transparent".
    """
    intensities = compute_heatmap_intensities(bins, pixel_count)
    if intensities is None:
        return None

    cells = []
    for row_index in range(HISTOGRAM_BINS):
        saturation_index = HISTOGRAM_BINS - 1 - row_index
        row = []
        for lightness_index in range(HISTOGRAM_BINS):
            index = saturation_index * HISTOGRAM_BINS + lightness_index
            if bins[index] / pixel_count <= 0:
                row.append(EMPTY_CELL)
            else:
                row.append(intensity_to_color(intensities[index]))
        cells.append(row)
    return cells
