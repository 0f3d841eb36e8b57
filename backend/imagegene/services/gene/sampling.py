"""
Pixel sampling and histogram aggregation.

A single deterministic pass over a (downscaled, strided) RGBA buffer builds
the lightness, chroma and joint lightness/chroma histograms together with the
quantized colour map consumed by the palette clusterer.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import cv2
import numpy as np

from .background import BackgroundModel
from .buckets import ALPHA_EMPTY_MAX, ColorBucket, accumulate_color_buckets, alpha_weights
from .colorspace import chroma, rgb_to_lab, round_half_up

HISTOGRAM_BINS = 3
MAX_EDGE = 512
MAX_SAMPLES_PER_IMAGE = 70000
LIGHTNESS_MAX = 100
# sRGB colours reach C* of about 120; normalizing by 100 would pile every
# highly chromatic pixel into the top bin
CIELAB_CHROMA_MAX = 120


def _zero_bins(size: int) -> List[float]:
    return [0.0] * size


@dataclass
class GeneAccumulator:
    """Histograms and colour buckets from one sampling pass."""
    lightness_bins: List[float] = field(default_factory=lambda: _zero_bins(HISTOGRAM_BINS))
    saturation_bins: List[float] = field(default_factory=lambda: _zero_bins(HISTOGRAM_BINS))
    heatmap_bins: List[float] = field(default_factory=lambda: _zero_bins(HISTOGRAM_BINS * HISTOGRAM_BINS))
    pixel_count: float = 0.0
    palette_map: Dict[int, ColorBucket] = field(default_factory=dict)
    stride: int = 1
    visited: int = 0


def to_bin_index(value, max_value: float = LIGHTNESS_MAX):
    """Map values in [0, max_value] to one of HISTOGRAM_BINS equal bins."""
    ratio = np.clip(np.asarray(value, dtype=np.float64) / max_value, 0, 1)
    index = np.minimum(HISTOGRAM_BINS - 1, np.floor(ratio * HISTOGRAM_BINS)).astype(np.int64)
    if np.ndim(index) == 0:
        return int(index)
    return index


def compute_stride(total_pixels: int, max_samples: int = MAX_SAMPLES_PER_IMAGE) -> int:
    """Uniform subsampling step keeping visited pixels near max_samples."""
    return max(1, total_pixels // max_samples)


def downscale_rgba(rgba: np.ndarray, max_edge: int = MAX_EDGE) -> np.ndarray:
    """
    Shrink an RGBA image so that its longer edge is at most max_edge.

    Images already within bounds are returned unchanged.
    """
    height, width = rgba.shape[:2]
    ratio = min(1.0, max_edge / max(width, height))
    target_w = max(1, round_half_up(width * ratio))
    target_h = max(1, round_half_up(height * ratio))
    if target_w == width and target_h == height:
        return rgba
    return cv2.resize(np.ascontiguousarray(rgba), (target_w, target_h),
                      interpolation=cv2.INTER_AREA)


def sample_pixels(rgba: np.ndarray,
                  background: Optional[BackgroundModel] = None,
                  max_samples: int = MAX_SAMPLES_PER_IMAGE) -> GeneAccumulator:
    """
    Aggregate histograms and colour buckets over a strided pixel subset.

    Args:
        rgba: (H, W, 4) uint8 pixels
        background: Optional model; matching pixels are excluded entirely
        max_samples: Upper bound on visited pixels

    Returns:
        GeneAccumulator; pixel_count is 0 when nothing survived
    """
    flat = rgba.reshape(-1, 4)
    stride = compute_stride(len(flat), max_samples)
    visited = flat[::stride]
    acc = GeneAccumulator(stride=stride, visited=len(visited))

    pixels = visited[visited[:, 3] > ALPHA_EMPTY_MAX]
    if len(pixels) == 0:
        return acc

    rgb = pixels[:, :3].astype(np.float64) / 255.0
    l, a, b_lab = rgb_to_lab(rgb[:, 0], rgb[:, 1], rgb[:, 2])

    if background is not None:
        keep = ~background.contains(l, a, b_lab)
        pixels, l, a, b_lab = pixels[keep], l[keep], a[keep], b_lab[keep]
        if len(pixels) == 0:
            return acc

    weights = alpha_weights(pixels[:, 3])
    lightness_bin = to_bin_index(l, LIGHTNESS_MAX)
    saturation_bin = to_bin_index(chroma(a, b_lab), CIELAB_CHROMA_MAX)

    acc.lightness_bins = np.bincount(
        lightness_bin, weights=weights, minlength=HISTOGRAM_BINS).tolist()
    acc.saturation_bins = np.bincount(
        saturation_bin, weights=weights, minlength=HISTOGRAM_BINS).tolist()
    acc.heatmap_bins = np.bincount(
        saturation_bin * HISTOGRAM_BINS + lightness_bin, weights=weights,
        minlength=HISTOGRAM_BINS * HISTOGRAM_BINS).tolist()
    acc.pixel_count = float(weights.sum())
    acc.palette_map = accumulate_color_buckets(pixels, weights)
    return acc
