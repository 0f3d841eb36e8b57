"""
Palette extraction by weighted k-means in CIELAB.

Quantized colour buckets become weighted points. Centres are seeded
deterministically (mass and vividness first, then farthest-point sampling),
refined with Lloyd iterations, ranked by a saturation-weighted share and
filtered for perceptual near-duplicates.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np
from loguru import logger

from .buckets import ColorBucket
from .colorspace import hsv_saturation, rgb_to_hex, rgb_to_lab, squared_lab_distance

PALETTE_SIZE = 8
PALETTE_KMEANS_ITERATIONS = 16
PALETTE_MIN_LAB_DISTANCE = 12


@dataclass
class PalettePoints:
    """Column-oriented weighted points; one row per colour bucket."""
    weight: np.ndarray      # (N,)
    rgb: np.ndarray         # (N, 3) in [0, 1]
    lab: np.ndarray         # (N, 3)
    saturation: np.ndarray  # (N,) in [0, 100]

    def __len__(self) -> int:
        return len(self.weight)


@dataclass
class PaletteCluster:
    """Weighted averages of the points assigned to one centre."""
    weight: float
    r: float
    g: float
    b: float
    l: float
    a: float
    b_lab: float
    saturation: float

    @property
    def hex(self) -> str:
        return rgb_to_hex(self.r, self.g, self.b)


def build_palette_points(palette_map: Dict[int, ColorBucket]) -> PalettePoints:
    """Turn non-empty colour buckets into weighted points."""
    buckets = [bucket for bucket in palette_map.values() if bucket.weight > 0]
    if not buckets:
        empty = np.zeros(0)
        return PalettePoints(empty, np.zeros((0, 3)), np.zeros((0, 3)), empty)

    weight = np.array([bucket.weight for bucket in buckets], dtype=np.float64)
    rgb = np.array([bucket.mean_rgb() for bucket in buckets], dtype=np.float64)
    l, a, b_lab = rgb_to_lab(rgb[:, 0], rgb[:, 1], rgb[:, 2])
    lab = np.stack([l, a, b_lab], axis=1)
    saturation = np.asarray(hsv_saturation(rgb[:, 0], rgb[:, 1], rgb[:, 2]))
    return PalettePoints(weight=weight, rgb=rgb, lab=lab, saturation=saturation)


def _squared_distances(lab: np.ndarray, center: np.ndarray) -> np.ndarray:
    return np.asarray(squared_lab_distance(lab[:, 0], lab[:, 1], lab[:, 2],
                                           center[0], center[1], center[2]))


def seed_palette_centers(points: PalettePoints, cluster_count: int) -> np.ndarray:
    """
    Pick initial centres without randomness.

    The first centre maximizes weight * (0.6 + 0.4 * saturation/100); each
    following one maximizes min_dist2 * weight * (0.5 + 0.5 * saturation/100).
    Ties go to the earliest point.

    Returns:
        (M, 3) array of CIELAB centres, M <= cluster_count
    """
    if cluster_count <= 0 or len(points) == 0:
        return np.zeros((0, 3))

    vividness = points.saturation / 100
    first = int(np.argmax(points.weight * (0.6 + 0.4 * vividness)))
    centers = [points.lab[first].copy()]
    min_dist2 = _squared_distances(points.lab, points.lab[first])

    spread_weight = points.weight * (0.5 + 0.5 * vividness)
    while len(centers) < cluster_count:
        best = int(np.argmax(min_dist2 * spread_weight))
        centers.append(points.lab[best].copy())
        min_dist2 = np.minimum(min_dist2, _squared_distances(points.lab, points.lab[best]))

    return np.array(centers)


def _assign(lab: np.ndarray, centers: np.ndarray) -> np.ndarray:
    dist2 = np.stack([_squared_distances(lab, center) for center in centers], axis=1)
    return np.argmin(dist2, axis=1)


def build_palette_clusters(points: PalettePoints, center_count: int) -> List[PaletteCluster]:
    """
    Weighted Lloyd refinement followed by per-assignment aggregation.

    Args:
        points: Weighted colour points
        center_count: Requested number of clusters

    Returns:
        Non-empty clusters in centre order
    """
    if len(points) == 0 or center_count <= 0:
        return []

    centers = seed_palette_centers(points, center_count)
    effective_count = len(centers)
    if effective_count == 0:
        return []

    weight = points.weight
    assignments = np.full(len(points), -1, dtype=np.int64)

    for iteration in range(PALETTE_KMEANS_ITERATIONS):
        nearest = _assign(points.lab, centers)
        has_change = bool(np.any(nearest != assignments))
        assignments = nearest

        weight_sums = np.bincount(assignments, weights=weight, minlength=effective_count)
        occupied = weight_sums > 0
        for dim in range(3):
            sums = np.bincount(assignments, weights=points.lab[:, dim] * weight,
                               minlength=effective_count)
            centers[occupied, dim] = sums[occupied] / weight_sums[occupied]

        if not has_change:
            logger.debug(f"Palette k-means converged after {iteration + 1} iterations")
            break

    columns = np.column_stack([points.rgb, points.lab, points.saturation])
    weight_sums = np.bincount(assignments, weights=weight, minlength=effective_count)
    column_sums = np.stack([
        np.bincount(assignments, weights=columns[:, i] * weight, minlength=effective_count)
        for i in range(columns.shape[1])
    ], axis=1)

    clusters = []
    for c in range(effective_count):
        w = weight_sums[c]
        if w <= 0:
            continue
        r, g, b, l, a, b_lab, saturation = (column_sums[c] / w).tolist()
        clusters.append(PaletteCluster(
            weight=float(w), r=r, g=g, b=b, l=l, a=a, b_lab=b_lab, saturation=saturation
        ))
    return clusters


def rank_clusters(clusters: List[PaletteCluster]) -> List[PaletteCluster]:
    """Order clusters by share of weight boosted by saturation, best first."""
    total_weight = sum(cluster.weight for cluster in clusters) or 1

    def score(cluster: PaletteCluster) -> float:
        return (cluster.weight / total_weight) * (0.7 + 0.3 * (cluster.saturation / 100))

    return sorted(clusters, key=score, reverse=True)


def select_distinct(ranked: List[PaletteCluster], backfill: bool = True) -> List[PaletteCluster]:
    """
    Greedily keep clusters that are not perceptual near-duplicates.

    A candidate closer than PALETTE_MIN_LAB_DISTANCE to an already selected
    swatch is skipped. With backfill, skipped clusters are appended in rank
    order until PALETTE_SIZE entries exist.
    """
    threshold2 = PALETTE_MIN_LAB_DISTANCE * PALETTE_MIN_LAB_DISTANCE
    selected: List[PaletteCluster] = []
    taken = set()

    for index, candidate in enumerate(ranked):
        is_near = any(
            squared_lab_distance(candidate.l, candidate.a, candidate.b_lab,
                                 item.l, item.a, item.b_lab) < threshold2
            for item in selected
        )
        if not is_near:
            selected.append(candidate)
            taken.add(index)
        if len(selected) >= PALETTE_SIZE:
            break

    if backfill and len(selected) < PALETTE_SIZE:
        for index, candidate in enumerate(ranked):
            if index in taken:
                continue
            selected.append(candidate)
            if len(selected) >= PALETTE_SIZE:
                break

    return selected[:PALETTE_SIZE]


def finalize_palette(palette_map: Dict[int, ColorBucket], pixel_count: float,
                     backfill: bool = True) -> List[Dict[str, Any]]:
    """
    Build the final palette from accumulated colour buckets.

    Args:
        palette_map: Quantized colour buckets from sampling
        pixel_count: Total sampled weight used for ratios
        backfill: Re-add near-duplicate clusters to fill PALETTE_SIZE slots

    Returns:
        Up to PALETTE_SIZE {"hex": "#rrggbb", "ratio": float} entries
    """
    if pixel_count <= 0:
        return []

    points = build_palette_points(palette_map)
    if len(points) == 0:
        return []

    clusters = build_palette_clusters(points, min(PALETTE_SIZE, len(points)))
    if not clusters:
        return []

    selected = select_distinct(rank_clusters(clusters), backfill=backfill)
    return [
        {"hex": cluster.hex, "ratio": min(1.0, cluster.weight / pixel_count)}
        for cluster in selected
    ]
