"""
Image gene analysis entry points.

`analyze` turns one decoded RGBA buffer into a palette plus lightness/chroma
histograms; `analyze_batch` runs several images strictly in sequence,
counting per-image failures without aborting the rest.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
from loguru import logger

from imagegene.utils.metrics import get_metrics, performance_monitor
from .background import BackgroundModel, estimate_background_from_border
from .heatmap import compute_heatmap_cells
from .palette import finalize_palette
from .sampling import MAX_EDGE, MAX_SAMPLES_PER_IMAGE, downscale_rgba, sample_pixels

EMPTY_ANALYSIS = "empty_analysis"
DECODE_FAILURE = "decode_failure"
ANALYSIS_ERROR = "analysis_error"


class ImageDecodeError(Exception):
    """Raised when an image cannot be turned into an RGBA buffer."""
    pass


@dataclass
class DecodedImage:
    """An RGBA8 pixel buffer with its dimensions."""
    pixels: Any
    width: int
    height: int


@dataclass
class AnalysisResult:
    """Fingerprint of one image."""
    heatmap_bins: List[float]
    pixel_count: float
    palette: List[Dict[str, Any]]
    lightness_bins: List[float]
    saturation_bins: List[float]
    background: Optional[BackgroundModel] = None
    sample_width: int = 0
    sample_height: int = 0
    stride: int = 1

    def heatmap_cells(self) -> Optional[List[List[str]]]:
        return compute_heatmap_cells(self.heatmap_bins, self.pixel_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "heatmap_bins": list(self.heatmap_bins),
            "pixel_count": self.pixel_count,
            "palette": [dict(entry) for entry in self.palette],
            "lightness_bins": list(self.lightness_bins),
            "saturation_bins": list(self.saturation_bins),
            "heatmap_cells": self.heatmap_cells(),
            "background_detected": self.background is not None,
        }


@dataclass
class AnalysisFailure:
    """Per-image failure; never raised, always returned."""
    reason: str
    detail: str = ""


@dataclass
class BatchOutcome:
    """Results of a sequential multi-image run, in input order."""
    results: List[Tuple[Any, AnalysisResult]] = field(default_factory=list)
    failed_count: int = 0
    cancelled: bool = False


def as_rgba_array(pixels, width: int, height: int) -> np.ndarray:
    """
    View a raw RGBA8 buffer as an (H, W, 4) uint8 array.

    Raises:
        ValueError: For non-positive dimensions or a size mismatch
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image dimensions: {width}x{height}")

    if isinstance(pixels, np.ndarray):
        data = pixels.astype(np.uint8, copy=False).reshape(-1)
    else:
        data = np.frombuffer(bytes(pixels), dtype=np.uint8)

    expected = width * height * 4
    if data.size != expected:
        raise ValueError(
            f"Pixel buffer size mismatch: expected {expected} bytes for "
            f"{width}x{height} RGBA, got {data.size}"
        )
    return data.reshape(height, width, 4)


def analyze(pixels, width: int, height: int,
            remove_background: bool = False,
            max_edge: int = MAX_EDGE,
            max_samples: int = MAX_SAMPLES_PER_IMAGE) -> Union[AnalysisResult, AnalysisFailure]:
    """
    Analyze one decoded RGBA buffer.

    Args:
        pixels: RGBA8 bytes-like buffer or numpy array, row-major
        width: Image width in pixels
        height: Image height in pixels
        remove_background: Exclude the dominant border colour when detected
        max_edge: Longer-edge limit applied before sampling
        max_samples: Upper bound on visited pixels

    Returns:
        AnalysisResult, or AnalysisFailure when no pixel survives sampling

    Raises:
        ValueError: If the buffer does not match the dimensions
    """
    start_time = time.time()
    rgba = as_rgba_array(pixels, width, height)
    metrics = get_metrics()

    with performance_monitor("gene_sampling", width=width, height=height):
        sampled = downscale_rgba(rgba, max_edge)
        background = estimate_background_from_border(sampled) if remove_background else None
        acc = sample_pixels(sampled, background, max_samples)

    sample_height, sample_width = sampled.shape[:2]
    if acc.pixel_count <= 0:
        logger.bind(width=width, height=height,
                    background_detected=background is not None).warning(
            "Image gene analysis found no usable pixels")
        metrics.increment_failure_count(EMPTY_ANALYSIS)
        return AnalysisFailure(
            reason=EMPTY_ANALYSIS,
            detail="Image is fully transparent or entirely background"
        )

    with performance_monitor("gene_palette", buckets=len(acc.palette_map)):
        palette = finalize_palette(acc.palette_map, acc.pixel_count)

    result = AnalysisResult(
        heatmap_bins=acc.heatmap_bins,
        pixel_count=acc.pixel_count,
        palette=palette,
        lightness_bins=acc.lightness_bins,
        saturation_bins=acc.saturation_bins,
        background=background,
        sample_width=sample_width,
        sample_height=sample_height,
        stride=acc.stride,
    )

    total_ms = (time.time() - start_time) * 1000
    metrics.increment_analyzed_count()
    metrics.record_pixel_count(acc.pixel_count)
    metrics.record_timing("gene_analyze", total_ms)
    logger.bind(
        dims=f"{width}x{height}",
        sample_dims=f"{sample_width}x{sample_height}",
        stride=acc.stride,
        pixel_count=round(acc.pixel_count, 2),
        buckets=len(acc.palette_map),
        palette_size=len(palette),
        background_detected=background is not None,
        ms_total=round(total_ms, 2)
    ).info("Image gene analysis complete")
    return result


def analyze_batch(sources: Iterable[Tuple[Any, Callable[[], DecodedImage]]],
                  remove_background: bool = False,
                  should_cancel: Optional[Callable[[], bool]] = None,
                  max_edge: int = MAX_EDGE,
                  max_samples: int = MAX_SAMPLES_PER_IMAGE) -> BatchOutcome:
    """
    Analyze several images one after another.

    Args:
        sources: (item_id, loader) pairs; loader returns a DecodedImage or
            raises ImageDecodeError
        remove_background: Passed to every analysis
        should_cancel: Checked before each image; True stops the batch

    Returns:
        BatchOutcome with successful results in input order
    """
    outcome = BatchOutcome()
    metrics = get_metrics()

    for item_id, loader in sources:
        if should_cancel is not None and should_cancel():
            logger.bind(completed=len(outcome.results),
                        failed=outcome.failed_count).info("Image gene batch cancelled")
            outcome.cancelled = True
            break

        try:
            image = loader()
            result = analyze(image.pixels, image.width, image.height,
                             remove_background=remove_background,
                             max_edge=max_edge, max_samples=max_samples)
        except (ImageDecodeError, ValueError) as e:
            logger.warning(f"Skipping image {item_id}: {e}")
            metrics.increment_failure_count(DECODE_FAILURE)
            outcome.failed_count += 1
            continue
        except Exception as e:
            logger.bind(item_id=item_id, error_type=type(e).__name__).exception(
                f"Image gene analysis crashed for image {item_id}")
            metrics.increment_failure_count(ANALYSIS_ERROR)
            outcome.failed_count += 1
            continue

        if isinstance(result, AnalysisFailure):
            outcome.failed_count += 1
            continue
        outcome.results.append((item_id, result))

    return outcome
