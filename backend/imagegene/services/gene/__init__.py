"""
ImageGene Analysis Engine

Colourspace conversion, border-based background estimation, single-pass
histogram sampling, weighted CIELAB palette clustering and heatmap
normalization over decoded RGBA pixel buffers. No I/O happens here.
"""

from .background import BackgroundModel, estimate_background_from_border
from .engine import (
    AnalysisFailure,
    AnalysisResult,
    BatchOutcome,
    DecodedImage,
    ImageDecodeError,
    analyze,
    analyze_batch,
)
from .heatmap import compute_heatmap_cells, compute_heatmap_intensities
from .palette import finalize_palette
from .sampling import GeneAccumulator, sample_pixels

__all__ = [
    'AnalysisFailure',
    'AnalysisResult',
    'BackgroundModel',
    'BatchOutcome',
    'DecodedImage',
    'GeneAccumulator',
    'ImageDecodeError',
    'analyze',
    'analyze_batch',
    'compute_heatmap_cells',
    'compute_heatmap_intensities',
    'estimate_background_from_border',
    'finalize_palette',
    'sample_pixels',
]
