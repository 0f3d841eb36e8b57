"""
ImageGene API Schemas
Pydantic models for image gene analysis request/response validation.
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class PaletteEntry(BaseModel):
    """Single colour in a palette with its share of sampled pixels."""
    hex: str = Field(
        ...,
        pattern=r"^#[0-9A-Fa-f]{6}$",
        description="Hex color code in format #rrggbb"
    )
    ratio: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Cluster weight divided by sampled pixel count"
    )


class GeneResult(BaseModel):
    """Fingerprint of one successfully analyzed image."""
    item_id: str = Field(..., description="Identifier of the image within the request")
    display_name: str = Field(..., description="Human readable image name")
    pixel_count: float = Field(..., gt=0.0, description="Alpha-weighted count of sampled pixels")
    heatmap_bins: List[float] = Field(
        ...,
        min_length=9,
        max_length=9,
        description="Joint histogram, index = chroma_bin * 3 + lightness_bin"
    )
    lightness_bins: List[float] = Field(..., min_length=3, max_length=3)
    saturation_bins: List[float] = Field(
        ...,
        min_length=3,
        max_length=3,
        description="CIELAB chroma histogram over [0, 120]"
    )
    heatmap_cells: Optional[List[List[str]]] = Field(
        None,
        description="3x3 colour strings, row 0 = highest chroma"
    )
    palette: List[PaletteEntry] = Field(..., max_length=8)
    background_detected: bool = Field(
        False,
        description="Whether a border background colour was found and excluded"
    )


class GeneResponse(BaseModel):
    """Response for a multi-image analysis request."""
    request_id: str
    source_count: int = Field(..., ge=0, description="Number of images submitted")
    failed_count: int = Field(..., ge=0, description="Images that could not be analyzed")
    remove_background: bool
    results: List[GeneResult]


class HeatmapRequest(BaseModel):
    """Stored histogram to render as heatmap cells."""
    heatmap_bins: List[float] = Field(..., min_length=9, max_length=9)
    pixel_count: float


class HeatmapResponse(BaseModel):
    """Derived heatmap cells; null when the histogram is empty."""
    cells: Optional[List[List[str]]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    ok: bool = Field(True, description="Service health status")
    version: str = Field(..., description="Service version")
    service: str = Field("imagegene-analysis", description="Service name")


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str = Field(..., description="Error message")
