"""
ImageGene v1 API Routes
Implements /v1/gene analysis and supporting routes.
"""
import time
from typing import Any, Dict, List

from fastapi import APIRouter, File, HTTPException, Query, UploadFile

from imagegene import __version__
from imagegene.config import config
from imagegene.schemas import (
    ErrorResponse, GeneResponse, GeneResult, HeatmapRequest, HeatmapResponse
)
from imagegene.services.gene import ImageDecodeError, analyze_batch, compute_heatmap_cells
from imagegene.services.imaging import decode_image_bytes, get_image_display_name, read_upload
from imagegene.utils.ids import generate_request_id
from imagegene.utils.logging import get_logger
from imagegene.utils.metrics import get_metrics

router = APIRouter(prefix="/v1", tags=["Image Gene"])
logger = get_logger()


def _failing_loader(error: ImageDecodeError):
    def load():
        raise error
    return load


def _bytes_loader(payload: bytes):
    def load():
        return decode_image_bytes(payload)
    return load


@router.post("/gene",
             response_model=GeneResponse,
             summary="Image Gene Analysis",
             description="Palette and lightness/chroma distribution for one or more images",
             responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse},
                        500: {"model": ErrorResponse}})
async def analyze_gene(
    files: List[UploadFile] = File(..., description="Images to analyze, in display order"),
    remove_background: bool = Query(False, description="Exclude a uniform border colour"),
) -> GeneResponse:
    """
    Analyze every uploaded image in order.

    Images that cannot be decoded, are fully transparent or consist only of
    background are counted in `failed_count`. The request fails with 422 only
    when no image could be analyzed.
    """
    request_id = generate_request_id("gene")
    start_time = time.time()
    metrics = get_metrics()
    metrics.increment_request_count()

    if len(files) > config.MAX_IMAGES_PER_REQUEST:
        raise HTTPException(
            status_code=400,
            detail=f"Too many images. Maximum per request: {config.MAX_IMAGES_PER_REQUEST}"
        )

    logger.info("Starting image gene analysis", extra={
        "request_id": request_id,
        "source_count": len(files),
        "remove_background": remove_background
    })

    sources = []
    names: Dict[str, str] = {}
    for index, upload in enumerate(files):
        item_id = str(index)
        names[item_id] = get_image_display_name(upload.filename, item_id)
        try:
            payload = await read_upload(upload)
            sources.append((item_id, _bytes_loader(payload)))
        except ImageDecodeError as e:
            sources.append((item_id, _failing_loader(e)))

    try:
        outcome = analyze_batch(
            sources,
            remove_background=remove_background,
            max_edge=config.MAX_EDGE,
            max_samples=config.MAX_SAMPLES
        )
    except Exception as e:
        logger.error(f"Image gene analysis failed: {str(e)}", extra={
            "request_id": request_id,
            "error_type": type(e).__name__
        })
        raise HTTPException(status_code=500, detail="Internal analysis error")

    total_ms = (time.time() - start_time) * 1000
    metrics.record_timing("gene_request", total_ms)

    if not outcome.results:
        logger.warning("Image gene analysis failed for every image", extra={
            "request_id": request_id,
            "failed_count": outcome.failed_count,
            "ms_total": total_ms
        })
        raise HTTPException(status_code=422, detail="Image gene analysis failed")

    results = []
    for item_id, result in outcome.results:
        results.append(GeneResult(
            item_id=item_id,
            display_name=names[item_id],
            **result.to_dict()
        ))

    logger.info("Image gene analysis completed", extra={
        "request_id": request_id,
        "analyzed": len(results),
        "failed_count": outcome.failed_count,
        "ms_total": total_ms,
        "result": "ok"
    })

    return GeneResponse(
        request_id=request_id,
        source_count=len(files),
        failed_count=outcome.failed_count,
        remove_background=remove_background,
        results=results
    )


@router.post("/gene/heatmap",
             response_model=HeatmapResponse,
             summary="Heatmap Cells",
             description="Recompute display cells from a stored joint histogram")
async def heatmap_cells(request: HeatmapRequest) -> HeatmapResponse:
    """Pure derived view; calling it repeatedly yields identical cells."""
    return HeatmapResponse(cells=compute_heatmap_cells(request.heatmap_bins, request.pixel_count))


@router.get("/healthz",
            summary="Health Check",
            description="Liveness probe for the analysis service")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "imagegene-analysis",
        "version": __version__,
        "timestamp": int(time.time())
    }


@router.get("/metrics",
            summary="Service Metrics",
            description="In-process counters and timing statistics")
async def get_service_metrics() -> Dict[str, Any]:
    """Get metrics summary."""
    return get_metrics().get_summary()
