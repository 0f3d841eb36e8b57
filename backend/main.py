from dotenv import load_dotenv

# Load environment variables before the config snapshot is taken
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from imagegene import __version__
from imagegene.api.v1 import router as v1_router
from imagegene.config import config
from imagegene.schemas import HealthResponse

if not config.validate_max_edge(config.MAX_EDGE):
    raise ValueError(f"IMAGEGENE_MAX_EDGE out of range: {config.MAX_EDGE}")
if not config.validate_max_samples(config.MAX_SAMPLES):
    raise ValueError(f"IMAGEGENE_MAX_SAMPLES out of range: {config.MAX_SAMPLES}")

app = FastAPI(
    title="ImageGene Analysis Backend",
    description="Palette and lightness/chroma fingerprints for images",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"]
)

app.include_router(v1_router)


@app.get("/healthz", response_model=HealthResponse)
def health_check():
    """Health check endpoint"""
    return HealthResponse(ok=True, version=__version__)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "ImageGene Analysis API",
        "version": __version__,
        "docs": "/docs"
    }
