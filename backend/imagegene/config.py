"""
ImageGene Configuration
Manages environment variables and defaults for the analysis service.
"""
import os


class Config:
    """Configuration class for ImageGene services."""

    # Upload limits
    MAX_FILE_MB: int = int(os.environ.get("IMAGEGENE_MAX_FILE_MB", "10"))
    MAX_IMAGES_PER_REQUEST: int = int(os.environ.get("IMAGEGENE_MAX_IMAGES", "16"))

    # Sampling defaults
    MAX_EDGE: int = int(os.environ.get("IMAGEGENE_MAX_EDGE", "512"))
    MAX_SAMPLES: int = int(os.environ.get("IMAGEGENE_MAX_SAMPLES", "70000"))

    # Logging
    LOG_LEVEL: str = os.environ.get("IMAGEGENE_LOG_LEVEL", "INFO")

    # Observability
    METRICS_ENABLED: bool = bool(int(os.environ.get("IMAGEGENE_METRICS_ENABLED", "1")))

    # CORS settings
    ALLOWED_ORIGINS: str = os.environ.get(
        "IMAGEGENE_ALLOWED_ORIGINS",
        "http://localhost:3000,http://localhost:5173"
    )

    # Supported image formats
    SUPPORTED_MIME_TYPES = ["image/jpeg", "image/png", "image/webp", "image/gif", "image/bmp"]
    SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp"}

    @classmethod
    def allowed_origins(cls) -> list:
        """CORS origins as a list."""
        return [origin.strip() for origin in cls.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @classmethod
    def validate_max_edge(cls, max_edge: int) -> bool:
        """Validate max_edge parameter."""
        return 16 <= max_edge <= 4096

    @classmethod
    def validate_max_samples(cls, max_samples: int) -> bool:
        """Validate max_samples parameter."""
        return 1000 <= max_samples <= 1_000_000


# Global config instance
config = Config()
