"""
Test configuration and fixtures for ImageGene tests.
"""
import numpy as np
import pytest
from fastapi.testclient import TestClient

# Import the main app
from main import app
from image_factories import bordered_rgba, encode_png, solid_rgba


@pytest.fixture
def test_client():
    """Create test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics before each test."""
    from imagegene.utils.metrics import reset_metrics
    reset_metrics()


@pytest.fixture
def red_png():
    """PNG bytes of a small opaque red image."""
    return encode_png(solid_rgba(8, 8, (255, 0, 0)))


@pytest.fixture
def white_bordered_rgba():
    """20x20 image: white border, interior half near-white and half red/blue."""
    interior = np.zeros((18, 18, 4), dtype=np.uint8)
    interior[:, :, 3] = 255
    interior[:9, :] = (250, 250, 250, 255)
    interior[9:, :9] = (220, 30, 30, 255)
    interior[9:, 9:] = (30, 60, 200, 255)
    return bordered_rgba(20, 20, (255, 255, 255), interior)


@pytest.fixture
def noise_rgba():
    """Deterministic random RGBA image with mixed alpha."""
    rng = np.random.default_rng(42)
    img = rng.integers(0, 256, size=(64, 48, 4), dtype=np.uint8)
    return img
