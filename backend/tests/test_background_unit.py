"""
Unit tests for border-based background estimation.

Covers border traversal, the minimum-sample and dominance rejection rules,
and the chroma-dependent exclusion radius.
"""

import numpy as np
import pytest

from imagegene.services.gene.background import (
    BACKGROUND_DISTANCE_HIGH_CHROMA, BACKGROUND_DISTANCE_LOW_CHROMA,
    BackgroundModel, border_coordinates, estimate_background_from_border
)
from imagegene.services.gene.colorspace import rgb_to_lab
from image_factories import bordered_rgba, solid_rgba


class TestBorderCoordinates:
    """Test outer ring traversal"""

    def test_three_by_three_order(self):
        rows, cols = border_coordinates(3, 3)
        coords = list(zip(rows.tolist(), cols.tolist()))
        assert coords == [(0, 0), (2, 0), (0, 1), (2, 1), (0, 2), (2, 2), (1, 0), (1, 2)]

    @pytest.mark.parametrize("height,width", [(2, 2), (5, 7), (10, 10), (4, 1), (1, 4)])
    def test_ring_size(self, height, width):
        rows, cols = border_coordinates(height, width)
        coords = set(zip(rows.tolist(), cols.tolist()))
        assert len(coords) == len(rows)  # no pixel visited twice
        if height > 1 and width > 1:
            assert len(rows) == 2 * width + 2 * (height - 2)
        else:
            assert len(rows) == max(height, width)

    def test_single_pixel(self):
        rows, cols = border_coordinates(1, 1)
        assert rows.tolist() == [0]
        assert cols.tolist() == [0]


class TestEstimateBackground:
    """Test acceptance and rejection of border backgrounds"""

    def test_white_border_accepted(self):
        interior = solid_rgba(8, 8, (200, 20, 20))
        img = bordered_rgba(10, 10, (255, 255, 255), interior)

        model = estimate_background_from_border(img)

        assert model is not None
        assert model.l == pytest.approx(100.0, abs=0.1)
        assert model.threshold2 == BACKGROUND_DISTANCE_LOW_CHROMA ** 2

    def test_colored_border_uses_tight_radius(self):
        interior = solid_rgba(8, 8, (255, 255, 255))
        img = bordered_rgba(10, 10, (0, 0, 255), interior)

        model = estimate_background_from_border(img)

        assert model is not None
        assert model.threshold2 == BACKGROUND_DISTANCE_HIGH_CHROMA ** 2

    def test_too_few_border_samples(self):
        """A 5x5 image has only 16 border pixels"""
        img = solid_rgba(5, 5, (255, 255, 255))
        assert estimate_background_from_border(img) is None

    def test_semi_transparent_border_weight_too_low(self):
        """36 border pixels at alpha 128 weigh about 18, below the minimum"""
        img = solid_rgba(10, 10, (255, 255, 255), alpha=128)
        assert estimate_background_from_border(img) is None

    def test_transparent_border_ignored(self):
        img = solid_rgba(10, 10, (255, 255, 255), alpha=16)
        assert estimate_background_from_border(img) is None

    def test_non_uniform_border_rejected(self):
        """Alternating black and white border has 50% dominance"""
        img = solid_rgba(12, 12, (255, 255, 255))
        rows, cols = border_coordinates(12, 12)
        img[rows[::2], cols[::2], :3] = 0
        assert np.mean(img[rows, cols, 0] == 0) == pytest.approx(0.5)

        assert estimate_background_from_border(img) is None

    def test_dominance_just_above_threshold(self):
        """22 of 36 border pixels white is enough (0.61)"""
        img = solid_rgba(10, 10, (255, 255, 255))
        rows, cols = border_coordinates(10, 10)
        img[rows[22:], cols[22:], :3] = 0

        model = estimate_background_from_border(img)

        assert model is not None
        assert model.l == pytest.approx(100.0, abs=0.1)

    def test_background_colour_is_weighted_average(self):
        """Colours sharing a quantized key are averaged"""
        img = solid_rgba(10, 10, (240, 0, 0))
        rows, cols = border_coordinates(10, 10)
        img[rows[::2], cols[::2], :3] = (246, 0, 0)

        model = estimate_background_from_border(img)

        expected = rgb_to_lab(243 / 255, 0.0, 0.0)
        assert model is not None
        assert model.l == pytest.approx(expected[0], abs=1e-6)
        assert model.a == pytest.approx(expected[1], abs=1e-6)


class TestBackgroundModel:
    """Test the exclusion check"""

    def test_contains_is_inclusive(self):
        model = BackgroundModel(l=50.0, a=0.0, b_lab=0.0, threshold2=144.0)
        assert bool(model.contains(50.0, 0.0, 0.0))
        assert bool(model.contains(62.0, 0.0, 0.0))
        assert not bool(model.contains(62.1, 0.0, 0.0))

    def test_contains_vectorized(self):
        model = BackgroundModel(l=50.0, a=0.0, b_lab=0.0, threshold2=144.0)
        mask = model.contains(np.array([50.0, 90.0]), np.array([0.0, 0.0]), np.array([0.0, 0.0]))
        assert mask.tolist() == [True, False]

    def test_model_is_immutable(self):
        model = BackgroundModel(l=50.0, a=0.0, b_lab=0.0, threshold2=144.0)
        with pytest.raises(Exception):
            model.l = 10.0
