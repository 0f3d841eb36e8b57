"""
Unit tests for weighted k-means palette extraction.
"""

import pytest

from imagegene.services.gene.buckets import ColorBucket
from imagegene.services.gene.colorspace import quantize_color_key, squared_lab_distance
from imagegene.services.gene.palette import (
    PALETTE_MIN_LAB_DISTANCE, PALETTE_SIZE, PaletteCluster,
    build_palette_clusters, build_palette_points, finalize_palette,
    rank_clusters, seed_palette_centers, select_distinct
)


def bucket(rgb, weight):
    r, g, b = rgb
    return ColorBucket(weight=weight, r_sum=r * weight, g_sum=g * weight, b_sum=b * weight)


def palette_map(*entries):
    return {quantize_color_key(*rgb): bucket(rgb, weight) for rgb, weight in entries}


def cluster(l, a, b_lab, weight=1.0, saturation=0.0):
    return PaletteCluster(weight=weight, r=0.0, g=0.0, b=0.0,
                          l=l, a=a, b_lab=b_lab, saturation=saturation)


class TestPalettePoints:
    """Test bucket to point conversion"""

    def test_empty_buckets_skipped(self):
        points = build_palette_points({
            1: bucket((255, 0, 0), 2.0),
            2: ColorBucket(weight=0.0, r_sum=0.0, g_sum=0.0, b_sum=0.0),
        })
        assert len(points) == 1
        assert points.saturation[0] == pytest.approx(100.0)

    def test_no_buckets(self):
        assert len(build_palette_points({})) == 0


class TestSeeding:
    """Test deterministic centre seeding"""

    def test_first_centre_is_heaviest_vivid_point(self):
        points = build_palette_points(palette_map(
            ((128, 128, 128), 10.0),
            ((255, 0, 0), 9.0),
        ))
        centers = seed_palette_centers(points, 1)
        # gray scores 10 * 0.6 = 6, red scores 9 * 1.0 = 9
        assert centers.shape == (1, 3)
        assert centers[0].tolist() == points.lab[1].tolist()

    def test_second_centre_is_far_point(self):
        points = build_palette_points(palette_map(
            ((255, 0, 0), 10.0),
            ((232, 24, 24), 5.0),
            ((0, 0, 255), 5.0),
        ))
        assert len(points) == 3
        centers = seed_palette_centers(points, 2)
        # blue is far enough to outweigh the vivid near-red
        assert centers[1].tolist() == points.lab[2].tolist()

    def test_zero_clusters(self):
        points = build_palette_points(palette_map(((255, 0, 0), 1.0)))
        assert seed_palette_centers(points, 0).shape == (0, 3)


class TestClusters:
    """Test Lloyd refinement and aggregation"""

    def test_two_groups(self):
        points = build_palette_points(palette_map(
            ((255, 0, 0), 4.0),
            ((248, 8, 0), 4.0),
            ((0, 0, 255), 2.0),
            ((8, 0, 248), 2.0),
        ))
        clusters = build_palette_clusters(points, 2)
        assert len(clusters) == 2
        assert sum(c.weight for c in clusters) == pytest.approx(12.0)
        weights = sorted(c.weight for c in clusters)
        assert weights == pytest.approx([4.0, 8.0])

    def test_weight_is_conserved(self):
        points = build_palette_points(palette_map(
            ((10, 200, 30), 1.5),
            ((200, 200, 30), 2.5),
            ((40, 40, 40), 3.0),
            ((240, 240, 240), 0.5),
        ))
        clusters = build_palette_clusters(points, 3)
        assert sum(c.weight for c in clusters) == pytest.approx(7.5)

    def test_rank_boosts_saturation(self):
        gray = cluster(50, 0, 0, weight=10.0, saturation=0.0)
        vivid = cluster(50, 60, 40, weight=8.0, saturation=100.0)
        assert rank_clusters([gray, vivid]) == [vivid, gray]

    def test_rank_is_stable_on_ties(self):
        first = cluster(10, 0, 0, weight=1.0)
        second = cluster(90, 0, 0, weight=1.0)
        assert rank_clusters([first, second]) == [first, second]


class TestSelectDistinct:
    """Test near-duplicate filtering and backfill"""

    def test_near_duplicate_skipped_without_backfill(self):
        ranked = [cluster(50, 0, 0), cluster(55, 0, 0), cluster(80, 0, 0)]
        selected = select_distinct(ranked, backfill=False)
        assert selected == [ranked[0], ranked[2]]

    def test_backfill_appends_skipped_in_rank_order(self):
        ranked = [cluster(50, 0, 0), cluster(55, 0, 0), cluster(80, 0, 0)]
        selected = select_distinct(ranked, backfill=True)
        assert selected == [ranked[0], ranked[2], ranked[1]]

    def test_distance_exactly_at_threshold_is_kept(self):
        ranked = [cluster(50, 0, 0), cluster(50 + PALETTE_MIN_LAB_DISTANCE, 0, 0)]
        assert len(select_distinct(ranked, backfill=False)) == 2

    def test_capped_at_palette_size(self):
        ranked = [cluster(l, 0, 0) for l in range(0, 100, 5)]
        assert len(select_distinct(ranked)) == PALETTE_SIZE


class TestFinalizePalette:
    """Test the full palette pipeline"""

    def test_empty_inputs(self):
        assert finalize_palette({}, 10.0) == []
        assert finalize_palette(palette_map(((255, 0, 0), 1.0)), 0.0) == []

    def test_single_colour(self):
        palette = finalize_palette(palette_map(((255, 0, 0), 4.0)), 4.0)
        assert palette == [{"hex": "#ff0000", "ratio": 1.0}]

    def test_dedup_and_backfill_order(self):
        entries = palette_map(
            ((255, 0, 0), 10.0),
            ((240, 0, 0), 5.0),
            ((0, 0, 255), 6.0),
        )

        distinct = finalize_palette(entries, 21.0, backfill=False)
        filled = finalize_palette(entries, 21.0)

        assert [entry["hex"] for entry in distinct] == ["#ff0000", "#0000ff"]
        assert [entry["hex"] for entry in filled] == ["#ff0000", "#0000ff", "#f00000"]
        assert filled[0]["ratio"] == pytest.approx(10 / 21)
        assert filled[2]["ratio"] == pytest.approx(5 / 21)

    def test_distinct_clusters_are_far_apart(self, noise_rgba):
        from imagegene.services.gene.sampling import sample_pixels

        acc = sample_pixels(noise_rgba)
        points = build_palette_points(acc.palette_map)
        ranked = rank_clusters(build_palette_clusters(points, PALETTE_SIZE))
        selected = select_distinct(ranked, backfill=False)

        limit = PALETTE_MIN_LAB_DISTANCE ** 2
        for i, first in enumerate(selected):
            for second in selected[i + 1:]:
                assert squared_lab_distance(first.l, first.a, first.b_lab,
                                            second.l, second.a, second.b_lab) >= limit

    def test_properties(self, noise_rgba):
        from imagegene.services.gene.sampling import sample_pixels

        acc = sample_pixels(noise_rgba)
        palette = finalize_palette(acc.palette_map, acc.pixel_count)

        assert 1 <= len(palette) <= PALETTE_SIZE
        for entry in palette:
            assert entry["hex"] == entry["hex"].lower()
            assert len(entry["hex"]) == 7
            assert 0.0 < entry["ratio"] <= 1.0
        assert sum(entry["ratio"] for entry in palette) == pytest.approx(1.0)

    def test_deterministic(self, noise_rgba):
        from imagegene.services.gene.sampling import sample_pixels

        acc = sample_pixels(noise_rgba)
        first = finalize_palette(acc.palette_map, acc.pixel_count)
        second = finalize_palette(acc.palette_map, acc.pixel_count)
        assert first == second
