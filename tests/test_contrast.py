"""Tests for the local contrast analyzer."""

import numpy as np
import pytest

from adaptsr.core.config import ResampleConfig
from adaptsr.core.contrast import ContrastAnalyzer, RegionClass, luma_map, classify
from adaptsr.core.compositor import adjustment_factors
from adaptsr.core.geometry import GeometricMapper


def test_luma_standards():
    pixel = np.array([[[1.0, 0.0, 0.0, 1.0]]])
    assert luma_map(pixel, 'bt601')[0, 0] == pytest.approx(0.299 * 255)
    assert luma_map(pixel, 'bt709')[0, 0] == pytest.approx(0.2126 * 255)


def test_luma_in_8bit_units_for_integer_images():
    image = np.full((2, 2, 3), 255, dtype=np.uint8)
    np.testing.assert_allclose(luma_map(image, 'bt709', max_value=255), 255.0)


def test_classify_thresholds():
    codes = classify([0.05, 0.2, 0.35], 'range')
    assert list(codes) == [RegionClass.FLAT, RegionClass.TEXTURED, RegionClass.EDGE]
    codes = classify([5.0, 20.0, 60.0], 'variance')
    assert list(codes) == [RegionClass.FLAT, RegionClass.TEXTURED, RegionClass.EDGE]


@pytest.mark.parametrize("mode", ['range', 'variance'])
def test_flat_block_is_flat(mode):
    analyzer = ContrastAnalyzer(ResampleConfig(contrast=mode))
    luma = np.full((4, 4), 120.0)
    sample = analyzer.analyze(luma, 1, 1, 0, 0)
    assert sample.region is RegionClass.FLAT
    assert sample.statistic == pytest.approx(0.0)
    factors = adjustment_factors(sample.region, sample.luma_diffs)
    assert np.all(factors >= 0.5)


def test_near_flat_block_factors_bounded(rng):
    analyzer = ContrastAnalyzer(ResampleConfig())
    luma = 100.0 + rng.uniform(0, 20, size=(4, 4))
    sample = analyzer.analyze(luma, 1, 1, 0, 0)
    assert sample.region is RegionClass.FLAT
    assert np.all(adjustment_factors(sample.region, sample.luma_diffs) >= 0.5)


def test_step_edge_is_edge():
    analyzer = ContrastAnalyzer(ResampleConfig())
    luma = np.zeros((8, 8))
    luma[:, 4:] = 255.0
    classes = analyzer.class_map(luma)
    assert classes[4, 3] == RegionClass.EDGE
    assert classes[4, 0] == RegionClass.FLAT
    assert classes[4, 7] == RegionClass.FLAT


def test_range_window_placement():
    # The 4x4 block spans [cell - 1, cell + 2]: a spike two cells ahead counts,
    # one two cells behind does not
    analyzer = ContrastAnalyzer(ResampleConfig(contrast='range'))
    luma = np.zeros((10, 10))
    luma[5, 7] = 255.0
    stats = analyzer.statistic_map(luma)
    assert stats[5, 5] == pytest.approx(1.0)
    assert stats[5, 8] == pytest.approx(1.0)
    assert stats[5, 9] == pytest.approx(0.0)


@pytest.mark.parametrize("mode", ['range', 'variance'])
def test_statistic_map_matches_point_analysis(mode, rng):
    analyzer = ContrastAnalyzer(ResampleConfig(contrast=mode))
    luma = rng.uniform(0, 255, size=(9, 11))
    stats = analyzer.statistic_map(luma)
    for y in (0, 4, 8):
        for x in (0, 5, 10):
            sample = analyzer.analyze(luma, x, y, x - 1, y - 1)
            assert stats[y, x] == pytest.approx(sample.statistic, abs=1e-6)


def test_neighbor_diffs_match_point_analysis(rng):
    config = ResampleConfig(scale=4, convention='center')
    analyzer = ContrastAnalyzer(config)
    mapper = GeometricMapper(config)
    luma = rng.uniform(0, 255, size=(10, 10))
    rows, cols = mapper.map_grid(40, 40, 10, 10)
    diffs = analyzer.neighbor_diffs(luma, rows.indices, cols.indices, rows.cell, cols.cell)
    assert diffs.shape == (40, 40, 16)

    for y_hr, x_hr in [(0, 0), (39, 39), (0, 39), (39, 0), (17, 22)]:
        coord = mapper.map(x_hr, y_hr)
        sample = analyzer.analyze(luma, coord.x_cell, coord.y_cell, coord.x_base, coord.y_base)
        np.testing.assert_allclose(diffs[y_hr, x_hr], sample.luma_diffs)


def test_center_diff_is_zero():
    analyzer = ContrastAnalyzer(ResampleConfig())
    luma = np.arange(36, dtype=np.float64).reshape(6, 6)
    sample = analyzer.analyze(luma, 2, 2, 1, 1)
    # Raster index of the containing cell in the 4x4 window is 1*4 + 1
    assert sample.luma_diffs[5] == 0.0
    assert sample.center_luma == luma[2, 2]
