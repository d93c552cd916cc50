"""Tests for the synthetic HR image generators."""

import numpy as np

from adaptsr.core.config import ResampleConfig
from adaptsr.core.contrast import ContrastAnalyzer, RegionClass, luma_map
from adaptsr.core.synthetic import (
    generate_checkerboard,
    generate_gradient,
    generate_noise,
    generate_step_edge,
    generate_test_suite,
)


def test_suite_shapes_and_files(tmp_path):
    images = generate_test_suite((32, 48), output_dir=str(tmp_path), seed=3)
    assert len(images) == 8
    for name, image in images.items():
        assert image.shape == (32, 48, 4)
        assert image.dtype == np.uint8
        assert np.all(image[..., 3] == 255)
        assert (tmp_path / f"{name}.png").exists()


def test_reproducible():
    np.testing.assert_array_equal(generate_noise((8, 8), seed=5), generate_noise((8, 8), seed=5))


def test_checkerboard_levels():
    board = generate_checkerboard((16, 16), cell=4)
    assert board[0, 0, 0] == 0
    assert board[0, 4, 0] == 255
    assert board[4, 4, 0] == 0


def test_gradient_is_flat_for_the_analyzer():
    analyzer = ContrastAnalyzer(ResampleConfig())
    luma = luma_map(generate_gradient((64, 64)), 'bt709', max_value=255)
    assert np.all(analyzer.class_map(luma) == RegionClass.FLAT)


def test_step_edge_is_edge_for_the_analyzer():
    analyzer = ContrastAnalyzer(ResampleConfig())
    luma = luma_map(generate_step_edge((16, 16)), 'bt709', max_value=255)
    classes = analyzer.class_map(luma)
    assert classes[8, 7] == RegionClass.EDGE
    assert classes[8, 0] == RegionClass.FLAT
