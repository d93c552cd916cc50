"""Tests for image comparison metrics."""

import numpy as np
import pytest

from adaptsr.core.compare import compare_images, compare_files, difference_image, format_report, grey
from adaptsr.core.errors import MalformedInputError
from adaptsr.core.imageio import save_image, load_image
from adaptsr.core.synthetic import generate_mixed


def test_identical_images():
    image = generate_mixed((32, 32))
    result = compare_images(image, image)
    assert result.mse == 0.0
    assert np.isinf(result.psnr)
    assert result.ssim == pytest.approx(1.0)


def test_known_mse():
    a = np.zeros((16, 16, 4), dtype=np.uint8)
    b = np.full((16, 16, 4), 10, dtype=np.uint8)
    result = compare_images(a, b)
    assert result.mse == pytest.approx(100.0)
    assert result.psnr == pytest.approx(10 * np.log10(255.0 ** 2 / 100.0))


def test_noisier_is_worse(rng):
    image = generate_mixed((32, 32))
    small = np.clip(image.astype(int) + rng.integers(-3, 4, image.shape), 0, 255).astype(np.uint8)
    large = np.clip(image.astype(int) + rng.integers(-40, 41, image.shape), 0, 255).astype(np.uint8)
    assert compare_images(image, small).psnr > compare_images(image, large).psnr
    assert compare_images(image, small).ssim > compare_images(image, large).ssim


def test_size_mismatch():
    with pytest.raises(MalformedInputError):
        compare_images(np.zeros((8, 8, 4), np.uint8), np.zeros((8, 9, 4), np.uint8))


def test_too_small_for_ssim():
    with pytest.raises(MalformedInputError):
        compare_images(np.zeros((2, 2, 4), np.uint8), np.zeros((2, 2, 4), np.uint8))


def test_grey_is_bt601_rounded():
    pixel = np.array([[[100, 200, 50, 255]]], dtype=np.uint8)
    assert grey(pixel)[0, 0] == np.floor(0.299 * 100 + 0.587 * 200 + 0.114 * 50 + 0.5)


def test_difference_image():
    a = np.zeros((4, 4, 4), dtype=np.uint8)
    b = a.copy()
    b[1, 2, 0] = 255
    diff = difference_image(a, b)
    assert diff.shape == (4, 4, 4)
    assert np.all(diff[..., 0] == 255)
    assert tuple(diff[1, 2]) == (255, 0, 0, 255)
    assert tuple(diff[0, 0]) == (255, 255, 255, 255)


def test_compare_files_writes_diff(tmp_path):
    image = generate_mixed((24, 24))
    ref = save_image(tmp_path / 'ref.png', image)
    cand = save_image(tmp_path / 'cand.png', image[::-1])
    result = compare_files(ref, cand, tmp_path / 'diff' / 'd.png')
    assert result.mse > 0
    assert load_image(tmp_path / 'diff' / 'd.png').shape == (24, 24, 4)


def test_report_table():
    image = generate_mixed((16, 16))
    text = format_report({'same': compare_images(image, image)})
    assert 'PSNR' in text
    assert 'inf' in text
