"""Tests for image decode/encode and HR -> LR preparation."""

import numpy as np
import pytest

from adaptsr.core.errors import MalformedInputError
from adaptsr.core.imageio import (
    align,
    downscale,
    ensure_rgba,
    list_images,
    load_image,
    save_image,
    to_float,
)


def test_ensure_rgba_layouts():
    grey = np.full((2, 3), 7, dtype=np.uint8)
    rgba = ensure_rgba(grey)
    assert rgba.shape == (2, 3, 4)
    assert np.all(rgba[..., :3] == 7)
    assert np.all(rgba[..., 3] == 255)

    rgb = np.zeros((2, 2, 3), dtype=np.uint8)
    assert ensure_rgba(rgb).shape == (2, 2, 4)

    grey_alpha = np.stack([np.full((2, 2), 9), np.full((2, 2), 100)], axis=-1).astype(np.uint8)
    out = ensure_rgba(grey_alpha)
    assert np.all(out[..., :3] == 9)
    assert np.all(out[..., 3] == 100)


def test_ensure_rgba_rejects_odd_channels():
    with pytest.raises(MalformedInputError):
        ensure_rgba(np.zeros((2, 2, 5), dtype=np.uint8))


def test_png_round_trip(tmp_path, rng):
    image = rng.integers(0, 256, size=(6, 5, 4), dtype=np.uint8)
    path = save_image(tmp_path / 'nested' / 'img.png', image)
    np.testing.assert_array_equal(load_image(path), image)


def test_save_float_rounds(tmp_path):
    image = np.full((2, 2, 4), 0.5)
    loaded = load_image(save_image(tmp_path / 'half.png', image))
    assert np.all(loaded == 128)


def test_empty_file_is_malformed(tmp_path):
    path = tmp_path / 'empty.png'
    path.write_bytes(b'')
    with pytest.raises(MalformedInputError):
        load_image(path)


def test_list_images(tmp_path):
    for name in ['b.PNG', 'a.jpg', 'notes.txt']:
        (tmp_path / name).write_bytes(b'x')
    assert [p.name for p in list_images(tmp_path)] == ['a.jpg', 'b.PNG']
    with pytest.raises(FileNotFoundError):
        list_images(tmp_path / 'missing')


def test_align_crops_to_multiple():
    image = np.zeros((43, 41, 4))
    assert align(image, 4).shape == (40, 40, 4)


def test_downscale_shape_and_range(rng):
    hr = rng.random((40, 40, 4))
    lr = downscale(hr, 4)
    assert lr.shape == (10, 10, 4)
    assert lr.min() >= 0.0 and lr.max() <= 1.0
    # Quantized to 8-bit levels
    np.testing.assert_allclose(lr * 255.0, np.round(lr * 255.0), atol=1e-9)


def test_downscale_constant():
    hr = np.full((8, 8, 4), 0.6)
    np.testing.assert_allclose(downscale(hr, 2, quantize=False), 0.6)


def test_downscale_rejects_non_divisible():
    with pytest.raises(MalformedInputError):
        downscale(np.zeros((10, 9, 4)), 4)


def test_to_float():
    image = np.array([[[0, 255, 51, 255]]], dtype=np.uint8)
    np.testing.assert_allclose(to_float(image), [[[0.0, 1.0, 0.2, 1.0]]])
