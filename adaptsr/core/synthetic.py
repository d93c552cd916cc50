"""
Synthetic HR Image Generators

Reproducible RGBA test images with known local structure: smooth gradients
(flat for the contrast analyzer), step edges and checkerboards (edges),
sine waves and noise (texture). Used by the test-suite and by the
``synthetic`` command to build a small HR corpus.
"""

from pathlib import Path
from typing import Dict, Optional, Tuple

import numpy as np

from .imageio import save_image


def to_rgba(field: np.ndarray, tint: Tuple[float, float, float] = (1.0, 1.0, 1.0)) -> np.ndarray:
    """Map a [0, 1] scalar field to opaque uint8 RGBA, scaled per channel by ``tint``."""
    field = np.clip(np.asarray(field, dtype=np.float64), 0.0, 1.0)
    h, w = field.shape
    out = np.empty((h, w, 4), dtype=np.uint8)
    for c, k in enumerate(tint):
        out[..., c] = np.floor(field * k * 255.0 + 0.5).astype(np.uint8)
    out[..., 3] = 255
    return out


def _normalize(field: np.ndarray) -> np.ndarray:
    return (field - field.min()) / (field.max() - field.min() + 1e-10)


def generate_gradient(
    shape: Tuple[int, int] = (128, 128),
    direction: str = 'diagonal'
) -> np.ndarray:
    """
    Linear or radial gradient.

    Every local window is low-contrast: the analyzer should see Flat.
    """
    y, x = np.meshgrid(np.arange(shape[0]), np.arange(shape[1]), indexing='ij')
    x_norm = x / max(shape[1] - 1, 1)
    y_norm = y / max(shape[0] - 1, 1)

    if direction == 'horizontal':
        field = x_norm
    elif direction == 'vertical':
        field = y_norm
    elif direction == 'diagonal':
        field = (x_norm + y_norm) / 2
    else:  # radial
        field = np.sqrt((x_norm - 0.5)**2 + (y_norm - 0.5)**2)
        field = _normalize(field)

    return to_rgba(field)


def generate_step_edge(
    shape: Tuple[int, int] = (128, 128),
    orientation: str = 'vertical',
    low: float = 0.0,
    high: float = 1.0,
    position: Optional[int] = None
) -> np.ndarray:
    """
    Single hard step between two levels.

    Useful for checking edge preservation of adaptive weights.
    """
    field = np.full(shape, low, dtype=np.float64)
    if orientation == 'vertical':
        pos = shape[1] // 2 if position is None else position
        field[:, pos:] = high
    else:
        pos = shape[0] // 2 if position is None else position
        field[pos:, :] = high
    return to_rgba(field)


def generate_checkerboard(
    shape: Tuple[int, int] = (128, 128),
    cell: int = 8
) -> np.ndarray:
    """Black/white checkerboard with ``cell``-pixel squares."""
    y, x = np.meshgrid(np.arange(shape[0]), np.arange(shape[1]), indexing='ij')
    field = ((y // cell + x // cell) % 2).astype(np.float64)
    return to_rgba(field)


def generate_sine_waves(
    shape: Tuple[int, int] = (128, 128),
    frequencies: Tuple[float, ...] = (0.02, 0.05, 0.1),
    amplitudes: Tuple[float, ...] = (1.0, 0.5, 0.25),
    angles: Tuple[float, ...] = (0, 45, 90)
) -> np.ndarray:
    """
    Superimposed sine waves at different frequencies/angles.

    Tinted so the three color channels differ.
    """
    field = np.zeros(shape, dtype=np.float64)
    y, x = np.meshgrid(np.arange(shape[0]), np.arange(shape[1]), indexing='ij')

    for freq, amp, angle in zip(frequencies, amplitudes, angles):
        angle_rad = np.deg2rad(angle)
        phase = x * np.cos(angle_rad) + y * np.sin(angle_rad)
        field += amp * np.sin(2 * np.pi * freq * phase)

    return to_rgba(_normalize(field), tint=(1.0, 0.8, 0.6))


def generate_noise(
    shape: Tuple[int, int] = (128, 128),
    seed: Optional[int] = 42
) -> np.ndarray:
    """Independent uniform noise per channel (opaque)."""
    rng = np.random.default_rng(seed)
    out = rng.integers(0, 256, size=shape + (4,), dtype=np.uint8)
    out[..., 3] = 255
    return out


def generate_mixed(
    shape: Tuple[int, int] = (128, 128),
    seed: Optional[int] = 42
) -> np.ndarray:
    """
    Gradient, blobs, waves, a step edge and mild noise in one image.

    Exercises all three contrast regions.
    """
    rng = np.random.default_rng(seed)
    y, x = np.meshgrid(np.arange(shape[0]), np.arange(shape[1]), indexing='ij')

    gradient = (x / max(shape[1] - 1, 1) + y / max(shape[0] - 1, 1)) / 2

    blobs = np.zeros(shape, dtype=np.float64)
    for _ in range(5):
        cy, cx = rng.uniform(0, shape[0]), rng.uniform(0, shape[1])
        sigma = rng.uniform(4, 16)
        blobs += np.exp(-((x - cx)**2 + (y - cy)**2) / (2 * sigma**2))

    waves = np.sin(2 * np.pi * 0.08 * (x * np.cos(0.5) + y * np.sin(0.5)))
    steps = (x >= shape[1] // 2).astype(np.float64)
    noise = rng.normal(0, 0.03, shape)

    field = 0.3 * gradient + 0.3 * blobs + 0.15 * waves + 0.25 * steps + noise
    return to_rgba(_normalize(field), tint=(0.9, 1.0, 0.7))


def generate_test_suite(
    shape: Tuple[int, int] = (128, 128),
    output_dir: Optional[str] = None,
    seed: int = 42
) -> Dict[str, np.ndarray]:
    """
    Generate the full set of synthetic HR images.

    Returns dict of {name: uint8 RGBA array}; also writes ``<name>.png``
    files when ``output_dir`` is given.
    """
    images = {
        'gradient_diagonal': generate_gradient(shape, 'diagonal'),
        'gradient_radial': generate_gradient(shape, 'radial'),
        'step_vertical': generate_step_edge(shape, 'vertical'),
        'step_horizontal': generate_step_edge(shape, 'horizontal'),
        'checkerboard': generate_checkerboard(shape),
        'sine_waves': generate_sine_waves(shape),
        'noise': generate_noise(shape, seed=seed),
        'mixed': generate_mixed(shape, seed=seed),
    }

    if output_dir:
        out_path = Path(output_dir)
        out_path.mkdir(parents=True, exist_ok=True)
        for name, image in images.items():
            save_image(out_path / f"{name}.png", image)
        print(f"Saved {len(images)} synthetic images to {out_path}")

    return images
