#!/usr/bin/env python3
"""
ADAPTSR Neighborhood Resampler

Gathers an N x N neighborhood per output pixel with replicate-border
clamping, applies a weight vector per channel, re-normalizes by the weight
sum actually used and rounds/clamps to the image's native representation.

Used to produce the reference baselines (nearest, bilinear, bicubic,
Lanczos, adaptive bicubic) and to reconstruct HR pixels from a generated
weight field.
"""

from typing import Iterator, Optional, Tuple

import numpy as np
from tqdm import tqdm

from .config import ResampleConfig, WEIGHT_EPSILON
from .compositor import WeightCompositor, CompositeWeights
from .contrast import ContrastAnalyzer, luma_map
from .errors import DegenerateWeightsError
from .geometry import GeometricMapper, AxisMap

# Upper bound on the gathered neighborhood buffer per chunk
CHUNK_BYTES = 64 * 1024 * 1024


# =============================================================================
# Pixel representation
# =============================================================================

def default_max_value(dtype) -> float:
    """Full-intensity value: the integer max for integer images, else 1.0."""
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.integer):
        return float(np.iinfo(dtype).max)
    return 1.0


def to_native(values: np.ndarray, dtype, max_value: float) -> np.ndarray:
    """Round (half up) and clamp to the native pixel representation."""
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.integer):
        return np.clip(np.floor(values + 0.5), 0, max_value).astype(dtype)
    return np.clip(values, 0.0, max_value).astype(dtype)


def _as_hwc(image: np.ndarray) -> np.ndarray:
    image = np.asarray(image)
    if image.ndim == 2:
        return image[:, :, None]
    if image.ndim != 3:
        raise ValueError(f"expected an (H, W) or (H, W, C) image, got shape {image.shape}")
    return image


# =============================================================================
# Gather / apply
# =============================================================================

def resample_pixel(
    image: np.ndarray,
    x_base: int,
    y_base: int,
    weights: np.ndarray,
    channels: Optional[int] = None,
    max_value: Optional[float] = None
) -> np.ndarray:
    """Resample a single pixel from the window at (x_base, y_base).

    Args:
        image: (H, W) or (H, W, C) source image
        x_base, y_base: Window origin; may lie outside the image
        weights: N*N weights in raster order
        channels: Number of leading channels to produce (default: all)
        max_value: Full-intensity value (default from dtype)

    Returns:
        (channels,) pixel in the image's dtype
    """
    src = _as_hwc(image)
    h, w, c = src.shape
    weights = np.asarray(weights, dtype=np.float64).reshape(-1)
    window = int(round(np.sqrt(weights.size)))
    if window * window != weights.size:
        raise ValueError(f"weight vector of length {weights.size} is not square")

    total = weights.sum()
    if total <= WEIGHT_EPSILON:
        raise DegenerateWeightsError(1, (y_base, x_base))

    steps = np.arange(window)
    ys = np.clip(y_base + steps, 0, h - 1)
    xs = np.clip(x_base + steps, 0, w - 1)
    block = src[np.ix_(ys, xs)].reshape(window * window, c).astype(np.float64)

    value = weights @ block / total
    channels = c if channels is None else channels
    if max_value is None:
        max_value = default_max_value(src.dtype)
    return to_native(value[:channels], src.dtype, max_value)


def gather_neighborhoods(image: np.ndarray, rows: AxisMap, cols: AxisMap) -> np.ndarray:
    """Clamped N x N neighborhoods for every (row, col) pair.

    Returns:
        (n_rows, n_cols, N*N, C) float64 in raster neighbor order
    """
    src = _as_hwc(image)
    n_rows, window = rows.indices.shape
    n_cols = cols.indices.shape[0]
    block = src[rows.indices[:, :, None, None], cols.indices[None, None, :, :]]
    # (n_rows, N, n_cols, N, C) -> (n_rows, n_cols, N, N, C)
    block = block.transpose(0, 2, 1, 3, 4)
    return block.reshape(n_rows, n_cols, window * window, src.shape[2]).astype(np.float64)


def apply_weights(image: np.ndarray, rows: AxisMap, cols: AxisMap,
                  weights: np.ndarray) -> np.ndarray:
    """Weighted sum over gathered neighborhoods, divided by the weight sum.

    Returns:
        (n_rows, n_cols, C) float64

    Raises:
        DegenerateWeightsError: if any weight sum is <= WEIGHT_EPSILON
    """
    weights = np.asarray(weights, dtype=np.float64)
    totals = weights.sum(axis=-1)
    bad = totals <= WEIGHT_EPSILON
    if bad.any():
        first = tuple(int(v) for v in np.argwhere(bad)[0])
        raise DegenerateWeightsError(int(np.count_nonzero(bad)), first)

    block = gather_neighborhoods(image, rows, cols)
    values = np.einsum('rct,rctk->rck', weights, block)
    return values / totals[..., None]


def row_chunks(n_rows: int, n_cols: int, taps: int, channels: int,
               budget: int = CHUNK_BYTES) -> Iterator[Tuple[int, int]]:
    """Yield (start, stop) row ranges whose gathered buffer fits ``budget``."""
    per_row = max(1, n_cols * taps * channels * 8)
    step = max(1, budget // per_row)
    for start in range(0, n_rows, step):
        yield start, min(n_rows, start + step)


# =============================================================================
# Resampler
# =============================================================================

class NeighborhoodResampler:
    """Whole-image resampling with base or adaptive weights.

    Usage:
        resampler = NeighborhoodResampler(ResampleConfig(scale=4, convention='corner'))
        hr = resampler.resample(lr_image)
        hr_adaptive = resampler.resample(lr_image, adaptive=True)
    """

    def __init__(self, config: ResampleConfig, max_value: Optional[float] = None,
                 chunk_bytes: int = CHUNK_BYTES):
        self.config = config
        self.max_value = max_value
        self.chunk_bytes = chunk_bytes
        self.mapper = GeometricMapper(config)
        self.compositor = WeightCompositor(config)
        self.analyzer = ContrastAnalyzer(config)

    def _max_value(self, image: np.ndarray) -> float:
        if self.max_value is not None:
            return float(self.max_value)
        return default_max_value(image.dtype)

    def chunk_weights(
        self,
        rows: AxisMap,
        cols: AxisMap,
        luma: Optional[np.ndarray] = None,
        classes: Optional[np.ndarray] = None
    ) -> Tuple[CompositeWeights, Optional[CompositeWeights]]:
        """Base and (when a luma/class map is given) adaptive weights for a block.

        Returns:
            (base, adaptive); adaptive is None without a luma map
        """
        base = self.compositor.base_weights(rows, cols)
        if luma is None:
            return base, None
        if classes is None:
            classes = self.analyzer.class_map(luma)
        regions = classes[rows.cell[:, None], cols.cell[None, :]]
        diffs = self.analyzer.neighbor_diffs(luma, rows.indices, cols.indices,
                                             rows.cell, cols.cell)
        return base, self.compositor.compose(base.weights, regions, diffs)

    def resample(self, image: np.ndarray, adaptive: bool = False,
                 verbose: bool = False) -> np.ndarray:
        """Resample a whole image by the configured scale.

        Args:
            image: (H, W) or (H, W, C) image, integer or float
            adaptive: Use contrast-adjusted weights
            verbose: Show a progress bar over row chunks

        Returns:
            Resampled image with the input's dtype and channel layout
        """
        src = _as_hwc(image)
        in_h, in_w, channels = src.shape
        out_h, out_w = self.mapper.output_shape(in_h, in_w)
        rows, cols = self.mapper.map_grid(out_h, out_w, in_h, in_w)
        max_value = self._max_value(src)

        luma = classes = None
        if adaptive:
            luma = luma_map(src, self.config.luma, max_value)
            classes = self.analyzer.class_map(luma)

        out = np.empty((out_h, out_w, channels), dtype=src.dtype)
        chunks = list(row_chunks(out_h, out_w, self.config.taps, channels, self.chunk_bytes))
        for start, stop in tqdm(chunks, desc="Resampling", disable=not verbose):
            block_rows = rows.slice(start, stop)
            base, adjusted = self.chunk_weights(block_rows, cols, luma, classes)
            final = adjusted if adjusted is not None else base
            final.raise_if_degenerate("resample", offset=(start,))
            values = apply_weights(src, block_rows, cols, final.weights)
            out[start:stop] = to_native(values, src.dtype, max_value)

        return out.reshape(out_h, out_w) if np.ndim(image) == 2 else out

    def reconstruct(self, image: np.ndarray, weight_field: np.ndarray) -> np.ndarray:
        """Apply a stored (H_sr, W_sr, taps) weight field to an LR image.

        The field must have been generated with this resampler's
        configuration so that neighbor ``i`` maps to ``base + i``.

        Returns:
            (H_sr, W_sr, C) float64, not rounded
        """
        src = _as_hwc(image)
        in_h, in_w, channels = src.shape
        out_h, out_w, taps = weight_field.shape
        if taps != self.config.taps:
            raise ValueError(f"weight field has {taps} taps, configuration expects {self.config.taps}")
        rows, cols = self.mapper.map_grid(out_h, out_w, in_h, in_w)

        out = np.empty((out_h, out_w, channels), dtype=np.float64)
        for start, stop in row_chunks(out_h, out_w, taps, channels, self.chunk_bytes):
            out[start:stop] = apply_weights(src, rows.slice(start, stop), cols,
                                            weight_field[start:stop])
        return out

    def resample_pixel(self, image: np.ndarray, x_hr: int, y_hr: int,
                       adaptive: bool = False) -> np.ndarray:
        """Resample one output pixel (the single-sample path)."""
        src = _as_hwc(image)
        max_value = self._max_value(src)
        in_h, in_w = src.shape[:2]
        rows = self.mapper.map_axis(np.array([y_hr]), in_h)
        cols = self.mapper.map_axis(np.array([x_hr]), in_w)
        luma = luma_map(src, self.config.luma, max_value) if adaptive else None
        base, adjusted = self.chunk_weights(rows, cols, luma)
        final = adjusted if adjusted is not None else base
        final.raise_if_degenerate("resample_pixel")
        return resample_pixel(src, int(cols.base[0]), int(rows.base[0]),
                              final.weights[0, 0], max_value=max_value)
