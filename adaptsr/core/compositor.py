#!/usr/bin/env python3
"""
ADAPTSR Adaptive Weight Compositor

Builds base separable kernel weights for a neighbor window and adjusts them
per neighbor from the region class and luma difference:

    edge:      factor = 1 + 0.5 * min(1, diff / 50)
    flat:      factor = max(0.5, 1 - diff / 30)
    textured:  factor = 0.8 + 0.4 * exp(-diff / 20)

Weights are renormalized to sum to 1. A vector whose pre-normalization sum
is at or below WEIGHT_EPSILON becomes all zeros and is flagged degenerate.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .config import ResampleConfig, WEIGHT_EPSILON
from .contrast import RegionClass
from .errors import DegenerateWeightsError
from .geometry import AxisMap, kernel_anchor, window_origin
from .kernels import separable_weight


# =============================================================================
# Base weights
# =============================================================================

def grid_weights(row_distances: np.ndarray, col_distances: np.ndarray,
                 config: ResampleConfig) -> np.ndarray:
    """Separable 2-D kernel weights in raster order.

    Args:
        row_distances: (n_rows, N) kernel distances along y
        col_distances: (n_cols, N) kernel distances along x

    Returns:
        (n_rows, n_cols, N*N); index ``j*N + i`` is row j, column i
    """
    n_rows, window = row_distances.shape
    n_cols = col_distances.shape[0]
    grid = separable_weight(
        config.kernel,
        col_distances[None, :, None, :],
        row_distances[:, None, :, None],
        config.kernel_param,
        clamp_negative=config.clamp_negative_weights,
    )
    return grid.reshape(n_rows, n_cols, window * window)


def normalize_weights(weights: np.ndarray, eps: float = WEIGHT_EPSILON) -> Tuple[np.ndarray, np.ndarray]:
    """Normalize weight vectors along the last axis.

    Returns:
        (normalized weights, degenerate mask). Degenerate vectors are zero.
    """
    weights = np.asarray(weights, dtype=np.float64)
    totals = weights.sum(axis=-1, keepdims=True)
    valid = totals > eps
    safe = np.where(valid, totals, 1.0)
    normalized = np.where(valid, weights / safe, 0.0)
    return normalized, ~valid[..., 0]


def base_weight_vector(dx: float, dy: float, config: ResampleConfig) -> np.ndarray:
    """Normalized base weight vector for a single subpixel offset."""
    steps = np.arange(config.window) - window_origin(config.window)
    _, tx = kernel_anchor(0, dx, config.half_cell_anchor)
    _, ty = kernel_anchor(0, dy, config.half_cell_anchor)
    grid = grid_weights(np.array([ty - steps]), np.array([tx - steps]), config)
    normalized, _ = normalize_weights(grid[0, 0])
    return normalized


# =============================================================================
# Adaptive adjustment
# =============================================================================

def adjustment_factors(regions: np.ndarray, luma_diffs: np.ndarray) -> np.ndarray:
    """Per-neighbor adjustment factors.

    Args:
        regions: RegionClass code(s), broadcastable against ``luma_diffs``
            once a trailing axis is added
        luma_diffs: Absolute luma differences in 8-bit units, neighbors on
            the last axis

    Returns:
        Factors shaped like ``luma_diffs``
    """
    diffs = np.asarray(luma_diffs, dtype=np.float64)
    regions = np.asarray(regions)[..., None]

    edge = 1.0 + 0.5 * np.minimum(1.0, diffs / 50.0)
    flat = np.maximum(0.5, 1.0 - diffs / 30.0)
    textured = 0.8 + 0.4 * np.exp(-diffs / 20.0)

    return np.where(
        regions == RegionClass.EDGE, edge,
        np.where(regions == RegionClass.FLAT, flat, textured)
    )


@dataclass
class CompositeWeights:
    """Normalized weights plus the degenerate mask."""
    weights: np.ndarray
    degenerate: np.ndarray

    @property
    def degenerate_count(self) -> int:
        return int(np.count_nonzero(self.degenerate))

    def first_degenerate(self) -> Optional[Tuple[int, ...]]:
        if not self.degenerate.any():
            return None
        return tuple(int(v) for v in np.argwhere(self.degenerate)[0])

    def raise_if_degenerate(self, context: str = "", offset: Tuple[int, ...] = ()) -> None:
        """Raise DegenerateWeightsError if any vector is degenerate.

        ``offset`` is added to the reported location (row offset of a chunk).
        """
        first = self.first_degenerate()
        if first is None:
            return
        if offset:
            first = tuple(a + b for a, b in zip(first, offset + (0,) * len(first)))
        raise DegenerateWeightsError(self.degenerate_count, first, context)


class WeightCompositor:
    """Combines base kernel weights with contrast-driven adjustments.

    Usage:
        compositor = WeightCompositor(config)
        base = compositor.base_weights(rows, cols)
        final = compositor.compose(base.weights, regions, diffs)
    """

    def __init__(self, config: ResampleConfig):
        self.config = config

    def base_weights(self, rows: AxisMap, cols: AxisMap) -> CompositeWeights:
        """Normalized separable weights for every (row, col) pair."""
        normalized, degenerate = normalize_weights(
            grid_weights(rows.distances, cols.distances, self.config))
        return CompositeWeights(normalized, degenerate)

    def compose(self, base_weights: np.ndarray, regions: np.ndarray,
                luma_diffs: np.ndarray) -> CompositeWeights:
        """Apply adjustment factors and renormalize.

        Args:
            base_weights: (..., taps) base weights
            regions: (...) RegionClass codes
            luma_diffs: (..., taps) per-neighbor luma differences

        Returns:
            CompositeWeights with final weights and degenerate mask
        """
        factors = adjustment_factors(regions, luma_diffs)
        normalized, degenerate = normalize_weights(np.asarray(base_weights) * factors)
        return CompositeWeights(normalized, degenerate)
