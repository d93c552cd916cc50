#!/usr/bin/env python3
"""
ADAPTSR Local Contrast Analyzer

Classifies the LR neighborhood around each sample point as edge, flat or
textured from a windowed luma statistic, and reports per-neighbor luma
differences for the adaptive weight compositor.

Two statistics are supported:
- range:    max - min of normalized luma over the 4x4 block starting one
            cell before the containing cell (edge > 0.3, flat < 0.1)
- variance: E[l²] - E[l]² of 8-bit luma over the 5x5 block centered on
            the containing cell (edge > 50, flat < 10)

Luma is carried in 8-bit units throughout ([0, 255]) regardless of the
image's native range.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

import numpy as np
from scipy.ndimage import maximum_filter, minimum_filter, uniform_filter

from .config import ResampleConfig, ContrastMode, LumaStandard


# =============================================================================
# Thresholds
# =============================================================================

EDGE_RANGE = 0.3
FLAT_RANGE = 0.1
EDGE_VARIANCE = 50.0
FLAT_VARIANCE = 10.0

RANGE_WINDOW = 4
VARIANCE_RADIUS = 2

LUMA_SCALE = 255.0


class RegionClass(IntEnum):
    EDGE = 0
    FLAT = 1
    TEXTURED = 2


@dataclass
class ContrastSample:
    """Analysis of one sample point.

    Attributes:
        region: Neighborhood class
        statistic: The contrast statistic the class was derived from
        center_luma: Luma of the containing cell (8-bit units)
        luma_diffs: |luma(neighbor) - center_luma| per neighbor, raster order
    """
    region: RegionClass
    statistic: float
    center_luma: float
    luma_diffs: np.ndarray


def luma_map(
    image: np.ndarray,
    standard: Union[LumaStandard, str] = LumaStandard.BT709,
    max_value: float = 1.0
) -> np.ndarray:
    """Weighted RGB luma in 8-bit units.

    Args:
        image: (H, W) grey or (H, W, C>=3) color image; alpha is ignored
        standard: BT.601 or BT.709 weights
        max_value: Value that represents full intensity in ``image``

    Returns:
        (H, W) float64 luma in [0, 255]
    """
    image = np.asarray(image, dtype=np.float64)
    if image.ndim == 2:
        luma = image
    elif image.ndim == 3 and image.shape[2] >= 3:
        luma = image[..., :3] @ np.asarray(LumaStandard(standard).coefficients)
    elif image.ndim == 3 and image.shape[2] in (1, 2):
        luma = image[..., 0]
    else:
        raise ValueError(f"cannot compute luma of an array shaped {image.shape}")
    return luma * (LUMA_SCALE / max_value)


def classify(statistic, mode: Union[ContrastMode, str]) -> np.ndarray:
    """Map contrast statistic(s) to RegionClass codes."""
    mode = ContrastMode(mode)
    statistic = np.asarray(statistic, dtype=np.float64)
    if mode is ContrastMode.RANGE:
        edge, flat = EDGE_RANGE, FLAT_RANGE
    else:
        edge, flat = EDGE_VARIANCE, FLAT_VARIANCE
    return np.where(
        statistic > edge, RegionClass.EDGE,
        np.where(statistic < flat, RegionClass.FLAT, RegionClass.TEXTURED)
    ).astype(np.int8)


class ContrastAnalyzer:
    """Windowed contrast statistics over a precomputed luma map."""

    def __init__(self, config: ResampleConfig):
        self.mode = config.contrast
        self.luma_standard = config.luma
        self.window = config.window

    # -------------------------------------------------------------------------
    # Whole-map statistics
    # -------------------------------------------------------------------------

    def statistic_map(self, luma: np.ndarray) -> np.ndarray:
        """Contrast statistic for every LR cell (edge-replicated borders)."""
        luma = np.asarray(luma, dtype=np.float64)
        if self.mode is ContrastMode.RANGE:
            # origin=-1 places the 4-wide footprint at [i-1, i+2]
            hi = maximum_filter(luma, size=RANGE_WINDOW, mode='nearest', origin=-1)
            lo = minimum_filter(luma, size=RANGE_WINDOW, mode='nearest', origin=-1)
            return (hi - lo) / LUMA_SCALE

        size = 2 * VARIANCE_RADIUS + 1
        mean = uniform_filter(luma, size=size, mode='nearest')
        mean_sq = uniform_filter(luma * luma, size=size, mode='nearest')
        return np.maximum(mean_sq - mean * mean, 0.0)

    def class_map(self, luma: np.ndarray) -> np.ndarray:
        """RegionClass code (int8) for every LR cell."""
        return classify(self.statistic_map(luma), self.mode)

    def neighbor_diffs(
        self,
        luma: np.ndarray,
        row_indices: np.ndarray,
        col_indices: np.ndarray,
        row_cells: np.ndarray,
        col_cells: np.ndarray
    ) -> np.ndarray:
        """Per-neighbor luma differences for a block of output pixels.

        Args:
            luma: (H, W) luma map
            row_indices: (n_rows, N) clamped neighbor rows
            col_indices: (n_cols, N) clamped neighbor columns
            row_cells: (n_rows,) clamped containing rows
            col_cells: (n_cols,) clamped containing columns

        Returns:
            (n_rows, n_cols, N*N) absolute differences, raster order
        """
        n_rows, window = row_indices.shape
        n_cols = col_indices.shape[0]
        neighbors = luma[row_indices[:, :, None, None], col_indices[None, None, :, :]]
        neighbors = neighbors.transpose(0, 2, 1, 3).reshape(n_rows, n_cols, window * window)
        center = luma[row_cells[:, None], col_cells[None, :]]
        return np.abs(neighbors - center[:, :, None])

    # -------------------------------------------------------------------------
    # Single point
    # -------------------------------------------------------------------------

    def analyze(self, luma: np.ndarray, x_cell: int, y_cell: int,
                x_base: int, y_base: int) -> ContrastSample:
        """Analyze one sample point.

        Args:
            luma: (H, W) luma map in 8-bit units
            x_cell, y_cell: Cell containing the sample (clamped here)
            x_base, y_base: Origin of the neighbor window

        Returns:
            ContrastSample with class, center luma and per-neighbor diffs
        """
        h, w = luma.shape
        cx = min(w - 1, max(0, x_cell))
        cy = min(h - 1, max(0, y_cell))

        if self.mode is ContrastMode.RANGE:
            offsets = range(-1, RANGE_WINDOW - 1)
        else:
            offsets = range(-VARIANCE_RADIUS, VARIANCE_RADIUS + 1)
        ys = np.clip([cy + o for o in offsets], 0, h - 1)
        xs = np.clip([cx + o for o in offsets], 0, w - 1)
        block = luma[np.ix_(ys, xs)]

        if self.mode is ContrastMode.RANGE:
            statistic = float(block.max() - block.min()) / LUMA_SCALE
        else:
            statistic = max(float(np.mean(block * block) - np.mean(block) ** 2), 0.0)

        steps = np.arange(self.window)
        nys = np.clip(y_base + steps, 0, h - 1)
        nxs = np.clip(x_base + steps, 0, w - 1)
        center_luma = float(luma[cy, cx])
        diffs = np.abs(luma[np.ix_(nys, nxs)] - center_luma).reshape(-1)

        return ContrastSample(
            region=RegionClass(int(classify(statistic, self.mode))),
            statistic=statistic,
            center_luma=center_luma,
            luma_diffs=diffs,
        )
