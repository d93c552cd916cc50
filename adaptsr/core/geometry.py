#!/usr/bin/env python3
"""
ADAPTSR Geometric Mapper

Maps output (HR) pixel coordinates into input (LR) space and splits the
result into an integer window origin plus a subpixel offset.

    corner:  x_lr = x_hr / s            dx = frac(x_lr)              in [0, 1)
    center:  x_lr = (x_hr + 0.5) / s    dx = x_lr - (floor + 0.5)    in [-0.5, 0.5)

The N-wide window starts at ``anchor - (N//2 - 1)`` and neighbor ``i`` sits
at ``base + i``, at kernel distance ``t - (i - (N//2 - 1))``. The anchor is
``floor(x_lr)`` with ``t = dx``, except for center-convention windows that are
anchored on the cell center at or left of the sample (every kernel but cubic):
there the anchor steps back one cell when ``dx < 0`` and ``t = dx + 1``, so the
sample always sits between the two central neighbors. Indices are clamped to
``[0, dim - 1]`` (edge replication), never wrapped or mirrored.

The mapper is separable: rows and columns are mapped independently.
"""

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np

from .config import (
    ResampleConfig,
    OffsetConvention,
    CORNER_OFFSET_MAX,
)


@dataclass(frozen=True)
class MappedCoordinate:
    """One HR pixel mapped into LR space.

    Attributes:
        x_base, y_base: Window origin (unclamped; may be negative at borders)
        dx, dy: Subpixel offset in the convention's range
        x_cell, y_cell: LR cell containing the sample (unclamped)
    """
    x_base: int
    y_base: int
    dx: float
    dy: float
    x_cell: int
    y_cell: int


@dataclass
class AxisMap:
    """Vectorized mapping of one axis.

    Attributes:
        base: (n,) window origins
        frac: (n,) subpixel offsets
        cell: (n,) containing cells, clamped to the input extent
        indices: (n, window) clamped neighbor indices
        distances: (n, window) signed kernel distances
    """
    base: np.ndarray
    frac: np.ndarray
    cell: np.ndarray
    indices: np.ndarray
    distances: np.ndarray

    def __len__(self) -> int:
        return len(self.base)

    def slice(self, start: int, stop: int) -> 'AxisMap':
        """Sub-range of the mapped coordinates."""
        return AxisMap(
            base=self.base[start:stop],
            frac=self.frac[start:stop],
            cell=self.cell[start:stop],
            indices=self.indices[start:stop],
            distances=self.distances[start:stop],
        )


def window_origin(window: int) -> int:
    """Cells the window reaches before the containing cell (1 for N=4)."""
    return window // 2 - 1


def output_size(size: int, scale: float) -> int:
    """Output extent for an input extent, rounded half up."""
    return int(np.floor(size * scale + 0.5))


def split_coordinate(
    coords: Union[float, np.ndarray],
    scale: float,
    convention: Union[OffsetConvention, str]
) -> Tuple[np.ndarray, np.ndarray]:
    """Split HR coordinate(s) into (cell, offset) under a convention.

    Returns:
        Tuple of (cell as int64, offset as float64)
    """
    convention = OffsetConvention(convention)
    coords = np.asarray(coords, dtype=np.float64)

    if convention is OffsetConvention.CORNER:
        pos = coords / scale
        cell = np.floor(pos)
        frac = np.clip(pos - cell, 0.0, CORNER_OFFSET_MAX)
    else:
        pos = (coords + 0.5) / scale
        cell = np.floor(pos)
        frac = pos - cell - 0.5

    return cell.astype(np.int64), frac


def kernel_anchor(
    cell: Union[int, np.ndarray],
    frac: Union[float, np.ndarray],
    half_cell: bool
) -> Tuple[np.ndarray, np.ndarray]:
    """Cell the window is anchored on and the sample's distance from it.

    Without ``half_cell`` this is ``(cell, frac)``. With it, samples left of
    the cell center (``frac < 0``) are anchored one cell back, giving a
    distance in [0.5, 1).
    """
    cell = np.asarray(cell, dtype=np.int64)
    frac = np.asarray(frac, dtype=np.float64)
    if not half_cell:
        return cell, frac
    step = np.floor(frac).astype(np.int64)
    return cell + step, frac - step


def clamp_indices(indices: np.ndarray, dim: int) -> np.ndarray:
    """Replicate-border clamping to [0, dim - 1]."""
    return np.clip(indices, 0, dim - 1)


class GeometricMapper:
    """Stateless HR → LR coordinate mapper for one configuration.

    Usage:
        mapper = GeometricMapper(ResampleConfig(scale=4))
        coord = mapper.map(10, 3)
        rows, cols = mapper.map_grid(40, 40, 10, 10)
    """

    def __init__(self, config: ResampleConfig):
        self.scale = float(config.scale)
        self.convention = config.convention
        self.window = config.window
        self.half_cell = config.half_cell_anchor

    @property
    def origin(self) -> int:
        return window_origin(self.window)

    def map(self, x_hr: int, y_hr: int) -> MappedCoordinate:
        """Map a single HR pixel."""
        x_cell, dx = split_coordinate(x_hr, self.scale, self.convention)
        y_cell, dy = split_coordinate(y_hr, self.scale, self.convention)
        x_anchor, _ = kernel_anchor(x_cell, dx, self.half_cell)
        y_anchor, _ = kernel_anchor(y_cell, dy, self.half_cell)
        return MappedCoordinate(
            x_base=int(x_anchor) - self.origin,
            y_base=int(y_anchor) - self.origin,
            dx=float(dx),
            dy=float(dy),
            x_cell=int(x_cell),
            y_cell=int(y_cell),
        )

    def map_axis(self, coords: np.ndarray, dim: int) -> AxisMap:
        """Map a run of HR coordinates along one axis of an input of size ``dim``."""
        if dim < 1:
            raise ValueError(f"input extent must be positive, got {dim}")
        cell, frac = split_coordinate(coords, self.scale, self.convention)
        anchor, t = kernel_anchor(cell, frac, self.half_cell)
        base = anchor - self.origin
        steps = np.arange(self.window)
        indices = clamp_indices(base[:, None] + steps[None, :], dim)
        distances = t[:, None] - (steps[None, :] - self.origin)
        return AxisMap(
            base=base,
            frac=frac,
            cell=clamp_indices(cell, dim),
            indices=indices,
            distances=distances,
        )

    def map_grid(self, out_h: int, out_w: int, in_h: int, in_w: int) -> Tuple[AxisMap, AxisMap]:
        """Map every row and column of an ``out_h`` x ``out_w`` output grid.

        Returns:
            (rows, cols) axis maps
        """
        rows = self.map_axis(np.arange(out_h), in_h)
        cols = self.map_axis(np.arange(out_w), in_w)
        return rows, cols

    def output_shape(self, in_h: int, in_w: int) -> Tuple[int, int]:
        return output_size(in_h, self.scale), output_size(in_w, self.scale)
