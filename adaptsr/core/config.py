#!/usr/bin/env python3
"""
ADAPTSR Configuration

Explicit per-run configuration passed into each component at construction.
Nothing here is module-level mutable state: every stage receives the
dataclass it needs.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Tuple
import math


class KernelKind(str, Enum):
    """1-D interpolation kernels available to the resamplers."""
    NEAREST = 'nearest'
    BILINEAR = 'bilinear'
    CUBIC = 'cubic'
    LANCZOS = 'lanczos'


class LumaStandard(str, Enum):
    """RGB → luma weighting."""
    BT601 = 'bt601'
    BT709 = 'bt709'

    @property
    def coefficients(self) -> Tuple[float, float, float]:
        if self is LumaStandard.BT601:
            return (0.299, 0.587, 0.114)
        return (0.2126, 0.7152, 0.0722)


class OffsetConvention(str, Enum):
    """How an HR pixel maps into LR space.

    corner: x_lr = x_hr / s, dx in [0, 1) from the cell origin
    center: x_lr = (x_hr + 0.5) / s, dx in [-0.5, 0.5) from the cell center
    """
    CORNER = 'corner'
    CENTER = 'center'

    @property
    def offset_range(self) -> Tuple[float, float]:
        if self is OffsetConvention.CORNER:
            return (0.0, 1.0)
        return (-0.5, 0.5)


class ContrastMode(str, Enum):
    """Local contrast statistic used to classify a neighborhood.

    range: max - min of normalized luma over the 4x4 block around the cell
    variance: luma variance (8-bit units) over the 5x5 block centered on the cell
    """
    RANGE = 'range'
    VARIANCE = 'variance'


# Weight vectors whose pre-normalization sum is at or below this are degenerate
WEIGHT_EPSILON = 1e-6

# Tolerance on persisted weight sums
WEIGHT_SUM_TOLERANCE = 1e-5

# Largest corner-convention offset (keeps dx < 1 after float32 storage)
CORNER_OFFSET_MAX = 1.0 - 1e-6


@dataclass(frozen=True)
class ResampleConfig:
    """Configuration shared by the mapper, kernels, analyzer and resampler.

    Attributes:
        scale: HR / LR linear ratio
        kernel: Base interpolation kernel
        shape_param: Cubic convolution parameter ``a`` (-0.5 = Catmull-Rom)
        window_radius: Lanczos window ``a``
        luma: Luma weighting used by the contrast analyzer
        convention: Subpixel offset convention (never mixed within a run)
        contrast: Contrast statistic used by the analyzer
        clamp_negative_weights: Clamp negative 1-D kernel lobes to 0 before
            normalization
    """
    scale: float = 4.0
    kernel: KernelKind = KernelKind.CUBIC
    shape_param: float = -0.5
    window_radius: int = 3
    luma: LumaStandard = LumaStandard.BT709
    convention: OffsetConvention = OffsetConvention.CENTER
    contrast: ContrastMode = ContrastMode.RANGE
    clamp_negative_weights: bool = False

    def __post_init__(self):
        # Accept plain strings from the CLI / JSON
        object.__setattr__(self, 'kernel', KernelKind(self.kernel))
        object.__setattr__(self, 'luma', LumaStandard(self.luma))
        object.__setattr__(self, 'convention', OffsetConvention(self.convention))
        object.__setattr__(self, 'contrast', ContrastMode(self.contrast))

        if not (math.isfinite(self.scale) and self.scale > 0):
            raise ValueError(f"scale must be a positive number, got {self.scale}")
        if int(self.window_radius) != self.window_radius or self.window_radius < 1:
            raise ValueError(f"window_radius must be an integer >= 1, got {self.window_radius}")
        if not math.isfinite(self.shape_param):
            raise ValueError(f"shape_param must be finite, got {self.shape_param}")

    @property
    def window(self) -> int:
        """Neighbors per axis."""
        if self.kernel in (KernelKind.NEAREST, KernelKind.BILINEAR):
            return 2
        if self.kernel is KernelKind.CUBIC:
            return 4
        return 2 * int(self.window_radius)

    @property
    def half_cell_anchor(self) -> bool:
        """Anchor the window on the cell center at or left of the sample.

        Applies to center-convention windows of every kernel except cubic,
        whose center window keeps the ``floor(x_lr) - 1`` layout.
        """
        return self.convention is OffsetConvention.CENTER and self.kernel is not KernelKind.CUBIC

    @property
    def taps(self) -> int:
        """Length of one weight vector (window²)."""
        return self.window * self.window

    @property
    def kernel_param(self) -> float:
        """The shape parameter relevant to the selected kernel."""
        if self.kernel is KernelKind.LANCZOS:
            return float(self.window_radius)
        return float(self.shape_param)

    @property
    def integer_scale(self) -> int:
        """Scale as an int; training-pair generation needs an integral ratio."""
        if float(self.scale) != int(self.scale):
            raise ValueError(f"scale {self.scale} is not integral")
        return int(self.scale)

    def replace(self, **changes) -> 'ResampleConfig':
        params = self.to_dict()
        params.update(changes)
        return ResampleConfig(**params)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-JSON form."""
        d = asdict(self)
        for key in ('kernel', 'luma', 'convention', 'contrast'):
            d[key] = d[key].value
        return d


@dataclass
class GeneratorConfig:
    """Where and how training pairs are produced.

    Attributes:
        hr_dir: Directory of HR source images
        output_dir: Root of the X/offset/Y/weight tree
        patch_size: Minimum LR size in cells; images smaller than
            ``scale * patch_size`` are rejected
        batch_size: Samples per streamed batch in patch mode
        mode: 'fields' (whole-image tensors) or 'patches' (per-pixel records)
        adaptive: Also write adaptive weights to ``weight/``
        extensions: Image suffixes picked up from ``hr_dir``
        skip_existing: Skip ids already present in the metadata file
    """
    hr_dir: Path
    output_dir: Path
    patch_size: int = 4
    batch_size: int = 10_000
    mode: str = 'fields'
    adaptive: bool = True
    extensions: Tuple[str, ...] = ('.png', '.jpg', '.jpeg')
    skip_existing: bool = False
    metadata_name: str = 'metadata.json'

    def __post_init__(self):
        self.hr_dir = Path(self.hr_dir)
        self.output_dir = Path(self.output_dir)
        if self.mode not in ('fields', 'patches'):
            raise ValueError(f"mode must be 'fields' or 'patches', got {self.mode!r}")
        if self.patch_size < 1:
            raise ValueError(f"patch_size must be >= 1, got {self.patch_size}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")

    @property
    def metadata_path(self) -> Path:
        return self.output_dir / self.metadata_name

    def field_dir(self, kind: str) -> Path:
        """Output directory for one field kind (X, offset, Y, weight)."""
        return self.output_dir / kind
