#!/usr/bin/env python3
"""
ADAPTSR Error Taxonomy

MalformedInputError   - an input image cannot be used at this scale/window
ShapeMismatchError    - a serialized file disagrees with its declared shape
NumericalAnomalyError - NaN/Inf, bad weight sums, out-of-range offsets
DegenerateWeightsError - zero-energy weight vectors (kept distinct from
                         generic failures)
"""

from pathlib import Path
from typing import Optional, Tuple, Union


class AdaptSRError(Exception):
    """Base class for all adaptsr errors."""


class MalformedInputError(AdaptSRError, ValueError):
    """Input image too small, wrong channel count, empty file, etc."""


class ValidationError(AdaptSRError):
    """A serialized file failed a named check.

    Attributes:
        path: File that failed
        check: Short name of the failed check (e.g. 'byte_length')
    """

    def __init__(self, path: Union[str, Path], check: str, message: str):
        self.path = Path(path)
        self.check = check
        super().__init__(f"{self.path}: [{check}] {message}")


class ShapeMismatchError(ValidationError):
    """Byte length, header or metadata shape disagreement."""


class NumericalAnomalyError(ValidationError):
    """Non-finite values or out-of-tolerance sums/ranges.

    Attributes:
        sample_id: Sample the file belongs to (stem of the file name)
        location: (y, x) of the first offending element, if known
    """

    def __init__(
        self,
        path: Union[str, Path],
        check: str,
        message: str,
        location: Optional[Tuple[int, ...]] = None
    ):
        self.sample_id = Path(path).stem
        self.location = location
        if location is not None:
            message = f"{message} at {tuple(int(v) for v in location)}"
        super().__init__(path, check, message)


class DegenerateWeightsError(AdaptSRError):
    """Weight vectors whose pre-normalization sum is below the energy threshold.

    Attributes:
        count: Number of degenerate vectors
        location: (y, x) of the first one
    """

    def __init__(self, count: int, location: Optional[Tuple[int, int]] = None,
                 context: str = ""):
        self.count = int(count)
        self.location = location
        where = f" first at {tuple(int(v) for v in location)}" if location is not None else ""
        prefix = f"{context}: " if context else ""
        super().__init__(
            f"{prefix}{self.count} degenerate weight vector(s){where}; "
            f"no reliable interpolation support"
        )
