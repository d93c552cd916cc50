#!/usr/bin/env python3
"""
ADAPTSR Training-Pair Serializer

Binary layout (little-endian):

    [height: u32][width: u32][channels: u32]            12-byte header
    height * width * channels float32                  row-major, channel-minor

Whole fields are written with a single buffered write. Per-pixel record
streams (patch mode) go through FieldStreamWriter, which writes the same
layout batch by batch into a temp file and renames it into place only once
the declared element count has been reached.

Reading validates the byte length against the header, rejects NaN/Inf and,
for weight fields, checks that every vector sums to 1 within tolerance.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import os
import struct

import numpy as np

from .config import WEIGHT_SUM_TOLERANCE
from .errors import MalformedInputError, ShapeMismatchError, NumericalAnomalyError

HEADER = struct.Struct('<III')
HEADER_BYTES = HEADER.size
FLOAT_DTYPE = np.dtype('<f4')

PathLike = Union[str, Path]


@dataclass(frozen=True)
class FieldHeader:
    height: int
    width: int
    channels: int

    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.height, self.width, self.channels)

    @property
    def count(self) -> int:
        return self.height * self.width * self.channels

    @property
    def payload_bytes(self) -> int:
        return self.count * FLOAT_DTYPE.itemsize

    def pack(self) -> bytes:
        return HEADER.pack(self.height, self.width, self.channels)


def _as_field(array: np.ndarray) -> np.ndarray:
    array = np.asarray(array)
    if array.ndim == 2:
        array = array[:, :, None]
    if array.ndim != 3:
        raise ValueError(f"fields must be (H, W, C), got shape {array.shape}")
    return np.ascontiguousarray(array, dtype=FLOAT_DTYPE)


# =============================================================================
# Write
# =============================================================================

def write_field(path: PathLike, array: np.ndarray) -> Path:
    """Write an (H, W, C) field in one buffered write.

    Args:
        path: Destination file (parent directories are created)
        array: Field data; converted to little-endian float32

    Returns:
        The written path
    """
    path = Path(path)
    data = _as_field(array)
    header = FieldHeader(*data.shape)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'wb') as f:
        f.write(header.pack() + data.tobytes())
    return path


def write_fields(fields: Dict[PathLike, np.ndarray]) -> List[Path]:
    """Write several fields so that either all of them land or none do.

    Each field goes to a ``.tmp`` sibling first; the temp files are moved
    into place only after every write succeeded.

    Returns:
        The written paths, in input order
    """
    staged = []
    try:
        for path, array in fields.items():
            path = Path(path)
            tmp_path = path.with_name(path.name + '.tmp')
            staged.append((tmp_path, path))
            write_field(tmp_path, array)
    except Exception:
        for tmp_path, _ in staged:
            if tmp_path.exists():
                tmp_path.unlink()
        raise
    for tmp_path, path in staged:
        os.replace(tmp_path, path)
    return [path for _, path in staged]


class FieldStreamWriter:
    """Incremental writer for a field whose shape is known up front.

    Usage:
        with FieldStreamWriter(path, (h, w, 66)) as writer:
            for batch in batches:
                writer.write(batch)      # (n, 66) records

    The file appears at ``path`` only if exactly h*w records were written;
    on any error the temp file is removed.
    """

    def __init__(self, path: PathLike, shape: Tuple[int, int, int]):
        self.path = Path(path)
        self.header = FieldHeader(*(int(v) for v in shape))
        self.tmp_path = self.path.with_name(self.path.name + '.tmp')
        self.records = 0
        self._file = None

    @property
    def expected_records(self) -> int:
        return self.header.height * self.header.width

    def open(self) -> 'FieldStreamWriter':
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.tmp_path, 'wb')
        self._file.write(self.header.pack())
        return self

    def write(self, batch: np.ndarray) -> int:
        """Append records; returns the running record count."""
        if self._file is None:
            raise RuntimeError("writer is not open")
        batch = np.asarray(batch, dtype=FLOAT_DTYPE).reshape(-1, self.header.channels)
        if self.records + len(batch) > self.expected_records:
            raise ShapeMismatchError(
                self.path, 'record_count',
                f"{self.records + len(batch)} records exceed declared {self.expected_records}"
            )
        self._file.write(np.ascontiguousarray(batch).tobytes())
        self.records += len(batch)
        return self.records

    def close(self) -> Path:
        """Finish the file and move it into place."""
        if self._file is None:
            raise RuntimeError("writer is not open")
        self._file.close()
        self._file = None
        if self.records != self.expected_records:
            self.tmp_path.unlink()
            raise ShapeMismatchError(
                self.path, 'record_count',
                f"wrote {self.records} records, header declares {self.expected_records}"
            )
        os.replace(self.tmp_path, self.path)
        return self.path

    def abort(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        if self.tmp_path.exists():
            self.tmp_path.unlink()

    def __enter__(self) -> 'FieldStreamWriter':
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.abort()
            return False
        self.close()
        return False


# =============================================================================
# Read / validate
# =============================================================================

def read_header(path: PathLike) -> FieldHeader:
    """Read and sanity-check just the header."""
    path = Path(path)
    size = path.stat().st_size
    if size == 0:
        raise MalformedInputError(f"{path}: file is empty")
    if size < HEADER_BYTES:
        raise ShapeMismatchError(path, 'header', f"{size} bytes is shorter than the 12-byte header")
    with open(path, 'rb') as f:
        return FieldHeader(*HEADER.unpack(f.read(HEADER_BYTES)))


def check_finite(path: PathLike, data: np.ndarray) -> None:
    bad = ~np.isfinite(data)
    if bad.any():
        where = tuple(np.argwhere(bad)[0])
        raise NumericalAnomalyError(
            path, 'finite', f"{int(np.count_nonzero(bad))} non-finite value(s)", where
        )


def check_weight_sums(path: PathLike, data: np.ndarray,
                      tolerance: float = WEIGHT_SUM_TOLERANCE) -> None:
    """Every vector on the last axis must sum to 1 within ``tolerance``."""
    sums = data.sum(axis=-1, dtype=np.float64)
    bad = np.abs(sums - 1.0) > tolerance
    if bad.any():
        where = tuple(np.argwhere(bad)[0])
        worst = float(np.max(np.abs(sums - 1.0)))
        raise NumericalAnomalyError(
            path, 'weight_sum',
            f"{int(np.count_nonzero(bad))} weight vector(s) off by up to {worst:.3g} "
            f"(tolerance {tolerance:g})", where
        )


def check_range(path: PathLike, data: np.ndarray, low: float, high: float,
                check: str = 'range') -> None:
    """Values must lie in the half-open interval [low, high)."""
    bad = (data < low) | (data >= high)
    if bad.any():
        where = tuple(np.argwhere(bad)[0])
        raise NumericalAnomalyError(
            path, check,
            f"{int(np.count_nonzero(bad))} value(s) outside [{low}, {high}) "
            f"(min {float(data.min()):.6g}, max {float(data.max()):.6g})", where
        )


def read_field(
    path: PathLike,
    weight_field: bool = False,
    expected_channels: Optional[int] = None,
    tolerance: float = WEIGHT_SUM_TOLERANCE,
    validate: bool = True
) -> np.ndarray:
    """Read a field written by write_field / FieldStreamWriter.

    Args:
        path: File to read
        weight_field: Also check weight sums
        expected_channels: Reject files with another channel count
        tolerance: Weight-sum tolerance
        validate: Run the finite / weight-sum checks

    Returns:
        (H, W, C) float32 array

    Raises:
        MalformedInputError: empty file
        ShapeMismatchError: header/byte-length/channel disagreement
        NumericalAnomalyError: NaN/Inf or bad weight sums
    """
    path = Path(path)
    header = read_header(path)
    actual = path.stat().st_size - HEADER_BYTES
    if actual != header.payload_bytes:
        raise ShapeMismatchError(
            path, 'byte_length',
            f"payload is {actual} bytes, header {header.shape} declares {header.payload_bytes}"
        )
    if expected_channels is not None and header.channels != expected_channels:
        raise ShapeMismatchError(
            path, 'channels',
            f"header declares {header.channels} channels, expected {expected_channels}"
        )

    with open(path, 'rb') as f:
        f.seek(HEADER_BYTES)
        data = np.fromfile(f, dtype=FLOAT_DTYPE, count=header.count)
    data = data.reshape(header.shape)

    if validate:
        check_finite(path, data)
        if weight_field:
            check_weight_sums(path, data, tolerance)
    return data
