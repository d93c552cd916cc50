#!/usr/bin/env python3
"""
ADAPTSR Dataset Validation

Re-reads a generated dataset and checks it against its metadata:
- every field file listed in the metadata exists and is non-empty
- header shape matches the metadata record and byte length matches header
- no NaN/Inf anywhere
- offsets lie in the recorded convention's range
- Y / weight vectors sum to 1 within tolerance
- optionally, Y reconstructs the same image as resampling X directly

The first failure aborts the pass (the CLI exits non-zero).

NOTE: This module is READ-ONLY on the dataset.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import numpy as np
from tqdm import tqdm

from .config import ResampleConfig, OffsetConvention, WEIGHT_SUM_TOLERANCE
from .errors import ValidationError, ShapeMismatchError, NumericalAnomalyError
from .metadata import MetadataAccumulator
from .resampler import NeighborhoodResampler
from .serializer import read_header, read_field, check_range

PathLike = Union[str, Path]

WEIGHT_KINDS = ('Y', 'weight')

# Max |reconstruct(X, Y) - resample(X)| accepted (float32 storage of Y)
RECONSTRUCTION_TOLERANCE = 1e-4


def _run_config(entry: Dict[str, Any]) -> Tuple[Optional[ResampleConfig], str]:
    config = dict(entry.get('config') or {})
    mode = config.pop('mode', 'fields')
    return (ResampleConfig(**config) if config else None), mode


def expected_shape(kind: str, entry: Dict[str, Any], mode: str) -> Tuple[int, int, int]:
    channels = int(entry['channels'][kind])
    if kind == 'X' and mode == 'fields':
        return (entry['H_lr'], entry['W_lr'], channels)
    return (entry['H_sr'], entry['W_sr'], channels)


def validate_sample(
    data_dir: PathLike,
    sample_id: str,
    entry: Dict[str, Any],
    tolerance: float = WEIGHT_SUM_TOLERANCE,
    reconstruct: bool = False
) -> Dict[str, Dict[str, Any]]:
    """Validate every field file of one sample.

    Args:
        data_dir: Dataset root (contains X/, offset/, Y/, weight/)
        sample_id: Sample id (file stem)
        entry: The sample's metadata record
        tolerance: Weight-sum tolerance
        reconstruct: Also check that Y reproduces a direct resample of X

    Returns:
        Per-field summary {kind: {'shape', 'min', 'max'}}

    Raises:
        ValidationError (or a subclass) / MalformedInputError on the first failure
    """
    data_dir = Path(data_dir)
    config, mode = _run_config(entry)
    summary = {}
    loaded = {}

    for kind in entry['channels']:
        path = data_dir / kind / f"{sample_id}.bin"
        if not path.exists():
            raise ValidationError(path, 'exists', "file listed in metadata is missing")

        expected = expected_shape(kind, entry, mode)
        header = read_header(path)
        if header.shape != tuple(int(v) for v in expected):
            raise ShapeMismatchError(
                path, 'metadata_shape',
                f"header {header.shape} does not match metadata {tuple(expected)}"
            )

        data = read_field(path, weight_field=kind in WEIGHT_KINDS,
                          expected_channels=expected[2], tolerance=tolerance)

        if kind == 'offset':
            convention = config.convention if config else OffsetConvention.CENTER
            low, high = convention.offset_range
            check_range(path, data, low, high, check='offset_range')
        elif kind == 'X' and mode == 'fields':
            check_range(path, data, 0.0, np.nextafter(np.float32(1.0), np.float32(2.0)),
                        check='pixel_range')

        summary[kind] = {
            'shape': header.shape,
            'min': float(data.min()) if data.size else 0.0,
            'max': float(data.max()) if data.size else 0.0,
        }
        loaded[kind] = data

    if reconstruct and mode == 'fields' and config is not None and {'X', 'Y'} <= set(loaded):
        check_reconstruction(data_dir / 'Y' / f"{sample_id}.bin", loaded['X'], loaded['Y'], config)

    return summary


def check_reconstruction(path: PathLike, lr: np.ndarray, weights: np.ndarray,
                         config: ResampleConfig,
                         tolerance: float = RECONSTRUCTION_TOLERANCE) -> float:
    """Compare reconstruct(X, Y) with a direct base-weight resample of X.

    A Y field whose neighbor layout disagrees with the mapper (wrong
    convention, shifted window) fails here even if every vector sums to 1.

    Returns:
        Max absolute difference
    """
    resampler = NeighborhoodResampler(config, max_value=1.0)
    lr = lr.astype(np.float64)
    rebuilt = np.clip(resampler.reconstruct(lr, weights.astype(np.float64)), 0.0, 1.0)
    direct = resampler.resample(lr)
    if rebuilt.shape != direct.shape:
        raise ShapeMismatchError(path, 'reconstruction',
                                 f"weights rebuild {rebuilt.shape}, resample gives {direct.shape}")
    diff = np.abs(rebuilt - direct)
    worst = float(diff.max()) if diff.size else 0.0
    if worst > tolerance:
        where = tuple(np.argwhere(diff > tolerance)[0][:2])
        raise NumericalAnomalyError(
            path, 'reconstruction',
            f"weights reproduce the direct resample only to {worst:.3g}", where
        )
    return worst


def validate_dataset(
    data_dir: PathLike,
    metadata_name: str = 'metadata.json',
    sample_ids: Optional[Iterable[str]] = None,
    tolerance: float = WEIGHT_SUM_TOLERANCE,
    reconstruct: bool = False,
    verbose: bool = True
) -> Dict[str, Any]:
    """Validate all (or selected) samples listed in the metadata file.

    Returns:
        Dict with 'samples' (count) and 'fields' ({kind: min/max/files})

    Raises:
        FileNotFoundError: metadata file missing
        KeyError: a requested sample id is not in the metadata
        ValidationError / MalformedInputError: first failing file
    """
    data_dir = Path(data_dir)
    metadata_path = data_dir / metadata_name
    if not metadata_path.exists():
        raise FileNotFoundError(f"Metadata not found: {metadata_path}")
    metadata = MetadataAccumulator(metadata_path)

    ids = list(metadata) if sample_ids is None else [str(s) for s in sample_ids]
    for sample_id in ids:
        if sample_id not in metadata:
            raise KeyError(f"sample '{sample_id}' is not in {metadata_path}")

    totals: Dict[str, Dict[str, Any]] = {}
    for sample_id in tqdm(ids, desc="Validating", disable=not verbose):
        summary = validate_sample(data_dir, sample_id, metadata[sample_id],
                                  tolerance=tolerance, reconstruct=reconstruct)
        for kind, info in summary.items():
            agg = totals.setdefault(kind, {'min': np.inf, 'max': -np.inf, 'files': 0})
            agg['min'] = min(agg['min'], info['min'])
            agg['max'] = max(agg['max'], info['max'])
            agg['files'] += 1

    if verbose:
        print(f"Validated {len(ids):,} sample(s) in {data_dir}")
        for kind, agg in sorted(totals.items()):
            print(f"  {kind:<7} files={agg['files']:<6} range=[{agg['min']:.4f}, {agg['max']:.4f}]")

    return {'samples': len(ids), 'fields': totals}
