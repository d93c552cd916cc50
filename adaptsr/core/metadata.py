#!/usr/bin/env python3
"""
ADAPTSR Metadata Accumulator

One JSON object keyed by sample id:

    {"0001": {"H_lr": 10, "W_lr": 10, "H_sr": 40, "W_sr": 40,
              "channels": {"X": 4, "offset": 2, "Y": 16, "weight": 16},
              "config": {...}}}

The accumulator is passed through the pipeline explicitly and flushed after
each sample via temp file + rename, so an interrupted run never leaves a
half-written metadata file.
"""

from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union
import json
import os


class MetadataAccumulator:
    """Process-wide sample metadata with atomic persistence.

    Usage:
        meta = MetadataAccumulator(output_dir / 'metadata.json')
        meta.record('0001', 10, 10, 40, 40, {'X': 4, 'offset': 2, 'Y': 16})
        meta.flush()
    """

    def __init__(self, path: Union[str, Path], load: bool = True):
        self.path = Path(path)
        self._records: Dict[str, Dict[str, Any]] = {}
        if load and self.path.exists():
            self._records = self.load(self.path)

    @staticmethod
    def load(path: Union[str, Path]) -> Dict[str, Dict[str, Any]]:
        """Read a metadata file; the top level must be a JSON object."""
        with open(path, 'r') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: metadata must be a JSON object, got {type(data).__name__}")
        return data

    def record(
        self,
        sample_id: str,
        h_lr: int,
        w_lr: int,
        h_sr: int,
        w_sr: int,
        channels: Dict[str, int],
        config: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Add or replace one sample's record."""
        entry = {
            'H_lr': int(h_lr),
            'W_lr': int(w_lr),
            'H_sr': int(h_sr),
            'W_sr': int(w_sr),
            'channels': {k: int(v) for k, v in channels.items()},
        }
        if config is not None:
            entry['config'] = dict(config)
        self._records[str(sample_id)] = entry
        return entry

    def remove(self, sample_id: str) -> bool:
        return self._records.pop(str(sample_id), None) is not None

    def flush(self) -> Path:
        """Write atomically (temp file in the same directory, then rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        with open(tmp_path, 'w') as f:
            json.dump(self._records, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)
        return self.path

    def get(self, sample_id: str) -> Optional[Dict[str, Any]]:
        return self._records.get(str(sample_id))

    def __getitem__(self, sample_id: str) -> Dict[str, Any]:
        return self._records[str(sample_id)]

    def __contains__(self, sample_id: object) -> bool:
        return str(sample_id) in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._records))

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {k: dict(v) for k, v in self._records.items()}
