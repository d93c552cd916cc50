#!/usr/bin/env python3
"""
ADAPTSR Training-Pair Generator

For every HR source image:
  1. decode, force RGBA, crop to a multiple of the scale
  2. cubic-downscale to the LR image
  3. map every HR pixel into LR space (offset field)
  4. compute base kernel weights (Y) and, optionally, adaptive weights
  5. serialize X / offset / Y / weight and record the sample's metadata

Two output modes:
  fields   X = LR image (H_lr, W_lr, 4), offset (H_sr, W_sr, 2),
           Y and weight (H_sr, W_sr, N²)
  patches  one record per HR pixel: X = flattened N x N x 4 LR neighborhood
           + (dx, dy), Y = N² base weights, weight = N² adaptive weights;
           streamed in fixed-size batches

Images are processed one at a time; a failing image is reported and
skipped, a missing input directory aborts the run.
"""

from contextlib import ExitStack
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

import numpy as np
from tqdm import tqdm

from .config import ResampleConfig, GeneratorConfig
from .contrast import luma_map
from .errors import DegenerateWeightsError, MalformedInputError
from .imageio import list_images, load_image, to_float, align, downscale
from .metadata import MetadataAccumulator
from .resampler import NeighborhoodResampler, gather_neighborhoods, row_chunks, CHUNK_BYTES
from .serializer import write_fields, FieldStreamWriter


@dataclass
class TrainingFields:
    """Per-image generated tensors (float32)."""
    offsets: np.ndarray
    weights: np.ndarray
    adaptive_weights: Optional[np.ndarray] = None

    @property
    def shape(self) -> Tuple[int, int]:
        return self.offsets.shape[:2]

    def release(self) -> None:
        """Drop the large buffers before the next image."""
        self.offsets = None
        self.weights = None
        self.adaptive_weights = None


class TrainingPairGenerator:
    """Offset and weight-field generation for one configuration.

    Usage:
        gen = TrainingPairGenerator(ResampleConfig(scale=4))
        fields = gen.generate_fields(lr, 40, 40)
        fields.offsets.shape        # (40, 40, 2)
        fields.weights.shape        # (40, 40, 16)
    """

    def __init__(self, config: ResampleConfig, adaptive: bool = True,
                 chunk_bytes: int = CHUNK_BYTES):
        self.config = config
        self.adaptive = adaptive
        self.chunk_bytes = chunk_bytes
        self.resampler = NeighborhoodResampler(config, max_value=1.0, chunk_bytes=chunk_bytes)

    @property
    def mapper(self):
        return self.resampler.mapper

    def generate_fields(self, lr: np.ndarray, hr_height: int, hr_width: int) -> TrainingFields:
        """Offset, base-weight and adaptive-weight fields for an HR grid.

        Args:
            lr: (H_lr, W_lr, C) float image in [0, 1]
            hr_height, hr_width: HR grid size

        Returns:
            TrainingFields; adaptive_weights is None when adaptive is off

        Raises:
            DegenerateWeightsError: if any weight vector has no support
        """
        lr_h, lr_w = lr.shape[:2]
        taps = self.config.taps
        rows, cols = self.mapper.map_grid(hr_height, hr_width, lr_h, lr_w)

        offsets = np.empty((hr_height, hr_width, 2), dtype=np.float32)
        offsets[..., 0] = cols.frac[None, :]
        offsets[..., 1] = rows.frac[:, None]

        weights = np.empty((hr_height, hr_width, taps), dtype=np.float32)
        adaptive = None
        luma = classes = None
        if self.adaptive:
            adaptive = np.empty((hr_height, hr_width, taps), dtype=np.float32)
            luma = luma_map(lr, self.config.luma, max_value=1.0)
            classes = self.resampler.analyzer.class_map(luma)

        for start, stop in row_chunks(hr_height, hr_width, taps, 1, self.chunk_bytes):
            block_rows = rows.slice(start, stop)
            base, adjusted = self.resampler.chunk_weights(block_rows, cols, luma, classes)
            base.raise_if_degenerate("base weights", offset=(start,))
            weights[start:stop] = base.weights
            if adjusted is not None:
                adjusted.raise_if_degenerate("adaptive weights", offset=(start,))
                adaptive[start:stop] = adjusted.weights

        return TrainingFields(offsets=offsets, weights=weights, adaptive_weights=adaptive)

    def patch_features(self, channels: int) -> int:
        """Length of one patch-mode input record."""
        return self.config.taps * channels + 2

    def iter_patch_records(
        self, lr: np.ndarray, hr_height: int, hr_width: int, batch_size: int
    ) -> Iterator[Tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]]:
        """Yield (inputs, targets, adaptive) batches of at most ``batch_size`` records.

        Records are in HR raster order. Inputs are the clamped LR
        neighborhood flattened (neighbor-major, channel-minor) followed by
        (dx, dy); targets are the normalized base weights; adaptive holds the
        contrast-adjusted weights, or is None when adaptive is off.
        """
        lr_h, lr_w, channels = lr.shape
        taps = self.config.taps
        rows, cols = self.mapper.map_grid(hr_height, hr_width, lr_h, lr_w)
        features = self.patch_features(channels)

        luma = classes = None
        if self.adaptive:
            luma = luma_map(lr, self.config.luma, max_value=1.0)
            classes = self.resampler.analyzer.class_map(luma)

        pending_x = np.empty((0, features), dtype=np.float32)
        pending_y = np.empty((0, taps), dtype=np.float32)
        pending_w = np.empty((0, taps), dtype=np.float32) if self.adaptive else None

        for start, stop in row_chunks(hr_height, hr_width, taps, channels, self.chunk_bytes):
            block_rows = rows.slice(start, stop)
            n = (stop - start) * hr_width

            base, adjusted = self.resampler.chunk_weights(block_rows, cols, luma, classes)
            base.raise_if_degenerate("base weights", offset=(start,))
            if adjusted is not None:
                adjusted.raise_if_degenerate("adaptive weights", offset=(start,))
                pending_w = np.concatenate(
                    [pending_w, adjusted.weights.reshape(n, taps).astype(np.float32)])

            block = gather_neighborhoods(lr, block_rows, cols).reshape(n, taps * channels)
            dx = np.broadcast_to(cols.frac[None, :], (stop - start, hr_width)).reshape(n, 1)
            dy = np.broadcast_to(block_rows.frac[:, None], (stop - start, hr_width)).reshape(n, 1)

            pending_x = np.concatenate([pending_x, np.hstack([block, dx, dy]).astype(np.float32)])
            pending_y = np.concatenate([pending_y, base.weights.reshape(n, taps).astype(np.float32)])

            while len(pending_x) >= batch_size:
                yield (pending_x[:batch_size], pending_y[:batch_size],
                       None if pending_w is None else pending_w[:batch_size])
                pending_x, pending_y = pending_x[batch_size:], pending_y[batch_size:]
                if pending_w is not None:
                    pending_w = pending_w[batch_size:]

        # Partial batch at the end of the image
        if len(pending_x):
            yield pending_x, pending_y, pending_w


# =============================================================================
# Per-image pipeline
# =============================================================================

def prepare_pair(path: Path, config: ResampleConfig, patch_size: int) -> Tuple[np.ndarray, np.ndarray]:
    """Load an HR image and build its aligned HR / LR float pair.

    Raises:
        MalformedInputError: image smaller than scale * patch_size
    """
    scale = config.integer_scale
    image = load_image(path)
    h, w = image.shape[:2]
    min_size = scale * patch_size
    if h < min_size or w < min_size:
        raise MalformedInputError(
            f"{path.name}: {w}x{h} is smaller than the {min_size}x{min_size} minimum "
            f"for scale {scale} and patch size {patch_size}"
        )
    hr = to_float(align(image, scale))
    lr = downscale(hr, scale)
    return hr, lr


def process_image(
    path: Path,
    gen_config: GeneratorConfig,
    generator: TrainingPairGenerator,
    metadata: MetadataAccumulator
) -> Dict[str, Any]:
    """Generate, write and record one sample.

    Returns:
        The sample's metadata record
    """
    sample_id = path.stem
    hr, lr = prepare_pair(path, generator.config, gen_config.patch_size)
    h_sr, w_sr = hr.shape[:2]
    h_lr, w_lr, channels = lr.shape
    del hr

    taps = generator.config.taps
    run_config = dict(generator.config.to_dict(), mode=gen_config.mode)

    if gen_config.mode == 'fields':
        fields = generator.generate_fields(lr, h_sr, w_sr)
        outputs = {
            gen_config.field_dir('X') / f"{sample_id}.bin": lr,
            gen_config.field_dir('offset') / f"{sample_id}.bin": fields.offsets,
            gen_config.field_dir('Y') / f"{sample_id}.bin": fields.weights,
        }
        field_channels = {'X': channels, 'offset': 2, 'Y': taps}
        if fields.adaptive_weights is not None:
            outputs[gen_config.field_dir('weight') / f"{sample_id}.bin"] = fields.adaptive_weights
            field_channels['weight'] = taps
        write_fields(outputs)
        del outputs
        fields.release()
    else:
        features = generator.patch_features(channels)
        field_channels = {'X': features, 'Y': taps}
        if generator.adaptive:
            field_channels['weight'] = taps
        writers = {
            kind: FieldStreamWriter(gen_config.field_dir(kind) / f"{sample_id}.bin", (h_sr, w_sr, c))
            for kind, c in field_channels.items()
        }
        with ExitStack() as stack:
            for writer in writers.values():
                stack.enter_context(writer)
            for inputs, targets, adaptive in generator.iter_patch_records(
                    lr, h_sr, w_sr, gen_config.batch_size):
                writers['X'].write(inputs)
                writers['Y'].write(targets)
                if adaptive is not None:
                    writers['weight'].write(adaptive)

    del lr
    entry = metadata.record(sample_id, h_lr, w_lr, h_sr, w_sr, field_channels, run_config)
    metadata.flush()
    return entry


def generate_dataset(
    gen_config: GeneratorConfig,
    config: ResampleConfig,
    verbose: bool = True
) -> Dict[str, Any]:
    """Generate training pairs for every image in ``gen_config.hr_dir``.

    Args:
        gen_config: Paths and output mode
        config: Resampling configuration (integral scale)
        verbose: Print banner, progress and results

    Returns:
        Stats dict with 'total', 'completed', 'skipped', 'failed',
        'degenerate' and 'errors'

    Raises:
        FileNotFoundError: input directory missing (fatal, nothing processed)
    """
    images = list_images(gen_config.hr_dir, gen_config.extensions)
    scale = config.integer_scale

    kinds = ['X', 'Y'] if gen_config.mode == 'patches' else ['X', 'offset', 'Y']
    if gen_config.adaptive:
        kinds.append('weight')
    for kind in kinds:
        gen_config.field_dir(kind).mkdir(parents=True, exist_ok=True)

    metadata = MetadataAccumulator(gen_config.metadata_path)
    generator = TrainingPairGenerator(config, adaptive=gen_config.adaptive)

    if verbose:
        print(f"{'='*60}")
        print(f"ADAPTSR Training-Pair Generator")
        print(f"{'='*60}")
        print(f"Source: {gen_config.hr_dir}")
        print(f"Output: {gen_config.output_dir}")
        print(f"Mode: {gen_config.mode} (x{scale})")
        print(f"Config: {config.to_dict()}")
        print(f"Images: {len(images):,}")
        print(f"Started: {datetime.now().isoformat()}")
        print()

    stats = {
        'total': len(images),
        'completed': 0,
        'skipped': 0,
        'failed': 0,
        'degenerate': [],
        'errors': []
    }

    pbar = tqdm(images, desc="Generating", disable=not verbose)
    for path in pbar:
        if gen_config.skip_existing and path.stem in metadata:
            stats['skipped'] += 1
            continue
        try:
            process_image(path, gen_config, generator, metadata)
            stats['completed'] += 1
        except DegenerateWeightsError as e:
            stats['failed'] += 1
            stats['degenerate'].append({'image': path.name, 'count': e.count, 'location': e.location})
            stats['errors'].append({'image': path.name, 'error': str(e)})
            if verbose:
                tqdm.write(f"Degenerate weights: {path.name}: {e}")
        except Exception as e:
            stats['failed'] += 1
            stats['errors'].append({'image': path.name, 'error': str(e)})
            if verbose:
                tqdm.write(f"Failed: {path.name}: {e}")
        pbar.set_postfix(done=stats['completed'], skip=stats['skipped'], fail=stats['failed'])

    if verbose:
        print()
        print(f"{'='*60}")
        print(f"RESULTS")
        print(f"{'='*60}")
        print(f"Completed: {stats['completed']:,}")
        print(f"Skipped:   {stats['skipped']:,}")
        print(f"Failed:    {stats['failed']:,}")
        if stats['degenerate']:
            print(f"  of which degenerate weights: {len(stats['degenerate'])}")
        print(f"Metadata: {gen_config.metadata_path}")
        print(f"Finished: {datetime.now().isoformat()}")

    return stats
