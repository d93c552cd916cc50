#!/usr/bin/env python3
"""
ADAPTSR Image Comparison

Quality metrics between an HR reference and a rebuilt image, measured on
BT.601 grey (rounded to 8-bit levels):
- MSE  (lower is better)
- PSNR (dB, higher is better; inf for identical images)
- SSIM (1.0 = identical structure)

Plus a difference visualization: white where the images agree, shading
toward red as the per-pixel RGB difference grows.
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np
from skimage.metrics import mean_squared_error, peak_signal_noise_ratio, structural_similarity

from .config import LumaStandard
from .errors import MalformedInputError
from .imageio import load_image, save_image

PathLike = Union[str, Path]

PEAK = 255.0
SSIM_WINDOW = 11


@dataclass
class ComparisonResult:
    mse: float
    psnr: float
    ssim: float
    shape: tuple

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def grey(image: np.ndarray) -> np.ndarray:
    """BT.601 grey of an 8-bit RGB(A) image, rounded to integer levels."""
    image = np.asarray(image, dtype=np.float64)
    if image.ndim == 2:
        return np.floor(image + 0.5)
    kr, kg, kb = LumaStandard.BT601.coefficients
    y = kr * image[..., 0] + kg * image[..., 1] + kb * image[..., 2]
    return np.floor(y + 0.5)


def _check_sizes(reference: np.ndarray, candidate: np.ndarray) -> None:
    if reference.shape[:2] != candidate.shape[:2]:
        rh, rw = reference.shape[:2]
        ch, cw = candidate.shape[:2]
        raise MalformedInputError(f"image sizes differ: {rw}x{rh} vs {cw}x{ch}")


def compare_images(reference: np.ndarray, candidate: np.ndarray) -> ComparisonResult:
    """Compute MSE / PSNR / SSIM between two 8-bit images.

    Raises:
        MalformedInputError: sizes differ, or too small for SSIM (< 3 px)
    """
    _check_sizes(reference, candidate)
    a, b = grey(reference), grey(candidate)

    mse = float(mean_squared_error(a, b))
    psnr = float('inf') if mse == 0 else float(peak_signal_noise_ratio(a, b, data_range=PEAK))

    win = min(SSIM_WINDOW, *a.shape)
    if win % 2 == 0:
        win -= 1
    if win < 3:
        raise MalformedInputError(f"image {a.shape[1]}x{a.shape[0]} is too small for SSIM")
    ssim = float(structural_similarity(a, b, win_size=win, data_range=PEAK))

    return ComparisonResult(mse=mse, psnr=psnr, ssim=ssim, shape=tuple(a.shape))


def difference_image(reference: np.ndarray, candidate: np.ndarray) -> np.ndarray:
    """Red-tinted map of the per-pixel absolute RGB difference (uint8 RGBA)."""
    _check_sizes(reference, candidate)
    ref = np.asarray(reference, dtype=np.float64)[..., :3]
    cand = np.asarray(candidate, dtype=np.float64)[..., :3]
    diff = np.abs(ref - cand).max(axis=-1) / PEAK

    h, w = diff.shape
    out = np.full((h, w, 4), 255, dtype=np.uint8)
    fade = np.floor(PEAK * (1.0 - diff) + 0.5).astype(np.uint8)
    out[..., 1] = fade
    out[..., 2] = fade
    return out


def compare_files(reference_path: PathLike, candidate_path: PathLike,
                  diff_path: PathLike = None) -> ComparisonResult:
    """Load two image files, compare them and optionally save the diff image."""
    reference = load_image(reference_path)
    candidate = load_image(candidate_path)
    result = compare_images(reference, candidate)
    if diff_path is not None:
        save_image(diff_path, difference_image(reference, candidate))
    return result


def format_report(results: Dict[str, ComparisonResult]) -> str:
    """Text table, one row per compared image."""
    lines = [
        f"{'Image':<28} {'PSNR (dB)':>10} {'SSIM':>8} {'MSE':>10}",
        "-" * 60,
    ]
    for name, r in results.items():
        psnr = "inf" if np.isinf(r.psnr) else f"{r.psnr:.2f}"
        lines.append(f"{name:<28} {psnr:>10} {r.ssim:>8.4f} {r.mse:>10.3f}")
    return "\n".join(lines)
