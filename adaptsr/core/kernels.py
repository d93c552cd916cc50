#!/usr/bin/env python3
"""
ADAPTSR Kernel Library

1-D interpolation kernels evaluated at the signed distance ``t`` between a
sample and a neighbor. All functions are pure and accept scalars or numpy
arrays; 2-D weights are the product of an x and a y evaluation.
"""

from typing import Callable, Dict, Union

import numpy as np

from .config import KernelKind

ArrayLike = Union[float, np.ndarray]


def nearest_kernel(t: ArrayLike) -> np.ndarray:
    """1 where round(t) == 0, else 0.

    Rounds half up, so exactly one of two unit-spaced neighbors is picked
    (t in [-0.5, 0.5) → 1).
    """
    t = np.asarray(t, dtype=np.float64)
    return np.where(np.floor(t + 0.5) == 0, 1.0, 0.0)


def bilinear_kernel(t: ArrayLike) -> np.ndarray:
    """Triangle (tent) kernel: max(0, 1 - |t|)."""
    t = np.abs(np.asarray(t, dtype=np.float64))
    return np.maximum(0.0, 1.0 - t)


def cubic_kernel(t: ArrayLike, a: float = -0.5) -> np.ndarray:
    """Keys cubic convolution kernel.

    ``a = -0.5`` is Catmull-Rom; ``a = -0.75`` and ``a = -1`` are the other
    common choices. Negative lobes are returned as-is.

    Args:
        t: Signed distance(s)
        a: Shape parameter

    Returns:
        Kernel weight(s), zero for |t| >= 2
    """
    t = np.abs(np.asarray(t, dtype=np.float64))
    t2 = t * t
    t3 = t2 * t
    inner = (a + 2.0) * t3 - (a + 3.0) * t2 + 1.0
    outer = a * t3 - 5.0 * a * t2 + 8.0 * a * t - 4.0 * a
    return np.where(t < 1.0, inner, np.where(t < 2.0, outer, 0.0))


def lanczos_kernel(t: ArrayLike, a: float = 3) -> np.ndarray:
    """Lanczos windowed sinc: sinc(t) * sinc(t / a) for |t| < a."""
    if a <= 0:
        raise ValueError(f"Lanczos window must be positive, got {a}")
    t = np.asarray(t, dtype=np.float64)
    # np.sinc is the normalized sinc with sinc(0) == 1
    return np.where(np.abs(t) < a, np.sinc(t) * np.sinc(t / a), 0.0)


KERNELS: Dict[KernelKind, Callable[..., np.ndarray]] = {
    KernelKind.NEAREST: nearest_kernel,
    KernelKind.BILINEAR: bilinear_kernel,
    KernelKind.CUBIC: cubic_kernel,
    KernelKind.LANCZOS: lanczos_kernel,
}


def evaluate_kernel(kind: Union[KernelKind, str], t: ArrayLike, a: float = None) -> np.ndarray:
    """Evaluate a kernel by kind.

    Args:
        kind: Kernel kind (enum or its string value)
        t: Signed distance(s)
        a: Shape parameter; cubic ``a`` or Lanczos window. Ignored by
            nearest/bilinear. Defaults to -0.5 (cubic) / 3 (Lanczos).

    Returns:
        Weight(s) as float64
    """
    kind = KernelKind(kind)
    func = KERNELS[kind]
    if kind is KernelKind.CUBIC:
        return func(t, -0.5 if a is None else a)
    if kind is KernelKind.LANCZOS:
        return func(t, 3 if a is None else a)
    return func(t)


def separable_weight(kind: Union[KernelKind, str], tx: ArrayLike, ty: ArrayLike,
                     a: float = None, clamp_negative: bool = False) -> np.ndarray:
    """2-D weight as the product of the x and y evaluations.

    ``tx`` and ``ty`` broadcast against each other. With ``clamp_negative``
    each 1-D lobe is clamped to 0 before the product.
    """
    wx = evaluate_kernel(kind, tx, a)
    wy = evaluate_kernel(kind, ty, a)
    if clamp_negative:
        wx = np.maximum(wx, 0.0)
        wy = np.maximum(wy, 0.0)
    return wx * wy
