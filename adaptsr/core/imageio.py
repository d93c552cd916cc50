#!/usr/bin/env python3
"""
ADAPTSR Image I/O

Thin layer over scikit-image for decoding/encoding and the cubic HR → LR
downscale. Images travel through the pipeline as numpy arrays shaped
(H, W, 4): uint8 straight from disk, float64 in [0, 1] once normalized.
"""

from pathlib import Path
from typing import Iterable, List, Union

import numpy as np
from skimage import io as skio
from skimage.transform import resize
from skimage.util import img_as_ubyte, img_as_float64

from .errors import MalformedInputError

PathLike = Union[str, Path]

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg')


def list_images(directory: PathLike, extensions: Iterable[str] = IMAGE_EXTENSIONS) -> List[Path]:
    """Image files directly inside ``directory``, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Input directory not found: {directory}")
    suffixes = {e.lower() for e in extensions}
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in suffixes)


def ensure_rgba(image: np.ndarray) -> np.ndarray:
    """Force an 8-bit, 4-channel layout (grey → RGB, opaque alpha added)."""
    image = np.asarray(image)
    if image.dtype != np.uint8:
        image = img_as_ubyte(image)

    if image.ndim == 2:
        image = image[:, :, None]
    if image.ndim != 3:
        raise MalformedInputError(f"unsupported image shape {image.shape}")

    h, w, c = image.shape
    opaque = np.full((h, w, 1), 255, dtype=np.uint8)
    if c == 1:
        return np.concatenate([image, image, image, opaque], axis=2)
    if c == 2:
        grey, alpha = image[:, :, :1], image[:, :, 1:]
        return np.concatenate([grey, grey, grey, alpha], axis=2)
    if c == 3:
        return np.concatenate([image, opaque], axis=2)
    if c == 4:
        return image
    raise MalformedInputError(f"unsupported channel count {c}")


def load_image(path: PathLike) -> np.ndarray:
    """Decode an image file to uint8 RGBA.

    Raises:
        MalformedInputError: empty or undecodable file
    """
    path = Path(path)
    if path.stat().st_size == 0:
        raise MalformedInputError(f"{path}: file is empty")
    try:
        image = skio.imread(str(path))
    except (OSError, ValueError) as e:
        raise MalformedInputError(f"{path}: cannot decode image ({e})") from e
    return ensure_rgba(image)


def save_image(path: PathLike, image: np.ndarray) -> Path:
    """Encode an image; float input is taken to be in [0, 1]."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image = np.asarray(image)
    if image.dtype != np.uint8:
        image = np.clip(np.floor(np.asarray(image, dtype=np.float64) * 255.0 + 0.5), 0, 255).astype(np.uint8)
    skio.imsave(str(path), image, check_contrast=False)
    return path


def to_float(image: np.ndarray) -> np.ndarray:
    """Normalize to float64 in [0, 1]."""
    return img_as_float64(np.asarray(image))


def align(image: np.ndarray, factor: int) -> np.ndarray:
    """Crop the bottom/right edges to a multiple of ``factor``."""
    h, w = image.shape[:2]
    return image[: (h // factor) * factor, : (w // factor) * factor]


def downscale(image: np.ndarray, scale: int, quantize: bool = True) -> np.ndarray:
    """Cubic, anti-aliased HR → LR downscale.

    Args:
        image: (H, W, C) float image in [0, 1]; H and W divisible by ``scale``
        scale: Integer reduction factor
        quantize: Round to 8-bit levels, as an encoded LR image would be

    Returns:
        (H // scale, W // scale, C) float64 in [0, 1]
    """
    h, w = image.shape[:2]
    if h % scale or w % scale:
        raise MalformedInputError(f"image {w}x{h} is not divisible by scale {scale}")
    shape = (h // scale, w // scale) + image.shape[2:]
    lr = resize(image, shape, order=3, mode='edge', anti_aliasing=True, preserve_range=True)
    lr = np.clip(lr, 0.0, 1.0)
    if quantize:
        lr = np.floor(lr * 255.0 + 0.5) / 255.0
    return lr
