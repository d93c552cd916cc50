#!/usr/bin/env python3
"""
ADAPTSR Upsampling Registry

Named reference resamplers. Each method takes an (H, W) or (H, W, C)
image plus a scale and keyword parameters and returns the upsampled image
in the input's dtype.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np


@dataclass
class UpsamplingMethod:
    """A registered reference resampler.

    Attributes:
        name: Unique identifier (used for output file names)
        func: Callable ``func(image, scale, **params)``
        category: Grouping for listings ('interpolation', 'adaptive')
        default_params: Default parameter values
        param_ranges: Values worth sweeping, per parameter
        preserves: What the method keeps intact
        introduces: Typical artifacts
        description: Human-readable description
    """
    name: str
    func: Callable
    category: str
    default_params: Dict[str, Any] = field(default_factory=dict)
    param_ranges: Dict[str, List[Any]] = field(default_factory=dict)
    preserves: str = ""
    introduces: str = ""
    description: str = ""

    def run(self, image: np.ndarray, scale: float,
            params: Optional[Dict[str, Any]] = None) -> np.ndarray:
        effective_params = {**self.default_params}
        if params:
            effective_params.update(params)
        return self.func(image, scale, **effective_params)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'category': self.category,
            'default_params': self.default_params,
            'param_ranges': self.param_ranges,
            'preserves': self.preserves,
            'introduces': self.introduces,
            'description': self.description
        }


UPSAMPLING_REGISTRY: Dict[str, UpsamplingMethod] = {}


def register_upsampling(
    name: str,
    category: str,
    default_params: Optional[Dict[str, Any]] = None,
    param_ranges: Optional[Dict[str, List[Any]]] = None,
    preserves: str = "",
    introduces: str = ""
) -> Callable:
    """Decorator registering a resampler under ``name``.

    Usage:
        @register_upsampling(name='bilinear', category='interpolation')
        def upsample_bilinear(image, scale):
            ...
    """
    def decorator(func: Callable) -> Callable:
        if name in UPSAMPLING_REGISTRY:
            raise ValueError(f"upsampling method '{name}' is already registered")
        UPSAMPLING_REGISTRY[name] = UpsamplingMethod(
            name=name,
            func=func,
            category=category,
            default_params=dict(default_params or {}),
            param_ranges=dict(param_ranges or {}),
            preserves=preserves,
            introduces=introduces,
            description=(func.__doc__ or "").strip().split("\n")[0]
        )
        return func
    return decorator


def get_upsampling(name: str) -> UpsamplingMethod:
    """Look up a method by name.

    Raises:
        KeyError: unknown method (message lists the available names)
    """
    try:
        return UPSAMPLING_REGISTRY[name]
    except KeyError:
        raise KeyError(f"unknown upsampling method '{name}'; "
                       f"available: {', '.join(list_upsamplings())}") from None


def list_upsamplings(category: Optional[str] = None) -> List[str]:
    return sorted(
        name for name, m in UPSAMPLING_REGISTRY.items()
        if category is None or m.category == category
    )


def run_upsampling(name: str, image: np.ndarray, scale: float,
                   params: Optional[Dict[str, Any]] = None) -> np.ndarray:
    return get_upsampling(name).run(image, scale, params)


def get_all_methods_info() -> Dict[str, Dict[str, Any]]:
    return {name: UPSAMPLING_REGISTRY[name].to_dict() for name in list_upsamplings()}
