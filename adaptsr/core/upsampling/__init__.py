"""
ADAPTSR Upsampling Methods

Reference resamplers for images. Each method takes an image and a scale
factor and returns the upsampled image.
"""

from .registry import (
    register_upsampling,
    get_upsampling,
    list_upsamplings,
    run_upsampling,
    get_all_methods_info,
    UPSAMPLING_REGISTRY,
    UpsamplingMethod
)

# Import methods to register them
from . import methods

__all__ = [
    'register_upsampling',
    'get_upsampling',
    'list_upsamplings',
    'run_upsampling',
    'get_all_methods_info',
    'UPSAMPLING_REGISTRY',
    'UpsamplingMethod'
]
