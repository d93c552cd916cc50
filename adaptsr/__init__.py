"""
ADAPTSR - Adaptive Kernel-Weight Super-Resolution Data

Training-pair generation for networks that predict per-pixel interpolation
weights instead of pixels.
"""

__version__ = "0.1.0"

# Re-export core components for convenience
from adaptsr.core import (
    ResampleConfig,
    GeneratorConfig,
    GeometricMapper,
    ContrastAnalyzer,
    WeightCompositor,
    NeighborhoodResampler,
    TrainingPairGenerator,
    generate_dataset,
    validate_dataset,
)

__all__ = [
    '__version__',
    'ResampleConfig',
    'GeneratorConfig',
    'GeometricMapper',
    'ContrastAnalyzer',
    'WeightCompositor',
    'NeighborhoodResampler',
    'TrainingPairGenerator',
    'generate_dataset',
    'validate_dataset',
]
