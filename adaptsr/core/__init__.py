"""
ADAPTSR Core Library

Geometric mapping, interpolation kernels, local-contrast analysis and
adaptive weight composition for generating super-resolution training
pairs, plus the reference resamplers built from the same pieces.
"""

__version__ = "0.1.0"

# Configuration and errors
from .config import (
    ResampleConfig,
    GeneratorConfig,
    KernelKind,
    LumaStandard,
    OffsetConvention,
    ContrastMode,
)
from .errors import (
    AdaptSRError,
    MalformedInputError,
    ValidationError,
    ShapeMismatchError,
    NumericalAnomalyError,
    DegenerateWeightsError,
)

# Components
from .geometry import GeometricMapper, MappedCoordinate
from .contrast import ContrastAnalyzer, RegionClass
from .compositor import WeightCompositor
from .resampler import NeighborhoodResampler
from .serializer import write_field, write_fields, read_field, FieldStreamWriter

# Pipelines
from .generator import TrainingPairGenerator, generate_dataset
from .validation import validate_dataset

__all__ = [
    '__version__',
    'ResampleConfig',
    'GeneratorConfig',
    'KernelKind',
    'LumaStandard',
    'OffsetConvention',
    'ContrastMode',
    'AdaptSRError',
    'MalformedInputError',
    'ValidationError',
    'ShapeMismatchError',
    'NumericalAnomalyError',
    'DegenerateWeightsError',
    'GeometricMapper',
    'MappedCoordinate',
    'ContrastAnalyzer',
    'RegionClass',
    'WeightCompositor',
    'NeighborhoodResampler',
    'write_field',
    'write_fields',
    'read_field',
    'FieldStreamWriter',
    'TrainingPairGenerator',
    'generate_dataset',
    'validate_dataset',
]
