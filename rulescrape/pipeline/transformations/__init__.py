"""Named value transformations applied to extracted fields."""

from .pipeline import TransformationPipeline
from .registry import (
    BoundTransformation,
    RegisteredTransformation,
    TransformationError,
    TransformationRegistry,
    UnknownTransformationError,
    get_default_registry,
    normalize_name,
    register_transformation,
)

__all__ = [
    "BoundTransformation",
    "RegisteredTransformation",
    "TransformationError",
    "TransformationPipeline",
    "TransformationRegistry",
    "UnknownTransformationError",
    "get_default_registry",
    "normalize_name",
    "register_transformation",
]
