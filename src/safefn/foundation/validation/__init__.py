"""Validation adapters and the per-invocation lazy validation cache."""

from .adapters import (
    BaseValidator,
    FunctionValidator,
    PydanticValidator,
    TupleValidator,
    as_tuple_validator,
    as_validator,
)
from .lazy import LazyValidator, ValidationKind

__all__ = [
    # Adapters
    "BaseValidator", "PydanticValidator", "FunctionValidator", "TupleValidator",
    "as_validator", "as_tuple_validator",
    # Lazy access
    "LazyValidator", "ValidationKind",
]
