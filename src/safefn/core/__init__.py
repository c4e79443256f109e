"""Core API: wrapped functions and the client builder."""

from .client import ClientConfig, SafeFnClient, create_client
from .function import BoundSafeFn, ContextualSafeFn, SafeFn, validate_metadata

__all__ = [
    "SafeFn", "ContextualSafeFn", "BoundSafeFn", "validate_metadata",
    "SafeFnClient", "ClientConfig", "create_client",
]
