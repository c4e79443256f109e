"""Middleware types and the onion-pattern chain executor.

Built-in middleware live in `safefn.runtime.middleware.plugins`.
"""

from .chain import Chain, middleware_name
from .middleware import (
    EMPTY_CONTEXT,
    Context,
    FunctionMiddleware,
    Handler,
    HandlerParams,
    Middleware,
    MiddlewareParams,
    MiddlewareResult,
    Next,
    Valid,
    defers_validation,
    freeze_metadata,
    middleware,
)

__all__ = [
    # Types
    "Context", "EMPTY_CONTEXT", "MiddlewareParams", "MiddlewareResult", "HandlerParams",
    "Middleware", "Handler", "Next", "Valid",
    # Declaration
    "middleware", "FunctionMiddleware", "defers_validation", "freeze_metadata",
    # Execution
    "Chain", "middleware_name",
]
