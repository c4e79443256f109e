"""Runtime layer: middleware chain, error recovery and observability."""

from .middleware import (
    Chain,
    Context,
    FunctionMiddleware,
    HandlerParams,
    Middleware,
    MiddlewareParams,
    MiddlewareResult,
    middleware,
)
from .middleware.plugins import ContextProviderMiddleware, LoggingMiddleware, TimeoutMiddleware
from .recovery import ErrorEnvelope, ErrorHook, Recovery, RecoveryState, default_error_hook

__all__ = [
    # Middleware
    "Context", "MiddlewareParams", "MiddlewareResult", "HandlerParams", "Middleware",
    "FunctionMiddleware", "middleware", "Chain",
    # Plugins
    "ContextProviderMiddleware", "LoggingMiddleware", "TimeoutMiddleware",
    # Recovery
    "ErrorEnvelope", "ErrorHook", "Recovery", "RecoveryState", "default_error_hook",
]
