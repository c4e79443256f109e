"""safefn - Validated, middleware-wrapped async functions with error recovery.

Wrap a handler with input/output validation, an onion-style middleware chain
that accumulates context, and an error hook that can rethrow, transform or
recover from failures.

Quick Start:
    >>> from safefn import create_client
    >>>
    >>> client = create_client()
    >>>
    >>> @client.input(str).handler
    ... async def shout(p):
    ...     return p.input.upper()
    >>>
    >>> await shout("hi")
    'HI'

Middleware:
    >>> from safefn import middleware
    >>>
    >>> @middleware
    ... async def with_user(p):
    ...     return await p.next(context={"user": "ana"})
    >>>
    >>> greet = client.use(with_user).handler(lambda p: f"hi {p.ctx['user']}")

Error Recovery:
    >>> from safefn import Ok
    >>>
    >>> safe = client.on_error(lambda env: Ok("fallback")).handler(flaky)
    >>> await safe()
    'fallback'
"""

from __future__ import annotations

__version__ = "0.1.0"

# Core
from .core import BoundSafeFn, ContextualSafeFn, SafeFn, SafeFnClient, create_client

# Errors
from .foundation.errors import (
    ConfigurationError,
    Err,
    ErrorCode,
    ErrorKind,
    InvocationTimeoutError,
    Issue,
    MiddlewareContractError,
    Ok,
    Result,
    SafeFnError,
    SchemaValidationError,
    UsageError,
    classify_exception,
)

# Config
from .foundation.config import SafeFnSettings, clear_settings_cache, get_settings

# Validation
from .foundation.validation import BaseValidator, FunctionValidator, PydanticValidator, TupleValidator, as_validator

# Middleware
from .runtime.middleware import Context, HandlerParams, MiddlewareParams, MiddlewareResult, middleware
from .runtime.middleware.plugins import ContextProviderMiddleware, LoggingMiddleware, TimeoutMiddleware

# Recovery
from .runtime.recovery import ErrorEnvelope, RecoveryState, default_error_hook

# Logging
from .runtime.observability import configure_logging, get_logger, log_context

__all__ = [
    "__version__",
    # Core
    "SafeFn", "ContextualSafeFn", "BoundSafeFn", "SafeFnClient", "create_client",
    # Errors
    "SafeFnError", "ConfigurationError", "SchemaValidationError", "UsageError",
    "MiddlewareContractError", "InvocationTimeoutError", "ErrorCode", "ErrorKind",
    "Issue", "classify_exception", "Result", "Ok", "Err",
    # Config
    "SafeFnSettings", "get_settings", "clear_settings_cache",
    # Validation
    "BaseValidator", "PydanticValidator", "FunctionValidator", "TupleValidator", "as_validator",
    # Middleware
    "Context", "MiddlewareParams", "MiddlewareResult", "HandlerParams", "middleware",
    "ContextProviderMiddleware", "LoggingMiddleware", "TimeoutMiddleware",
    # Recovery
    "ErrorEnvelope", "RecoveryState", "default_error_hook",
    # Logging
    "configure_logging", "get_logger", "log_context",
]
