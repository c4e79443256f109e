"""Unified error handling for safefn.

- ErrorCode/ErrorKind: Error classification for hooks and logs
- SafeFnError and subclasses: Configuration, validation, usage and contract errors
- Issue: Structured validation issue records
- Result/Ok/Err: Structured recovery values returned by error hooks
"""

from .errors import (
    ConfigurationError,
    ErrorCode,
    ErrorKind,
    InvocationTimeoutError,
    MiddlewareContractError,
    SafeFnError,
    SchemaValidationError,
    UsageError,
    classify_exception,
)
from .result import Err, Ok, Result
from .types import Issue, JsonDict, JsonPrimitive, JsonValue, PathSegment, issue, validate_issue

__all__ = [
    # Classification
    "ErrorCode", "ErrorKind", "classify_exception",
    # Errors
    "SafeFnError", "ConfigurationError", "SchemaValidationError", "UsageError",
    "MiddlewareContractError", "InvocationTimeoutError",
    # Issues
    "Issue", "issue", "validate_issue", "PathSegment",
    # Recovery values
    "Result", "Ok", "Err",
    # JSON aliases
    "JsonDict", "JsonPrimitive", "JsonValue",
]
