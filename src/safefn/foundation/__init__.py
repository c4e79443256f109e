"""Foundation layer: errors, configuration and validation.

Nothing in here depends on the runtime (middleware, recovery, logging).
"""

from .config import ExecutionSettings, LoggingSettings, SafeFnSettings, clear_settings_cache, get_settings
from .errors import (
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
from .validation import (
    BaseValidator,
    FunctionValidator,
    LazyValidator,
    PydanticValidator,
    TupleValidator,
    as_tuple_validator,
    as_validator,
)

__all__ = [
    # Config
    "SafeFnSettings", "LoggingSettings", "ExecutionSettings", "get_settings", "clear_settings_cache",
    # Errors
    "ErrorCode", "ErrorKind", "classify_exception", "SafeFnError", "ConfigurationError",
    "SchemaValidationError", "UsageError", "MiddlewareContractError", "InvocationTimeoutError", "Issue",
    "Result", "Ok", "Err",
    # Validation
    "BaseValidator", "PydanticValidator", "FunctionValidator", "TupleValidator",
    "as_validator", "as_tuple_validator", "LazyValidator",
]
