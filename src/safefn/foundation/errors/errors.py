"""Error taxonomy for wrapped-function invocation.

Every error the engine raises on its own behalf derives from `SafeFnError`
and carries an `ErrorCode` for programmatic handling. Validation failures
carry structured `Issue` records (see `types.py`).
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from typing import TYPE_CHECKING, Self

from .types import Issue, issue, validate_issue

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from pydantic import ValidationError


class ErrorCode(StrEnum):
    """Standard error codes for invocation failures."""
    CONFIGURATION = "CONFIGURATION"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_OUTPUT = "INVALID_OUTPUT"
    INVALID_METADATA = "INVALID_METADATA"
    INVALID_CONTEXT = "INVALID_CONTEXT"
    USAGE = "USAGE"
    MIDDLEWARE_CONTRACT = "MIDDLEWARE_CONTRACT"
    TIMEOUT = "TIMEOUT"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    HANDLER_ERROR = "HANDLER_ERROR"
    UNKNOWN = "UNKNOWN"


class ErrorKind(StrEnum):
    """Where in the invocation an error originated. Exposed on the error envelope."""
    VALIDATION = "validation"
    CONTEXT = "context"
    MIDDLEWARE = "middleware"
    HANDLER = "handler"


# Validation target -> code
_TARGET_CODES: dict[str, ErrorCode] = {
    "input": ErrorCode.INVALID_INPUT,
    "args": ErrorCode.INVALID_INPUT,
    "output": ErrorCode.INVALID_OUTPUT,
    "metadata": ErrorCode.INVALID_METADATA,
    "context": ErrorCode.INVALID_CONTEXT,
}

# Ordered pattern -> code mapping, matched against "<ExcName> <message>"
_PATTERN_CODES: dict[str, ErrorCode] = {
    "timeout": ErrorCode.TIMEOUT,
    "permission": ErrorCode.PERMISSION_DENIED,
    "forbidden": ErrorCode.PERMISSION_DENIED,
    "unauthorized": ErrorCode.PERMISSION_DENIED,
    "notfound": ErrorCode.NOT_FOUND,
    "not found": ErrorCode.NOT_FOUND,
    "keyerror": ErrorCode.NOT_FOUND,
    "validation": ErrorCode.INVALID_INPUT,
    "valueerror": ErrorCode.INVALID_INPUT,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES.keys())


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.HANDLER_ERROR


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map an exception to an error code. Engine errors report their own code."""
    if isinstance(exc, SafeFnError):
        return exc.code
    return _classify_cached(f"{type(exc).__name__} {exc}")


class SafeFnError(Exception):
    """Base class for errors raised by the engine itself."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ConfigurationError(SafeFnError):
    """Wrap-time misconfiguration: missing handler, malformed validator, conflicting modes."""

    code = ErrorCode.CONFIGURATION


class UsageError(SafeFnError):
    """Raised at the call site of `valid()` when the requested kind has no validator."""

    code = ErrorCode.USAGE


class MiddlewareContractError(SafeFnError):
    """A middleware returned something other than a `MiddlewareResult` or None."""

    code = ErrorCode.MIDDLEWARE_CONTRACT


class InvocationTimeoutError(SafeFnError):
    """Raised by `TimeoutMiddleware` when the downstream chain exceeds its budget."""

    code = ErrorCode.TIMEOUT

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Execution timed out after {timeout}s")
        self.timeout = timeout


class SchemaValidationError(SafeFnError):
    """A value failed its configured validator.

    Attributes:
        issues: Structured issue records, in the order the validator reported them
        target: Which slot failed ("input", "args", "output", "metadata", "context"),
            or None when raised outside the engine
    """

    code = ErrorCode.INVALID_INPUT

    def __init__(self, issues: Iterable[Issue | Mapping[str, object]], *, target: str | None = None) -> None:
        self.issues: tuple[Issue, ...] = tuple(i if isinstance(i, Issue) else validate_issue(dict(i)) for i in issues)
        self.target = target
        first = self.issues[0].message if self.issues else "Validation failed"
        super().__init__(first, code=_TARGET_CODES.get(target or "", ErrorCode.INVALID_INPUT))

    @classmethod
    def single(cls, message: str, *, path: tuple[str | int, ...] = (), code: str = "invalid") -> Self:
        """Build from one message."""
        return cls([issue(message, path=path, code=code)])

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> Self:
        """Convert a pydantic ValidationError, keeping loc/type/msg per error."""
        return cls(issue(e["msg"], path=tuple(e["loc"]), code=e["type"]) for e in exc.errors())

    def with_target(self, target: str) -> Self:
        """Tag the slot that failed unless already tagged. Returns self."""
        if self.target is None:
            self.target = target
            self.code = _TARGET_CODES.get(target, self.code)
        return self

    def prefixed(self, *prefix: str | int) -> tuple[Issue, ...]:
        """Issues with `prefix` prepended to each path (used for positional args)."""
        return tuple(i.model_copy(update={"path": (*prefix, *i.path)}) for i in self.issues)

    def __str__(self) -> str:
        if len(self.issues) <= 1:
            return self.message
        return "; ".join(str(i) for i in self.issues)
