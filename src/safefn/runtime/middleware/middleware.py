"""Core middleware types: context, call parameters and the result record.

Middleware follows the onion pattern: each middleware receives a
`MiddlewareParams` whose `next` continues into the rest of the chain and
returns the shared `MiddlewareResult`. Code before `await next()` runs on
the way in (registration order), code after it on the way out (reverse order).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, overload, runtime_checkable

if TYPE_CHECKING:
    from safefn.foundation.validation import LazyValidator


class Context(Mapping[str, Any]):
    """Immutable request context threaded through the chain.

    Never mutated in place. `merge()` returns a new Context where the
    update's top-level keys win.

    Example:
        >>> ctx = Context({"user": "ana"})
        >>> ctx.merge({"step": 1})["step"]
        1
        >>> ctx == {"user": "ana"}
        True
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data) if data else {}

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def merge(self, update: Mapping[str, Any] | None) -> Context:
        """New context with `update` layered on top. Shallow: nested values are replaced, not merged."""
        if not update:
            return self
        return Context({**self._data, **update})

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def __repr__(self) -> str:
        return f"Context({self._data!r})"


EMPTY_CONTEXT = Context()


@dataclass(slots=True)
class MiddlewareResult:
    """Outcome of the downstream chain.

    One record is shared per invocation. A middleware that returns a
    MiddlewareResult has it copied into the shared record, so outer layers
    observe transformed output and short-circuits. A `context` of None keeps
    the shared record's context.
    """

    output: Any = None
    context: Context | None = None
    success: bool = False
    error: BaseException | None = None

    @classmethod
    def ok(cls, output: Any, context: Mapping[str, Any] | None = None) -> MiddlewareResult:
        """Successful result, typically used to short-circuit the chain."""
        return cls(output=output, context=None if context is None else Context(context), success=True)

    @classmethod
    def fail(cls, error: BaseException) -> MiddlewareResult:
        """Failed result; the invocation raises `error` unless recovered."""
        return cls(error=error)

    def absorb(self, other: MiddlewareResult) -> None:
        """Copy another result into this (shared) record."""
        self.output, self.success, self.error = other.output, other.success, other.error
        if other.context is not None:
            self.context = other.context


class Next(Protocol):
    """Continuation into the downstream chain. `context` is merged into the working context first."""

    def __call__(self, context: Mapping[str, Any] | None = None) -> Awaitable[MiddlewareResult]: ...


class Valid(Protocol):
    """On-demand validated input access (see LazyValidator)."""

    def __call__(self, kind: str) -> Awaitable[Any]: ...


@dataclass(slots=True, frozen=True)
class MiddlewareParams:
    """Everything a middleware sees for one step of the chain."""

    raw_input: Any
    raw_args: tuple[Any, ...] | None
    ctx: Context
    metadata: Any
    next: Next
    valid: LazyValidator | Valid


@dataclass(slots=True, frozen=True)
class HandlerParams:
    """Handler call parameters. In args mode `input` and `args` are the same validated tuple."""

    ctx: Context
    input: Any
    args: tuple[Any, ...] | None
    metadata: Any


@runtime_checkable
class Middleware(Protocol):
    """Protocol for invocation middleware.

    Return None to pass through whatever the shared record holds, or a
    MiddlewareResult to replace it. Sync and async implementations both work.

    Example:
        >>> class Timing:
        ...     async def __call__(self, params):
        ...         start = time.perf_counter()
        ...         result = await params.next()
        ...         print(time.perf_counter() - start)
        ...         return result
    """

    def __call__(self, params: MiddlewareParams) -> Any: ...


Handler = Callable[[HandlerParams], Any]


@dataclass(slots=True, frozen=True)
class FunctionMiddleware:
    """Plain function adapted to the Middleware protocol.

    `defers_validation=True` asks the engine not to validate input before the
    chain starts, so the middleware can inspect raw input first.
    """

    fn: Callable[[MiddlewareParams], Any]
    defers_validation: bool = False

    def __call__(self, params: MiddlewareParams) -> Any:
        return self.fn(params)

    @property
    def name(self) -> str:
        return getattr(self.fn, "__name__", type(self.fn).__name__)


@overload
def middleware(fn: Callable[[MiddlewareParams], Any], *, defer_validation: bool = ...) -> FunctionMiddleware: ...
@overload
def middleware(fn: None = None, *, defer_validation: bool = ...) -> Callable[[Callable[[MiddlewareParams], Any]], FunctionMiddleware]: ...


def middleware(
    fn: Callable[[MiddlewareParams], Any] | None = None,
    *,
    defer_validation: bool = False,
) -> FunctionMiddleware | Callable[[Callable[[MiddlewareParams], Any]], FunctionMiddleware]:
    """Declare a middleware from a function. Works with or without arguments.

    Example:
        >>> @middleware
        ... async def audit(params):
        ...     return await params.next(context={"audited": True})
        >>>
        >>> @middleware(defer_validation=True)
        ... async def sniff(params):
        ...     if params.raw_input is None:
        ...         return MiddlewareResult.ok("empty")
        ...     return await params.next()
    """
    def wrap(f: Callable[[MiddlewareParams], Any]) -> FunctionMiddleware:
        return FunctionMiddleware(f, defers_validation=defer_validation)
    return wrap(fn) if fn is not None else wrap


def defers_validation(mw: object) -> bool:
    return bool(getattr(mw, "defers_validation", False))


def freeze_metadata(value: Any) -> Any:
    """Read-only view for mapping metadata; other values are returned as-is."""
    if isinstance(value, Mapping) and not isinstance(value, MappingProxyType):
        return MappingProxyType(dict(value))
    return value
