"""Wrapped functions: validate, run the middleware chain, recover from errors.

Three callable shapes share one invocation path:

- `SafeFn`: directly callable. Object mode `await fn(input, context=...)`,
  args mode `await fn(*args)`.
- `ContextualSafeFn`: requires an explicit context; call
  `fn.with_context(ctx)` to get a `BoundSafeFn`.
- `BoundSafeFn`: a contextual function bound to one context. `bound(...)` and
  `bound.execute(...)` are the same.

Example:
    >>> async def greet(p):
    ...     return f"hi {p.input}"
    >>> fn = SafeFn(greet, input=str)
    >>> await fn("ana")
    'hi ana'
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from safefn.foundation.errors import (
    ConfigurationError,
    ErrorKind,
    MiddlewareContractError,
    SchemaValidationError,
    UsageError,
)
from safefn.foundation.validation import BaseValidator, LazyValidator, as_tuple_validator, as_validator
from safefn.runtime.middleware import (
    EMPTY_CONTEXT,
    Chain,
    Context,
    Handler,
    Middleware,
    defers_validation,
    freeze_metadata,
)
from safefn.runtime.recovery import ErrorEnvelope, ErrorHook, Recovery, default_error_hook


def validate_metadata(metadata: Any, schema: object) -> Any:
    """Validate metadata once, at configuration time. Async validators are rejected."""
    validator = as_validator(schema)
    if validator is None or metadata is None:
        return freeze_metadata(metadata)
    if validator.is_async:
        raise ConfigurationError("Metadata validators must be synchronous")
    try:
        value = validator.parse(metadata)
    except SchemaValidationError as e:
        raise e.with_target("metadata")
    if inspect.isawaitable(value):
        if inspect.iscoroutine(value):
            value.close()
        raise ConfigurationError("Metadata validators must be synchronous")
    return freeze_metadata(value)


def _context_mapping(value: Any) -> Mapping[str, Any]:
    match value:
        case None:
            return EMPTY_CONTEXT
        case Mapping():
            return value
        case BaseModel():
            return dict(value)
    raise SchemaValidationError.single(
        f"Context must be a mapping, got {type(value).__name__}", code="context_type"
    ).with_target("context")


class SafeFn:
    """A handler wrapped with validation, middleware and error recovery.

    Args:
        handler: `handler(HandlerParams) -> output`, sync or async
        middleware: Applied in order, first = outermost
        input: Input schema (object mode)
        args: Per-position schemas (args mode); `None` entries pass through.
            An empty sequence selects args mode without validation.
        output: Output schema, applied to handler output and recovered data
        metadata: Per-function metadata, validated once against `metadata_schema`
        default_context: Base context; caller-supplied keys win over it
        on_error: Error hook, sync or async (default logs and rethrows)

    Configuration is frozen at construction.
    """

    __slots__ = (
        "_handler", "_middleware", "_input", "_args_mode", "_output", "_metadata",
        "_default_context", "_context_validator", "_on_error", "_eager", "name",
    )

    def __init__(
        self,
        handler: Handler,
        *,
        middleware: Sequence[Middleware] = (),
        input: object = None,  # noqa: A002
        args: Sequence[object] | None = None,
        output: object = None,
        metadata: Any = None,
        metadata_schema: object = None,
        default_context: Mapping[str, Any] | None = None,
        on_error: ErrorHook = default_error_hook,
    ) -> None:
        if not callable(handler):
            raise ConfigurationError(f"Handler must be callable, got {type(handler).__name__}")
        if input is not None and args is not None:
            raise ConfigurationError("Configure either input or args, not both")
        self._handler = handler
        self._middleware: tuple[Middleware, ...] = tuple(middleware)
        self._args_mode = args is not None
        self._input: BaseValidator | None = as_tuple_validator(args) if args is not None else as_validator(input)
        self._output = as_validator(output)
        self._metadata = validate_metadata(metadata, metadata_schema)
        self._default_context = Context(default_context)
        self._context_validator: BaseValidator | None = None
        self._on_error = on_error
        self._eager = self._input is not None and not any(defers_validation(m) for m in self._middleware)
        self.name: str = getattr(handler, "__name__", type(self).__name__)

    @property
    def metadata(self) -> Any:
        return self._metadata

    @property
    def args_mode(self) -> bool:
        return self._args_mode

    @property
    def middleware(self) -> tuple[Middleware, ...]:
        return self._middleware

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if self._args_mode:
            if kwargs:
                raise TypeError(f"{self.name}() takes positional arguments only in args mode")
            return await self._invoke(args, args, None)
        raw_input, context = _bind_object_call(*args, **kwargs)
        return await self._invoke(raw_input, None, context)

    async def _invoke(self, raw_input: Any, raw_args: tuple[Any, ...] | None, context: Any) -> Any:
        valid = LazyValidator(raw_input, self._input, args_mode=self._args_mode)
        chain = Chain(
            self._middleware, self._handler, self._default_context, valid,
            raw_input=raw_input, raw_args=raw_args, metadata=self._metadata, args_mode=self._args_mode,
        )
        stage: ErrorKind | None = ErrorKind.CONTEXT
        try:
            chain.ctx = self._default_context.merge(await self._validate_context(context))
            stage = ErrorKind.VALIDATION
            if self._eager:
                await valid.resolve()
            stage = None
            result = await chain.run()
            if not result.success:
                raise result.error or _unfinished_chain()
            return await self._validate_output(result.output)
        except UsageError:
            raise
        except Exception as e:
            envelope = ErrorEnvelope(
                error=e, ctx=chain.ctx, metadata=self._metadata, raw_input=raw_input,
                raw_args=raw_args, valid=valid, kind=stage or _failure_kind(e, chain),
            )
            recovered = await Recovery(self._on_error).handle(envelope)
        return await self._validate_output(recovered)

    async def _validate_context(self, context: Any) -> Mapping[str, Any]:
        if self._context_validator is None:
            return _context_mapping(context)
        try:
            value = self._context_validator.parse(context)
            if inspect.isawaitable(value):
                value = await value
        except SchemaValidationError as e:
            raise e.with_target("context")
        return _context_mapping(value)

    async def _validate_output(self, output: Any) -> Any:
        if self._output is None:
            return output
        try:
            value = self._output.parse(output)
            return await value if inspect.isawaitable(value) else value
        except SchemaValidationError as e:
            raise e.with_target("output")

    def __repr__(self) -> str:
        mode = "args" if self._args_mode else "input"
        return f"{type(self).__name__}({self.name!r}, mode={mode}, middleware={len(self._middleware)})"


class ContextualSafeFn(SafeFn):
    """A SafeFn that must be given an explicit context before it can run.

    The context is validated against `context_schema` (if any) on every call,
    then merged over the default context.

    Example:
        >>> fn = ContextualSafeFn(handler, context_schema=Session)
        >>> await fn.with_context({"user_id": 7})(payload)
    """

    __slots__ = ()

    def __init__(self, handler: Handler, *, context_schema: object = None, **kwargs: Any) -> None:
        super().__init__(handler, **kwargs)
        self._context_validator = as_validator(context_schema)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:  # type: ignore[override]
        raise TypeError(f"{self.name}() requires a context; call with_context(ctx) first")

    def with_context(self, context: Any) -> BoundSafeFn:
        return BoundSafeFn(self, context)


class BoundSafeFn:
    """A contextual function bound to one explicit context."""

    __slots__ = ("_fn", "_context")

    def __init__(self, fn: ContextualSafeFn, context: Any) -> None:
        self._fn = fn
        self._context = context

    @property
    def context(self) -> Any:
        return self._context

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        fn = self._fn
        if fn.args_mode:
            if kwargs:
                raise TypeError(f"{fn.name}() takes positional arguments only in args mode")
            return await fn._invoke(args, args, self._context)
        return await fn._invoke(_bind_bound_call(*args, **kwargs), None, self._context)

    execute = __call__

    def __repr__(self) -> str:
        return f"BoundSafeFn({self._fn!r}, context={self._context!r})"


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _bind_object_call(input: Any = None, context: Any = None) -> tuple[Any, Any]:  # noqa: A002
    return input, context


def _bind_bound_call(input: Any = None) -> Any:  # noqa: A002
    return input


def _failure_kind(error: Exception, chain: Chain) -> ErrorKind:
    if chain.handler_error is error:
        return ErrorKind.HANDLER
    if isinstance(error, SchemaValidationError):
        return ErrorKind.VALIDATION
    return ErrorKind.MIDDLEWARE


def _unfinished_chain() -> MiddlewareContractError:
    return MiddlewareContractError(
        "Middleware chain finished without a result; call next() or return a MiddlewareResult"
    )
