"""Validator adapters: one `parse(raw)` contract over pluggable validation.

Adapter selection is explicit and happens once at configuration time via
`as_validator()`. Nothing is probed per call.

Supported schema forms:
- pydantic models, builtins, `Annotated[...]`, generic aliases, `TypeAdapter`
- plain callables (sync or async) that return the parsed value or raise
- `BaseValidator` subclasses for anything custom

Example:
    >>> v = as_validator(int)
    >>> v.parse("42")
    42
    >>> as_validator(None) is None
    True
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, get_origin

from pydantic import TypeAdapter, ValidationError

from safefn.foundation.errors import ConfigurationError, Issue, SchemaValidationError

# Errors a FunctionValidator treats as "value rejected"
_REJECTION_ERRORS: tuple[type[Exception], ...] = (ValueError, TypeError, AssertionError)


class BaseValidator(ABC):
    """Validation capability. `parse` returns the validated value or raises
    `SchemaValidationError`. May return an awaitable for async validators."""

    __slots__ = ()

    @abstractmethod
    def parse(self, raw: object) -> object | Awaitable[object]: ...

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.parse)


class PydanticValidator(BaseValidator):
    """Validates through a pydantic `TypeAdapter`."""

    __slots__ = ("schema", "_adapter")

    def __init__(self, schema: Any) -> None:
        self.schema = schema
        self._adapter: TypeAdapter[Any] = schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)

    def parse(self, raw: object) -> object:
        try:
            return self._adapter.validate_python(raw)
        except ValidationError as e:
            raise SchemaValidationError.from_pydantic(e) from e

    def __repr__(self) -> str:
        return f"PydanticValidator({getattr(self.schema, '__name__', self.schema)!r})"


class FunctionValidator(BaseValidator):
    """Wraps a callable `fn(raw) -> value`. Sync and async callables both work.

    `ValueError`, `TypeError` and `AssertionError` are reported as validation
    failures; other exceptions propagate unchanged.
    """

    __slots__ = ("fn", "_is_async")

    def __init__(self, fn: Callable[[object], object]) -> None:
        self.fn = fn
        self._is_async = inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(getattr(fn, "__call__", None))

    @property
    def is_async(self) -> bool:
        return self._is_async

    def parse(self, raw: object) -> object | Awaitable[object]:
        if self._is_async:
            return self._parse_async(raw)
        try:
            value = self.fn(raw)
        except SchemaValidationError:
            raise
        except _REJECTION_ERRORS as e:
            raise SchemaValidationError.single(str(e) or type(e).__name__) from e
        # Callables returning awaitables without being coroutine functions
        return self._settle(value) if inspect.isawaitable(value) else value

    async def _parse_async(self, raw: object) -> object:
        return await self._settle(self.fn(raw))

    async def _settle(self, pending: Awaitable[object]) -> object:
        try:
            return await pending
        except SchemaValidationError:
            raise
        except _REJECTION_ERRORS as e:
            raise SchemaValidationError.single(str(e) or type(e).__name__) from e

    def __repr__(self) -> str:
        return f"FunctionValidator({getattr(self.fn, '__name__', self.fn)!r})"


class TupleValidator(BaseValidator):
    """Positional validator for args mode.

    Checks the argument count, then validates each position in order. A `None`
    slot passes its argument through untouched. Issues from every failing
    position are collected, each path prefixed with the position index.
    """

    __slots__ = ("validators",)

    def __init__(self, validators: Sequence[BaseValidator | None]) -> None:
        self.validators = tuple(validators)

    @property
    def is_async(self) -> bool:
        return any(v is not None and v.is_async for v in self.validators)

    def parse(self, raw: object) -> object | Awaitable[object]:
        args = self._check_count(raw)
        if self.is_async:
            return self._parse_async(args)
        values: list[object] = []
        issues: list[Issue] = []
        for i, (v, arg) in enumerate(zip(self.validators, args)):
            try:
                value = arg if v is None else v.parse(arg)
            except SchemaValidationError as e:
                issues.extend(e.prefixed(i))
                continue
            if inspect.isawaitable(value):
                return self._parse_async(args, i, value, values, issues)
            values.append(value)
        if issues:
            raise SchemaValidationError(issues)
        return tuple(values)

    async def _parse_async(
        self,
        args: tuple[object, ...],
        start: int = 0,
        pending: Awaitable[object] | None = None,
        values: list[object] | None = None,
        issues: list[Issue] | None = None,
    ) -> tuple[object, ...]:
        values = [] if values is None else values
        issues = [] if issues is None else issues
        for i in range(start, len(args)):
            v, arg = self.validators[i], args[i]
            try:
                if i == start and pending is not None:
                    value: object = pending
                else:
                    value = arg if v is None else v.parse(arg)
                values.append(await value if inspect.isawaitable(value) else value)
            except SchemaValidationError as e:
                issues.extend(e.prefixed(i))
        if issues:
            raise SchemaValidationError(issues)
        return tuple(values)

    def _check_count(self, raw: object) -> tuple[object, ...]:
        args = tuple(raw) if isinstance(raw, (tuple, list)) else (raw,)
        if len(args) != len(self.validators):
            raise SchemaValidationError.single(
                f"Expected {len(self.validators)} arguments, but got {len(args)}", code="arguments_count"
            )
        return args

    def __repr__(self) -> str:
        return f"TupleValidator({list(self.validators)!r})"


# ─────────────────────────────────────────────────────────────────────────────
# Selection
# ─────────────────────────────────────────────────────────────────────────────


def as_validator(schema: object) -> BaseValidator | None:
    """Select the adapter for `schema`. Raises ConfigurationError if none fits."""
    match schema:
        case None:
            return None
        case BaseValidator():
            return schema
        case TypeAdapter() | type():
            return PydanticValidator(schema)
        case _ if get_origin(schema) is not None:
            return PydanticValidator(schema)
        case _ if callable(schema):
            return FunctionValidator(schema)  # type: ignore[arg-type]
    raise ConfigurationError(f"Unsupported validator: {schema!r}")


def as_tuple_validator(schemas: Sequence[object]) -> TupleValidator | None:
    """Build the args-mode validator. No schemas at all means no validator."""
    if not schemas:
        return None
    return TupleValidator([as_validator(s) for s in schemas])
