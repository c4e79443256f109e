"""On-demand, cached input validation for one invocation.

Middleware and error hooks receive a `LazyValidator` as `valid`. Calling
`valid("input")` (or `valid("args")`) returns an awaitable of the validated
value; the underlying validator runs at most once per invocation, and its
failure is cached the same way as its success.

Misuse is reported synchronously at the call site:

    >>> valid("input")   # no input validator configured
    Traceback (most recent call last):
    UsageError: No input schema defined. Use raw_input to access unvalidated data.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable
from typing import Literal

from safefn.foundation.errors import Err, Ok, Result, SchemaValidationError, UsageError

from .adapters import BaseValidator

ValidationKind = Literal["input", "args"]
_KINDS: frozenset[str] = frozenset(("input", "args"))


class LazyValidator:
    """Per-invocation validation cache with a single validation slot.

    In args mode the raw input is the argument tuple, so "input" and "args"
    name the same slot and share one cached result.
    """

    __slots__ = ("_slot", "_raw", "_validator", "_cache", "_lock")

    def __init__(self, raw: object, validator: BaseValidator | None, *, args_mode: bool = False) -> None:
        self._slot: ValidationKind = "args" if args_mode else "input"
        self._raw = raw
        self._validator = validator
        self._cache: Result[object, Exception] | None = None
        self._lock = asyncio.Lock()

    def __call__(self, kind: str) -> Awaitable[object]:
        if kind not in _KINDS:
            raise UsageError(f"Unknown validation target {kind!r}. Expected 'input' or 'args'.")
        if self._validator is None or (kind == "args" and self._slot == "input"):
            raise UsageError(f"No {kind} schema defined. Use raw_{kind} to access unvalidated data.")
        return self.resolve()

    @property
    def configured(self) -> bool:
        return self._validator is not None

    @property
    def done(self) -> bool:
        """True once the validator has run (successfully or not)."""
        return self._cache is not None

    async def resolve(self) -> object:
        """Validated value, or the raw value when no validator is configured."""
        if self._validator is None:
            return self._raw
        if self._cache is None:
            async with self._lock:
                if self._cache is None:
                    self._cache = await self._run()
        if self._cache.is_err():
            # Fresh traceback per raise; the cached instance is shared by every awaiter
            raise self._cache.unwrap_err().with_traceback(None)
        return self._cache.unwrap()

    async def _run(self) -> Result[object, Exception]:
        try:
            value = self._validator.parse(self._raw)  # type: ignore[union-attr]
            return Ok(await value if inspect.isawaitable(value) else value)
        except SchemaValidationError as e:
            return Err(e.with_target(self._slot))
        except Exception as e:  # noqa: BLE001 - cached and re-raised to every awaiter
            return Err(e)

    def __repr__(self) -> str:
        state = "pending" if self._cache is None else repr(self._cache)
        return f"LazyValidator(slot={self._slot!r}, {state})"
