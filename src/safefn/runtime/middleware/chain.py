"""Onion-pattern chain executor.

One `Chain` drives one invocation. It owns the working context, the shared
result record and the cursor bookkeeping; nothing here outlives the call.

Flow for middleware [A, B] and handler H:

    A (before) -> B (before) -> H -> B (after) -> A (after)

`next(context=delta)` merges `delta` over the working context (delta keys
win) before advancing. Calling `next()` a second time from the same
middleware does not re-run the downstream chain; the shared record is
returned instead, with `error` set if the first call raised.
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from safefn.foundation.config import get_settings
from safefn.foundation.errors import MiddlewareContractError
from safefn.runtime.observability import get_logger

from .middleware import Context, HandlerParams, Handler, Middleware, MiddlewareParams, MiddlewareResult

if TYPE_CHECKING:
    from safefn.foundation.validation import LazyValidator

log = get_logger("safefn.chain")


def middleware_name(mw: object) -> str:
    return getattr(mw, "name", None) or getattr(mw, "__name__", None) or type(mw).__name__


@dataclass(slots=True)
class Chain:
    """Per-invocation driver for middleware + handler.

    Attributes:
        ctx: Working context. After a failure this is the last context the
            chain reached, which is what the error hook receives.
        result: Shared record returned by every `next()`.
        handler_error: The exception raised by the handler itself, if any.
    """

    middleware: Sequence[Middleware]
    handler: Handler
    ctx: Context
    valid: LazyValidator
    raw_input: Any = None
    raw_args: tuple[Any, ...] | None = None
    metadata: Any = None
    args_mode: bool = False
    result: MiddlewareResult = field(default_factory=MiddlewareResult)
    handler_error: BaseException | None = None
    _advanced: set[int] = field(default_factory=set)

    async def run(self) -> MiddlewareResult:
        """Drive the chain to completion and return the shared record."""
        self.result.context = self.ctx
        if not self.middleware:
            return await self._call_handler()
        return await self._step(0)

    async def _step(self, depth: int) -> MiddlewareResult:
        if depth == len(self.middleware):
            return await self._call_handler()
        mw = self.middleware[depth]
        params = MiddlewareParams(
            raw_input=self.raw_input, raw_args=self.raw_args, ctx=self.ctx,
            metadata=self.metadata, next=self._next_for(depth), valid=self.valid,
        )
        returned = mw(params)
        if inspect.isawaitable(returned):
            returned = await returned
        match returned:
            case None:
                pass
            case MiddlewareResult() if returned is self.result:
                pass
            case MiddlewareResult():
                self.result.absorb(returned)
            case _:
                raise MiddlewareContractError(
                    f"Middleware {middleware_name(mw)!r} returned {type(returned).__name__}; "
                    "expected MiddlewareResult or None"
                )
        return self.result

    def _next_for(self, depth: int):  # noqa: ANN202
        async def next_(context: Mapping[str, Any] | None = None) -> MiddlewareResult:
            if depth in self._advanced:
                if get_settings().execution.warn_on_repeated_next:
                    log.warning("next() called more than once", middleware=middleware_name(self.middleware[depth]))
                return self.result
            self._advanced.add(depth)
            self.ctx = self.ctx.merge(context)
            self.result.context = self.ctx
            try:
                return await self._step(depth + 1)
            except Exception as e:
                # Kept so a repeated next() or an unfinished chain reports the cause
                self.result.success, self.result.error = False, e
                raise
        return next_

    async def _call_handler(self) -> MiddlewareResult:
        value = await self.valid.resolve()
        params = HandlerParams(
            ctx=self.ctx, input=value,
            args=value if self.args_mode else None, metadata=self.metadata,
        )
        try:
            output = self.handler(params)
            if inspect.isawaitable(output):
                output = await output
        except Exception as e:
            self.handler_error = e
            raise
        self.result.output, self.result.success, self.result.error = output, True, None
        self.result.context = self.ctx
        return self.result
