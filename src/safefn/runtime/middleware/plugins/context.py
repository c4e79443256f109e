"""Context provider middleware: enrich the working context for downstream layers."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from ..middleware import MiddlewareParams, MiddlewareResult

Provider = Mapping[str, Any] | Callable[[MiddlewareParams], "Mapping[str, Any] | Awaitable[Mapping[str, Any]]"]


@dataclass(slots=True)
class ContextProviderMiddleware:
    """Add keys to the context seen by later middleware and the handler.

    `values` is either a static mapping or a (sync or async) function of the
    current params. Provided keys win over existing ones.

    Example:
        >>> client.use(ContextProviderMiddleware({"tenant": "acme"}))
        >>> client.use(ContextProviderMiddleware(lambda p: {"user": lookup(p.ctx["token"])}))
    """

    values: Provider

    async def __call__(self, params: MiddlewareParams) -> MiddlewareResult:
        if isinstance(self.values, Mapping):
            delta = self.values
        else:
            delta = self.values(params)
            if inspect.isawaitable(delta):
                delta = await delta
        return await params.next(context=delta)
