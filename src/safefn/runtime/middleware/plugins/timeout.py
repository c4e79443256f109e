"""Timeout middleware for invocations."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from safefn.foundation.config import get_settings
from safefn.foundation.errors import InvocationTimeoutError

from ..middleware import MiddlewareParams, MiddlewareResult


@dataclass(slots=True)
class TimeoutMiddleware:
    """Enforce an execution budget on the downstream chain.

    Races `next()` against a timer with asyncio.wait_for. The downstream task
    is cancelled when the budget runs out and InvocationTimeoutError is raised.

    Args:
        timeout_seconds: Maximum execution time. None uses
            `SafeFnSettings.execution.default_timeout` (SAFEFN_EXEC_DEFAULT_TIMEOUT).

    Example:
        >>> client.use(TimeoutMiddleware(timeout_seconds=5.0))
    """

    timeout_seconds: float | None = None

    async def __call__(self, params: MiddlewareParams) -> MiddlewareResult:
        timeout = self.timeout_seconds if self.timeout_seconds is not None else get_settings().execution.default_timeout
        try:
            return await asyncio.wait_for(params.next(), timeout=timeout)
        except asyncio.TimeoutError:
            raise InvocationTimeoutError(timeout) from None
