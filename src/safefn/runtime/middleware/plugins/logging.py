"""Logging middleware for invocations."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from safefn.foundation.errors import SafeFnError, classify_exception
from safefn.runtime.observability import BoundLogger, get_logger

from ..middleware import MiddlewareParams, MiddlewareResult

logger = get_logger("safefn.middleware")


@dataclass(slots=True)
class LoggingMiddleware:
    """Log invocations with timing and result status.

    Logs at INFO level for successful calls, WARNING for failed results and
    ERROR for exceptions, which are classified with ErrorCode and re-raised.

    Args:
        name: Label added to every log line (e.g. the wrapped function's name)
        log: Logger instance to use (defaults to safefn.middleware)
        log_input: Whether to include raw input in the start line (default False for privacy)

    Example:
        >>> client.use(LoggingMiddleware(name="create_invoice", log_input=True))
    """

    name: str | None = None
    log: BoundLogger = field(default_factory=lambda: logger)
    log_input: bool = False

    async def __call__(self, params: MiddlewareParams) -> MiddlewareResult:
        log = self.log.bind(fn=self.name) if self.name else self.log
        start = time.perf_counter()

        if self.log_input:
            log.info("invocation started", raw_input=repr(params.raw_input))
        else:
            log.info("invocation started")

        try:
            result = await params.next()
        except SafeFnError as e:
            duration_ms = (time.perf_counter() - start) * 1000
            log.error("invocation raised", duration_ms=round(duration_ms, 1), code=e.code.value, error=e.message)
            raise
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            log.exception("invocation raised", duration_ms=round(duration_ms, 1),
                          code=classify_exception(e).value, error=str(e))
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 1)
        if result.success:
            log.info("invocation finished", duration_ms=duration_ms, status="OK")
        else:
            log.warning("invocation finished", duration_ms=duration_ms, status="ERROR",
                        error=repr(result.error))
        return result
