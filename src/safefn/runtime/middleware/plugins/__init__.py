"""Built-in middleware plugins for common cross-cutting concerns.

These middleware are ready to use and demonstrate the middleware pattern.
"""

from .context import ContextProviderMiddleware
from .logging import LoggingMiddleware
from .timeout import TimeoutMiddleware

__all__ = [
    "ContextProviderMiddleware",
    "LoggingMiddleware",
    "TimeoutMiddleware",
]
