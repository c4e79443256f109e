"""Immutable builder for wrapped functions.

Every step returns a new client, so a partially configured client can be
shared and extended without affecting other users of it. `handler()` freezes
the configuration into a `SafeFn` (or `ContextualSafeFn` once `.context()`
was called).

Example:
    >>> client = create_client(default_context={"service": "billing"})
    >>> authed = client.use(require_user)
    >>>
    >>> @authed.input(CreateInvoice).output(Invoice).handler
    ... async def create_invoice(p):
    ...     return await invoices.create(p.input, owner=p.ctx["user"])
    >>>
    >>> await create_invoice({"amount": 12})
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any, overload

from safefn.foundation.errors import ConfigurationError
from safefn.runtime.middleware import Handler, Middleware
from safefn.runtime.recovery import ErrorHook, default_error_hook

from .function import ContextualSafeFn, SafeFn, validate_metadata


@dataclass(slots=True, frozen=True)
class ClientConfig:
    """Snapshot of a client's configuration."""

    middleware: tuple[Middleware, ...] = ()
    input: object = None
    args: tuple[object, ...] | None = None
    output: object = None
    metadata: Any = None
    metadata_schema: object = None
    default_context: Mapping[str, Any] | None = None
    contextual: bool = False
    context_schema: object = None
    on_error: ErrorHook = default_error_hook


class SafeFnClient:
    """Fluent, immutable builder. See module docstring."""

    __slots__ = ("_config",)

    def __init__(self, config: ClientConfig | None = None) -> None:
        self._config = config or ClientConfig()

    @property
    def config(self) -> ClientConfig:
        return self._config

    def _with(self, **changes: Any) -> SafeFnClient:
        return SafeFnClient(replace(self._config, **changes))

    def use(self, *middleware: Middleware) -> SafeFnClient:
        """Append middleware. Earlier registrations run first on the way in."""
        for mw in middleware:
            if not callable(mw):
                raise ConfigurationError(f"Middleware must be callable, got {type(mw).__name__}")
        return self._with(middleware=(*self._config.middleware, *middleware))

    def input(self, schema: object) -> SafeFnClient:  # noqa: A003
        if self._config.args is not None:
            raise ConfigurationError("Cannot set input: args are already configured")
        return self._with(input=schema)

    def args(self, *schemas: object) -> SafeFnClient:
        """Args mode: one schema per position, `None` for an unvalidated position."""
        if self._config.input is not None:
            raise ConfigurationError("Cannot set args: input is already configured")
        return self._with(args=schemas)

    def output(self, schema: object) -> SafeFnClient:
        return self._with(output=schema)

    def metadata(self, value: Any) -> SafeFnClient:
        """Attach metadata, validated now against the client's metadata schema."""
        return self._with(metadata=validate_metadata(value, self._config.metadata_schema))

    def metadata_schema(self, schema: object) -> SafeFnClient:
        cfg = self._config
        metadata = cfg.metadata
        if metadata is not None:
            metadata = validate_metadata(dict(metadata) if isinstance(metadata, Mapping) else metadata, schema)
        return self._with(metadata_schema=schema, metadata=metadata)

    def context(self, schema: object = None) -> SafeFnClient:
        """Require an explicit context per call, optionally validated against `schema`."""
        return self._with(contextual=True, context_schema=schema)

    def on_error(self, hook: ErrorHook) -> SafeFnClient:
        if not callable(hook):
            raise ConfigurationError(f"Error hook must be callable, got {type(hook).__name__}")
        return self._with(on_error=hook)

    @overload
    def handler(self, fn: Handler) -> SafeFn: ...
    @overload
    def handler(self, fn: None = None) -> Callable[[Handler], SafeFn]: ...

    def handler(self, fn: Handler | None = None) -> SafeFn | Callable[[Handler], SafeFn]:
        """Freeze configuration around `fn`. Usable as a decorator."""
        if fn is None:
            return self.handler
        cfg = self._config
        kwargs: dict[str, Any] = dict(
            middleware=cfg.middleware, input=cfg.input, args=cfg.args, output=cfg.output,
            metadata=cfg.metadata, default_context=cfg.default_context, on_error=cfg.on_error,
        )
        if cfg.contextual:
            return ContextualSafeFn(fn, context_schema=cfg.context_schema, **kwargs)
        return SafeFn(fn, **kwargs)

    def __repr__(self) -> str:
        cfg = self._config
        mode = "args" if cfg.args is not None else "input"
        return f"SafeFnClient(mode={mode}, middleware={len(cfg.middleware)}, contextual={cfg.contextual})"


def create_client(
    *,
    default_context: Mapping[str, Any] | None = None,
    metadata_schema: object = None,
    on_error: ErrorHook = default_error_hook,
    middleware: tuple[Middleware, ...] = (),
) -> SafeFnClient:
    """Root client. Everything configured here is inherited by derived clients."""
    if not callable(on_error):
        raise ConfigurationError(f"Error hook must be callable, got {type(on_error).__name__}")
    return SafeFnClient(ClientConfig(
        middleware=tuple(middleware), metadata_schema=metadata_schema,
        default_context=default_context, on_error=on_error,
    ))
