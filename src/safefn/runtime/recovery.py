"""Error recovery: route a failed invocation through an error hook.

State machine per invocation:

    RUNNING -> FAILED -> RECOVERING -> RESOLVED | RETHROWN

The hook receives an `ErrorEnvelope` and its return value decides the outcome:

    None                                 -> rethrow the original error
    an exception instance                -> raise it (chained from the original)
    Ok(data) / {"success": True, "data"} -> resolve the call with `data`
    Err(exc) / {"success": False, "error"} -> raise `exc`
    anything else                        -> rethrow the original (logged)

If the hook itself raises, that exception propagates as-is.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from safefn.foundation.config import get_settings
from safefn.foundation.errors import ErrorKind, Result, classify_exception
from safefn.runtime.observability import get_logger

if TYPE_CHECKING:
    from safefn.foundation.validation import LazyValidator

    from .middleware import Context

log = get_logger("safefn.recovery")


class RecoveryState(StrEnum):
    RUNNING = "running"
    FAILED = "failed"
    RECOVERING = "recovering"
    RESOLVED = "resolved"
    RETHROWN = "rethrown"


@dataclass(slots=True, frozen=True)
class ErrorEnvelope:
    """What an error hook sees about a failed invocation.

    Attributes:
        error: The exception that stopped the invocation
        ctx: Working context at the moment of failure, including deltas
            added by middleware that ran before the failure
        metadata: The function's (validated) metadata
        raw_input: Unvalidated input (the argument tuple in args mode)
        raw_args: Unvalidated argument tuple, None in object mode
        valid: Same lazy validator middleware use; cached results are reused
        kind: Which stage failed
    """

    error: Exception
    ctx: Context
    metadata: Any
    raw_input: Any
    raw_args: tuple[Any, ...] | None
    valid: LazyValidator
    kind: ErrorKind


ErrorHook = Callable[[ErrorEnvelope], "Any | Awaitable[Any]"]


def default_error_hook(envelope: ErrorEnvelope) -> None:
    """Log the failure and let the original error propagate."""
    err = envelope.error
    extra: dict[str, Any] = {"kind": envelope.kind.value, "code": classify_exception(err).value,
                             "error_type": type(err).__name__}
    if get_settings().execution.log_context_on_error:
        extra["ctx"] = dict(envelope.ctx)
    log.error(f"invocation failed: {err}", **extra)


@dataclass(slots=True)
class Recovery:
    """Drives one invocation's error path through `hook`."""

    hook: ErrorHook = default_error_hook
    state: RecoveryState = RecoveryState.RUNNING
    _history: list[RecoveryState] = field(default_factory=lambda: [RecoveryState.RUNNING])

    @property
    def history(self) -> tuple[RecoveryState, ...]:
        return tuple(self._history)

    def _enter(self, state: RecoveryState) -> None:
        self.state = state
        self._history.append(state)

    async def handle(self, envelope: ErrorEnvelope) -> Any:
        """Return recovered data or raise. Must be called while handling `envelope.error`."""
        original = envelope.error
        self._enter(RecoveryState.FAILED)
        self._enter(RecoveryState.RECOVERING)
        try:
            outcome = self.hook(envelope)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except BaseException:
            self._enter(RecoveryState.RETHROWN)
            raise

        match outcome:
            case None:
                pass
            case Result() if outcome.is_ok():
                self._enter(RecoveryState.RESOLVED)
                return outcome.unwrap()
            case Result():
                self._raise(outcome.unwrap_err(), original)
            case Mapping() if outcome.get("success") is True:
                self._enter(RecoveryState.RESOLVED)
                return outcome.get("data")
            case Mapping() if outcome.get("success") is False:
                self._raise(outcome.get("error"), original)
            case BaseException():
                self._raise(outcome, original)
            case _:
                log.warning("unrecognized error hook result; rethrowing original",
                            result_type=type(outcome).__name__)
        self._enter(RecoveryState.RETHROWN)
        raise original

    def _raise(self, error: object, original: Exception) -> None:
        """Raise a replacement error. Non-exception payloads fall back to the original."""
        if not isinstance(error, BaseException):
            log.warning("error hook returned a failure without an exception; rethrowing original",
                        result_type=type(error).__name__)
            return
        self._enter(RecoveryState.RETHROWN)
        if error is original:
            raise original
        raise error from original
