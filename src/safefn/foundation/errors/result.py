"""Ok/Err values for recovery outcomes and cached validation.

An error hook recovers by returning `Ok(data)` and reroutes to a different
failure with `Err(error)`. `LazyValidator` stores its single parse as one of
these so that both outcomes are replayed on later awaits.

Example:
    >>> def on_error(envelope):
    ...     if isinstance(envelope.error, KeyError):
    ...         return Ok({"items": []})
    ...     return Err(RuntimeError("lookup failed"))
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")


class Result(Generic[T, E]):
    """Base for the two outcome variants. Not instantiated directly."""

    __slots__ = ("_payload",)

    def __init__(self, payload: object) -> None:
        self._payload = payload

    def is_ok(self) -> bool:
        return isinstance(self, Ok)

    def is_err(self) -> bool:
        return isinstance(self, Err)

    def unwrap(self) -> T:
        if isinstance(self, Ok):
            return self._payload  # type: ignore[return-value]
        raise RuntimeError(f"unwrap() called on {self!r}")

    def unwrap_err(self) -> E:
        if isinstance(self, Err):
            return self._payload  # type: ignore[return-value]
        raise RuntimeError(f"unwrap_err() called on {self!r}")

    def unwrap_or(self, default: T) -> T:
        return self._payload if isinstance(self, Ok) else default  # type: ignore[return-value]

    def map(self, f: Callable[[T], U]) -> Result[U, E]:
        return Ok(f(self._payload)) if isinstance(self, Ok) else self  # type: ignore[arg-type, return-value]

    def map_err(self, f: Callable[[E], U]) -> Result[T, U]:
        return Err(f(self._payload)) if isinstance(self, Err) else self  # type: ignore[arg-type, return-value]

    def match(self, *, ok: Callable[[T], U], err: Callable[[E], U]) -> U:
        """Dispatch on the variant; both branches are required."""
        return ok(self._payload) if isinstance(self, Ok) else err(self._payload)  # type: ignore[arg-type]

    def __bool__(self) -> bool:
        return isinstance(self, Ok)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return type(self) is type(other) and self._payload == other._payload

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._payload!r})"


class Ok(Result[T, E]):
    """Successful outcome carrying data."""

    __slots__ = ()
    __match_args__ = ("value",)

    @property
    def value(self) -> T:
        return self._payload  # type: ignore[return-value]


class Err(Result[T, E]):
    """Failed outcome carrying an error (normally an exception)."""

    __slots__ = ()
    __match_args__ = ("error",)

    @property
    def error(self) -> E:
        return self._payload  # type: ignore[return-value]
