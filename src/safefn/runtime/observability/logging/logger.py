"""Structured logging for the invocation engine.

Every log call produces a `LogEntry` (timestamp, level, event, key/value
context) and hands it to the process-wide renderer:

- `ConsoleRenderer` for humans (colored when attached to a TTY)
- `JsonRenderer` for aggregation, one orjson-encoded object per line
- `NoOpRenderer` to silence output, `MemoryRenderer` to assert on it in tests

Loggers are immutable; `bind()` returns a new one. Keys set with
`log_context()` apply to every entry emitted inside the block, including
across awaits in the same task.

Quick Start:
    >>> from safefn.runtime.observability import get_logger, configure_logging
    >>>
    >>> configure_logging(format="console")  # or "json" for production
    >>> log = get_logger("billing")
    >>> log.info("invoice created", invoice_id=123)
    >>>
    >>> log = log.bind(fn="create_invoice")
    >>> log.warning("slow call", duration_ms=812.4)
"""

from __future__ import annotations

import logging
import sys
import time
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol, TextIO, runtime_checkable

import orjson

from safefn.foundation.errors import JsonDict, JsonValue

_scoped: ContextVar[JsonDict] = ContextVar("safefn_log_context", default={})

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


@dataclass(slots=True, frozen=True)
class LogEntry:
    """One rendered log event."""

    timestamp: float
    level: str
    event: str
    context: JsonDict

    def as_record(self) -> JsonDict:
        return {"timestamp": self._dt().isoformat(), "level": self.level, "event": self.event, **self.context}

    def clock(self) -> str:
        """Wall time as HH:MM:SS.mmm."""
        return self._dt().strftime("%H:%M:%S.%f")[:-3]

    def _dt(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=UTC)


@dataclass(slots=True, frozen=True)
class BoundLogger:
    """Logger carrying a fixed set of context keys.

    Example:
        >>> log = get_logger("api").bind(fn="get_user")
        >>> log.info("invocation started")
        # => 10:30:45.120 [info] invocation started fn="get_user" logger="api"
    """

    context: JsonDict = field(default_factory=dict)

    def bind(self, **kw: JsonValue) -> BoundLogger:
        return BoundLogger({**self.context, **kw})

    def unbind(self, *keys: str) -> BoundLogger:
        return BoundLogger({k: v for k, v in self.context.items() if k not in keys})

    def debug(self, event: str, **kw: JsonValue) -> None:
        self._emit("debug", event, kw)

    def info(self, event: str, **kw: JsonValue) -> None:
        self._emit("info", event, kw)

    def warning(self, event: str, **kw: JsonValue) -> None:
        self._emit("warning", event, kw)

    def error(self, event: str, **kw: JsonValue) -> None:
        self._emit("error", event, kw)

    def exception(self, event: str, **kw: JsonValue) -> None:
        """Error-level entry with the traceback being handled under `exc_info`."""
        self._emit("error", event, {**kw, "exc_info": traceback.format_exc()})

    def _emit(self, level: str, event: str, kw: JsonDict) -> None:
        state = _state()
        if _LEVELS[level] < state.level:
            return
        state.renderer.render(LogEntry(time.time(), level, event, {**_scoped.get(), **self.context, **kw}))


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogRenderer(Protocol):
    def render(self, entry: LogEntry) -> None: ...


class _Palette:
    __slots__ = ("reset", "bold", "dim", "red", "green", "yellow", "blue", "cyan")

    def __init__(self, enabled: bool) -> None:
        codes = {"reset": 0, "bold": 1, "dim": 2, "red": 31, "green": 32, "yellow": 33, "blue": 34, "cyan": 36}
        for name, code in codes.items():
            setattr(self, name, f"\033[{code}m" if enabled else "")

    def level(self, name: str) -> str:
        return {"info": self.green, "warning": self.yellow, "error": self.red}.get(name, self.dim)

    def value(self, v: object) -> str:
        match v:
            case str():
                return f'{self.yellow}"{v}"{self.reset}'
            case bool() | None:
                return f"{self.blue}{str(v).lower()}{self.reset}"
            case int() | float():
                return f"{self.blue}{v}{self.reset}"
            case dict() | list() | tuple():
                return f"{self.dim}<{type(v).__name__} len={len(v)}>{self.reset}"
            case _:
                return repr(v)


@dataclass(slots=True)
class ConsoleRenderer:
    """`HH:MM:SS.mmm [level] event key=value ...`, keys sorted, traceback on its own lines."""

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool | None = None  # None = color only when output is a TTY
    show_timestamp: bool = True

    def __post_init__(self) -> None:
        if self.colors is None:
            self.colors = bool(getattr(self.output, "isatty", lambda: False)())

    def render(self, entry: LogEntry) -> None:
        p = _Palette(bool(self.colors))
        head = f"{p.level(entry.level)}[{entry.level}]{p.reset} {p.bold}{entry.event}{p.reset}"
        if self.show_timestamp:
            head = f"{p.dim}{entry.clock()}{p.reset} {head}"
        pairs = " ".join(f"{p.cyan}{k}{p.reset}={p.value(v)}"
                         for k, v in sorted(entry.context.items()) if k != "exc_info")
        self.output.write(f"{head} {pairs}\n" if pairs else f"{head}\n")
        if tb := entry.context.get("exc_info"):
            self.output.write(f"{p.red}{tb}{p.reset}\n")


@dataclass(slots=True)
class JsonRenderer:
    output: TextIO = field(default_factory=lambda: sys.stdout)

    def render(self, entry: LogEntry) -> None:
        line = orjson.dumps(entry.as_record(), option=orjson.OPT_NON_STR_KEYS | orjson.OPT_APPEND_NEWLINE,
                            default=repr)
        self.output.write(line.decode())


class NoOpRenderer:
    __slots__ = ()

    def render(self, entry: LogEntry) -> None:
        return None


@dataclass(slots=True)
class MemoryRenderer:
    """Keeps every entry for later inspection."""

    entries: list[LogEntry] = field(default_factory=list)

    def render(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def events(self, level: str | None = None) -> list[str]:
        return [e.event for e in self.entries if level is None or e.level == level]


# ─────────────────────────────────────────────────────────────────────────────
# Process-wide configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class _LogState:
    renderer: LogRenderer
    level: int


_current: _LogState | None = None


def _state() -> _LogState:
    if _current is None:
        configure_logging()
    assert _current is not None
    return _current


def configure_logging(
    format: str | None = None,  # noqa: A002
    level: str | None = None,
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
    renderer: LogRenderer | None = None,
) -> LogRenderer:
    """Select the renderer and minimum level for all loggers.

    Unset arguments come from `SafeFnSettings.logging`. An explicit `renderer`
    takes precedence over `format`. Returns the active renderer.
    """
    global _current
    from safefn.foundation.config import get_settings

    cfg = get_settings().logging
    fmt = format or cfg.format
    if renderer is None:
        match fmt:
            case "console":
                renderer = ConsoleRenderer(output=output or sys.stderr, colors=cfg.colors if colors is None else colors)
            case "json":
                renderer = JsonRenderer(output=output or sys.stdout)
            case "none":
                renderer = NoOpRenderer()
            case _:
                raise ValueError(f"Unknown format: {fmt}. Use 'console', 'json', or 'none'")
    _current = _LogState(renderer, _LEVELS.get((level or cfg.level).lower(), logging.INFO))
    return renderer


def reset_logging() -> None:
    """Forget the configuration; the next log call re-reads settings."""
    global _current
    _current = None


def get_logger(name: str | None = None, **initial_context: JsonValue) -> BoundLogger:
    """Logger with `initial_context`, plus `logger=name` when a name is given."""
    return BoundLogger({**initial_context, "logger": name} if name else dict(initial_context))


@contextmanager
def log_context(**kw: JsonValue) -> Iterator[JsonDict]:
    """Add keys to every entry logged inside the block.

    >>> with log_context(request_id="r-17"):
    ...     get_logger().info("handled")
    """
    token = _scoped.set({**_scoped.get(), **kw})
    try:
        yield kw
    finally:
        _scoped.reset(token)
