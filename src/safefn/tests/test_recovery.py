"""Tests for the error recovery state machine and error hooks."""

from __future__ import annotations

import pytest

from safefn import (
    Context,
    Err,
    ErrorEnvelope,
    ErrorKind,
    MiddlewareParams,
    Ok,
    RecoveryState,
    SafeFn,
    SchemaValidationError,
    middleware,
)
from safefn.foundation.validation import LazyValidator
from safefn.runtime.observability import MemoryRenderer
from safefn.runtime.recovery import Recovery

S = RecoveryState


def envelope(error: Exception, **ctx: object) -> ErrorEnvelope:
    return ErrorEnvelope(
        error=error, ctx=Context(ctx), metadata=None, raw_input=None,
        raw_args=None, valid=LazyValidator(None, None), kind=ErrorKind.HANDLER,
    )


def failing(exc: Exception):
    def handler(p: object) -> None:
        raise exc
    return handler


# ═════════════════════════════════════════════════════════════════════════════
# State machine
# ═════════════════════════════════════════════════════════════════════════════


class TestRecovery:
    @pytest.mark.asyncio
    async def test_none_rethrows_original(self) -> None:
        original = RuntimeError("boom")
        recovery = Recovery(lambda env: None)

        with pytest.raises(RuntimeError) as exc:
            await recovery.handle(envelope(original))
        assert exc.value is original
        assert recovery.history == (S.RUNNING, S.FAILED, S.RECOVERING, S.RETHROWN)

    @pytest.mark.asyncio
    async def test_ok_resolves(self) -> None:
        recovery = Recovery(lambda env: Ok("y"))

        assert await recovery.handle(envelope(RuntimeError("x"))) == "y"
        assert recovery.state is S.RESOLVED

    @pytest.mark.asyncio
    async def test_success_mapping_resolves(self) -> None:
        recovery = Recovery(lambda env: {"success": True, "data": [1, 2]})
        assert await recovery.handle(envelope(RuntimeError("x"))) == [1, 2]

    @pytest.mark.asyncio
    async def test_err_transforms(self) -> None:
        original = RuntimeError("low level")
        recovery = Recovery(lambda env: Err(LookupError("not found")))

        with pytest.raises(LookupError, match="not found") as exc:
            await recovery.handle(envelope(original))
        assert exc.value.__cause__ is original
        assert recovery.state is S.RETHROWN

    @pytest.mark.asyncio
    async def test_failure_mapping_transforms(self) -> None:
        recovery = Recovery(lambda env: {"success": False, "error": ValueError("bad")})
        with pytest.raises(ValueError, match="bad"):
            await recovery.handle(envelope(RuntimeError("x")))

    @pytest.mark.asyncio
    async def test_returned_exception_is_raised(self) -> None:
        original = RuntimeError("x")
        recovery = Recovery(lambda env: PermissionError("nope"))

        with pytest.raises(PermissionError) as exc:
            await recovery.handle(envelope(original))
        assert exc.value.__cause__ is original

    @pytest.mark.asyncio
    async def test_unrecognized_result_rethrows_original(self, logs: MemoryRenderer) -> None:
        original = RuntimeError("x")

        with pytest.raises(RuntimeError) as exc:
            await Recovery(lambda env: 42).handle(envelope(original))
        assert exc.value is original
        assert "unrecognized error hook result; rethrowing original" in logs.events("warning")

    @pytest.mark.asyncio
    async def test_err_without_exception_rethrows_original(self) -> None:
        original = RuntimeError("x")
        with pytest.raises(RuntimeError) as exc:
            await Recovery(lambda env: Err("just a string")).handle(envelope(original))
        assert exc.value is original

    @pytest.mark.asyncio
    async def test_async_hook(self) -> None:
        async def hook(env: ErrorEnvelope) -> object:
            return Ok(env.ctx["fallback"])

        assert await Recovery(hook).handle(envelope(RuntimeError("x"), fallback="cached")) == "cached"

    @pytest.mark.asyncio
    async def test_hook_raising_propagates(self) -> None:
        def hook(env: ErrorEnvelope) -> None:
            raise KeyError("hook broke")

        recovery = Recovery(hook)
        with pytest.raises(KeyError):
            await recovery.handle(envelope(RuntimeError("x")))
        assert recovery.state is S.RETHROWN


# ═════════════════════════════════════════════════════════════════════════════
# Recovery inside invocations
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_handler_failure_recovered() -> None:
    fn = SafeFn(failing(RuntimeError("x")), on_error=lambda env: Ok("y"))
    assert await fn() == "y"


@pytest.mark.asyncio
async def test_recovered_data_still_output_validated() -> None:
    calls: list[ErrorEnvelope] = []

    def hook(env: ErrorEnvelope) -> object:
        calls.append(env)
        return Ok("not-an-int")

    fn = SafeFn(failing(RuntimeError("x")), output=int, on_error=hook)

    with pytest.raises(SchemaValidationError) as exc:
        await fn()
    assert exc.value.target == "output"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_envelope_context_includes_deltas_before_failure() -> None:
    seen: list[ErrorEnvelope] = []

    @middleware
    async def step(p: MiddlewareParams):
        return await p.next(context={"step": 1})

    fn = SafeFn(failing(RuntimeError("x")), middleware=[step], default_context={"base": True},
                on_error=lambda env: seen.append(env) or Ok(None))

    assert await fn() is None
    assert seen[0].ctx == {"base": True, "step": 1}


@pytest.mark.asyncio
async def test_error_kinds() -> None:
    kinds: list[ErrorKind] = []

    def hook(env: ErrorEnvelope) -> object:
        kinds.append(env.kind)
        return Ok(env.kind.value)

    @middleware
    async def explode(p: MiddlewareParams):
        raise RuntimeError("middleware")

    assert await SafeFn(failing(RuntimeError("h")), on_error=hook)() == "handler"
    assert await SafeFn(lambda p: "x", middleware=[explode], on_error=hook)() == "middleware"
    assert await SafeFn(lambda p: "x", input=int, on_error=hook)("abc") == "validation"
    assert await SafeFn(lambda p: "x", on_error=hook)(None, context=["not", "a", "mapping"]) == "context"
    assert kinds == [ErrorKind.HANDLER, ErrorKind.MIDDLEWARE, ErrorKind.VALIDATION, ErrorKind.CONTEXT]


@pytest.mark.asyncio
async def test_hook_can_use_cached_validation() -> None:
    counting: list[object] = []

    def parse(v: object) -> int:
        counting.append(v)
        return int(v)  # type: ignore[call-overload]

    async def hook(env: ErrorEnvelope) -> object:
        return Ok(await env.valid("input") * 10)

    fn = SafeFn(failing(RuntimeError("x")), input=parse, on_error=hook)

    assert await fn("4") == 40
    assert counting == ["4"]


@pytest.mark.asyncio
async def test_default_hook_logs_and_rethrows(logs: MemoryRenderer) -> None:
    fn = SafeFn(failing(LookupError("missing row")), default_context={"tenant": "acme"})

    with pytest.raises(LookupError):
        await fn()

    entry = next(e for e in logs.entries if e.level == "error")
    assert entry.event == "invocation failed: missing row"
    assert entry.context["kind"] == "handler"
    assert entry.context["ctx"] == {"tenant": "acme"}


@pytest.mark.asyncio
async def test_default_hook_can_omit_context(logs: MemoryRenderer, monkeypatch: pytest.MonkeyPatch) -> None:
    from safefn import clear_settings_cache
    monkeypatch.setenv("SAFEFN_EXEC_LOG_CONTEXT_ON_ERROR", "false")
    clear_settings_cache()

    with pytest.raises(RuntimeError):
        await SafeFn(failing(RuntimeError("x")), default_context={"secret": "s"})()

    entry = next(e for e in logs.entries if e.level == "error")
    assert "ctx" not in entry.context


@pytest.mark.asyncio
async def test_usage_error_bypasses_hook() -> None:
    from safefn import UsageError

    hooked: list[ErrorEnvelope] = []

    @middleware
    async def misuse(p: MiddlewareParams):
        await p.valid("input")
        return await p.next()

    fn = SafeFn(lambda p: "x", middleware=[misuse], on_error=lambda env: hooked.append(env) or Ok("recovered"))

    with pytest.raises(UsageError, match="^No input schema defined"):
        await fn({"a": 1})
    assert hooked == []
