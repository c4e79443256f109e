"""Tests for the onion-pattern chain executor and context accumulation."""

from __future__ import annotations

import pytest

from safefn import (
    Context,
    ErrorEnvelope,
    ErrorKind,
    MiddlewareContractError,
    MiddlewareResult,
    SafeFn,
    middleware,
)
from safefn.foundation.validation import LazyValidator
from safefn.runtime.middleware import Chain, HandlerParams, MiddlewareParams
from safefn.runtime.observability import MemoryRenderer


def recorder(calls: list[str], name: str):
    @middleware
    async def mw(p: MiddlewareParams) -> MiddlewareResult:
        calls.append(f"{name}-before")
        result = await p.next()
        calls.append(f"{name}-after")
        return result
    return mw


def enrich(**values: object):
    @middleware
    async def mw(p: MiddlewareParams) -> MiddlewareResult:
        return await p.next(context=values)
    return mw


# ═════════════════════════════════════════════════════════════════════════════
# Ordering
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_onion_order() -> None:
    calls: list[str] = []

    async def handler(p: HandlerParams) -> str:
        calls.append("H")
        return "done"

    fn = SafeFn(handler, middleware=[recorder(calls, "A"), recorder(calls, "B")])

    assert await fn() == "done"
    assert calls == ["A-before", "B-before", "H", "B-after", "A-after"]


@pytest.mark.asyncio
async def test_no_middleware_calls_handler_directly() -> None:
    fn = SafeFn(lambda p: p.input * 2, input=int)
    assert await fn("21") == 42


@pytest.mark.asyncio
async def test_sync_middleware_and_handler() -> None:
    def passthrough(p: MiddlewareParams):
        return p.next()

    fn = SafeFn(lambda p: "sync", middleware=[passthrough])
    assert await fn() == "sync"


# ═════════════════════════════════════════════════════════════════════════════
# Context accumulation
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_context_visible_only_downstream_of_enrichment() -> None:
    seen: dict[str, Context] = {}

    @middleware
    async def first(p: MiddlewareParams) -> MiddlewareResult:
        seen["first"] = p.ctx
        return await p.next(context={"user": "u1"})

    @middleware
    async def second(p: MiddlewareParams) -> MiddlewareResult:
        seen["second"] = p.ctx
        return await p.next()

    def handler(p: HandlerParams) -> object:
        seen["handler"] = p.ctx
        return p.ctx["user"]

    fn = SafeFn(handler, middleware=[first, second])

    assert await fn() == "u1"
    assert "user" not in seen["first"]
    assert seen["second"]["user"] == "u1"
    assert seen["handler"] == {"user": "u1"}


@pytest.mark.asyncio
async def test_later_delta_wins() -> None:
    fn = SafeFn(lambda p: p.ctx["step"], middleware=[enrich(step=1), enrich(step=2)])
    assert await fn() == 2


@pytest.mark.asyncio
async def test_caller_context_wins_over_default() -> None:
    fn = SafeFn(lambda p: dict(p.ctx), default_context={"a": 1, "b": 1})
    assert await fn(None, context={"b": 2}) == {"a": 1, "b": 2}


@pytest.mark.asyncio
async def test_merge_is_shallow() -> None:
    fn = SafeFn(lambda p: p.ctx["cfg"], middleware=[enrich(cfg={"y": 2})], default_context={"cfg": {"x": 1}})
    assert await fn() == {"y": 2}


def test_context_is_immutable() -> None:
    ctx = Context({"a": 1})
    merged = ctx.merge({"b": 2})

    assert ctx == {"a": 1}
    assert merged == {"a": 1, "b": 2}
    assert ctx.merge(None) is ctx
    with pytest.raises(TypeError):
        ctx["a"] = 2  # type: ignore[index]


# ═════════════════════════════════════════════════════════════════════════════
# Results: short-circuit, transform, contract
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_short_circuit_skips_handler_and_later_middleware() -> None:
    calls: list[str] = []

    @middleware
    async def cache(p: MiddlewareParams) -> MiddlewareResult:
        return MiddlewareResult.ok("cached")

    def handler(p: HandlerParams) -> str:
        calls.append("H")
        return "fresh"

    fn = SafeFn(handler, middleware=[cache, recorder(calls, "B")])

    assert await fn() == "cached"
    assert calls == []


@pytest.mark.asyncio
async def test_outer_next_observes_inner_short_circuit() -> None:
    observed: list[object] = []

    @middleware
    async def outer(p: MiddlewareParams) -> None:
        result = await p.next()
        observed.append((result.output, result.success))

    @middleware
    def inner(p: MiddlewareParams) -> MiddlewareResult:
        return MiddlewareResult.ok("short")

    fn = SafeFn(lambda p: "handler", middleware=[outer, inner])

    assert await fn() == "short"
    assert observed == [("short", True)]


@pytest.mark.asyncio
async def test_transform_on_the_way_out() -> None:
    @middleware
    async def upper(p: MiddlewareParams) -> MiddlewareResult:
        result = await p.next()
        return MiddlewareResult.ok(result.output.upper())

    fn = SafeFn(lambda p: "done", middleware=[upper])
    assert await fn() == "DONE"


@pytest.mark.asyncio
async def test_repeated_next_does_not_rerun_downstream(logs: MemoryRenderer) -> None:
    calls: list[str] = []

    @middleware
    async def twice(p: MiddlewareParams) -> MiddlewareResult:
        first = await p.next()
        second = await p.next()
        assert first is second
        return second

    def handler(p: HandlerParams) -> str:
        calls.append("H")
        return "once"

    fn = SafeFn(handler, middleware=[twice])

    assert await fn() == "once"
    assert calls == ["H"]
    assert "next() called more than once" in logs.events("warning")


@pytest.mark.asyncio
async def test_retry_after_failure_keeps_downstream_error() -> None:
    retried: list[MiddlewareResult] = []
    envelopes: list[ErrorEnvelope] = []

    @middleware
    async def retry(p: MiddlewareParams) -> None:
        try:
            await p.next()
        except RuntimeError:
            retried.append(await p.next())

    def handler(p: HandlerParams) -> None:
        raise RuntimeError("flaky")

    fn = SafeFn(handler, middleware=[retry], on_error=envelopes.append)

    with pytest.raises(RuntimeError, match="flaky"):
        await fn()
    assert retried[0].success is False
    assert isinstance(retried[0].error, RuntimeError)
    assert envelopes[0].error is retried[0].error
    assert envelopes[0].kind is ErrorKind.HANDLER


@pytest.mark.asyncio
async def test_non_result_return_is_contract_error() -> None:
    @middleware
    async def bad(p: MiddlewareParams) -> str:
        await p.next()
        return "oops"

    fn = SafeFn(lambda p: "x", middleware=[bad])

    with pytest.raises(MiddlewareContractError, match="expected MiddlewareResult or None"):
        await fn()


@pytest.mark.asyncio
async def test_failed_result_raises_its_error() -> None:
    @middleware
    def deny(p: MiddlewareParams) -> MiddlewareResult:
        return MiddlewareResult.fail(PermissionError("denied"))

    fn = SafeFn(lambda p: "x", middleware=[deny])

    with pytest.raises(PermissionError, match="denied"):
        await fn()


@pytest.mark.asyncio
async def test_chain_without_result_is_contract_error() -> None:
    @middleware
    def swallow(p: MiddlewareParams) -> None:
        return None

    fn = SafeFn(lambda p: "x", middleware=[swallow])

    with pytest.raises(MiddlewareContractError):
        await fn()


# ═════════════════════════════════════════════════════════════════════════════
# Chain state
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_chain_keeps_last_context_after_failure() -> None:
    def handler(p: HandlerParams) -> None:
        raise RuntimeError("boom")

    chain = Chain([enrich(step=1)], handler, Context({"base": True}), LazyValidator(None, None))

    with pytest.raises(RuntimeError):
        await chain.run()
    assert chain.ctx == {"base": True, "step": 1}
    assert isinstance(chain.handler_error, RuntimeError)


@pytest.mark.asyncio
async def test_chain_result_record() -> None:
    chain = Chain([], lambda p: p.input, Context({"k": "v"}), LazyValidator("raw", None))
    result = await chain.run()

    assert result.success is True
    assert result.output == "raw"
    assert result.context == {"k": "v"}
    assert result.error is None
