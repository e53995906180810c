from __future__ import annotations

import asyncio

import pytest

from tabquips.adapters.context_provider import StaticContextProvider, context_from_dict
from tabquips.core.context_cache import ContextCache
from tabquips.core.models import BrowserContext


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FailingProvider:
    def __init__(self) -> None:
        self.calls = 0

    async def get_context(self) -> BrowserContext:
        self.calls += 1
        raise RuntimeError("browser API unavailable")


def _provider() -> StaticContextProvider:
    return StaticContextProvider(BrowserContext(tab_count=3, active_tab=None, current_hour=10))


def test_reuses_snapshot_within_ttl() -> None:
    clock = FakeClock()
    provider = _provider()
    cache = ContextCache(provider, ttl_ms=500, clock=clock)

    async def _run() -> None:
        first = await cache.get_context()
        clock.now = 0.3
        second = await cache.get_context()
        assert first is second

    asyncio.run(_run())
    assert provider.calls == 1


def test_refreshes_after_ttl() -> None:
    clock = FakeClock()
    provider = _provider()
    cache = ContextCache(provider, ttl_ms=500, clock=clock)

    async def _run() -> None:
        await cache.get_context()
        clock.now = 0.6
        await cache.get_context()

    asyncio.run(_run())
    assert provider.calls == 2


def test_concurrent_callers_share_one_refresh() -> None:
    provider = _provider()
    cache = ContextCache(provider, ttl_ms=500, clock=FakeClock())

    async def _run() -> None:
        results = await asyncio.gather(*(cache.get_context() for _ in range(5)))
        assert all(item is results[0] for item in results)

    asyncio.run(_run())
    assert provider.calls == 1


def test_provider_error_propagates_and_is_not_cached() -> None:
    provider = FailingProvider()
    cache = ContextCache(provider, ttl_ms=500, clock=FakeClock())

    async def _run() -> None:
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await cache.get_context()

    asyncio.run(_run())
    assert provider.calls == 2


def test_invalidate_forces_refresh() -> None:
    provider = _provider()
    cache = ContextCache(provider, ttl_ms=500, clock=FakeClock())

    async def _run() -> None:
        await cache.get_context()
        cache.invalidate()
        await cache.get_context()

    asyncio.run(_run())
    assert provider.calls == 2


def test_context_from_dict_derives_domain_and_defaults() -> None:
    context = context_from_dict(
        {"tab_count": 7, "current_hour": 23, "active_tab": {"url": "https://github.com/a/b", "title": "PR"}}
    )
    assert context.active_tab is not None
    assert context.active_tab.domain == "github.com"
    assert context.group_count == 0

    empty = context_from_dict({"current_hour": 4})
    assert empty.active_tab is None
    assert empty.tab_count == 0


def test_context_rejects_out_of_range_hour() -> None:
    with pytest.raises(ValueError):
        context_from_dict({"current_hour": 24})
