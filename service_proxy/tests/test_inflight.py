"""
Unit tests for in-flight request coalescing.
"""

import asyncio

import pytest

from service_proxy.app.caching import InFlightRegistry


class TestInFlightRegistry:
    """Test cases for InFlightRegistry."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_call(self):
        registry = InFlightRegistry()
        calls = 0
        release = asyncio.Event()

        async def factory():
            nonlocal calls
            calls += 1
            await release.wait()
            return "value"

        tasks = [asyncio.create_task(registry.run("GET:x", factory)) for _ in range(5)]
        await asyncio.sleep(0)
        assert len(registry) == 1

        release.set()
        results = await asyncio.gather(*tasks)

        assert results == ["value"] * 5
        assert calls == 1
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_failure_is_shared_and_released(self):
        registry = InFlightRegistry()
        release = asyncio.Event()

        async def factory():
            await release.wait()
            raise RuntimeError("boom")

        tasks = [asyncio.create_task(registry.run("GET:x", factory)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, RuntimeError) for r in results)
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_sequential_calls_are_not_coalesced(self):
        registry = InFlightRegistry()
        calls = 0

        async def factory():
            nonlocal calls
            calls += 1
            return calls

        assert await registry.run("GET:x", factory) == 1
        assert await registry.run("GET:x", factory) == 2

    @pytest.mark.asyncio
    async def test_distinct_keys_run_independently(self):
        registry = InFlightRegistry()
        seen = []

        async def make(key):
            async def factory():
                seen.append(key)
                await asyncio.sleep(0)
                return key
            return await registry.run(key, factory)

        results = await asyncio.gather(make("GET:a"), make("GET:b"))
        assert results == ["GET:a", "GET:b"]
        assert sorted(seen) == ["GET:a", "GET:b"]
