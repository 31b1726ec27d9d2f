"""Unit tests for the small support pieces: cache, content flattening, locks."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from ragchat.providers.cache.memory_cache import MemoryCacheProvider
from ragchat.providers.llm.content import flatten_content
from ragchat.utils.concurrency import SessionLockRegistry

# ---------------------------------------------------------------------------
# MemoryCacheProvider
# ---------------------------------------------------------------------------


class TestMemoryCache:
    @pytest.mark.asyncio
    async def test_set_get_delete(self) -> None:
        cache = MemoryCacheProvider(max_size=10, ttl=60)
        await cache.set("k", "v")
        assert await cache.get("k") == "v"
        assert await cache.exists("k") is True
        assert len(cache) == 1

        await cache.delete("k")
        assert await cache.get("k") is None
        assert await cache.exists("k") is False

    @pytest.mark.asyncio
    async def test_delete_missing_key_is_noop(self) -> None:
        cache = MemoryCacheProvider()
        await cache.delete("missing")
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_evicts_beyond_max_size(self) -> None:
        cache = MemoryCacheProvider(max_size=2, ttl=60)
        for key in ("a", "b", "c"):
            await cache.set(key, key)
        assert len(cache) == 2
        assert await cache.get("c") == "c"


# ---------------------------------------------------------------------------
# flatten_content
# ---------------------------------------------------------------------------


class TestFlattenContent:
    def test_string_passes_through(self) -> None:
        assert flatten_content("hello") == "hello"

    def test_none_and_empty_list(self) -> None:
        assert flatten_content(None) is None
        assert flatten_content([]) is None

    def test_text_parts_are_joined(self) -> None:
        parts = [{"type": "text", "text": "a"}, {"type": "image"}, {"type": "text", "text": "b"}]
        assert flatten_content(parts) == "a\nb"

    def test_sdk_blocks_are_dumped(self) -> None:
        block = MagicMock()
        block.model_dump.return_value = {"type": "text", "text": "from sdk"}
        assert flatten_content([block]) == "from sdk"

    def test_non_text_is_serialised_deterministically(self) -> None:
        assert flatten_content([{"b": 1, "a": 2}]) == '[{"a": 2, "b": 1}]'
        assert flatten_content({"z": 1, "y": 2}) == '{"y": 2, "z": 1}'


# ---------------------------------------------------------------------------
# SessionLockRegistry
# ---------------------------------------------------------------------------


class TestSessionLockRegistry:
    def test_same_lock_per_session(self) -> None:
        registry = SessionLockRegistry()
        assert registry.get("a") is registry.get("a")
        assert registry.get("a") is not registry.get("b")
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_hold_serialises_one_session(self) -> None:
        registry = SessionLockRegistry()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with registry.hold("s"):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("one"), worker("two"))
        assert events == ["one-in", "one-out", "two-in", "two-out"]

    @pytest.mark.asyncio
    async def test_lock_dropped_after_last_holder(self) -> None:
        registry = SessionLockRegistry()
        seen: list[int] = []

        async def worker() -> None:
            async with registry.hold("s"):
                seen.append(len(registry))
                await asyncio.sleep(0.01)

        await asyncio.gather(worker(), worker(), worker())

        assert seen == [1, 1, 1]
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_lock_dropped_when_body_raises(self) -> None:
        registry = SessionLockRegistry()
        with pytest.raises(RuntimeError):
            async with registry.hold("s"):
                raise RuntimeError("boom")
        assert "s" not in registry

    @pytest.mark.asyncio
    async def test_discard_skips_held_lock(self) -> None:
        registry = SessionLockRegistry()
        async with registry.hold("s"):
            registry.discard("s")
            assert "s" in registry
        registry.discard("s")
        assert "s" not in registry
        registry.discard("never-created")
