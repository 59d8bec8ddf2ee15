"""Tests for the workspace registry and per-key locks."""

import asyncio
from pathlib import Path

from docs_agent.registry import KeyedLocks, WorkspaceRegistry, WorkspaceState


class TestWorkspaceRegistry:
    """Tests for WorkspaceRegistry."""

    def setup_method(self):
        self.registry = WorkspaceRegistry()
        self.state = WorkspaceState(local_path=Path("/tmp/docs-agent/abc"), branch_name="docs-agent/abc")

    def test_set_and_get(self):
        """Test that a stored state is returned and counted."""
        self.registry.set("abc", self.state)

        assert self.registry.get("abc") == self.state
        assert "abc" in self.registry
        assert len(self.registry) == 1

    def test_set_replaces_whole_state(self):
        """Test that set replaces the previous state for the key."""
        self.registry.set("abc", self.state)
        replacement = WorkspaceState(local_path=Path("/other"), branch_name="docs-agent/abc")
        self.registry.set("abc", replacement)

        assert self.registry.get("abc") == replacement
        assert len(self.registry) == 1

    def test_remove_missing_returns_none(self):
        """Test that removing an unknown key returns None."""
        assert self.registry.remove("nope") is None


class TestKeyedLocks:
    """Tests for KeyedLocks."""

    def test_same_key_is_serialized(self):
        """Test that holders of the same key run one at a time."""
        locks = KeyedLocks()
        events: list[str] = []

        async def worker(name: str):
            async with locks.hold("abc"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        async def main():
            await asyncio.gather(worker("a"), worker("b"))

        asyncio.run(main())

        assert events == ["a-start", "a-end", "b-start", "b-end"]

    def test_different_keys_run_concurrently(self):
        """Test that different keys do not block each other."""
        locks = KeyedLocks()
        events: list[str] = []

        async def worker(key: str):
            async with locks.hold(key):
                events.append(f"{key}-start")
                await asyncio.sleep(0.01)
                events.append(f"{key}-end")

        async def main():
            await asyncio.gather(worker("a"), worker("b"))

        asyncio.run(main())

        assert events[:2] == ["a-start", "b-start"]

    def test_locks_released_after_use(self):
        """Test that the lock is dropped once nobody holds it."""
        locks = KeyedLocks()

        async def main():
            async with locks.hold("abc"):
                assert len(locks) == 1
            assert len(locks) == 0

        asyncio.run(main())

        assert len(locks) == 0

    def test_lock_released_on_error(self):
        """Test that an exception inside the block releases the lock."""
        locks = KeyedLocks()

        async def main():
            try:
                async with locks.hold("abc"):
                    raise RuntimeError("boom")
            except RuntimeError:
                pass
            async with locks.hold("abc"):
                return True

        assert asyncio.run(main()) is True
        assert len(locks) == 0
